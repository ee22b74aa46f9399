"""Structured-output models exchanged with providers."""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, Field, field_validator

CommitType = Literal[
    "fix",
    "feat",
    "build",
    "chore",
    "ci",
    "docs",
    "style",
    "refactor",
    "perf",
    "test",
    "other",
]


class CommitGroupProposal(BaseModel):
    """One commit the model proposes to create."""

    files: List[str] = Field(
        description="Array of file paths affected by this commit group"
    )
    type: CommitType = Field(description="Conventional commit type")
    scope: Optional[str] = Field(
        default=None, description="Optional scope for the changes"
    )
    description: str = Field(description="Brief description of changes")
    body: Optional[str] = Field(
        default=None,
        description="Optional multi-line body with bullet points or paragraphs",
    )
    breaking: bool = Field(
        description="Boolean indicating if this introduces breaking changes"
    )
    footers: Optional[List[str]] = Field(
        default=None,
        description="Array of footer strings (e.g., 'BREAKING CHANGE: ...', 'Closes #123')",
    )

    @field_validator("files")
    @classmethod
    def _unique_non_empty(cls, value: List[str]) -> List[str]:
        files = list(dict.fromkeys(p.strip() for p in value if p and p.strip()))
        if not files:
            raise ValueError("files must list at least one path")
        return files

    @field_validator("scope", "body")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()


class CommitGroupEnvelope(BaseModel):
    commits: List[CommitGroupProposal] = Field(
        description="Ordered commit groups covering every changed file"
    )


class PullRequestDraft(BaseModel):
    title: str = Field(
        description=(
            "PR title, max 72 characters, using precise language that accurately "
            "describes the changes without superlatives. Do NOT include conventional "
            "commit prefixes (feat:, fix:, etc.) or scopes - use plain English"
        )
    )
    body: str = Field(
        description=(
            "PR body with markdown formatting, using straightforward language that "
            "focuses on facts and technical details"
        )
    )


_DROPPED_KEYS = ("title", "default")


def _inline(node: Any, defs: Dict[str, Any]) -> Any:
    if isinstance(node, list):
        return [_inline(item, defs) for item in node]
    if not isinstance(node, dict):
        return node

    ref = node.get("$ref")
    if isinstance(ref, str) and ref.startswith("#/$defs/"):
        target = copy.deepcopy(defs[ref.split("/")[-1]])
        return _inline(target, defs)

    out: Dict[str, Any] = {}
    for key, value in node.items():
        if key in _DROPPED_KEYS or key == "$defs":
            continue
        if key == "properties" and isinstance(value, dict):
            out[key] = {name: _inline(prop, defs) for name, prop in value.items()}
        else:
            out[key] = _inline(value, defs)
    if out.get("type") == "object" and "properties" in out:
        out["required"] = list(out["properties"])
        out["additionalProperties"] = False
    return out


def strict_json_schema(model: Type[BaseModel]) -> Dict[str, Any]:
    """JSON schema for ``model`` in the strict form providers accept.

    Every property is required, objects are closed and ``$defs`` references
    are inlined.
    """
    schema = model.model_json_schema()
    defs = schema.get("$defs", {})
    return _inline(schema, defs)
