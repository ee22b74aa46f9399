"""Conventional commit message composition for shipit."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .schema import CommitGroupProposal


def decapitalize_first_letter(text: str) -> str:
    return text[:1].lower() + text[1:]


def wrap_text(text: str, max_width: int = 80) -> str:
    """Greedy word wrap on spaces; over-long words get a line of their own."""
    lines: List[str] = []
    current = ""
    for word in text.split(" "):
        extra = 1 if current else 0
        if len(current) + len(word) + extra > max_width:
            if current:
                lines.append(current)
                current = word
            else:
                lines.append(word)
        else:
            current += (" " if current else "") + word
    if current:
        lines.append(current)
    return "\n".join(lines)


def build_prefix(proposal: CommitGroupProposal) -> str:
    """Return ``type[(scope)][!]`` for ``proposal``."""
    scope = f"({proposal.scope})" if proposal.scope else ""
    bang = "!" if proposal.breaking else ""
    return f"{proposal.type}{scope}{bang}"


@dataclass
class CommitMessage:
    header: str
    body: Optional[str] = None
    footers: List[str] = field(default_factory=list)

    def render(self) -> str:
        parts = [self.header]
        if self.body:
            parts.append(self.body)
        if self.footers:
            parts.append("\n".join(self.footers))
        return "\n\n".join(parts)


def build_commit_message(proposal: CommitGroupProposal) -> CommitMessage:
    """Compose the message for one proposal.

    The description is decapitalized. When the model already started the
    description with the prefix, the prefix is not repeated.
    """
    description = decapitalize_first_letter(proposal.description.strip())
    prefix = build_prefix(proposal)
    if description.startswith(f"{prefix}:"):
        header = description
    else:
        header = f"{prefix}: {description}"
    footers = [f for f in (proposal.footers or []) if f and f.strip()]
    return CommitMessage(header=header, body=proposal.body, footers=footers)
