"""Instruction text sent to providers and user prompt assembly."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import TYPE_CHECKING, Optional, Sequence

from .context import UntrackedFileContext
from .git import DiffSummary, LogEntry, RepositoryStatus

if TYPE_CHECKING:
    from .template import PrTemplate


SYSTEM_INSTRUCTION = """# Expert `git` companion

You are an expert assistant that turns pending repository changes into
Conventional Commits. You receive the parsed `git status`, a per-file diff
summary, the raw diff and the content of new files. Split the work into small,
focused, atomic commits instead of one large commit.

## Directives

1. Prefer smaller commits. A bug fix and a new feature never share a commit.
2. Explain why the change was made; the diff already shows what changed.
3. Follow the Conventional Commits specification without deviation:
   `<type>[optional scope][!]: <description>`, an optional body one blank
   line after the description, optional footers one blank line after the body.
4. Avoid vague language such as "refactor code" or "fix some bugs".
5. Every file reported by `git status` must appear in exactly one commit.
   Renames are listed as `[source, destination]`; name the destination.

## Types

- `feat`: a new feature for the user.
- `fix`: a bug fix for the user.
- `build`: build system or external dependency changes.
- `chore`: changes that do not touch source or test files.
- `ci`: CI configuration files and scripts.
- `docs`: documentation only.
- `perf`: a change that improves performance.
- `refactor`: neither fixes a bug nor adds a feature.
- `style`: formatting changes that do not affect meaning.
- `test`: adding or correcting tests.

## Guidelines

- Scopes name a real component, directory or feature, and are optional.
- Descriptions stay under 50 characters and never repeat the type or scope.
- Mark a change as breaking only when it changes a core contract of the
  project. Breaking changes may also carry a `BREAKING CHANGE: ...` footer.
"""


def _status_payload(status: RepositoryStatus) -> dict:
    payload = asdict(status)
    payload["is_clean"] = status.is_clean
    return payload


def _summary_payload(summary: DiffSummary) -> dict:
    return {
        "changed": summary.changed,
        "insertions": summary.insertions,
        "deletions": summary.deletions,
        "files": [asdict(f) for f in summary.files],
    }


def _untracked_section(untracked: Sequence[UntrackedFileContext]) -> str:
    if not untracked:
        return ""
    blocks = []
    for item in untracked:
        notes = []
        if item.is_binary:
            notes.append("binary")
        if item.is_truncated:
            notes.append("truncated")
        suffix = f" ({', '.join(notes)})" if notes else ""
        blocks.append(f"#### `{item.path}`{suffix}\n\n```\n{item.content}\n```")
    return "\n\n### Untracked Files\n\n" + "\n\n".join(blocks)


def user_instruction(
    status: RepositoryStatus,
    diff_summary: DiffSummary,
    diff: str,
    appendix: Optional[str] = None,
    untracked: Sequence[UntrackedFileContext] = (),
) -> str:
    """Assemble the exact user prompt that is sized and sent to the model."""
    extra = ""
    if appendix and appendix.strip():
        extra = f"\n\n## Additional Context\n\n{appendix.strip()}"
    return (
        "## Instructions\n\n"
        "You are an expert software developer writing commit messages for the "
        "following changes. Adhere to the **Conventional Commits** specification. "
        "Each commit needs a concise subject line and, where useful, a body "
        'explaining the "what" and "why" of the change.\n\n'
        "## Git Context\n\n"
        "### Status\n\n"
        f"```json\n{json.dumps(_status_payload(status))}\n```\n\n"
        "### Diff Summary\n\n"
        f"```json\n{json.dumps(_summary_payload(diff_summary))}\n```\n\n"
        "### Diff\n\n"
        f"```diff\n{diff}\n```"
        f"{_untracked_section(untracked)}"
        f"{extra}\n\n"
        "---\n\n"
        "## Commit Messages:"
    )


_TITLE_RULES = """**Title Requirements:**
- Max 72 characters
- Imperative mood (e.g., "Add feature" not "Added feature")
- Summarize the main purpose of all commits combined
- **DO NOT include conventional commit prefixes** (no "feat:", "fix:", "chore:", etc.)
- **DO NOT include scopes** (no "(auth):", "(api):", etc.)
- Use plain English without commit formatting"""


def pr_instruction(
    commits: Sequence[LogEntry],
    template: Optional["PrTemplate"] = None,
) -> str:
    """Prompt asking for a pull request title and body."""
    commit_lines = "\n".join(
        f"- {c.subject}" + (f"\n  {c.body}" if c.body else "") for c in commits
    )
    base = (
        "# Pull Request Description Generator\n\n"
        "You write accurate, concise pull request descriptions. Describe what "
        "changed and why, factually and without superlatives or intensifiers. "
        "Match the size of the description to the size of the change.\n\n"
        f"## Commits to Analyze\n\n{commit_lines}"
    )

    if template is not None:
        return (
            f"{base}\n\n"
            "## PR Template Found\n\n"
            f"The repository has a PR template at `{template.source}`. You MUST "
            "follow this template structure exactly:\n\n"
            f"```markdown\n{template.content}\n```\n\n"
            "## Generate\n\n"
            f"{_TITLE_RULES}\n\n"
            "**Body Requirements:**\n"
            "- Follow the exact structure and format of the template above\n"
            "- Keep every heading, checkbox and formatting element\n"
            '- Write "N/A" for sections that do not apply\n'
            "- Do not add sections the template does not have"
        )

    return (
        f"{base}\n\n"
        "## Generate\n\n"
        f"{_TITLE_RULES}\n\n"
        "**Body Requirements:**\n"
        "- Start with a brief overview of what this PR accomplishes\n"
        "- Use markdown, with sections as relevant: **What**, **Why**, "
        "**Key Changes**, **Breaking Changes**, **Testing**\n"
        "- Keep it scannable and precise"
    )
