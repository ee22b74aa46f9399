"""Pull request template discovery."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .exceptions import GitError
from .git import GitRepo

logger = logging.getLogger(__name__)

# Standard GitHub locations, in order of precedence.
PR_TEMPLATE_PATHS = (
    ".github/PULL_REQUEST_TEMPLATE.md",
    ".github/pull_request_template.md",
    "PULL_REQUEST_TEMPLATE.md",
    "pull_request_template.md",
)
PR_TEMPLATE_DIR = ".github/PULL_REQUEST_TEMPLATE"


@dataclass
class PrTemplate:
    content: str
    source: str


def _exists(git: GitRepo, path: str) -> bool:
    try:
        git.raw(["cat-file", "-e", f"HEAD:{path}"])
    except GitError:
        return False
    return True


def _read(git: GitRepo, path: str) -> Optional[PrTemplate]:
    try:
        content = git.show(f"HEAD:{path}")
    except GitError as e:
        logger.warning("Found template at %s but couldn't read it: %s", path, e)
        return None
    return PrTemplate(content=content.strip(), source=path)


def _list_directory(git: GitRepo, path: str) -> List[str]:
    try:
        output = git.raw(["ls-tree", "--name-only", "HEAD", f"{path.rstrip('/')}/"])
    except GitError:
        return []
    names = [line.strip().rsplit("/", 1)[-1] for line in output.splitlines()]
    return [name for name in names if name]


def find_pr_template(git: GitRepo) -> Optional[PrTemplate]:
    """Return the first PR template committed at HEAD, or ``None``."""
    for path in PR_TEMPLATE_PATHS:
        if _exists(git, path):
            template = _read(git, path)
            if template is not None:
                return template

    files = _list_directory(git, PR_TEMPLATE_DIR)
    if files:
        markdown = [name for name in files if name.endswith(".md")]
        target = markdown[0] if markdown else files[0]
        return _read(git, f"{PR_TEMPLATE_DIR}/{target}")
    return None
