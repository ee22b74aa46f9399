"""Push the current branch after a commit run."""

from __future__ import annotations

import enum
import logging
from typing import Iterable

from .console import Console
from .exceptions import GitError
from .git import GitRepo

logger = logging.getLogger(__name__)

REMOTE = "origin"


class PushOutcome(enum.Enum):
    NO_REMOTE = "no_remote"
    UP_TO_DATE = "up_to_date"
    PUSHED = "pushed"
    PUSHED_UPSTREAM = "pushed_upstream"
    SKIPPED = "skipped"
    FAILED = "failed"


def pluralize(count: int, word: str) -> str:
    return word if count == 1 else f"{word}s"


def is_missing_tracking_branch_error(error: BaseException) -> bool:
    """True when ``error`` says the remote counterpart of a ref does not exist."""
    message = str(error).lower()
    return (
        "unknown revision" in message
        or "bad revision" in message
        or ("ambiguous argument" in message and "not in the working tree" in message)
    )


def handle_push(
    git: GitRepo,
    console: Console,
    created_hashes: Iterable[str],
) -> PushOutcome:
    """Push the current branch to ``origin``.

    Pushes without asking only when every unpushed commit was created in this
    run. Never raises; failures are reported and returned as ``FAILED``.
    """
    created = set(created_hashes)
    progress = console.progress(f"Pushing to {REMOTE}...")
    progress.start()

    try:
        branch = git.rev_parse(["--abbrev-ref", "HEAD"])
        if not git.remote_url(REMOTE):
            progress.stop("No remote? No push. Your code is safe... for now 🤷")
            return PushOutcome.NO_REMOTE

        try:
            unpushed = git.log(f"{REMOTE}/{branch}..HEAD")
        except GitError as e:
            if not is_missing_tracking_branch_error(e):
                raise
            logger.debug("no tracking branch for %s: %s", branch, e)
            should_push = console.confirm(
                f"This is the first push to {REMOTE}/{branch}. Push now?"
                if created
                else "No new commits were created by shipit. Push existing "
                f"branch history to {REMOTE}/{branch}?",
                default=bool(created),
            )
            if not should_push:
                progress.stop("Skipped push.")
                return PushOutcome.SKIPPED
            progress.update(f"First push to {REMOTE}/{branch}...")
            git.push(REMOTE, branch, set_upstream=True)
            progress.stop(f"Pushed new branch to {REMOTE}/{branch}")
            return PushOutcome.PUSHED_UPSTREAM

        if unpushed.total == 0:
            progress.stop("Nothing to push. Your branch is up to date. 👍")
            return PushOutcome.UP_TO_DATE

        foreign = [c for c in unpushed.entries if c.hash not in created]
        should_push = True
        if not created:
            should_push = console.confirm(
                f"No new shipit commits were created. Push {unpushed.total} "
                f"existing unpushed {pluralize(unpushed.total, 'commit')} anyway?",
                default=False,
            )
        elif foreign:
            should_push = console.confirm(
                f"{len(foreign)} unpushed {pluralize(len(foreign), 'commit')} were "
                "not created by shipit in this run. Push everything anyway?",
                default=False,
            )
        if not should_push:
            progress.stop("Skipped push.")
            return PushOutcome.SKIPPED

        noun = pluralize(unpushed.total, "commit")
        progress.update(f"Pushing {unpushed.total} {noun} to {REMOTE}/{branch}...")
        git.push(REMOTE, branch)
        progress.stop(f"Successfully pushed {unpushed.total} {noun} to {REMOTE}/{branch}!")
        return PushOutcome.PUSHED
    except GitError as e:
        progress.stop(f"Push failed! You'll need to handle that manually: {e}")
        return PushOutcome.FAILED
