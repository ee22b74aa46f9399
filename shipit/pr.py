"""Pull request creation after a commit run."""

from __future__ import annotations

import enum
import logging
import os
import re
import subprocess
import tempfile
from typing import Optional, Sequence

from .commit import wrap_text
from .console import BOLD, CYAN, DIM, RESET, Console
from .errors import format_provider_error
from .exceptions import GitError, LLMError, ShipitError
from .git import GitRepo
from .llm import LLMClient
from .prompts import pr_instruction
from .push import REMOTE, is_missing_tracking_branch_error, pluralize
from .schema import PullRequestDraft
from .template import find_pr_template

logger = logging.getLogger(__name__)

BASE_BRANCH_CANDIDATES = ("main", "master")
_URL_RE = re.compile(r"https://\S+")
_SCP_REMOTE_RE = re.compile(r"^[\w.-]+@([^:/]+):(.+)$")


class PrOutcome(enum.Enum):
    NO_REMOTE = "no_remote"
    NO_BASE = "no_base"
    ON_BASE = "on_base"
    NOTHING_AHEAD = "nothing_ahead"
    DECLINED = "declined"
    PUSH_FAILED = "push_failed"
    OPENED = "opened"
    OPEN_FAILED = "open_failed"
    FAILED = "failed"


def compare_url(remote_url: str, base: str, branch: str) -> str:
    """Browser URL for comparing ``branch`` against ``base`` on the remote host."""
    url = remote_url.strip()
    match = _SCP_REMOTE_RE.match(url)
    if match:
        url = f"https://{match.group(1)}/{match.group(2)}"
    elif url.startswith("ssh://"):
        host_path = url[len("ssh://"):].split("@", 1)[-1]
        url = "https://" + host_path
    if url.endswith(".git"):
        url = url[: -len(".git")]
    return f"{url.rstrip('/')}/compare/{base}...{branch}"


def resolve_base_branch(git: GitRepo) -> Optional[str]:
    for candidate in BASE_BRANCH_CANDIDATES:
        if git.ref_exists(f"{REMOTE}/{candidate}"):
            return candidate
    return None


def open_pull_request(
    base: str,
    title: str,
    body: str,
    cwd: Optional[str] = None,
) -> subprocess.CompletedProcess:
    """Write ``body`` to a temp file and hand off to ``gh pr create --web``."""
    fd, body_path = tempfile.mkstemp(prefix="shipit-pr-", suffix=".md")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(body)
        return subprocess.run(
            _gh_command(base, title, body_path),
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    finally:
        try:
            os.remove(body_path)
        except OSError:
            pass


def _gh_command(base: str, title: str, body_path: str) -> Sequence[str]:
    return [
        "gh",
        "pr",
        "create",
        "--base",
        base,
        "--title",
        title,
        "--body-file",
        body_path,
        "--web",
    ]


def _push_before_pr(
    git: GitRepo, console: Console, branch: str, base: str
) -> Optional[bool]:
    """Push unpushed commits first. Returns None when declined, False on failure."""
    try:
        try:
            unpushed = git.log(f"{REMOTE}/{branch}..HEAD").total
            set_upstream = False
        except GitError as e:
            if not is_missing_tracking_branch_error(e):
                raise
            unpushed = git.log(f"{REMOTE}/{base}..HEAD").total
            set_upstream = True

        if unpushed == 0:
            return True
        noun = pluralize(unpushed, "commit")
        if not console.confirm(
            f"Push {unpushed} unpushed {noun} to {REMOTE}/{branch}?", default=True
        ):
            return None
        progress = console.progress(f"Pushing {unpushed} {noun} to {REMOTE}/{branch}...")
        progress.start()
        git.push(REMOTE, branch, set_upstream=set_upstream)
        progress.stop("Pushed! Your code is now live and ready to PR")
        return True
    except GitError as e:
        console.error(f"Push failed! You'll need to handle that manually first: {e}")
        return False


def _show_draft(console: Console, draft: PullRequestDraft) -> None:
    console.message(
        "\n".join(
            [
                "",
                f"{BOLD}PR Title:{RESET}",
                draft.title,
                "",
                f"{BOLD}PR Body:{RESET}",
                f"{DIM}{wrap_text(draft.body)}{RESET}",
                "",
            ]
        )
    )


def create_pull_request(
    git: GitRepo,
    llm: LLMClient,
    console: Console,
    auto_confirm: bool = False,
) -> PrOutcome:
    """Draft a PR for the current branch and open it with the GitHub CLI.

    Best effort: every failure is reported and turned into an outcome.
    """
    try:
        branch = git.rev_parse(["--abbrev-ref", "HEAD"])
        remote_url = git.remote_url(REMOTE)
        if not remote_url:
            console.info("No remote? No PR. Push your code somewhere first! 🤷")
            return PrOutcome.NO_REMOTE

        base = resolve_base_branch(git)
        if base is None:
            console.info("No main or master branch? What kind of repo is this? 🤔")
            return PrOutcome.NO_BASE
        if branch == base:
            console.info(f"You're on {base} already. No PR needed, champ! 👑")
            return PrOutcome.ON_BASE

        ahead = git.log(f"{REMOTE}/{base}..HEAD")
        if ahead.total == 0:
            console.info(f"No commits ahead of {base}? Nothing to PR here! 🤷")
            return PrOutcome.NOTHING_AHEAD

        if not auto_confirm and not console.confirm(
            f"Want me to cook up a PR for {ahead.total} "
            f"{pluralize(ahead.total, 'commit')}?",
            default=True,
        ):
            return PrOutcome.DECLINED

        pushed = _push_before_pr(git, console, branch, base)
        if pushed is None:
            return PrOutcome.DECLINED
        if not pushed:
            return PrOutcome.PUSH_FAILED

        progress = console.progress("Getting the AI to write your PR...")
        progress.start()
        template = find_pr_template(git)
        if template is not None:
            logger.debug("using PR template %s", template.source)
        try:
            draft = llm.generate_pull_request(pr_instruction(ahead.entries, template))
        except LLMError:
            progress.stop("The AI couldn't write your PR.")
            raise
        progress.stop("Nice! Got your PR ready to rock...")

        _show_draft(console, draft)
        if not console.confirm("Ship it to GitHub?", default=True):
            return PrOutcome.DECLINED

        return _hand_off(git, console, base, branch, remote_url, draft)
    except LLMError as e:
        console.error(f"PR creation went sideways: {format_provider_error(e)}")
        return PrOutcome.FAILED
    except ShipitError as e:
        console.error(f"PR creation went sideways: {e}")
        return PrOutcome.FAILED


def _hand_off(
    git: GitRepo,
    console: Console,
    base: str,
    branch: str,
    remote_url: str,
    draft: PullRequestDraft,
) -> PrOutcome:
    try:
        proc = open_pull_request(base, draft.title, draft.body, cwd=str(git.repo_path))
    except OSError as e:
        return _manual_fallback(console, e, remote_url, base, branch)

    output, errors = proc.stdout or "", proc.stderr or ""
    if errors and "Opening" not in errors:
        console.error(f"GitHub CLI error: {errors.strip()}")
    if "Opening" in output or "https://" in output or "Opening" in errors:
        console.success("PR opened in your browser! Time to ship it 🚀")
        match = _URL_RE.search(output + errors)
        if match:
            console.info(f"{CYAN}{match.group(0)}{RESET}")
        return PrOutcome.OPENED
    return _manual_fallback(
        console, f"gh exited with status {proc.returncode}", remote_url, base, branch
    )


def _manual_fallback(
    console: Console, reason: object, remote_url: str, base: str, branch: str
) -> PrOutcome:
    console.error(f"Couldn't open PR in browser: {reason}")
    console.info("Manual backup plan:")
    console.info(f"{CYAN}{compare_url(remote_url, base, branch)}{RESET}")
    return PrOutcome.OPEN_FAILED
