"""Core workflow logic for shipit."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from . import sizing
from .commit import build_commit_message, wrap_text
from .console import BOLD, DIM, GREEN, RED, RESET, Console
from .context import (
    DEFAULT_MAX_CHARS_PER_FILE,
    DEFAULT_MAX_FILES,
    UntrackedFileContext,
    collect_untracked_file_contexts,
    is_path_selected,
)
from .exceptions import CommitError, GitError, RepositoryStateError, StagingError
from .git import CommitSummary, DiffSummary, GitRepo, RepositoryStatus
from .llm import LLMClient
from .prompts import SYSTEM_INSTRUCTION, user_instruction
from .schema import CommitGroupProposal

logger = logging.getLogger(__name__)

COMMITTED = "committed"
DECLINED = "declined"
EMPTY = "empty"


@dataclass
class WorkflowOptions:
    paths: Sequence[str] = ()
    appendix: Optional[str] = None
    skip_token_check: bool = False
    max_untracked_files: int = DEFAULT_MAX_FILES
    max_untracked_chars: int = DEFAULT_MAX_CHARS_PER_FILE


@dataclass
class RepositorySnapshot:
    """Everything the prompt is built from, captured once per run."""

    status: RepositoryStatus
    diff_summary: DiffSummary = field(default_factory=DiffSummary)
    diff: str = ""
    untracked: List[UntrackedFileContext] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return self.status.is_clean and not self.diff_summary.files


@dataclass
class CommitResult:
    """Outcome for one proposed commit group."""

    proposal: CommitGroupProposal
    message: str
    status: str
    summary: Optional[CommitSummary] = None

    @property
    def commit_hash(self) -> Optional[str]:
        return self.summary.hash if self.summary else None


@dataclass
class WorkflowResult:
    commits: List[CommitResult] = field(default_factory=list)
    created_hashes: List[str] = field(default_factory=list)

    @property
    def committed(self) -> int:
        return sum(1 for c in self.commits if c.status == COMMITTED)

    @property
    def skipped(self) -> int:
        return sum(1 for c in self.commits if c.status == EMPTY)

    @property
    def declined(self) -> int:
        return sum(1 for c in self.commits if c.status == DECLINED)


class ShipitWorkflow:
    """Inspect, generate and apply commit groups for one invocation."""

    def __init__(
        self,
        git: GitRepo,
        llm: LLMClient,
        console: Console,
        options: Optional[WorkflowOptions] = None,
    ) -> None:
        self.git = git
        self.llm = llm
        self.console = console
        self.options = options or WorkflowOptions()

    def check_repository_state(self) -> RepositoryStatus:
        """Fail before any provider spend when committing would be unsafe."""
        status = self.git.status()
        if status.conflicted:
            raise RepositoryStateError(
                "Unresolved merge conflicts in: "
                + ", ".join(status.conflicted)
                + ". Resolve them before running shipit."
            )
        paths = self.options.paths
        if paths:
            outside = [p for p in status.staged if not is_path_selected(p, paths)]
            if outside:
                raise RepositoryStateError(
                    "Staged files outside the selected paths: "
                    + ", ".join(outside)
                    + ". Unstage them or widen the path selection."
                )
        return status

    def inspect(self) -> RepositorySnapshot:
        paths = list(self.options.paths) or None
        status = self.git.status(paths)
        if status.is_clean:
            return RepositorySnapshot(status=status)
        untracked = collect_untracked_file_contexts(
            status.untracked,
            self.options.paths,
            max_files=self.options.max_untracked_files,
            max_chars_per_file=self.options.max_untracked_chars,
            root=self.git.repo_path,
        )
        return RepositorySnapshot(
            status=status,
            diff_summary=self.git.diff_summary(paths),
            diff=self.git.diff(paths),
            untracked=untracked,
        )

    def build_prompt(self, snapshot: RepositorySnapshot) -> str:
        return user_instruction(
            snapshot.status,
            snapshot.diff_summary,
            snapshot.diff,
            appendix=self.options.appendix,
            untracked=snapshot.untracked,
        )

    def check_token_budget(self, prompt: str) -> bool:
        """Report prompt size; return False when the user backs out."""
        progress = self.console.progress("Counting tokens...")
        progress.start()
        estimate = sizing.estimate_risk(prompt)
        tier = estimate.tier
        emoji = f"{tier.emoji} " if tier.emoji else ""
        hint = f" {DIM}({tier.hint}){RESET}" if tier.hint else ""
        progress.stop(
            f"{emoji}That's {BOLD}~{estimate.token_count} tokens{RESET}, {tier.label}{hint}"
        )
        if not estimate.requires_confirmation:
            return True
        if tier.description:
            self.console.warning(tier.description)
        if self.options.skip_token_check:
            logger.debug("token gate skipped (tier=%s)", tier.label)
            return True
        return self.console.confirm("Continue anyway?", default=False)

    def generate(
        self, snapshot: RepositorySnapshot, prompt: Optional[str] = None
    ) -> List[CommitGroupProposal]:
        progress = self.console.progress("Making commit messages that don't suck...")
        progress.start()
        try:
            proposals = self.llm.generate_commit_groups(
                SYSTEM_INSTRUCTION, prompt or self.build_prompt(snapshot)
            )
        except Exception:
            progress.stop("The AI dropped the ball.")
            raise
        progress.stop(f"Here come the goods: {len(proposals)} commit group(s)")
        return proposals

    def _present(self, proposal: CommitGroupProposal) -> str:
        message = build_commit_message(proposal)
        lines = [f"{DIM}━━━{RESET}", f"{BOLD}{message.header}{RESET}"]
        if message.body:
            lines.append(f"{DIM}{wrap_text(message.body)}{RESET}")
        if message.footers:
            lines.append("\n".join(wrap_text(f) for f in message.footers))
        lines.append(f"{DIM}━━━{RESET}")
        count = len(proposal.files)
        lines.append(
            f"Applies to these {BOLD}{count} file{'' if count == 1 else 's'}{RESET}: "
            f"{DIM}{wrap_text(', '.join(proposal.files))}{RESET}"
        )
        self.console.message("\n".join(lines))
        return message.render()

    def _pending_paths(self, files: Sequence[str]) -> Tuple[List[str], List[str]]:
        """Split ``files`` into the paths to stage and the commit pathspec.

        A staged rename commits its source next to the destination so the
        deletion lands in the same commit. Paths already staged and gone from
        the working tree are committed without being added again.
        """
        status = self.git.status()
        pending = set(status.files)
        staged = set(status.staged)
        sources = {src for src, _ in status.renamed}

        to_stage: List[str] = []
        commit_paths: List[str] = []
        for f in files:
            exists = (self.git.repo_path / f).exists()
            if not (
                exists
                or f in pending
                or f in sources
                or any(is_path_selected(p, [f]) for p in pending)
            ):
                continue
            commit_paths.append(f)
            if exists or (f not in staged and f not in sources):
                to_stage.append(f)

        for src, dst in status.renamed:
            if src not in commit_paths and any(
                is_path_selected(dst, [p]) for p in commit_paths
            ):
                commit_paths.append(src)
        return to_stage, commit_paths

    def apply_one(self, proposal: CommitGroupProposal) -> CommitResult:
        message = self._present(proposal)
        if not self.console.confirm("Ship it?", default=True):
            self.console.info("Your loss. Moving on...")
            return CommitResult(proposal=proposal, message=message, status=DECLINED)

        to_stage, commit_paths = self._pending_paths(proposal.files)
        try:
            self.git.add(to_stage)
        except GitError as e:
            raise StagingError(f"Failed to stage files: {e}") from e

        if not commit_paths or not self.git.staged_diff(commit_paths).strip():
            logger.debug("proposal has no staged delta: %s", proposal.files)
            self.console.warning(
                "Nothing left to commit for these files (already committed?). Skipping."
            )
            return CommitResult(proposal=proposal, message=message, status=EMPTY)

        try:
            summary = self.git.commit(message, commit_paths)
        except GitError as e:
            raise CommitError(f"Commit failed: {e}") from e

        self.console.success(
            f"Committed to {summary.branch}: {BOLD}{summary.hash[:7]}{RESET} "
            f"{DIM}({summary.changes} changes, {GREEN}+{summary.insertions}{RESET}{DIM}, "
            f"{RED}-{summary.deletions}{RESET}{DIM}){RESET}"
        )
        return CommitResult(
            proposal=proposal, message=message, status=COMMITTED, summary=summary
        )

    def apply(self, proposals: Iterable[CommitGroupProposal]) -> WorkflowResult:
        """Confirm, stage and commit each proposal in order.

        Staging and commit failures propagate and end the run; commits made
        before the failure are kept.
        """
        result = WorkflowResult()
        for index, proposal in enumerate(proposals):
            if index:
                self.console.info("Another one coming in hot...")
            outcome = self.apply_one(proposal)
            result.commits.append(outcome)
            if outcome.status == COMMITTED and outcome.commit_hash:
                result.created_hashes.append(outcome.commit_hash)
        return result

    def run(self) -> Optional[WorkflowResult]:
        """Run the commit phase; ``None`` means nothing was attempted."""
        self.check_repository_state()
        snapshot = self.inspect()
        if snapshot.empty:
            self.console.info("No changes to commit. Your working tree is clean.")
            return None

        summary = snapshot.diff_summary
        touched = len(snapshot.status.files)
        self.console.info(
            f"{sizing.categorize_changes_count(touched)} You touched "
            f"{BOLD}{touched} file{'' if touched == 1 else 's'}{RESET} "
            f"{DIM}(+{summary.insertions}, -{summary.deletions}){RESET}"
        )

        prompt = self.build_prompt(snapshot)
        if not self.check_token_budget(prompt):
            self.console.info("Smart move. Maybe split that monster diff next time?")
            return None

        self.console.info("Time to make the AI earn its keep...")
        proposals = self.generate(snapshot, prompt)
        if not proposals:
            self.console.info("Nothing worth committing, according to the AI.")
            return WorkflowResult()

        result = self.apply(proposals)
        self.console.success(
            f"Boom! {result.committed} commit(s) that actually make sense."
        )
        return result
