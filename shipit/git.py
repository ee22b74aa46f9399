"""Git operations for shipit."""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .exceptions import GitError, RepositoryStateError

logger = logging.getLogger(__name__)

UNMERGED_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})

_SHORTSTAT_RE = {
    "changes": re.compile(r"(\d+) files? changed"),
    "insertions": re.compile(r"(\d+) insertions?\(\+\)"),
    "deletions": re.compile(r"(\d+) deletions?\(-\)"),
}


@dataclass
class RepositoryStatus:
    """Working-tree status for one invocation."""

    branch: Optional[str] = None
    staged: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)
    conflicted: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    # (source, destination) pairs of staged renames
    renamed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (
            self.staged
            or self.modified
            or self.untracked
            or self.conflicted
            or self.deleted
            or self.renamed
        )

    @property
    def files(self) -> List[str]:
        """Every path with a pending change, in first-seen order."""
        seen: Dict[str, None] = {}
        for group in (
            self.conflicted,
            self.staged,
            self.modified,
            self.deleted,
            [dst for _, dst in self.renamed],
            self.untracked,
        ):
            for path in group:
                seen.setdefault(path, None)
        return list(seen)


@dataclass
class FileDiffStat:
    path: str
    insertions: int = 0
    deletions: int = 0
    binary: bool = False


@dataclass
class DiffSummary:
    files: List[FileDiffStat] = field(default_factory=list)

    @property
    def changed(self) -> int:
        return len(self.files)

    @property
    def insertions(self) -> int:
        return sum(f.insertions for f in self.files)

    @property
    def deletions(self) -> int:
        return sum(f.deletions for f in self.files)


@dataclass
class CommitSummary:
    hash: str
    branch: Optional[str]
    changes: int = 0
    insertions: int = 0
    deletions: int = 0


@dataclass
class LogEntry:
    hash: str
    subject: str
    body: str = ""


@dataclass
class CommitLog:
    total: int
    entries: List[LogEntry] = field(default_factory=list)


def find_git_repo_root(start_path: Optional[Path] = None) -> Optional[Path]:
    """Return the top-level Git repository directory for ``start_path``.

    Uses ``git rev-parse --show-toplevel`` so worktrees and submodules are
    handled correctly. Returns ``None`` when ``start_path`` is not inside a
    repository or Git is not installed.
    """

    path = Path(start_path or Path.cwd()).expanduser().resolve(strict=False)
    if path.is_file():
        path = path.parent

    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=path,
            capture_output=True,
            text=True,
            check=True,
        )
    except (subprocess.CalledProcessError, FileNotFoundError, NotADirectoryError):
        return None
    top = result.stdout.strip()
    return Path(top) if top else None


def _unquote_path(path: str) -> str:
    path = path.strip()
    if len(path) >= 2 and path.startswith('"') and path.endswith('"'):
        path = path[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return path


def _pathspec(paths: Optional[Sequence[str]]) -> List[str]:
    return ["--", *paths] if paths else []


def parse_status(output: str) -> RepositoryStatus:
    """Parse ``git status --porcelain=v1 --branch`` output."""
    status = RepositoryStatus()
    for line in output.splitlines():
        if not line:
            continue
        if line.startswith("## "):
            status.branch = _parse_branch_header(line[3:])
            continue
        code = line[:2]
        raw_path = line[3:]
        source = None
        if " -> " in raw_path:
            raw_source, raw_path = raw_path.split(" -> ", 1)
            source = _unquote_path(raw_source)
        path = _unquote_path(raw_path)
        if not path:
            continue

        if code == "??":
            status.untracked.append(path)
            continue
        if code in UNMERGED_CODES:
            status.conflicted.append(path)
            continue

        index, worktree = code[0], code[1]
        if index not in (" ", "?", "!"):
            status.staged.append(path)
        if index == "R" and source:
            status.renamed.append((source, path))
        if "D" in code:
            status.deleted.append(path)
        if worktree in ("M", "T"):
            status.modified.append(path)
    return status


def _parse_branch_header(header: str) -> Optional[str]:
    for prefix in ("No commits yet on ", "Initial commit on "):
        if header.startswith(prefix):
            return header[len(prefix):].strip()
    if header.startswith("HEAD (no branch)"):
        return None
    return header.split("...", 1)[0].split(" ", 1)[0].strip() or None


def parse_numstat(output: str) -> List[FileDiffStat]:
    stats: List[FileDiffStat] = []
    for line in output.splitlines():
        parts = line.split("\t", 2)
        if len(parts) != 3:
            continue
        added, removed, path = parts
        binary = added == "-" or removed == "-"
        stats.append(
            FileDiffStat(
                path=_unquote_path(path),
                insertions=0 if binary else int(added),
                deletions=0 if binary else int(removed),
                binary=binary,
            )
        )
    return stats


def parse_shortstat(output: str) -> Dict[str, int]:
    counts = {}
    for key, pattern in _SHORTSTAT_RE.items():
        match = pattern.search(output)
        counts[key] = int(match.group(1)) if match else 0
    return counts


class GitRepo:
    """Handles Git repository operations."""

    def __init__(self, repo_path: Optional[str] = None) -> None:
        """Initialize Git repository handler."""

        self.repo_path = Path(repo_path or Path.cwd())
        if not self._is_git_repo():
            raise RepositoryStateError(f"Not a Git repository: {self.repo_path}")

    def _is_git_repo(self) -> bool:
        """Check if the current directory is a Git repository."""
        try:
            self._run_git_command(["rev-parse", "--git-dir"])
            return True
        except GitError:
            return False

    def _run_git_command(self, args: List[str], strip: bool = True) -> str:
        """Run a Git command and return its output."""
        logger.debug("git %s", " ".join(args))
        try:
            result = subprocess.run(
                ["git"] + args,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            cmd = " ".join(args)
            raise GitError(f"Git command failed: {cmd}\n{e.stderr}") from e
        except (FileNotFoundError, NotADirectoryError) as exc:
            raise GitError("Git command not found. Please install Git.") from exc
        return result.stdout.strip() if strip else result.stdout

    def raw(self, args: Sequence[str]) -> str:
        """Run an arbitrary git command and return its stripped output."""
        return self._run_git_command(list(args))

    def status(self, paths: Optional[Sequence[str]] = None) -> RepositoryStatus:
        output = self._run_git_command(
            ["-c", "core.quotePath=false", "status", "--porcelain=v1", "--branch", "-uall"]
            + _pathspec(paths),
            strip=False,
        )
        return parse_status(output)

    def diff_summary(self, paths: Optional[Sequence[str]] = None) -> DiffSummary:
        """Per-file line counts over staged and unstaged changes combined."""
        merged: Dict[str, FileDiffStat] = {}
        for extra in (["--cached"], []):
            output = self._run_git_command(
                ["-c", "core.quotePath=false", "diff", *extra, "--numstat", "--no-renames"]
                + _pathspec(paths),
                strip=False,
            )
            for stat in parse_numstat(output):
                existing = merged.get(stat.path)
                if existing is None:
                    merged[stat.path] = stat
                    continue
                existing.insertions += stat.insertions
                existing.deletions += stat.deletions
                existing.binary = existing.binary or stat.binary
        return DiffSummary(files=list(merged.values()))

    def diff(self, paths: Optional[Sequence[str]] = None) -> str:
        """Full textual diff of staged then unstaged changes."""
        staged = self._run_git_command(["diff", "--cached"] + _pathspec(paths))
        unstaged = self._run_git_command(["diff"] + _pathspec(paths))
        return "\n".join(part for part in (staged, unstaged) if part)

    def staged_diff(self, files: Optional[Sequence[str]] = None) -> str:
        return self._run_git_command(["diff", "--cached"] + _pathspec(files))

    def add(self, files: Sequence[str]) -> None:
        """Stage the given files, including deletions."""
        if not files:
            return
        self._run_git_command(["add", "--"] + list(files))

    def current_branch(self) -> Optional[str]:
        try:
            branch = self._run_git_command(["rev-parse", "--abbrev-ref", "HEAD"])
        except GitError:
            return None
        return None if branch == "HEAD" else branch

    def commit(self, message: str, files: Sequence[str]) -> CommitSummary:
        """Create a commit including ONLY the specified files.

        The pathspec after the message keeps anything else that happens to be
        staged out of this commit.
        """
        self._run_git_command(["commit", "-m", message, "--"] + list(files))
        commit_hash = self._run_git_command(["rev-parse", "HEAD"])
        stats = parse_shortstat(
            self._run_git_command(["show", "--shortstat", "--format=", "HEAD"])
        )
        return CommitSummary(
            hash=commit_hash,
            branch=self.current_branch(),
            changes=stats["changes"],
            insertions=stats["insertions"],
            deletions=stats["deletions"],
        )

    def push(
        self,
        remote: str = "origin",
        branch: Optional[str] = None,
        set_upstream: bool = False,
    ) -> str:
        """Push ``branch`` (default: current branch) to ``remote``."""
        if branch is None:
            branch = self._run_git_command(["rev-parse", "--abbrev-ref", "HEAD"])
        args = ["push"]
        if set_upstream:
            args.append("--set-upstream")
        return self._run_git_command(args + [remote, branch])

    def log(self, revision_range: Optional[str] = None) -> CommitLog:
        """Return commits in ``revision_range`` (newest first)."""
        args = ["log", "--format=%H%x1f%s%x1f%b%x1e"]
        if revision_range:
            args.append(revision_range)
        output = self._run_git_command(args, strip=False)
        entries: List[LogEntry] = []
        for record in output.split("\x1e"):
            record = record.strip("\n")
            if not record:
                continue
            commit_hash, subject, body = (record.split("\x1f", 2) + ["", ""])[:3]
            entries.append(
                LogEntry(hash=commit_hash.strip(), subject=subject, body=body.strip())
            )
        return CommitLog(total=len(entries), entries=entries)

    def rev_parse(self, args: Sequence[str]) -> str:
        return self._run_git_command(["rev-parse", *args])

    def ref_exists(self, ref: str) -> bool:
        try:
            self.rev_parse(["--verify", "--quiet", ref])
        except GitError:
            return False
        return True

    def get_config(self, key: str) -> Optional[str]:
        """Return a git config value, or ``None`` when unset."""
        try:
            value = self._run_git_command(["config", "--get", key])
        except GitError:
            return None
        return value or None

    def remote_url(self, remote: str = "origin") -> Optional[str]:
        return self.get_config(f"remote.{remote}.url")

    def show(self, ref: str) -> str:
        return self._run_git_command(["show", ref], strip=False)
