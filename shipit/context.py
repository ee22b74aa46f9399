"""Untracked file context collection for prompt assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

logger = logging.getLogger(__name__)

BINARY_PLACEHOLDER = "[binary file omitted]"
DEFAULT_MAX_FILES = 20
DEFAULT_MAX_CHARS_PER_FILE = 12000


@dataclass
class UntrackedFileContext:
    path: str
    content: str
    is_binary: bool = False
    is_truncated: bool = False


def is_path_selected(file_path: str, selected_paths: Sequence[str]) -> bool:
    """Return True when ``file_path`` falls under one of ``selected_paths``.

    Matching is by whole path segments: ``src`` selects ``src/app.py`` but not
    ``srcfoo/app.py``. An empty selection selects everything.
    """
    if not selected_paths:
        return True
    for selected in selected_paths:
        selected = selected.rstrip("/")
        if not selected or selected == ".":
            return True
        if file_path == selected or file_path.startswith(f"{selected}/"):
            return True
    return False


def _read_context(path: str, full_path: Path, max_chars: int) -> UntrackedFileContext:
    try:
        raw = full_path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("could not read untracked file %s: %s", path, exc)
        return UntrackedFileContext(
            path=path, content=f"[unable to read file: {exc}]"
        )

    if "\x00" in raw:
        return UntrackedFileContext(
            path=path, content=BINARY_PLACEHOLDER, is_binary=True
        )

    is_truncated = len(raw) > max_chars
    return UntrackedFileContext(
        path=path,
        content=raw[:max_chars] if is_truncated else raw,
        is_truncated=is_truncated,
    )


def collect_untracked_file_contexts(
    file_paths: Iterable[str],
    selected_paths: Sequence[str] = (),
    max_files: int = DEFAULT_MAX_FILES,
    max_chars_per_file: int = DEFAULT_MAX_CHARS_PER_FILE,
    root: Optional[Union[str, Path]] = None,
) -> List[UntrackedFileContext]:
    """Read in-scope untracked files, preserving input order.

    Stops once ``max_files`` contexts have been collected. A file that cannot
    be read yields a context describing the failure instead of raising.
    """
    base = Path(root) if root is not None else Path.cwd()
    contexts: List[UntrackedFileContext] = []
    for path in file_paths:
        if not is_path_selected(path, selected_paths):
            continue
        if len(contexts) >= max_files:
            break
        contexts.append(_read_context(path, base / path, max_chars_per_file))
    return contexts
