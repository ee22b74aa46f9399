"""Command line interface for shipit."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from . import __version__
from .config import describe_provider, load_runtime_settings, resolve_provider_config
from .console import BOLD, DIM, RESET, Console, create_console
from .core import ShipitWorkflow, WorkflowOptions
from .errors import format_provider_error
from .exceptions import ConfigError, GitError, LLMError, RepositoryStateError
from .git import GitRepo, find_git_repo_root
from .llm import LLMClient
from .pr import create_pull_request
from .push import handle_push

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


class CLI:
    """Parse arguments and drive one shipit run."""

    def __init__(self, env: Optional[Mapping[str, str]] = None) -> None:
        self.env = env
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="shipit",
            description="Turn pending changes into Conventional Commits with AI.",
        )
        parser.add_argument(
            "paths",
            nargs="*",
            metavar="PATH",
            help="Limit status, diff and staging to these paths",
        )
        parser.add_argument(
            "-y", "--yes", action="store_true", help="Accept every confirmation"
        )
        parser.add_argument(
            "-f", "--force", action="store_true", help="Same as --yes"
        )
        parser.add_argument(
            "-u",
            "--unsafe",
            action="store_true",
            help="Skip the confirmation for very large prompts",
        )
        parser.add_argument(
            "-p", "--push", action="store_true", help="Push after committing"
        )
        parser.add_argument(
            "--pr",
            action="store_true",
            help="Create a pull request, even if no commit was made",
        )
        parser.add_argument(
            "-a",
            "--appendix",
            metavar="TEXT",
            help="Extra context appended to the prompt",
        )
        parser.add_argument(
            "-q", "--quiet", action="store_true", help="Only print errors"
        )
        parser.add_argument(
            "--debug", action="store_true", help="Enable debug logging"
        )
        parser.add_argument(
            "--version", action="version", version=f"%(prog)s {__version__}"
        )
        return parser

    def run(self, args: Optional[List[str]] = None) -> int:
        try:
            parsed = self.parser.parse_args(args)
        except SystemExit as exc:
            return int(exc.code or 0)

        logging.basicConfig(
            level=logging.DEBUG if parsed.debug else logging.WARNING,
            format="%(levelname)s %(name)s: %(message)s",
        )
        console = create_console(
            silent=parsed.quiet, force=parsed.yes or parsed.force
        )
        return self._execute(parsed, console)

    def _execute(self, parsed: argparse.Namespace, console: Console) -> int:
        env = dict(os.environ) if self.env is None else dict(self.env)
        console.info(
            f"{BOLD}🧹 shipit{RESET} {DIM}Because writing 'fix stuff' gets old real quick...{RESET}"
        )

        try:
            provider = resolve_provider_config(env)
        except ConfigError as e:
            console.error(str(e))
            return EXIT_FAILURE
        settings = load_runtime_settings(env)
        console.info(f"Using {describe_provider(provider)}")

        root = find_git_repo_root(Path.cwd())
        if root is None:
            console.error(f"Not a Git repository: {Path.cwd()}")
            return EXIT_FAILURE
        paths = normalize_paths(parsed.paths, root)

        try:
            git = GitRepo(str(root))
            llm = LLMClient(provider, settings, env)
        except (RepositoryStateError, LLMError) as e:
            console.error(str(e))
            return EXIT_FAILURE

        workflow = ShipitWorkflow(
            git,
            llm,
            console,
            WorkflowOptions(
                paths=paths,
                appendix=parsed.appendix,
                skip_token_check=parsed.unsafe,
                max_untracked_files=settings.untracked_max_files,
                max_untracked_chars=settings.untracked_max_chars,
            ),
        )
        try:
            result = workflow.run()
        except RepositoryStateError as e:
            console.error(str(e))
            return EXIT_FAILURE
        except LLMError as e:
            console.error(format_provider_error(e))
            return EXIT_FAILURE
        except GitError as e:
            console.error(str(e))
            return EXIT_FAILURE

        created = result.created_hashes if result else []
        if parsed.push:
            handle_push(git, console, created)
        if parsed.pr:
            create_pull_request(git, llm, console, auto_confirm=True)
        elif parsed.push and created:
            create_pull_request(git, llm, console)
        return EXIT_SUCCESS


def normalize_paths(paths: Sequence[str], root: Path) -> List[str]:
    """Make CLI paths relative to the repository root, as git reports them."""
    out: List[str] = []
    cwd = Path.cwd()
    for raw in paths:
        full = (cwd / raw).resolve(strict=False)
        try:
            rel = full.relative_to(root.resolve())
        except ValueError:
            rel = Path(raw)
        text = rel.as_posix()
        out.append("." if text in ("", ".") else text)
    return out


def main(argv: Optional[List[str]] = None) -> int:
    return CLI().run(argv)


if __name__ == "__main__":
    sys.exit(main())
