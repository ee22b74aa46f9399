import os
import subprocess
from pathlib import Path

import pytest

from shipit.console import SilentConsole, SilentProgress

PROVIDER_KEY_VARS = (
    "GOOGLE_GENERATIVE_AI_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "GROQ_API_KEY",
)


@pytest.fixture(autouse=True)
def reset_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in PROVIDER_KEY_VARS:
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.startswith("SHIPIT_"):
            monkeypatch.delenv(name, raising=False)
    # Keep git from reading the developer's global config in temp repos.
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_TERMINAL_PROMPT", "0")


class _WhitespaceEncoding:
    """Offline stand-in for a tiktoken encoding: one token per word."""

    def encode(self, text, disallowed_special=()):
        return text.split()


@pytest.fixture(autouse=True)
def offline_tokenizer(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("shipit.sizing._get_encoding", lambda: _WhitespaceEncoding())


# Ensure no real provider HTTP calls escape during tests that don't
# explicitly stub the transport.
@pytest.fixture(autouse=True)
def _block_http(monkeypatch: pytest.MonkeyPatch) -> None:
    import httpx

    def fake_post(url, *args, **kwargs):  # noqa: D401
        raise AssertionError(f"unexpected network call to {url}")

    monkeypatch.setattr(httpx, "post", fake_post)


def run_git(args, cwd: Path) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """A git repository on branch ``main`` with one commit."""
    path = tmp_path / "repo"
    path.mkdir()
    run_git(["init", "-q"], path)
    run_git(["symbolic-ref", "HEAD", "refs/heads/main"], path)
    run_git(["config", "user.email", "dev@example.com"], path)
    run_git(["config", "user.name", "Dev"], path)
    run_git(["config", "commit.gpgsign", "false"], path)
    (path / "README.md").write_text("# demo\n")
    run_git(["add", "README.md"], path)
    run_git(["commit", "-q", "-m", "chore: initial commit"], path)
    return path


@pytest.fixture
def remote_repo(repo: Path, tmp_path: Path) -> Path:
    """``repo`` with a bare ``origin`` that already has ``main``."""
    origin = tmp_path / "origin.git"
    run_git(["init", "-q", "--bare", str(origin)], tmp_path)
    run_git(["remote", "add", "origin", str(origin)], repo)
    run_git(["push", "-q", "-u", "origin", "main"], repo)
    return repo


class _RecordingProgress(SilentProgress):
    def __init__(self, console, message=""):
        super().__init__(message)
        self.console = console

    def stop(self, message=None):
        self.console.lines.append(("progress", message or self.message))


class RecordingConsole(SilentConsole):
    """Console that records prompts and answers them from a script."""

    def __init__(self, answers=None, default_answer=True):
        self.answers = list(answers or [])
        self.default_answer = default_answer
        self.confirms = []
        self.lines = []

    def confirm(self, message, default=True):
        self.confirms.append((message, default))
        if self.answers:
            return self.answers.pop(0)
        return self.default_answer

    def info(self, message):
        self.lines.append(("info", message))

    def success(self, message):
        self.lines.append(("success", message))

    def warning(self, message):
        self.lines.append(("warning", message))

    def error(self, message):
        self.lines.append(("error", message))

    def message(self, text):
        self.lines.append(("message", text))

    def progress(self, message=""):
        return _RecordingProgress(self, message)

    def text(self):
        return "\n".join(line for _, line in self.lines)


@pytest.fixture
def console() -> RecordingConsole:
    return RecordingConsole()


@pytest.fixture
def make_console():
    return RecordingConsole
