"""User interaction for shipit: prompts, status lines and progress."""

from __future__ import annotations

import time
from typing import Optional

import click

RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"
CYAN = "\033[96m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
MAGENTA = "\033[95m"
RED = "\033[91m"
GRAY = "\033[90m"


class Progress:
    """Single-line progress indicator."""

    def __init__(self, message: str = "") -> None:
        self.message = message
        self._started: Optional[float] = None

    def start(self, message: Optional[str] = None) -> None:
        if message:
            self.message = message
        self._started = time.monotonic()
        click.echo(f"{MAGENTA}◒{RESET} {self.message}")

    def update(self, message: str) -> None:
        self.message = message
        click.echo(f"{MAGENTA}◐{RESET} {message}")

    def stop(self, message: Optional[str] = None) -> None:
        elapsed = ""
        if self._started is not None:
            elapsed = f" {DIM}({time.monotonic() - self._started:.1f}s){RESET}"
        click.echo(f"{GREEN}◇{RESET} {message or self.message}{elapsed}")
        self._started = None


class SilentProgress(Progress):
    def start(self, message: Optional[str] = None) -> None:
        if message:
            self.message = message

    def update(self, message: str) -> None:
        self.message = message

    def stop(self, message: Optional[str] = None) -> None:
        return None


class Console:
    """Interactive console: coloured output and click prompts."""

    def confirm(self, message: str, default: bool = True) -> bool:
        return click.confirm(f"{CYAN}◆{RESET} {message}", default=default)

    def info(self, message: str) -> None:
        click.echo(f"{CYAN}●{RESET} {message}")

    def success(self, message: str) -> None:
        click.echo(f"{GREEN}✔{RESET} {message}")

    def warning(self, message: str) -> None:
        click.echo(f"{YELLOW}▲{RESET} {message}")

    def error(self, message: str) -> None:
        click.echo(f"{RED}✖ {message}{RESET}", err=True)

    def message(self, text: str) -> None:
        for line in text.splitlines() or [""]:
            click.echo(f"{GRAY}│{RESET} {line}")

    def progress(self, message: str = "") -> Progress:
        return Progress(message)


class SilentConsole(Console):
    """Suppresses everything except errors; prompts still ask."""

    def info(self, message: str) -> None:
        return None

    def success(self, message: str) -> None:
        return None

    def warning(self, message: str) -> None:
        return None

    def message(self, text: str) -> None:
        return None

    def progress(self, message: str = "") -> Progress:
        return SilentProgress(message)


class AutoAcceptConsole(Console):
    """Answers every confirmation with yes."""

    def confirm(self, message: str, default: bool = True) -> bool:
        self.info(f"{message} {DIM}(auto-confirmed){RESET}")
        return True


class SilentAutoAcceptConsole(SilentConsole):
    def confirm(self, message: str, default: bool = True) -> bool:
        return True


def create_console(silent: bool = False, force: bool = False) -> Console:
    if silent and force:
        return SilentAutoAcceptConsole()
    if silent:
        return SilentConsole()
    if force:
        return AutoAcceptConsole()
    return Console()
