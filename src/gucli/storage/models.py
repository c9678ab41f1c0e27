"""Data models for gucli."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Union


class Shell(str, Enum):
    """Shell used to interpret a command string."""

    DEFAULT = "default"
    BASH = "bash"
    ZSH = "zsh"
    FISH = "fish"

    def argv(self, command: str) -> list[str]:
        """Build the argument vector that runs ``command`` under this shell."""
        return [*SHELL_TEMPLATES[self], command]


SHELL_TEMPLATES: dict[Shell, tuple[str, ...]] = {
    Shell.DEFAULT: ("/bin/sh", "-c"),
    Shell.BASH: ("bash", "-c"),
    Shell.ZSH: ("zsh", "-c"),
    Shell.FISH: ("fish", "-c"),
}


@dataclass(frozen=True)
class CommandDefinition:
    """A shell command bound to a menu entry."""

    command: str
    shell: Shell = Shell.DEFAULT
    icon: str = ""
    notify: bool = True


@dataclass(frozen=True)
class Completed:
    exit_code: int


@dataclass(frozen=True)
class TimedOut:
    pass


@dataclass(frozen=True)
class SpawnFailed:
    reason: str


Outcome = Union[Completed, TimedOut, SpawnFailed]


@dataclass
class ExecutionResult:
    """Result of one supervised run."""

    outcome: Outcome = field(default_factory=lambda: Completed(0))
    raw_output: bytes = b""
    duration_ms: int = 0

    @property
    def is_error(self) -> bool:
        """Timeouts and spawn failures are errors; non-zero exits are not."""
        return isinstance(self.outcome, (TimedOut, SpawnFailed))


@dataclass(frozen=True)
class FormattedResult:
    """Single-line notification text."""

    text: str
    truncated: bool = False


@dataclass(frozen=True)
class LogEntry:
    """A history log record."""

    timestamp: datetime
    command: str
    summary: str
