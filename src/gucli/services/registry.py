"""Ordered, validated set of command definitions."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator

from gucli.storage.models import CommandDefinition, Shell

logger = logging.getLogger(__name__)

MAX_ICON_LENGTH = 8


class ValidationError(ValueError):
    """A command definition violates a registry invariant."""

    def __init__(self, index: int, command: str, reason: str) -> None:
        self.index = index
        self.command = command
        self.reason = reason
        super().__init__(f"Command #{index + 1} ({command!r}): {reason}")


class UnknownCommandError(KeyError):
    """No registered definition has the requested command string."""


class CommandRegistry:
    """Command definitions in menu order, keyed by their command string."""

    def __init__(self) -> None:
        self._definitions: dict[str, CommandDefinition] = {}

    @classmethod
    def load(cls, definitions: Iterable[CommandDefinition]) -> CommandRegistry:
        """Build a registry, rejecting duplicates and oversized icons."""
        registry = cls()
        for index, definition in enumerate(definitions):
            if not definition.command.strip():
                raise ValidationError(index, definition.command, "command must not be empty")
            if len(definition.icon) > MAX_ICON_LENGTH:
                raise ValidationError(
                    index, definition.command, f"icon longer than {MAX_ICON_LENGTH} characters"
                )
            if definition.command in registry._definitions:
                raise ValidationError(index, definition.command, "duplicate command")
            registry._definitions[definition.command] = definition
        logger.debug("Loaded %d command definitions", len(registry))
        return registry

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]]) -> CommandRegistry:
        """Build a registry from raw config records (``[[command]]`` tables)."""
        return cls.load(_parse_record(i, r) for i, r in enumerate(records))

    def list(self) -> list[CommandDefinition]:
        return list(self._definitions.values())

    def get(self, command: str) -> CommandDefinition:
        try:
            return self._definitions[command]
        except KeyError:
            raise UnknownCommandError(command) from None

    def to_records(self) -> list[dict[str, Any]]:
        return [
            {"shell": d.shell.value, "command": d.command, "icon": d.icon, "notify": d.notify}
            for d in self._definitions.values()
        ]

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[CommandDefinition]:
        return iter(self._definitions.values())

    def __contains__(self, command: object) -> bool:
        return command in self._definitions


def _parse_record(index: int, record: dict[str, Any]) -> CommandDefinition:
    command = record.get("command")
    if not isinstance(command, str):
        raise ValidationError(index, str(command), "command must be a string")

    shell_name = record.get("shell", Shell.DEFAULT.value)
    try:
        shell = Shell(shell_name)
    except ValueError:
        allowed = ", ".join(s.value for s in Shell)
        raise ValidationError(index, command, f"unknown shell {shell_name!r} (expected one of: {allowed})") from None

    icon = record.get("icon", "")
    if not isinstance(icon, str):
        raise ValidationError(index, command, "icon must be a string")

    notify = record.get("notify", True)
    if not isinstance(notify, bool):
        raise ValidationError(index, command, "notify must be true or false")

    return CommandDefinition(command=command, shell=shell, icon=icon, notify=notify)
