"""Best-effort usage text lookup for the settings view."""

from __future__ import annotations

import logging
import shlex

from gucli.services.supervisor import DEFAULT_TIMEOUT, ProcessSupervisor
from gucli.storage.models import CommandDefinition, Completed
from gucli.utils.formatting import clean_output

logger = logging.getLogger(__name__)

EMPTY_QUERY = "Enter the command to search for help"

# Text that already asks for help is run as entered
HELP_REQUEST_MARKERS = (
    " --longhelp",
    " --help-all",
    " --help",
    " --usage",
    " -help",
    " -?",
    " help",
    " info",
)


def _program(command_text: str) -> str:
    try:
        words = shlex.split(command_text)
    except ValueError:
        words = command_text.split()
    return words[0] if words else command_text


def asks_for_help(command_text: str) -> bool:
    padded = f" {command_text} "
    return command_text.startswith("man ") or any(f"{m} " in padded for m in HELP_REQUEST_MARKERS)


def candidate_invocations(command_text: str) -> list[str]:
    """Ordered invocations to try for ``command_text``."""
    if asks_for_help(command_text):
        return [command_text]
    return [
        f"{command_text} --help",
        f"man -P cat {shlex.quote(_program(command_text))}",
    ]


class HelpProbe:
    """Try candidate invocations until one exits 0 with output.

    A non-zero exit means the candidate failed, so its output is an error
    message rather than usage text.
    """

    def __init__(self, supervisor: ProcessSupervisor, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.supervisor = supervisor
        self.timeout = timeout

    async def discover(self, command_text: str) -> str:
        command_text = command_text.strip()
        if not command_text:
            return EMPTY_QUERY

        for candidate in candidate_invocations(command_text):
            result = await self.supervisor.run(CommandDefinition(command=candidate), timeout=self.timeout)
            if result.outcome != Completed(0):
                logger.debug("Help candidate %r: %s", candidate, result.outcome)
                continue
            text = clean_output(result.raw_output).strip()
            if text:
                return text

        return f"No help found for '{command_text}'"
