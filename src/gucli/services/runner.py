"""Menu-click pipeline: execute, format, notify and log."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from gucli.services.notifier import NotificationDispatcher
from gucli.services.registry import CommandRegistry
from gucli.services.supervisor import DEFAULT_TIMEOUT, ProcessSupervisor
from gucli.storage.history import HistoryLog
from gucli.storage.models import CommandDefinition, ExecutionResult, FormattedResult, LogEntry
from gucli.utils.formatting import format_result, summarize

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    definition: CommandDefinition
    result: ExecutionResult
    formatted: FormattedResult
    notified: bool = False
    logged: bool = False


class CommandRunner:
    """Run registered commands and fan results out to notifications and history."""

    def __init__(
        self,
        registry: CommandRegistry,
        supervisor: ProcessSupervisor,
        notifier: NotificationDispatcher,
        history: HistoryLog,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.registry = registry
        self.supervisor = supervisor
        self.notifier = notifier
        self.history = history
        self.timeout = timeout

    async def invoke(self, command: str) -> RunReport:
        """Run the registered definition whose command string is ``command``."""
        return await self.execute(self.registry.get(command))

    async def execute(self, definition: CommandDefinition) -> RunReport:
        result = await self.supervisor.run(definition, timeout=self.timeout)
        formatted = format_result(result)
        if result.is_error:
            logger.error("Command <%s> failed: %s", definition.command, formatted.text)
        else:
            logger.info("Command <%s> executed: %s", definition.command, formatted.text)

        entry = LogEntry(
            timestamp=datetime.now(),
            command=definition.command,
            summary=summarize(result, formatted),
        )
        notified, logged = await asyncio.gather(
            self.notifier.send(
                definition.command,
                formatted.text,
                is_error=result.is_error,
                notify=definition.notify,
            ),
            self.history.append(entry),
        )
        return RunReport(definition, result, formatted, notified=notified, logged=logged)
