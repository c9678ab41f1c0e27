"""Bounded, newest-first history log."""

from __future__ import annotations

import asyncio
import fcntl
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from gucli.storage.models import LogEntry

if TYPE_CHECKING:
    from gucli.services.notifier import NotificationDispatcher

logger = logging.getLogger(__name__)

MAX_ENTRIES = 100
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"
FIELD_SEPARATOR = "\t"
LOCK_SUFFIX = ".lock"


def _clean_field(value: str) -> str:
    return " ".join(value.replace(FIELD_SEPARATOR, " ").splitlines())


def render_entry(entry: LogEntry) -> str:
    """One log line: ``timestamp<TAB>command<TAB>summary``."""
    timestamp = entry.timestamp.strftime(TIMESTAMP_FORMAT)[:-3]
    return FIELD_SEPARATOR.join((timestamp, _clean_field(entry.command), _clean_field(entry.summary)))


def parse_entry(line: str) -> LogEntry | None:
    """Parse a log line, or None if it is not a valid record."""
    parts = line.rstrip("\n").split(FIELD_SEPARATOR, 2)
    if len(parts) != 3:
        return None
    try:
        timestamp = datetime.strptime(parts[0] + "000", TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return LogEntry(timestamp=timestamp, command=parts[1], summary=parts[2])


class HistoryLog:
    """The single writer for the history log file.

    Appends are serialized on an ``asyncio.Lock`` within a process and on an
    exclusive ``flock`` of ``<log>.lock`` across processes. Each append
    rewrites the file through a temporary file and ``os.replace`` so readers
    never see a partial file.
    """

    def __init__(self, path: Path, notifier: NotificationDispatcher | None = None) -> None:
        self.path = path
        self.notifier = notifier
        self._lock = asyncio.Lock()
        self._failure_reported = False

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + LOCK_SUFFIX)

    async def append(self, entry: LogEntry) -> bool:
        """Prepend ``entry`` and trim to ``MAX_ENTRIES``. Returns False on write failure."""
        async with self._lock:
            try:
                await asyncio.to_thread(self._rewrite, render_entry(entry))
            except (OSError, UnicodeError) as e:
                logger.exception("Failed to write history log %s", self.path)
                await self._report_failure(e)
                return False
        self._failure_reported = False
        return True

    def _rewrite(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.lock_path, "a") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                self._replace([line, *self._read_lines()][:MAX_ENTRIES])
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _replace(self, lines: list[str]) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            # Lone surrogates from undecodable argv bytes become "?"
            with os.fdopen(fd, "w", encoding="utf-8", errors="replace") as f:
                f.write("\n".join(lines) + "\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _read_lines(self) -> list[str]:
        try:
            content = self.path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return []
        return [line for line in content.splitlines() if line.strip()]

    async def _report_failure(self, error: Exception) -> None:
        if self._failure_reported or self.notifier is None:
            return
        self._failure_reported = True
        await self.notifier.send_app_error("history log", f"Cannot write {self.path}: {error}")

    def read_entries(self, limit: int = MAX_ENTRIES) -> list[LogEntry]:
        """Parsed entries, newest first. Malformed lines are skipped."""
        entries = []
        for line in self._read_lines():
            entry = parse_entry(line)
            if entry is not None:
                entries.append(entry)
            if len(entries) >= limit:
                break
        return entries

    def __len__(self) -> int:
        return len(self._read_lines())
