"""Non-blocking line input for the interactive menu."""

from __future__ import annotations

import asyncio
import os
import sys

READ_SIZE = 1024


class LineReader:
    """Read lines from a file descriptor through the event loop.

    Waiting happens in ``loop.add_reader``, never in a worker thread, and
    cancelling ``readline`` ends the wait at once.
    """

    def __init__(self, fd: int | None = None) -> None:
        self.fd = sys.stdin.fileno() if fd is None else fd
        self._buffer = b""

    async def readline(self) -> str:
        """Next line without its newline. Raises ``EOFError`` at end of input."""
        while b"\n" not in self._buffer:
            chunk = await self._read_when_ready()
            if not chunk:
                if not self._buffer:
                    raise EOFError
                line, self._buffer = self._buffer, b""
                return line.decode("utf-8", errors="replace")
            self._buffer += chunk
        line, _, self._buffer = self._buffer.partition(b"\n")
        return line.decode("utf-8", errors="replace")

    async def _read_when_ready(self) -> bytes:
        loop = asyncio.get_running_loop()
        ready = loop.create_future()

        def on_readable() -> None:
            if not ready.done():
                ready.set_result(None)

        loop.add_reader(self.fd, on_readable)
        try:
            await ready
        finally:
            loop.remove_reader(self.fd)
        return os.read(self.fd, READ_SIZE)
