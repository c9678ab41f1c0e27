"""Timeout-bounded shell execution with process-group termination."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time

from gucli.storage.models import (
    CommandDefinition,
    Completed,
    ExecutionResult,
    SpawnFailed,
    TimedOut,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 0.5
READ_CHUNK = 4096
OUTPUT_LIMIT = 16 * 1024
TERMINATE_GRACE = 0.2
DRAIN_GRACE = 0.1

# Shell exit statuses for "command not found" and "not executable"
SPAWN_FAILURE_CODES = {126: "permission denied", 127: "command not found"}


class ProcessHandle:
    """A running shell process in its own process group.

    Combined stdout/stderr goes to a pipe the process does not own, so
    ``wait()`` returns at exit even while backgrounded descendants still hold
    the write end. The pipe is collected in the background, keeping at most
    ``OUTPUT_LIMIT`` bytes. Everything past the limit is read and dropped.
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        stream: asyncio.StreamReader,
        transport: asyncio.ReadTransport,
    ) -> None:
        self._process = process
        self._stream = stream
        self._transport = transport
        self._output = bytearray()
        self._reader = asyncio.ensure_future(self._collect())

    @classmethod
    async def spawn(cls, argv: list[str]) -> ProcessHandle:
        """Start ``argv`` as a new session. Raises ``OSError`` if it cannot start."""
        loop = asyncio.get_running_loop()
        read_fd, write_fd = os.pipe()
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=write_fd,
                stderr=write_fd,
                start_new_session=True,
            )
        except BaseException:
            os.close(read_fd)
            raise
        finally:
            os.close(write_fd)

        stream = asyncio.StreamReader()
        transport, _ = await loop.connect_read_pipe(
            lambda: asyncio.StreamReaderProtocol(stream),
            os.fdopen(read_fd, "rb", buffering=0),
        )
        return cls(process, stream, transport)

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    async def _collect(self) -> None:
        while True:
            chunk = await self._stream.read(READ_CHUNK)
            if not chunk:
                break
            room = OUTPUT_LIMIT - len(self._output)
            if room > 0:
                self._output.extend(chunk[:room])

    async def wait_with_timeout(self, timeout: float) -> int | None:
        """Wait for exit. Returns the exit code, or None if ``timeout`` elapsed."""
        try:
            return await asyncio.wait_for(self._process.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    async def terminate_group(self, grace: float = TERMINATE_GRACE) -> None:
        """SIGTERM the whole group, then SIGKILL whatever is left after ``grace``."""
        self._signal_group(signal.SIGTERM)
        if await self.wait_with_timeout(grace) is None:
            logger.debug("Process group %d ignored SIGTERM", self.pid)
        self._signal_group(signal.SIGKILL)
        await self._process.wait()

    def _signal_group(self, sig: signal.Signals) -> None:
        try:
            os.killpg(self.pid, sig)
        except ProcessLookupError:
            pass
        except PermissionError:
            logger.warning("Not allowed to signal process group %d", self.pid)

    async def output(self, grace: float = DRAIN_GRACE) -> bytes:
        """Captured output, giving the reader ``grace`` seconds to reach EOF.

        Backgrounded descendants can keep the pipe open after the shell has
        exited; in that case the reader is abandoned and the pipe closed.
        """
        if not self._reader.done():
            await asyncio.wait({self._reader}, timeout=grace)
        if not self._reader.done():
            self._reader.cancel()
        self._transport.close()
        return bytes(self._output)

    def close(self) -> None:
        """Stop collecting output and release the pipe."""
        self._reader.cancel()
        self._transport.close()


class ProcessSupervisor:
    """Run command definitions as supervised, time-bounded subprocesses.

    Commands are executed unrestricted, with the privileges of the current
    user. Work the command itself detaches (``&``, ``setsid``, ``nohup``) may
    outlive the run.
    """

    def __init__(self) -> None:
        self._active: set[ProcessHandle] = set()

    async def run(self, definition: CommandDefinition, timeout: float = DEFAULT_TIMEOUT) -> ExecutionResult:
        """Run ``definition`` and classify the outcome."""
        argv = definition.shell.argv(definition.command)
        logger.debug("Executing %s", argv)

        try:
            handle = await ProcessHandle.spawn(argv)
        except OSError as e:
            logger.warning("Failed to start %s: %s", argv[0], e)
            return ExecutionResult(outcome=SpawnFailed(reason=f"{argv[0]}: {e.strerror or e}"))

        start = time.monotonic()
        self._active.add(handle)
        try:
            exit_code = await handle.wait_with_timeout(timeout)
            if exit_code is None:
                await handle.terminate_group()
                output = await handle.output()
                logger.info("Command %r timed out after %.0fms", definition.command, timeout * 1000)
                return ExecutionResult(
                    outcome=TimedOut(),
                    raw_output=output,
                    duration_ms=_elapsed_ms(start),
                )

            output = await handle.output()
        except asyncio.CancelledError:
            await asyncio.shield(handle.terminate_group())
            handle.close()
            raise
        finally:
            self._active.discard(handle)

        if exit_code in SPAWN_FAILURE_CODES:
            reason = output.decode("utf-8", errors="replace").strip() or SPAWN_FAILURE_CODES[exit_code]
            return ExecutionResult(
                outcome=SpawnFailed(reason=reason),
                raw_output=output,
                duration_ms=_elapsed_ms(start),
            )

        return ExecutionResult(
            outcome=Completed(exit_code=exit_code),
            raw_output=output,
            duration_ms=_elapsed_ms(start),
        )

    @property
    def active_count(self) -> int:
        return len(self._active)

    async def shutdown(self) -> None:
        """Terminate every supervised process that is still running."""
        handles = list(self._active)
        if handles:
            logger.info("Terminating %d running command(s)", len(handles))
        await asyncio.gather(*(h.terminate_group() for h in handles), return_exceptions=True)
        self._active.clear()


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
