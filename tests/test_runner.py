"""End-to-end tests for the menu-click pipeline."""

from __future__ import annotations

import pytest

from gucli.services.registry import CommandRegistry, UnknownCommandError
from gucli.services.runner import CommandRunner
from gucli.services.supervisor import ProcessSupervisor
from gucli.storage.history import HistoryLog
from gucli.storage.models import CommandDefinition, Completed, SpawnFailed, TimedOut


@pytest.fixture
def history(tmp_path):
    return HistoryLog(tmp_path / "gucli.log")


def _runner(notifier, history, *definitions: CommandDefinition) -> CommandRunner:
    return CommandRunner(
        registry=CommandRegistry.load(definitions),
        supervisor=ProcessSupervisor(),
        notifier=notifier,
        history=history,
    )


class TestCommandRunner:
    @pytest.mark.asyncio
    async def test_echo_hello(self, notifier, history):
        runner = _runner(notifier, history, CommandDefinition(command="echo hello", notify=True))
        report = await runner.invoke("echo hello")

        assert report.result.outcome == Completed(0)
        assert report.formatted.text == "hello"
        notifier.send.assert_awaited_once_with("echo hello", "hello", is_error=False, notify=True)

        entries = history.read_entries()
        assert len(entries) == 1
        assert entries[0].command == "echo hello"
        assert entries[0].summary.startswith("[OK]")
        assert entries[0].summary.endswith("hello")
        assert report.notified and report.logged

    @pytest.mark.asyncio
    async def test_timeout_notifies_despite_opt_out(self, notifier, history):
        runner = _runner(notifier, history, CommandDefinition(command="sleep 2", notify=False))
        report = await runner.invoke("sleep 2")

        assert isinstance(report.result.outcome, TimedOut)
        notifier.send.assert_awaited_once()
        assert notifier.send.call_args.kwargs["is_error"] is True
        assert history.read_entries()[0].summary.startswith("[TIMEOUT]")

    @pytest.mark.asyncio
    async def test_long_output_truncated(self, notifier, history):
        command = "printf '%0300d' 0"
        runner = _runner(notifier, history, CommandDefinition(command=command))
        report = await runner.invoke(command)

        body = notifier.send.call_args.args[1]
        assert len(body) == 200
        assert body.endswith("…")
        assert report.formatted.truncated
        assert history.read_entries()[0].summary.endswith("(truncated)")

    @pytest.mark.asyncio
    async def test_missing_binary(self, notifier, history):
        command = "gucli-no-such-binary --flag"
        runner = _runner(notifier, history, CommandDefinition(command=command, notify=False))
        report = await runner.invoke(command)

        assert isinstance(report.result.outcome, SpawnFailed)
        title, body = notifier.send.call_args.args
        assert title == command
        assert body.startswith("Failed to start:")
        assert notifier.send.call_args.kwargs["is_error"] is True
        assert history.read_entries()[0].summary.startswith("[SPAWN FAILED]")

    @pytest.mark.asyncio
    async def test_nonzero_exit_respects_opt_out(self, notifier, history):
        runner = _runner(notifier, history, CommandDefinition(command="false", notify=False))
        report = await runner.invoke("false")

        assert report.result.outcome == Completed(1)
        assert notifier.send.call_args.kwargs == {"is_error": False, "notify": False}
        assert history.read_entries()[0].summary.startswith("[EXIT 1]")

    @pytest.mark.asyncio
    async def test_logging_failure_does_not_abort(self, notifier, tmp_path):
        (tmp_path / "blocker").write_text("")
        history = HistoryLog(tmp_path / "blocker" / "gucli.log", notifier=notifier)
        runner = _runner(notifier, history, CommandDefinition(command="echo still runs"))

        report = await runner.invoke("echo still runs")

        assert report.result.outcome == Completed(0)
        assert not report.logged
        notifier.send.assert_awaited_once()
        notifier.send_app_error.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_command(self, notifier, history):
        runner = _runner(notifier, history, CommandDefinition(command="date"))
        with pytest.raises(UnknownCommandError):
            await runner.invoke("uptime")
        notifier.send.assert_not_awaited()
