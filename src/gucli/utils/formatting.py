"""Output normalization for notifications and the history log."""

from __future__ import annotations

import re

from gucli.storage.models import (
    Completed,
    ExecutionResult,
    FormattedResult,
    SpawnFailed,
    TimedOut,
)

MAX_BODY_LENGTH = 200
TRUNCATION_MARKER = "…"
LINE_SEPARATOR = " | "
NO_OUTPUT = "(no output)"

_ANSI_ESCAPE = re.compile(r"\x1b(?:\[[0-?]*[ -/]*[@-~]|\][^\x07\x1b]*(?:\x07|\x1b\\)|[@-Z\\-_])")
_OVERSTRIKE = re.compile(r".\x08")


def clean_output(raw: bytes) -> str:
    """Decode process output and strip terminal control sequences."""
    text = raw.decode("utf-8", errors="replace")
    text = _ANSI_ESCAPE.sub("", text)
    text = _OVERSTRIKE.sub("", text)
    return text.replace("\t", " ").replace("\r\n", "\n")


def collapse_lines(text: str) -> str:
    """Join non-blank lines into a single line."""
    lines = (line.strip() for line in text.splitlines())
    return LINE_SEPARATOR.join(line for line in lines if line)


def truncate(text: str, limit: int = MAX_BODY_LENGTH) -> FormattedResult:
    """Cut ``text`` to ``limit`` characters, ending in the truncation marker."""
    if len(text) <= limit:
        return FormattedResult(text=text)
    return FormattedResult(text=text[: limit - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER, truncated=True)


def format_result(result: ExecutionResult) -> FormattedResult:
    """Render a result as one line of at most ``MAX_BODY_LENGTH`` characters."""
    outcome = result.outcome
    output = collapse_lines(clean_output(result.raw_output))

    if isinstance(outcome, SpawnFailed):
        reason = collapse_lines(outcome.reason.replace("\t", " ")) or "unknown error"
        return truncate(f"Failed to start: {reason}")
    if isinstance(outcome, TimedOut):
        return truncate(f"[timed out] {output or NO_OUTPUT}")
    if isinstance(outcome, Completed) and outcome.exit_code != 0:
        return truncate(f"[exit {outcome.exit_code}] {output or NO_OUTPUT}")
    return truncate(output or NO_OUTPUT)


def format_body(result: ExecutionResult) -> str:
    """Notification body for ``result``."""
    return format_result(result).text


def status_tag(result: ExecutionResult) -> str:
    outcome = result.outcome
    if isinstance(outcome, TimedOut):
        return "TIMEOUT"
    if isinstance(outcome, SpawnFailed):
        return "SPAWN FAILED"
    if outcome.exit_code == 0:
        return "OK"
    return f"EXIT {outcome.exit_code}"


def summarize(result: ExecutionResult, formatted: FormattedResult) -> str:
    """History log summary: status, duration, body, truncation flag."""
    summary = f"[{status_tag(result)}] ({format_duration(result.duration_ms)}) {formatted.text}"
    if formatted.truncated:
        summary += " (truncated)"
    return summary


def format_duration(ms: int) -> str:
    """Format milliseconds to human-readable duration."""
    if ms < 1000:
        return f"{ms}ms"
    elif ms < 60000:
        return f"{ms / 1000:.1f}s"
    else:
        minutes = ms // 60000
        seconds = (ms % 60000) // 1000
        return f"{minutes}m {seconds}s"
