"""System utility checks."""

from __future__ import annotations

import shutil
import subprocess

from gucli.storage.models import SHELL_TEMPLATES, Shell


def check_notify_send() -> tuple[bool, str]:
    """Check if notify-send is installed and return its version."""
    path = shutil.which("notify-send")
    if not path:
        return False, "notify-send not found. Install libnotify (e.g. libnotify-bin) for desktop notifications."
    try:
        result = subprocess.run(
            [path, "--version"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        version = result.stdout.strip() or result.stderr.strip()
        return True, version
    except subprocess.TimeoutExpired:
        return False, "notify-send version check timed out"
    except OSError as e:
        return False, f"Error checking notify-send: {e}"


def check_shell(shell: Shell) -> tuple[bool, str]:
    """Check that the interpreter behind ``shell`` is available."""
    program = SHELL_TEMPLATES[shell][0]
    resolved = shutil.which(program)
    if not resolved:
        return False, f"{program} not found"
    return True, resolved

