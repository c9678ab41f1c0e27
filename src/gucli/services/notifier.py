"""Desktop notification delivery via notify-send."""

from __future__ import annotations

import asyncio
import logging
import shutil

logger = logging.getLogger(__name__)

APP_ERROR_TITLE = "gucli"
SEND_TIMEOUT = 5


def should_deliver(is_error: bool, notify: bool) -> bool:
    """Errors are always delivered; other results only when the command opted in."""
    return is_error or notify


class NotificationDispatcher:
    """Send notifications through the OS notification facility.

    When ``notify-send`` is missing the dispatcher degrades to log-only mode.
    Delivery failures are logged and never raised.
    """

    def __init__(self, app_name: str = "gucli-tray", icon: str = "system") -> None:
        self.app_name = app_name
        self.icon = icon
        self.notify_send_path = shutil.which("notify-send")
        if not self.notify_send_path:
            logger.warning("notify-send not found. Desktop notifications will be disabled.")

    @property
    def available(self) -> bool:
        return self.notify_send_path is not None

    async def send(self, title: str, body: str, is_error: bool = False, notify: bool = True) -> bool:
        """Deliver ``body`` under ``title``. Returns True if it was handed to the OS."""
        if not should_deliver(is_error, notify):
            return False

        if not self.notify_send_path:
            logger.warning("Notification skipped (no notify-send): %s - %s", title, body)
            return False

        cmd = [
            self.notify_send_path,
            f"--app-name={self.app_name}",
            f"--icon={self.icon}",
            f"--urgency={'critical' if is_error else 'normal'}",
            "--",
            title,
            body,
        ]
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=SEND_TIMEOUT)
        except asyncio.TimeoutError:
            proc.kill()  # type: ignore[possibly-undefined]
            await proc.wait()
            logger.error("notify-send timed out: %s", title)
            return False
        except OSError as e:
            logger.error("Failed to send notification %r: %s", title, e)
            return False

        if proc.returncode != 0:
            logger.error(
                "notify-send exited with %s: %s",
                proc.returncode,
                stderr.decode("utf-8", errors="replace").strip(),
            )
            return False

        logger.debug("Sent notification: %s - %s", title, body)
        return True

    async def send_app_error(self, what: str, body: str) -> bool:
        """Report an application-level problem; always delivered."""
        return await self.send(f"{APP_ERROR_TITLE}: {what}", body, is_error=True)
