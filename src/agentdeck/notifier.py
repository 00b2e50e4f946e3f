"""
Desktop notifications when an agent needs attention.

AttentionNotifier decides *whether* to notify: it is called on every
committed transition into "waiting" and rate-limits per surface, so a
surface bouncing in and out of a permission prompt produces at most one
notification per minimum gap.

The backends decide *how*: DesktopNotifier uses terminal-notifier or
osascript on macOS and notify-send elsewhere. A backend raises
NotificationDeliveryError on failure; the notifier logs it and does not
consume the rate-limit budget, so the next genuine chance is not lost.
"""

import logging
import shutil
import subprocess
import sys
from typing import Dict, Optional, Tuple

from .config import (
    DEFAULT_NOTIFICATION_MIN_GAP_MS,
    DEFAULT_NOTIFICATION_TIMEOUT_MS,
    AgentDescriptor,
    NotificationSettings,
)
from .exceptions import NotificationDeliveryError
from .protocols import NotificationBackend

logger = logging.getLogger(__name__)

APP_NAME = "Agent Deck"


class NullNotifier:
    """Backend that delivers nothing (notifications disabled / headless)."""

    def send(self, title: str, message: str, timeout_ms: int) -> None:
        logger.debug("Notification suppressed: %s - %s", title, message)


class DesktopNotifier:
    """Fire-and-forget desktop notifications via the best available tool.

    macOS: terminal-notifier when installed (supports grouping), falling
    back to osascript. Other platforms: notify-send.
    """

    def __init__(self, sound: bool = True):
        self.sound = sound
        self._has_terminal_notifier: Optional[bool] = None  # lazy-detected

    def send(self, title: str, message: str, timeout_ms: int) -> None:
        if sys.platform == "darwin":
            if self._use_terminal_notifier():
                cmd = self._terminal_notifier_cmd(title, message)
            else:
                cmd = self._osascript_cmd(title, message)
        else:
            cmd = self._notify_send_cmd(title, message, timeout_ms)
        self._spawn(cmd)

    def _use_terminal_notifier(self) -> bool:
        if self._has_terminal_notifier is None:
            self._has_terminal_notifier = shutil.which("terminal-notifier") is not None
        return self._has_terminal_notifier

    def _terminal_notifier_cmd(self, title: str, message: str) -> list:
        cmd = ["terminal-notifier", "-title", title, "-group", "agentdeck-attention",
               "-message", message]
        if self.sound:
            cmd += ["-sound", "Hero"]
        return cmd

    def _osascript_cmd(self, title: str, message: str) -> list:
        title = title.replace('"', '\\"')
        message = message.replace('"', '\\"')
        script = f'display notification "{message}" with title "{title}"'
        if self.sound:
            script += ' sound name "Hero"'
        return ["osascript", "-e", script]

    @staticmethod
    def _notify_send_cmd(title: str, message: str, timeout_ms: int) -> list:
        if shutil.which("notify-send") is None:
            raise NotificationDeliveryError("notify-send is not installed")
        return ["notify-send", "-a", APP_NAME, "-t", str(int(timeout_ms)), title, message]

    @staticmethod
    def _spawn(cmd: list) -> None:
        try:
            subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError as e:
            raise NotificationDeliveryError(f"{cmd[0]} failed: {e}") from e


def format_notification(agent: AgentDescriptor) -> Tuple[str, str]:
    """Return (title, message) for an agent waiting on the user."""
    return f"{agent.title} - Attention Needed", "Needs your input"


class AttentionNotifier:
    """Rate-limited attention notifications, one budget per surface."""

    def __init__(
        self,
        backend: Optional[NotificationBackend] = None,
        min_gap: float = DEFAULT_NOTIFICATION_MIN_GAP_MS / 1000.0,
        timeout_ms: int = DEFAULT_NOTIFICATION_TIMEOUT_MS,
        enabled: bool = True,
        on_waiting: bool = True,
    ):
        self.backend = backend if backend is not None else DesktopNotifier()
        self.min_gap = min_gap
        self.timeout_ms = timeout_ms
        self.enabled = enabled
        self.on_waiting = on_waiting
        self._last_sent: Dict[str, float] = {}

    @classmethod
    def from_settings(
        cls,
        settings: NotificationSettings,
        backend: Optional[NotificationBackend] = None,
    ) -> "AttentionNotifier":
        return cls(
            backend=backend,
            min_gap=settings.min_gap_seconds,
            timeout_ms=settings.timeout_ms,
            enabled=settings.enabled,
            on_waiting=settings.on_waiting,
        )

    def can_notify(self, surface_id: str, now: float) -> bool:
        """Check the per-surface rate limit."""
        last = self._last_sent.get(surface_id)
        return last is None or (now - last) >= self.min_gap

    def maybe_notify(self, surface_id: str, agent: AgentDescriptor, now: float) -> bool:
        """Notify that an agent on a surface is waiting, if allowed.

        Called on a committed transition into "waiting".

        Args:
            surface_id: Surface the agent runs on
            agent: The waiting agent
            now: Current monotonic time in seconds

        Returns:
            True if a notification was delivered
        """
        if not self.enabled or not self.on_waiting:
            return False
        if not self.can_notify(surface_id, now):
            logger.debug("Notification for %s rate-limited", surface_id)
            return False

        title, message = format_notification(agent)
        try:
            self.backend.send(title, message, self.timeout_ms)
        except NotificationDeliveryError as e:
            logger.warning("Failed to send notification for %s: %s", surface_id, e)
            return False

        self._last_sent[surface_id] = now
        return True

    def last_sent(self, surface_id: str) -> Optional[float]:
        return self._last_sent.get(surface_id)

    def clear_state(self, surface_id: Optional[str] = None) -> None:
        """Forget the rate-limit timestamp for one surface, or all."""
        if surface_id is None:
            self._last_sent.clear()
        else:
            self._last_sent.pop(surface_id, None)
