"""
Protocol definitions for external dependencies.

These interfaces allow dependency injection for testing, enabling us to
swap the real terminal host (tmux via libtmux, processes via psutil) and
the real desktop notifier with in-memory implementations in tests.
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol, runtime_checkable

from .agent_detector import ProcessInfo


@dataclass(frozen=True)
class SurfaceInfo:
    """One terminal surface as listed by the host.

    Attributes:
        surface_id: Stable opaque identifier (tmux pane id, e.g. "%3")
        label: Human-readable location (e.g. "work:1.0")
    """

    surface_id: str
    label: str = ""

    @property
    def display(self) -> str:
        return self.label or self.surface_id


@runtime_checkable
class SurfaceHost(Protocol):
    """Interface to the terminal multiplexer hosting the agents.

    Every method returns None when the information is unavailable; none of
    them raise for host-side failures.
    """

    def list_surfaces(self) -> Optional[List[SurfaceInfo]]:
        """List the surfaces currently open, or None if the host is unreachable."""
        ...

    def capture_text(self, surface_id: str, lines: int = 100) -> Optional[str]:
        """Capture recent text of a surface.

        Args:
            surface_id: Surface to read
            lines: Number of lines to capture from the end of the buffer

        Returns:
            Raw text (may contain escape sequences), or None on failure
        """
        ...

    def get_process_info(self, surface_id: str) -> Optional[ProcessInfo]:
        """Foreground process of a surface with its immediate children."""
        ...

    def get_title(self, surface_id: str) -> Optional[str]:
        """Title of a surface, as set by the program running in it."""
        ...


@runtime_checkable
class NotificationBackend(Protocol):
    """Interface for notification delivery."""

    def send(self, title: str, message: str, timeout_ms: int) -> None:
        """Deliver a notification.

        Raises:
            NotificationDeliveryError: if the notification could not be sent
        """
        ...
