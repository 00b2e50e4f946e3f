"""
Test fixtures and factories for agentdeck unit tests.

This module provides in-memory collaborators (a fake terminal host and
notification backends) and sample pane content, so tests never need tmux,
real processes or a desktop notification daemon.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from agentdeck.agent_detector import ProcessInfo
from agentdeck.config import AgentDeckConfig, AgentDescriptor, config_from_dict
from agentdeck.exceptions import NotificationDeliveryError
from agentdeck.protocols import SurfaceInfo


def make_agent(name: str = "claude", **kwargs) -> AgentDescriptor:
    """Create an AgentDescriptor with sensible defaults."""
    if "patterns" not in kwargs:
        kwargs["patterns"] = (name,)
    for key in ("patterns", "executable_patterns", "argv_patterns", "title_patterns"):
        if key in kwargs:
            kwargs[key] = tuple(kwargs[key])
    return AgentDescriptor(name=name, **kwargs)


def make_process(
    executable: Optional[str] = None,
    argv: Tuple[str, ...] = (),
    name: Optional[str] = None,
    children: Tuple[ProcessInfo, ...] = (),
) -> ProcessInfo:
    return ProcessInfo(executable=executable, name=name, argv=tuple(argv), children=tuple(children))


def make_config(**overrides) -> AgentDeckConfig:
    """Build a config from plain data, as if read from YAML."""
    return config_from_dict(overrides)


# =============================================================================
# Fake host
# =============================================================================

@dataclass
class FakeSurface:
    """Everything the fake host knows about one pane."""

    text: Optional[str] = ""
    process: Optional[ProcessInfo] = None
    title: Optional[str] = None
    label: str = ""


class FakeHost:
    """In-memory SurfaceHost.

    Set a surface's text/process/title to None to simulate an I/O failure.
    Calls are counted so tests can check what was (not) inspected.
    """

    def __init__(self):
        self.surfaces: Dict[str, FakeSurface] = {}
        self.available = True
        self.calls: Dict[str, int] = {"capture_text": 0, "get_process_info": 0, "get_title": 0}

    def add(self, surface_id: str, text: str = "", process=None, title=None, label="") -> FakeSurface:
        surface = FakeSurface(text=text, process=process, title=title, label=label)
        self.surfaces[surface_id] = surface
        return surface

    def remove(self, surface_id: str) -> None:
        self.surfaces.pop(surface_id, None)

    def list_surfaces(self) -> Optional[List[SurfaceInfo]]:
        if not self.available:
            return None
        return [SurfaceInfo(surface_id=sid, label=s.label) for sid, s in self.surfaces.items()]

    def capture_text(self, surface_id: str, lines: int = 100) -> Optional[str]:
        self.calls["capture_text"] += 1
        surface = self.surfaces.get(surface_id)
        return surface.text if surface else None

    def get_process_info(self, surface_id: str) -> Optional[ProcessInfo]:
        self.calls["get_process_info"] += 1
        surface = self.surfaces.get(surface_id)
        return surface.process if surface else None

    def get_title(self, surface_id: str) -> Optional[str]:
        self.calls["get_title"] += 1
        surface = self.surfaces.get(surface_id)
        return surface.title if surface else None


# =============================================================================
# Notification backends
# =============================================================================

@dataclass
class RecordingBackend:
    """Notification backend that records what it was asked to send."""

    sent: List[Tuple[str, str, int]] = field(default_factory=list)

    def send(self, title: str, message: str, timeout_ms: int) -> None:
        self.sent.append((title, message, timeout_ms))


class FailingBackend:
    """Notification backend whose delivery always fails."""

    def __init__(self):
        self.attempts = 0

    def send(self, title: str, message: str, timeout_ms: int) -> None:
        self.attempts += 1
        raise NotificationDeliveryError("no notification daemon")


# =============================================================================
# Sample pane content
# =============================================================================

CLAUDE_PROCESS = make_process("/usr/local/bin/claude", ("claude",))

PANE_WORKING = """
⏺ Searching the codebase...

  ✽ Pondering… (12s · ↓ 1.2k tokens · esc to interrupt)
"""

PANE_WAITING = """
⏺ Bash("pytest tests/ -v")

 Do you want to proceed?
 ❯ 1. Yes
   2. Yes, and don't ask again for Bash commands
   3. No, and tell Claude what to do differently (esc)
"""

PANE_IDLE = """
⏺ All tests pass.

────────────────────────────────────────────────────────────────────────
>
────────────────────────────────────────────────────────────────────────
  ? for shortcuts
"""

PANE_PLAIN_OUTPUT = """
Here is a summary of the changes I made to the configuration loader.
The defaults are now merged before validation.
"""

PANE_WORKING_ANSI = (
    "\x1b[2m⏺\x1b[0m Reading config\r\n"
    "\x1b]0;✳ claude\x07"
    "  \x1b[38;5;174m✻\x1b[39m Thinking… (\x1b[1mesc\x1b[22m to interrupt)\r\n"
)
