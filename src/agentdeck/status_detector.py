"""
Status classification from normalized surface text.

Given the agent running on a surface and the recent text of that surface,
assigns one of working / waiting / idle / inactive.

Checks run in strict priority order, first match wins:
    1. no agent                          -> inactive (text is not inspected)
    2. prompt or idle pattern, last 5    -> idle
    3. waiting pattern, last 30 lines    -> waiting
    4. working pattern, last 10 lines    -> working
    5. otherwise                         -> idle

Idle is checked first so that a spinner or "esc to interrupt" still in the
scrollback cannot outlive the agent's return to its prompt. The working
window is narrower than the waiting window for the same reason.
"""

import time
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

from .config import (
    DEFAULT_ACTIVITY_THRESHOLD_MS,
    DEFAULT_IDLE_LINES,
    DEFAULT_WAITING_LINES,
    DEFAULT_WORKING_LINES,
    AgentDeckConfig,
    AgentDescriptor,
)
from .status_constants import (
    STATUS_IDLE,
    STATUS_INACTIVE,
    STATUS_WAITING,
    STATUS_WORKING,
)
from .status_patterns import (
    compile_patterns,
    is_idle_line,
    matches_any,
    merge_patterns,
)
from .text_normalizer import tail_lines


@dataclass(frozen=True)
class WindowSizes:
    """How many trailing non-empty lines each check inspects."""

    idle: int = DEFAULT_IDLE_LINES
    waiting: int = DEFAULT_WAITING_LINES
    working: int = DEFAULT_WORKING_LINES

    @classmethod
    def from_config(cls, config: AgentDeckConfig) -> "WindowSizes":
        return cls(
            idle=config.idle_lines,
            waiting=config.waiting_lines,
            working=config.working_lines,
        )


DEFAULT_WINDOWS = WindowSizes()


def classify(
    normalized_text: str,
    agent: Optional[AgentDescriptor],
    pattern_overrides: Optional[Mapping[str, Sequence[str]]] = None,
    windows: WindowSizes = DEFAULT_WINDOWS,
) -> str:
    """Classify an agent's status from its surface text.

    Pure function - no side effects, fully testable.

    Args:
        normalized_text: Surface text with escape sequences already removed
        agent: The agent on the surface, or None if no agent was identified
        pattern_overrides: Per-category pattern lists replacing the defaults
            (defaults to the agent's own status_patterns)
        windows: Line window sizes for the idle/waiting/working checks

    Returns:
        One of STATUS_WORKING, STATUS_WAITING, STATUS_IDLE, STATUS_INACTIVE
    """
    if agent is None:
        return STATUS_INACTIVE

    if pattern_overrides is None:
        pattern_overrides = agent.status_patterns
    patterns = merge_patterns(pattern_overrides)

    idle_patterns = compile_patterns(patterns.idle)
    for line in tail_lines(normalized_text, windows.idle):
        if is_idle_line(line, idle_patterns):
            return STATUS_IDLE

    waiting_text = "\n".join(tail_lines(normalized_text, windows.waiting))
    if matches_any(waiting_text, compile_patterns(patterns.waiting)):
        return STATUS_WAITING

    working_text = "\n".join(tail_lines(normalized_text, windows.working))
    if matches_any(working_text, compile_patterns(patterns.working)):
        return STATUS_WORKING

    # An identified agent is never reported inactive
    return STATUS_IDLE


class StatusClassifier:
    """Classifier bound to a configuration."""

    def __init__(self, config: AgentDeckConfig):
        self.config = config
        self.windows = WindowSizes.from_config(config)

    def classify(self, normalized_text: str, agent: Optional[AgentDescriptor]) -> str:
        return classify(normalized_text, agent, windows=self.windows)


# =============================================================================
# Viewport activity heuristic
# =============================================================================

@dataclass
class ActivitySnapshot:
    """Last seen tail text of a surface and when it last changed."""

    tail: str
    changed_at: float


class ActivityTracker:
    """Demotes a stale "working" classification to "idle".

    Some agents leave a spinner frame or "thinking..." on screen after they
    stop. If the tail of the surface has not changed for `threshold` seconds
    while the classifier still says working, the agent is treated as idle.

    This is an opt-in refinement (AgentDescriptor.viewport_heuristic); the
    debounce cooldown remains the primary anti-flicker mechanism.
    """

    def __init__(
        self,
        threshold: float = DEFAULT_ACTIVITY_THRESHOLD_MS / 1000.0,
        tail_size: int = DEFAULT_WORKING_LINES,
    ):
        self.threshold = threshold
        self.tail_size = tail_size
        self._snapshots: Dict[str, ActivitySnapshot] = {}

    def observe(self, surface_id: str, normalized_text: str, now: Optional[float] = None) -> float:
        """Record the current tail and return seconds since it last changed."""
        if now is None:
            now = time.monotonic()
        tail = "\n".join(tail_lines(normalized_text, self.tail_size))
        snapshot = self._snapshots.get(surface_id)
        if snapshot is None or snapshot.tail != tail:
            self._snapshots[surface_id] = ActivitySnapshot(tail=tail, changed_at=now)
            return 0.0
        return now - snapshot.changed_at

    def apply(
        self,
        surface_id: str,
        normalized_text: str,
        raw_status: str,
        now: Optional[float] = None,
    ) -> str:
        """Observe the surface and return the possibly-demoted status."""
        unchanged_for = self.observe(surface_id, normalized_text, now)
        if raw_status == STATUS_WORKING and unchanged_for >= self.threshold:
            return STATUS_IDLE
        return raw_status

    def forget(self, surface_id: Optional[str] = None) -> None:
        """Drop the snapshot for one surface, or all snapshots."""
        if surface_id is None:
            self._snapshots.clear()
        else:
            self._snapshots.pop(surface_id, None)

    def get_snapshot(self, surface_id: str) -> Optional[ActivitySnapshot]:
        return self._snapshots.get(surface_id)
