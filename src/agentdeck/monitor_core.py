"""
Debounce state machine for per-surface agent status.

Pure business logic: advance_state() takes the previous state and one raw
classification and returns the next state plus the events to report. It
performs no I/O and is fully unit-testable. StatusTracker owns the map of
surface id -> state and applies advance_state() tick by tick.

The only debounced direction is working -> idle: agents routinely flash an
idle-looking screen between tool calls, so that transition must persist for
the cooldown window before it is committed. Every other change, including a
return to working, is committed immediately.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from .config import AgentDescriptor
from .events import AgentDetected, AgentFinished, AttentionNeeded, StatusChanged
from .status_constants import (
    STATUS_IDLE,
    STATUS_INACTIVE,
    STATUS_WAITING,
    STATUS_WORKING,
    empty_status_counts,
)


@dataclass
class SurfaceStatusState:
    """Committed status of one surface while an agent is present on it."""

    agent: AgentDescriptor
    status: str
    last_update: float
    cooldown_start: Optional[float] = None

    @property
    def agent_name(self) -> str:
        return self.agent.name

    @property
    def in_cooldown(self) -> bool:
        return self.cooldown_start is not None


@dataclass
class AdvanceResult:
    """Outcome of one debounce step."""

    state: Optional[SurfaceStatusState]
    committed_status: str
    transitioned: bool
    events: List[object] = field(default_factory=list)

    @property
    def entered_waiting(self) -> bool:
        return self.transitioned and self.committed_status == STATUS_WAITING


def advance_state(
    surface_id: str,
    state: Optional[SurfaceStatusState],
    raw_status: str,
    agent: Optional[AgentDescriptor],
    now: float,
    cooldown_window: float,
) -> AdvanceResult:
    """Advance one surface's debounce state by one observation.

    Pure function - no side effects, fully testable. The input state is not
    mutated; the returned state is a new object (or None).

    Args:
        surface_id: Surface identifier (only used to label events)
        state: Previous state, or None if the surface had no agent
        raw_status: This tick's classification
        agent: Agent identified this tick, or None
        now: Current monotonic time in seconds
        cooldown_window: Seconds a working -> idle change must persist

    Returns:
        AdvanceResult with the new state, committed status, transition flag
        and events (AgentDetected/AgentFinished/StatusChanged/AttentionNeeded)
    """
    # No agent before, none now
    if state is None and agent is None:
        return AdvanceResult(state=None, committed_status=STATUS_INACTIVE, transitioned=False)

    # First observation: always a transition from the implicit inactive
    if state is None:
        new_state = SurfaceStatusState(agent=agent, status=raw_status, last_update=now)
        events = [
            AgentDetected(surface_id, agent.name),
            StatusChanged(surface_id, STATUS_INACTIVE, raw_status, agent.name),
        ]
        if raw_status == STATUS_WAITING:
            events.append(AttentionNeeded(surface_id, agent.name))
        return AdvanceResult(new_state, raw_status, True, events)

    # Agent went away: state is destroyed
    if agent is None:
        events = [AgentFinished(surface_id, state.agent_name)]
        transitioned = state.status != STATUS_INACTIVE
        if transitioned:
            events.append(StatusChanged(surface_id, state.status, STATUS_INACTIVE, None))
        return AdvanceResult(None, STATUS_INACTIVE, transitioned, events)

    old_status = state.status
    new_state = replace(state, agent=agent)

    if old_status == STATUS_WORKING and raw_status == STATUS_IDLE:
        if new_state.cooldown_start is None:
            new_state.cooldown_start = now
            new_state.last_update = now
            return AdvanceResult(new_state, STATUS_WORKING, False)
        if (now - new_state.cooldown_start) < cooldown_window:
            new_state.last_update = now
            return AdvanceResult(new_state, STATUS_WORKING, False)
        # Cooldown elapsed: commit the idle below
        new_state.cooldown_start = None
    elif raw_status == STATUS_WORKING:
        new_state.cooldown_start = None

    new_state.last_update = now
    if raw_status == old_status:
        return AdvanceResult(new_state, old_status, False)

    new_state.status = raw_status
    new_state.cooldown_start = None
    events = [StatusChanged(surface_id, old_status, raw_status, agent.name)]
    if raw_status == STATUS_WAITING:
        events.append(AttentionNeeded(surface_id, agent.name))
    return AdvanceResult(new_state, raw_status, True, events)


class StatusTracker:
    """Owns the per-surface debounce states.

    A surface has at most one state. States are created when an agent is
    first seen on a surface and destroyed when it is no longer detected.
    """

    def __init__(self):
        self._states: Dict[str, SurfaceStatusState] = {}
        self.last_result: Optional[AdvanceResult] = None

    def advance(
        self,
        surface_id: str,
        raw_status: str,
        agent: Optional[AgentDescriptor],
        now: float,
        cooldown_window: float,
    ) -> Tuple[str, bool]:
        """Apply one observation to a surface.

        Returns:
            Tuple of (committed_status, transitioned). The full result,
            including events, is available as last_result.
        """
        result = advance_state(
            surface_id,
            self._states.get(surface_id),
            raw_status,
            agent,
            now,
            cooldown_window,
        )
        if result.state is None:
            self._states.pop(surface_id, None)
        else:
            self._states[surface_id] = result.state
        self.last_result = result
        return result.committed_status, result.transitioned

    def get_state(self, surface_id: str) -> Optional[SurfaceStatusState]:
        return self._states.get(surface_id)

    def get_status(self, surface_id: str) -> str:
        """Committed status of a surface (inactive when it has no agent)."""
        state = self._states.get(surface_id)
        return state.status if state is not None else STATUS_INACTIVE

    def all_states(self) -> Dict[str, SurfaceStatusState]:
        return dict(self._states)

    def surface_ids(self) -> List[str]:
        return list(self._states)

    def remove(self, surface_id: str) -> Optional[SurfaceStatusState]:
        """Forget a surface without reporting events."""
        return self._states.pop(surface_id, None)

    def counts_by_status(self) -> Dict[str, int]:
        """Count tracked surfaces per committed status.

        Every status is present in the result, zero when unused.
        """
        counts = empty_status_counts()
        for state in self._states.values():
            counts[state.status] = counts.get(state.status, 0) + 1
        return counts
