"""
Transition events and a small synchronous event bus.

Events are produced by the debounce state machine and the monitor, and
consumed by the CLI renderer, the status history log, or user hooks.
Delivery is synchronous and happens inside the polling tick.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

EVENT_AGENT_DETECTED = "agent_detected"
EVENT_AGENT_FINISHED = "agent_finished"
EVENT_STATUS_CHANGED = "status_changed"
EVENT_ATTENTION_NEEDED = "attention_needed"

ALL_EVENTS = "*"

ATTENTION_REASON_WAITING = "waiting_for_input"


@dataclass(frozen=True)
class AgentDetected:
    surface_id: str
    agent: str
    event_type: str = field(default=EVENT_AGENT_DETECTED, init=False)
    timestamp: datetime = field(default_factory=datetime.now, compare=False)


@dataclass(frozen=True)
class AgentFinished:
    surface_id: str
    agent: str
    event_type: str = field(default=EVENT_AGENT_FINISHED, init=False)
    timestamp: datetime = field(default_factory=datetime.now, compare=False)


@dataclass(frozen=True)
class StatusChanged:
    """Committed status of a surface changed.

    agent is None when the change is to inactive because the agent left.
    """

    surface_id: str
    old_status: str
    new_status: str
    agent: Optional[str]
    event_type: str = field(default=EVENT_STATUS_CHANGED, init=False)
    timestamp: datetime = field(default_factory=datetime.now, compare=False)


@dataclass(frozen=True)
class AttentionNeeded:
    surface_id: str
    agent: str
    reason: str = ATTENTION_REASON_WAITING
    event_type: str = field(default=EVENT_ATTENTION_NEEDED, init=False)
    timestamp: datetime = field(default_factory=datetime.now, compare=False)


Event = Union[AgentDetected, AgentFinished, StatusChanged, AttentionNeeded]

EventCallback = Callable[[Event], None]


class EventBus:
    """Synchronous publish/subscribe for transition events.

    Subscribe to an event type name, or to "*" for every event. A callback
    that raises is logged and skipped; the remaining callbacks still run.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[EventCallback]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: str, callback: EventCallback) -> None:
        """Subscribe to an event type.

        Args:
            event_type: The event type to subscribe to, or "*" for all events.
            callback: Function to call with the event.
        """
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: str, callback: EventCallback) -> None:
        with self._lock:
            if event_type in self._subscribers:
                self._subscribers[event_type] = [
                    cb for cb in self._subscribers[event_type] if cb != callback
                ]

    def emit(self, event: Event) -> None:
        """Deliver an event to its subscribers and the "*" subscribers."""
        with self._lock:
            callbacks = list(self._subscribers.get(event.event_type, []))
            callbacks += self._subscribers.get(ALL_EVENTS, [])

        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber failed for %s", event.event_type)

    def emit_all(self, events: Iterable[Event]) -> None:
        for event in events:
            self.emit(event)

    def subscriber_count(self, event_type: Optional[str] = None) -> int:
        with self._lock:
            if event_type is not None:
                return len(self._subscribers.get(event_type, []))
            return sum(len(cbs) for cbs in self._subscribers.values())
