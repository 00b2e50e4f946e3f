"""
Agent monitor - the per-tick coordinator.

For every surface the host lists, one tick runs the pipeline in sequence:

    identify agent (cached) -> capture + normalize text -> classify
    -> debounce -> events / history / notification

AgentMonitor owns all per-surface state (detection cache, debounce state,
activity snapshots, notification timestamps, unavailable counters). State
for a surface is reclaimed when the surface is missing from the host's
list on a later tick; there is no background sweeper.
"""

import logging
import signal
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .agent_detector import AgentDetector
from .config import AgentDeckConfig, AgentDescriptor
from .daemon_logging import DaemonLogger
from .events import EVENT_STATUS_CHANGED, Event, EventBus, StatusChanged
from .monitor_core import StatusTracker
from .notifier import AttentionNotifier, DesktopNotifier, NullNotifier
from .protocols import SurfaceHost, SurfaceInfo
from .status_constants import STATUS_INACTIVE, empty_status_counts
from .status_detector import ActivityTracker, StatusClassifier
from .status_history import log_status_change
from .text_normalizer import normalize_text

logger = logging.getLogger(__name__)

DEFAULT_UNAVAILABLE_GRACE_TICKS = 3


@dataclass
class SurfaceReport:
    """Outcome of one tick for one surface."""

    surface_id: str
    label: str
    agent: Optional[str]
    status: str
    raw_status: Optional[str] = None
    skipped: bool = False


@dataclass
class TickResult:
    """Committed aggregate of one completed tick."""

    tick: int
    counts: Dict[str, int] = field(default_factory=empty_status_counts)
    surfaces: List[SurfaceReport] = field(default_factory=list)
    events: List[Event] = field(default_factory=list)
    host_available: bool = True

    @property
    def total(self) -> int:
        return len(self.surfaces)

    def by_surface(self) -> Dict[str, SurfaceReport]:
        return {s.surface_id: s for s in self.surfaces}


class _Unavailable(Exception):
    """Raised inside a tick when a surface gave no usable information."""


class AgentMonitor:
    """Coordinates detection, classification, debouncing and notification."""

    def __init__(
        self,
        config: AgentDeckConfig,
        host: Optional[SurfaceHost] = None,
        notifier: Optional[AttentionNotifier] = None,
        event_bus: Optional[EventBus] = None,
        unavailable_grace_ticks: int = DEFAULT_UNAVAILABLE_GRACE_TICKS,
    ):
        self.config = config
        if host is None:
            from .implementations import TmuxHost
            host = TmuxHost()
        self.host = host
        if notifier is None:
            backend = DesktopNotifier() if config.notifications.enabled else NullNotifier()
            notifier = AttentionNotifier.from_settings(config.notifications, backend=backend)
        self.notifier = notifier
        self.event_bus = event_bus or EventBus()
        self.unavailable_grace_ticks = max(1, unavailable_grace_ticks)

        self.detector = AgentDetector(cache_ttl=config.detection_cache_ttl_seconds)
        self.classifier = StatusClassifier(config)
        self.tracker = StatusTracker()
        self.activity = ActivityTracker(
            threshold=config.activity_threshold_seconds,
            tail_size=config.working_lines,
        )
        self.agents: List[AgentDescriptor] = config.active_agents()

        self.tick_count = 0
        self._labels: Dict[str, str] = {}
        self._misses: Dict[str, int] = {}
        self._shutdown = False

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def enable_history(self, history_file=None) -> None:
        """Append every committed transition to the status history CSV."""

        def _record(event: StatusChanged) -> None:
            log_status_change(
                self.label_for(event.surface_id),
                event.agent,
                event.old_status,
                event.new_status,
                history_file=history_file,
            )

        self.event_bus.subscribe(EVENT_STATUS_CHANGED, _record)

    def label_for(self, surface_id: str) -> str:
        return self._labels.get(surface_id) or surface_id

    # -------------------------------------------------------------------------
    # Tick
    # -------------------------------------------------------------------------

    def tick(
        self,
        surfaces: Optional[Iterable[Union[SurfaceInfo, str]]] = None,
        now: Optional[float] = None,
    ) -> TickResult:
        """Run one polling tick over every surface.

        Args:
            surfaces: Surfaces to scan (defaults to the host's surface list)
            now: Current monotonic time in seconds

        Returns:
            TickResult with counts over the scanned surfaces, per-surface
            reports and every event emitted during the tick
        """
        if now is None:
            now = time.monotonic()
        self.tick_count += 1
        result = TickResult(tick=self.tick_count)

        if surfaces is None:
            listed = self.host.list_surfaces()
            if listed is None:
                # Host unreachable: no information, keep every state as it is
                logger.debug("Host unavailable on tick %d", self.tick_count)
                result.host_available = False
                return result
            surfaces = listed

        infos = [s if isinstance(s, SurfaceInfo) else SurfaceInfo(surface_id=s) for s in surfaces]
        live = set()
        for info in infos:
            live.add(info.surface_id)
            if info.label:
                self._labels[info.surface_id] = info.label
            report = self._tick_surface(info, now, result.events)
            result.surfaces.append(report)
        result.counts = summarize(result.surfaces)

        for surface_id in self._known_surfaces() - live:
            self._evict(surface_id, now, result.events)

        return result

    def _known_surfaces(self) -> set:
        known = set(self.tracker.surface_ids())
        known.update(self.detector.surface_ids())
        known.update(self._misses)
        known.update(self._labels)
        return known

    def _tick_surface(self, info: SurfaceInfo, now: float, events: List[Event]) -> SurfaceReport:
        surface_id = info.surface_id
        try:
            agent, raw_status = self._observe(surface_id, now)
        except _Unavailable:
            return self._handle_unavailable(info, now, events)

        self._misses.pop(surface_id, None)
        self._advance(surface_id, raw_status, agent, now, events)
        return SurfaceReport(
            surface_id=surface_id,
            label=info.display,
            agent=agent.name if agent else None,
            status=self.tracker.get_status(surface_id),
            raw_status=raw_status,
        )

    def _observe(self, surface_id: str, now: float):
        """Identify and classify one surface.

        Raises:
            _Unavailable: if the host gave no usable information
        """
        cached = self.detector.get_cached(surface_id, now)
        if cached is not None:
            agent = cached.agent
        else:
            process_info = self.host.get_process_info(surface_id)
            title = self.host.get_title(surface_id)
            if process_info is None and not title:
                raise _Unavailable(surface_id)
            agent = self.detector.identify(surface_id, process_info, title, self.agents, now)

        if agent is None:
            self.activity.forget(surface_id)
            return None, STATUS_INACTIVE

        raw_text = self.host.capture_text(surface_id, self.config.max_lines)
        if raw_text is None:
            raise _Unavailable(surface_id)

        text = normalize_text(raw_text)
        raw_status = self.classifier.classify(text, agent)
        if agent.viewport_heuristic:
            raw_status = self.activity.apply(surface_id, text, raw_status, now)
        return agent, raw_status

    def _handle_unavailable(self, info: SurfaceInfo, now: float, events: List[Event]) -> SurfaceReport:
        surface_id = info.surface_id
        misses = self._misses.get(surface_id, 0) + 1
        self._misses[surface_id] = misses

        if misses < self.unavailable_grace_ticks:
            logger.debug("No information for %s (%d/%d)", surface_id, misses, self.unavailable_grace_ticks)
            state = self.tracker.get_state(surface_id)
            return SurfaceReport(
                surface_id=surface_id,
                label=info.display,
                agent=state.agent_name if state else None,
                status=self.tracker.get_status(surface_id),
                skipped=True,
            )

        # Persistent failure: same as the agent disappearing
        self._advance(surface_id, STATUS_INACTIVE, None, now, events)
        self.detector.clear_cache(surface_id)
        self.activity.forget(surface_id)
        return SurfaceReport(surface_id=surface_id, label=info.display, agent=None, status=STATUS_INACTIVE)

    def _advance(
        self,
        surface_id: str,
        raw_status: str,
        agent: Optional[AgentDescriptor],
        now: float,
        events: List[Event],
    ) -> None:
        self.tracker.advance(surface_id, raw_status, agent, now, self.config.cooldown_seconds)
        result = self.tracker.last_result
        if result.entered_waiting and agent is not None:
            self.notifier.maybe_notify(surface_id, agent, now)
        events.extend(result.events)
        self.event_bus.emit_all(result.events)

    def _evict(self, surface_id: str, now: float, events: List[Event]) -> None:
        """Reclaim all state for a surface the host no longer lists."""
        if self.tracker.get_state(surface_id) is not None:
            self._advance(surface_id, STATUS_INACTIVE, None, now, events)
        self.tracker.remove(surface_id)
        self.detector.clear_cache(surface_id)
        self.activity.forget(surface_id)
        self.notifier.clear_state(surface_id)
        self._misses.pop(surface_id, None)
        self._labels.pop(surface_id, None)

    def counts(self) -> Dict[str, int]:
        """Committed counts over surfaces with an agent."""
        return self.tracker.counts_by_status()

    # -------------------------------------------------------------------------
    # Polling loop
    # -------------------------------------------------------------------------

    def stop(self) -> None:
        self._shutdown = True

    def _interruptible_sleep(self, total_seconds: float) -> None:
        chunk_size = 0.5
        elapsed = 0.0
        while elapsed < total_seconds and not self._shutdown:
            sleep_time = min(chunk_size, total_seconds - elapsed)
            time.sleep(sleep_time)
            elapsed += sleep_time

    def run(
        self,
        log: Optional[DaemonLogger] = None,
        interval: Optional[float] = None,
        max_ticks: Optional[int] = None,
        summary_every: int = 12,
        handle_signals: bool = True,
    ) -> None:
        """Poll until stopped (SIGINT/SIGTERM) or max_ticks is reached.

        Ticks never overlap: the next one starts `interval` seconds after
        the previous one finished.

        Args:
            log: Logger for transitions and summaries (created if omitted)
            interval: Seconds between ticks (defaults to update_interval)
            max_ticks: Stop after this many ticks (None = run forever)
            summary_every: Print a count summary every N ticks (0 = never)
            handle_signals: Install SIGINT/SIGTERM handlers
        """
        log = log or DaemonLogger(colors=self.config.colors, icon_style=self.config.icons.style)
        interval = self.config.update_interval_seconds if interval is None else interval

        log.section("Agent Deck Monitor")
        log.info(f"Watching {len(self.agents)} agent types: {', '.join(a.name for a in self.agents)}")
        log.info(f"Interval: {interval:g}s, cooldown: {self.config.cooldown_seconds:g}s")

        previous_handlers = {}
        if handle_signals:
            def handle_shutdown(signum, frame):
                log.info("Shutdown signal received")
                self._shutdown = True

            for signum in (signal.SIGTERM, signal.SIGINT):
                previous_handlers[signum] = signal.signal(signum, handle_shutdown)

        def _log_transition(event: StatusChanged) -> None:
            log.transition(self.label_for(event.surface_id), event.agent, event.old_status, event.new_status)

        self.event_bus.subscribe(EVENT_STATUS_CHANGED, _log_transition)
        host_was_available = True
        try:
            while not self._shutdown:
                result = self.tick()
                if not result.host_available and host_was_available:
                    log.warn("Terminal host unavailable (is tmux running?)")
                elif result.host_available and not host_was_available:
                    log.success("Terminal host available again")
                host_was_available = result.host_available

                if summary_every and result.tick % summary_every == 0:
                    log.status_summary(result.counts, result.tick)
                if max_ticks is not None and result.tick >= max_ticks:
                    break
                self._interruptible_sleep(interval)
        finally:
            self.event_bus.unsubscribe(EVENT_STATUS_CHANGED, _log_transition)
            for signum, handler in previous_handlers.items():
                signal.signal(signum, handler)
            log.info("Monitor stopped")


def summarize(reports: Sequence[SurfaceReport]) -> Dict[str, int]:
    """Count reports per status, every status present."""
    counts = empty_status_counts()
    for report in reports:
        counts[report.status] = counts.get(report.status, 0) + 1
    return counts
