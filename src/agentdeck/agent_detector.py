"""
Agent detection from process information and surface titles.

Maps the foreground process of a surface (and, failing that, its immediate
children and then the surface title) to one of the configured agents.

Detection order for each candidate process, per agent in config order:
    1. full executable path
    2. process name (basename of the executable when no name is reported)
    3. the argument vector joined with spaces

Results, including "no agent", are cached per surface for a short TTL so
process inspection is not repeated on every polling tick.
"""

import ntpath
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .config import DEFAULT_DETECTION_CACHE_TTL_MS, AgentDescriptor
from .status_patterns import compile_patterns, matches_any


@dataclass(frozen=True)
class ProcessInfo:
    """A process as reported by the host. Any field may be missing."""

    executable: Optional[str] = None
    name: Optional[str] = None
    argv: Tuple[str, ...] = ()
    children: Tuple["ProcessInfo", ...] = ()

    @property
    def argv_str(self) -> str:
        return " ".join(self.argv)

    @property
    def executable_name(self) -> str:
        return get_executable_name(self.executable)


@dataclass
class DetectionCacheEntry:
    """Cached identification result for one surface."""

    agent: Optional[AgentDescriptor]
    timestamp: float

    def is_valid(self, now: float, ttl: float) -> bool:
        return (now - self.timestamp) < ttl


def get_executable_name(path: Optional[str]) -> str:
    """Extract the executable name from a full path.

    Handles both Unix and Windows separators and strips a trailing ".exe".
    """
    if not path:
        return ""
    name = ntpath.basename(path.replace("/", "\\"))
    if name.lower().endswith(".exe"):
        name = name[:-4]
    return name


def _matches(value: Optional[str], patterns: Sequence[str]) -> bool:
    if not value:
        return False
    return matches_any(value, compile_patterns(patterns))


def match_process(
    process: ProcessInfo,
    agents: Sequence[AgentDescriptor],
) -> Optional[AgentDescriptor]:
    """Find the first agent matching a single process.

    Args:
        process: Process to test (children are not examined)
        agents: Candidate agents in priority order

    Returns:
        The first matching agent, or None
    """
    process_name = process.name or process.executable_name
    argv_str = process.argv_str

    for agent in agents:
        exe_patterns = agent.patterns_for("executable")
        if _matches(process.executable, exe_patterns):
            return agent
        if _matches(process_name, exe_patterns):
            return agent
        if _matches(argv_str, agent.patterns_for("argv")):
            return agent
    return None


def match_title(title: Optional[str], agents: Sequence[AgentDescriptor]) -> Optional[AgentDescriptor]:
    """Find the first agent whose title patterns match a surface title."""
    if not title:
        return None
    for agent in agents:
        if _matches(title, agent.patterns_for("title")):
            return agent
    return None


def detect_agent(
    process_info: Optional[ProcessInfo],
    surface_title: Optional[str],
    agents: Sequence[AgentDescriptor],
) -> Optional[AgentDescriptor]:
    """Identify the agent for a surface without caching.

    Pure function - no side effects, fully testable.
    """
    if process_info is not None:
        agent = match_process(process_info, agents)
        if agent is not None:
            return agent

        # Agent launched through a wrapper (npx, a shell script, ...)
        for child in process_info.children:
            agent = match_process(child, agents)
            if agent is not None:
                return agent

    # Agents that only announce themselves through the terminal title
    return match_title(surface_title, agents)


class AgentDetector:
    """Identifies agents per surface, caching results for a short TTL.

    The cache is owned by this object and keyed by surface id; entries are
    never returned once they are older than the TTL.
    """

    def __init__(self, cache_ttl: float = DEFAULT_DETECTION_CACHE_TTL_MS / 1000.0):
        self.cache_ttl = cache_ttl
        self._cache: Dict[str, DetectionCacheEntry] = {}

    def identify(
        self,
        surface_id: str,
        process_info: Optional[ProcessInfo],
        surface_title: Optional[str],
        agents: Sequence[AgentDescriptor],
        now: Optional[float] = None,
    ) -> Optional[AgentDescriptor]:
        """Identify the agent running on a surface.

        Args:
            surface_id: Opaque surface identifier (cache key)
            process_info: Foreground process, or None if unavailable
            surface_title: Surface title, or None/empty if unavailable
            agents: Configured agents, in configuration order
            now: Current monotonic time in seconds (defaults to time.monotonic())

        Returns:
            The matching agent descriptor, or None if no agent is running
        """
        if now is None:
            now = time.monotonic()

        cached = self._cache.get(surface_id)
        if cached is not None and cached.is_valid(now, self.cache_ttl):
            return cached.agent

        agent = detect_agent(process_info, surface_title, agents)
        self._cache[surface_id] = DetectionCacheEntry(agent=agent, timestamp=now)
        return agent

    def get_cached(self, surface_id: str, now: Optional[float] = None) -> Optional[DetectionCacheEntry]:
        """Return the cache entry for a surface if it is still valid."""
        if now is None:
            now = time.monotonic()
        entry = self._cache.get(surface_id)
        if entry is None or not entry.is_valid(now, self.cache_ttl):
            return None
        return entry

    def clear_cache(self, surface_id: Optional[str] = None) -> None:
        """Drop the cache entry for one surface, or the whole cache."""
        if surface_id is None:
            self._cache.clear()
        else:
            self._cache.pop(surface_id, None)

    def cached_agents(self, now: Optional[float] = None) -> Dict[str, str]:
        """Map of surface id -> agent name for valid, non-empty cache entries."""
        if now is None:
            now = time.monotonic()
        return {
            surface_id: entry.agent.name
            for surface_id, entry in self._cache.items()
            if entry.agent is not None and entry.is_valid(now, self.cache_ttl)
        }

    def surface_ids(self) -> List[str]:
        return list(self._cache)
