"""
Configuration for Agent Deck.

Configuration is loaded from ~/.agentdeck/config.yaml (or the file named by
AGENTDECK_CONFIG), deep-merged over the built-in defaults, and validated.
Validation never refuses a config: any out-of-range or malformed option is
replaced by its default and a warning string is returned (and logged).

The resolved AgentDeckConfig is passed explicitly to the components that
need it; there is no module-level config singleton.
"""

import copy
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from .status_constants import (
    ALL_STATUSES,
    ICON_STYLE_UNICODE,
    ICON_STYLES,
    STATUS_COLORS,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Paths
# =============================================================================

def get_state_dir() -> Path:
    """Directory for logs and history (AGENTDECK_STATE_DIR overrides)."""
    env_dir = os.environ.get("AGENTDECK_STATE_DIR")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".agentdeck"


def get_config_path() -> Path:
    """Path of the YAML config file (AGENTDECK_CONFIG overrides)."""
    env_path = os.environ.get("AGENTDECK_CONFIG")
    if env_path:
        return Path(env_path)
    return get_state_dir() / "config.yaml"


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_UPDATE_INTERVAL_MS = 5000
DEFAULT_COOLDOWN_MS = 2000
DEFAULT_MAX_LINES = 100
DEFAULT_DETECTION_CACHE_TTL_MS = 5000
DEFAULT_IDLE_LINES = 5
DEFAULT_WORKING_LINES = 10
DEFAULT_WAITING_LINES = 30
DEFAULT_ACTIVITY_THRESHOLD_MS = 2000
DEFAULT_NOTIFICATION_TIMEOUT_MS = 4000
DEFAULT_NOTIFICATION_MIN_GAP_MS = 10000

MIN_UPDATE_INTERVAL_MS = 100
MIN_MAX_LINES = 10

TAB_POSITIONS = ("left", "right")
STATUS_PATTERN_CATEGORIES = ("working", "waiting", "idle")

# Built-in agents, in detection order
DEFAULT_AGENTS: Dict[str, Dict[str, Any]] = {
    "opencode": {"patterns": ["opencode"], "display_name": "OpenCode"},
    "claude": {"patterns": ["claude", "claude-code"], "display_name": "Claude"},
    "gemini": {"patterns": ["gemini"], "display_name": "Gemini"},
    "codex": {"patterns": ["codex"], "display_name": "Codex"},
    "aider": {"patterns": ["aider"], "display_name": "Aider"},
}

DEFAULT_RIGHT_STATUS_COMPONENTS: List[Dict[str, Any]] = [
    {"type": "badge", "filter": "waiting", "label": "waiting"},
    {"type": "separator", "text": " | "},
    {"type": "badge", "filter": "working", "label": "working"},
]

DEFAULT_TAB_TITLE_COMPONENTS: List[Dict[str, Any]] = [
    {"type": "icon"},
    {"type": "separator", "text": " "},
]


# =============================================================================
# Config dataclasses
# =============================================================================

@dataclass(frozen=True)
class AgentDescriptor:
    """Static description of one agent: how to recognize it, how to read it.

    Phase-specific pattern lists (executable/argv/title) take precedence over
    the generic `patterns`; with no patterns at all the agent's own name is
    used. `status_patterns` replaces the default pattern list of each
    category it names (working, waiting, idle) and leaves the others alone.
    """

    name: str
    patterns: Tuple[str, ...] = ()
    executable_patterns: Tuple[str, ...] = ()
    argv_patterns: Tuple[str, ...] = ()
    title_patterns: Tuple[str, ...] = ()
    status_patterns: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    display_name: Optional[str] = None
    viewport_heuristic: bool = False

    def patterns_for(self, phase: str) -> Tuple[str, ...]:
        """Patterns for a detection phase: 'executable', 'argv' or 'title'."""
        specific = getattr(self, f"{phase}_patterns", ())
        if specific:
            return specific
        if self.patterns:
            return self.patterns
        return (self.name,)

    @property
    def title(self) -> str:
        """Human-facing name, e.g. for notification titles."""
        if self.display_name:
            return self.display_name
        return self.name[:1].upper() + self.name[1:]

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "AgentDescriptor":
        """Build a descriptor from a config mapping.

        Raises:
            ValueError: if a field has the wrong shape
        """
        def _patterns(key: str) -> Tuple[str, ...]:
            value = data.get(key) or ()
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, (list, tuple)):
                raise ValueError(f"{key} must be a list of strings")
            return tuple(str(p) for p in value)

        raw_status = data.get("status_patterns") or {}
        if not isinstance(raw_status, Mapping):
            raise ValueError("status_patterns must be a mapping")
        status_patterns = {}
        for category, value in raw_status.items():
            if category not in STATUS_PATTERN_CATEGORIES:
                raise ValueError(f"unknown status_patterns category '{category}'")
            if value is None:
                continue
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, (list, tuple)):
                raise ValueError(f"status_patterns.{category} must be a list of strings")
            status_patterns[category] = tuple(str(p) for p in value)

        display_name = data.get("display_name")
        return cls(
            name=name,
            patterns=_patterns("patterns"),
            executable_patterns=_patterns("executable_patterns"),
            argv_patterns=_patterns("argv_patterns"),
            title_patterns=_patterns("title_patterns"),
            status_patterns=status_patterns,
            display_name=str(display_name) if display_name else None,
            viewport_heuristic=bool(data.get("viewport_heuristic", False)),
        )

    def to_dict(self) -> dict:
        """Convert descriptor to a plain mapping (for YAML/JSON output)."""
        result: Dict[str, Any] = {"patterns": list(self.patterns)}
        for phase in ("executable", "argv", "title"):
            specific = getattr(self, f"{phase}_patterns")
            if specific:
                result[f"{phase}_patterns"] = list(specific)
        if self.status_patterns:
            result["status_patterns"] = {k: list(v) for k, v in self.status_patterns.items()}
        if self.display_name:
            result["display_name"] = self.display_name
        if self.viewport_heuristic:
            result["viewport_heuristic"] = True
        return result


@dataclass(frozen=True)
class NotificationSettings:
    """Attention notification options."""

    enabled: bool = True
    on_waiting: bool = True
    timeout_ms: Any = DEFAULT_NOTIFICATION_TIMEOUT_MS
    min_gap_ms: Any = DEFAULT_NOTIFICATION_MIN_GAP_MS

    @property
    def min_gap_seconds(self) -> float:
        return self.min_gap_ms / 1000.0


@dataclass(frozen=True)
class IconSettings:
    style: Any = ICON_STYLE_UNICODE


@dataclass(frozen=True)
class TabTitleSettings:
    enabled: bool = True
    position: Any = "left"
    components: Tuple[Mapping[str, Any], ...] = tuple(DEFAULT_TAB_TITLE_COMPONENTS)


@dataclass(frozen=True)
class RightStatusSettings:
    enabled: bool = True
    components: Tuple[Mapping[str, Any], ...] = tuple(DEFAULT_RIGHT_STATUS_COMPONENTS)


def _default_agents() -> Dict[str, AgentDescriptor]:
    return {name: AgentDescriptor.from_dict(name, data) for name, data in DEFAULT_AGENTS.items()}


@dataclass(frozen=True)
class AgentDeckConfig:
    """Resolved configuration.

    Durations are stored in milliseconds, as they appear in the config file;
    the *_seconds properties convert for the monitoring core, which compares
    them against a monotonic clock in seconds.
    """

    update_interval: Any = DEFAULT_UPDATE_INTERVAL_MS
    cooldown_ms: Any = DEFAULT_COOLDOWN_MS
    max_lines: Any = DEFAULT_MAX_LINES
    detection_cache_ttl_ms: Any = DEFAULT_DETECTION_CACHE_TTL_MS
    idle_lines: Any = DEFAULT_IDLE_LINES
    working_lines: Any = DEFAULT_WORKING_LINES
    waiting_lines: Any = DEFAULT_WAITING_LINES
    activity_threshold_ms: Any = DEFAULT_ACTIVITY_THRESHOLD_MS
    agents: Mapping[str, AgentDescriptor] = field(default_factory=_default_agents)
    enabled_agents: Optional[Tuple[str, ...]] = None
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    icons: IconSettings = field(default_factory=IconSettings)
    tab_title: TabTitleSettings = field(default_factory=TabTitleSettings)
    right_status: RightStatusSettings = field(default_factory=RightStatusSettings)
    colors: Mapping[str, str] = field(default_factory=lambda: dict(STATUS_COLORS))

    @property
    def update_interval_seconds(self) -> float:
        return self.update_interval / 1000.0

    @property
    def cooldown_seconds(self) -> float:
        return self.cooldown_ms / 1000.0

    @property
    def detection_cache_ttl_seconds(self) -> float:
        return self.detection_cache_ttl_ms / 1000.0

    @property
    def activity_threshold_seconds(self) -> float:
        return self.activity_threshold_ms / 1000.0

    def active_agents(self) -> List[AgentDescriptor]:
        """Agent descriptors to consider, in configuration order."""
        if self.enabled_agents is None:
            return list(self.agents.values())
        enabled = set(self.enabled_agents)
        return [agent for name, agent in self.agents.items() if name in enabled]

    def to_dict(self) -> dict:
        """Convert config to a plain mapping (for `agentdeck config show`)."""
        result = {
            "update_interval": self.update_interval,
            "cooldown_ms": self.cooldown_ms,
            "max_lines": self.max_lines,
            "detection_cache_ttl_ms": self.detection_cache_ttl_ms,
            "idle_lines": self.idle_lines,
            "working_lines": self.working_lines,
            "waiting_lines": self.waiting_lines,
            "activity_threshold_ms": self.activity_threshold_ms,
            "agents": {name: agent.to_dict() for name, agent in self.agents.items()},
            "notifications": {
                "enabled": self.notifications.enabled,
                "on_waiting": self.notifications.on_waiting,
                "timeout_ms": self.notifications.timeout_ms,
                "min_gap_ms": self.notifications.min_gap_ms,
            },
            "icons": {"style": self.icons.style},
            "tab_title": {
                "enabled": self.tab_title.enabled,
                "position": self.tab_title.position,
                "components": [dict(c) for c in self.tab_title.components],
            },
            "right_status": {
                "enabled": self.right_status.enabled,
                "components": [dict(c) for c in self.right_status.components],
            },
            "colors": dict(self.colors),
        }
        if self.enabled_agents is not None:
            result["enabled_agents"] = list(self.enabled_agents)
        return result


# =============================================================================
# Building from plain data
# =============================================================================

def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base.

    Nested mappings merge key by key; any other override value replaces the
    base value. Keys only present in override are added after base's keys.
    """
    result = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def config_from_dict(
    data: Optional[Mapping[str, Any]],
    warnings: Optional[List[str]] = None,
) -> AgentDeckConfig:
    """Build an (unvalidated) config from user data merged over defaults.

    Agent entries that cannot be parsed are dropped with a warning appended
    to `warnings`; a broken built-in agent falls back to its defaults.
    Scalar options are taken as-is; validate_config fixes them.
    """
    warnings = warnings if warnings is not None else []
    data = dict(data or {})

    raw_agents = data.get("agents")
    if raw_agents is not None and not isinstance(raw_agents, Mapping):
        warnings.append("agents should be a mapping of name -> options, using defaults")
        raw_agents = None
    merged_agents = deep_merge(DEFAULT_AGENTS, raw_agents or {})

    agents: Dict[str, AgentDescriptor] = {}
    for name, agent_data in merged_agents.items():
        if agent_data is None:
            agent_data = {}
        if not isinstance(agent_data, Mapping):
            warnings.append(f"agent '{name}' should be a mapping, ignoring it")
            continue
        try:
            agents[str(name)] = AgentDescriptor.from_dict(str(name), agent_data)
        except ValueError as e:
            if name in DEFAULT_AGENTS:
                warnings.append(f"agent '{name}' is invalid ({e}), using defaults")
                agents[str(name)] = AgentDescriptor.from_dict(str(name), DEFAULT_AGENTS[name])
            else:
                warnings.append(f"agent '{name}' is invalid ({e}), ignoring it")

    enabled_agents = data.get("enabled_agents")
    if enabled_agents is not None:
        if isinstance(enabled_agents, (list, tuple)):
            enabled_agents = tuple(str(a) for a in enabled_agents)
        else:
            warnings.append("enabled_agents should be a list, enabling all agents")
            enabled_agents = None

    def _section(key: str) -> Mapping[str, Any]:
        value = data.get(key) or {}
        if not isinstance(value, Mapping):
            warnings.append(f"{key} should be a mapping, using defaults")
            return {}
        return value

    def _components(key: str, section: Mapping[str, Any], default) -> tuple:
        value = section.get("components")
        if not value:
            return tuple(default)
        if not isinstance(value, (list, tuple)):
            warnings.append(f"{key}.components should be a list, using defaults")
            return tuple(default)
        components = tuple(c for c in value if isinstance(c, Mapping))
        if len(components) != len(value):
            warnings.append(f"{key}.components entries should be mappings, ignoring the others")
        return components or tuple(default)

    notif = _section("notifications")
    icons = _section("icons")
    tab = _section("tab_title")
    right = _section("right_status")
    colors = _section("colors")

    defaults = AgentDeckConfig()
    return AgentDeckConfig(
        update_interval=data.get("update_interval", DEFAULT_UPDATE_INTERVAL_MS),
        cooldown_ms=data.get("cooldown_ms", DEFAULT_COOLDOWN_MS),
        max_lines=data.get("max_lines", DEFAULT_MAX_LINES),
        detection_cache_ttl_ms=data.get("detection_cache_ttl_ms", DEFAULT_DETECTION_CACHE_TTL_MS),
        idle_lines=data.get("idle_lines", DEFAULT_IDLE_LINES),
        working_lines=data.get("working_lines", DEFAULT_WORKING_LINES),
        waiting_lines=data.get("waiting_lines", DEFAULT_WAITING_LINES),
        activity_threshold_ms=data.get("activity_threshold_ms", DEFAULT_ACTIVITY_THRESHOLD_MS),
        agents=agents,
        enabled_agents=enabled_agents,
        notifications=NotificationSettings(
            enabled=bool(notif.get("enabled", True)),
            on_waiting=bool(notif.get("on_waiting", True)),
            timeout_ms=notif.get("timeout_ms", DEFAULT_NOTIFICATION_TIMEOUT_MS),
            min_gap_ms=notif.get("min_gap_ms", DEFAULT_NOTIFICATION_MIN_GAP_MS),
        ),
        icons=IconSettings(style=icons.get("style", ICON_STYLE_UNICODE)),
        tab_title=TabTitleSettings(
            enabled=bool(tab.get("enabled", True)),
            position=tab.get("position", "left"),
            components=_components("tab_title", tab, DEFAULT_TAB_TITLE_COMPONENTS),
        ),
        right_status=RightStatusSettings(
            enabled=bool(right.get("enabled", True)),
            components=_components("right_status", right, DEFAULT_RIGHT_STATUS_COMPONENTS),
        ),
        colors={**defaults.colors, **{str(k): str(v) for k, v in colors.items()}},
    )


# =============================================================================
# Validation
# =============================================================================

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: AgentDeckConfig) -> Tuple[AgentDeckConfig, List[str]]:
    """Correct invalid options to their defaults.

    Pure apart from logging: returns a corrected copy and the list of
    warnings, one per corrected option.

    Args:
        config: Config to validate

    Returns:
        Tuple of (corrected config, warnings)
    """
    warnings: List[str] = []
    changes: Dict[str, Any] = {}

    def _check(name: str, minimum: float, default: Any, inclusive: bool = True, message: str = None):
        value = getattr(config, name)
        ok = _is_number(value) and (value >= minimum if inclusive else value > minimum)
        if not ok:
            bound = f">= {minimum}" if inclusive else f"> {minimum}"
            warnings.append(message or f"{name} should be {bound}, using default ({default})")
            changes[name] = default

    _check("update_interval", MIN_UPDATE_INTERVAL_MS, DEFAULT_UPDATE_INTERVAL_MS,
           message=f"update_interval should be >= {MIN_UPDATE_INTERVAL_MS}ms, using default")
    _check("cooldown_ms", 0, DEFAULT_COOLDOWN_MS,
           message="cooldown_ms should be >= 0ms, using default")
    _check("max_lines", MIN_MAX_LINES, DEFAULT_MAX_LINES,
           message=f"max_lines should be >= {MIN_MAX_LINES}, using default")
    _check("detection_cache_ttl_ms", 0, DEFAULT_DETECTION_CACHE_TTL_MS, inclusive=False)
    _check("idle_lines", 1, DEFAULT_IDLE_LINES)
    _check("working_lines", 1, DEFAULT_WORKING_LINES)
    _check("waiting_lines", 1, DEFAULT_WAITING_LINES)
    _check("activity_threshold_ms", 0, DEFAULT_ACTIVITY_THRESHOLD_MS, inclusive=False)

    for name in ("max_lines", "idle_lines", "working_lines", "waiting_lines"):
        value = changes.get(name, getattr(config, name))
        if isinstance(value, float):
            changes[name] = int(value)

    notif = config.notifications
    notif_changes: Dict[str, Any] = {}
    if not _is_number(notif.timeout_ms) or notif.timeout_ms <= 0:
        warnings.append("notifications.timeout_ms should be > 0, using default")
        notif_changes["timeout_ms"] = DEFAULT_NOTIFICATION_TIMEOUT_MS
    if not _is_number(notif.min_gap_ms) or notif.min_gap_ms < 0:
        warnings.append("notifications.min_gap_ms should be >= 0, using default")
        notif_changes["min_gap_ms"] = DEFAULT_NOTIFICATION_MIN_GAP_MS
    if notif_changes:
        changes["notifications"] = replace(notif, **notif_changes)

    if config.icons.style not in ICON_STYLES:
        warnings.append("Invalid icon style, using unicode")
        changes["icons"] = replace(config.icons, style=ICON_STYLE_UNICODE)

    if config.tab_title.position not in TAB_POSITIONS:
        warnings.append('tab_title.position should be "left" or "right", using "left"')
        changes["tab_title"] = replace(config.tab_title, position="left")

    unknown_colors = [k for k in config.colors if k not in ALL_STATUSES]
    if unknown_colors:
        warnings.append(f"Ignoring colors for unknown statuses: {', '.join(sorted(unknown_colors))}")
        changes["colors"] = {k: v for k, v in config.colors.items() if k in ALL_STATUSES}

    if config.enabled_agents is not None:
        unknown = [a for a in config.enabled_agents if a not in config.agents]
        if unknown:
            warnings.append(f"enabled_agents names unknown agents: {', '.join(unknown)}")

    for warning in warnings:
        logger.warning(warning)

    return replace(config, **changes), warnings


# =============================================================================
# Loading
# =============================================================================

def load_config(path: Optional[Path] = None) -> Tuple[AgentDeckConfig, List[str]]:
    """Load, merge and validate the config file.

    A missing file gives the defaults. A file that cannot be read or parsed
    gives the defaults plus a warning. Never raises.

    Args:
        path: Optional path override (defaults to get_config_path())

    Returns:
        Tuple of (validated config, warnings)
    """
    path = path or get_config_path()
    warnings: List[str] = []
    data: Optional[Mapping[str, Any]] = None

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            warnings.append(f"Could not read config file {path}: {e}")
            data = None
        if data is not None and not isinstance(data, Mapping):
            warnings.append(f"Config file {path} should contain a mapping, using defaults")
            data = None

    for warning in warnings:
        logger.warning(warning)

    merge_warnings: List[str] = []
    config = config_from_dict(data, merge_warnings)
    for warning in merge_warnings:
        logger.warning(warning)

    config, validation_warnings = validate_config(config)
    return config, warnings + merge_warnings + validation_warnings
