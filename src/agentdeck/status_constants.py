"""
Status constants and mappings for Agent Deck.

Centralizes all status-related constants, icons, and colors used by the
monitor, the notifier and the CLI renderers.
"""

from typing import Dict, Tuple


# =============================================================================
# Agent Status Values
# =============================================================================

STATUS_WORKING = "working"    # Agent is busy (spinner, "esc to interrupt", ...)
STATUS_WAITING = "waiting"    # Agent needs user input (permission prompt, y/n)
STATUS_IDLE = "idle"          # Agent is at its prompt, ready for input
STATUS_INACTIVE = "inactive"  # No agent detected on the surface

# All valid agent status values
ALL_STATUSES = [
    STATUS_WORKING,
    STATUS_WAITING,
    STATUS_IDLE,
    STATUS_INACTIVE,
]


# =============================================================================
# Icon Styles
# =============================================================================

ICON_STYLE_UNICODE = "unicode"
ICON_STYLE_NERD = "nerd"
ICON_STYLE_EMOJI = "emoji"

ICON_STYLES = (ICON_STYLE_UNICODE, ICON_STYLE_NERD, ICON_STYLE_EMOJI)

STATUS_ICONS: Dict[str, Dict[str, str]] = {
    ICON_STYLE_UNICODE: {
        STATUS_WORKING: "●",
        STATUS_WAITING: "◔",
        STATUS_IDLE: "○",
        STATUS_INACTIVE: "◌",
    },
    ICON_STYLE_NERD: {
        STATUS_WORKING: "",   # nf-fa-circle
        STATUS_WAITING: "",   # nf-fa-adjust
        STATUS_IDLE: "",      # nf-fa-circle_o
        STATUS_INACTIVE: "",  # nf-cod-circle_outline
    },
    ICON_STYLE_EMOJI: {
        STATUS_WORKING: "🟢",
        STATUS_WAITING: "🟡",
        STATUS_IDLE: "🔵",
        STATUS_INACTIVE: "⚪",
    },
}


def get_status_icon(status: str, style: str = ICON_STYLE_UNICODE) -> str:
    """Get icon for a status in the given style.

    Unknown styles use the unicode set; unknown statuses use the inactive icon.
    """
    icons = STATUS_ICONS.get(style, STATUS_ICONS[ICON_STYLE_UNICODE])
    return icons.get(status, icons[STATUS_INACTIVE])


# =============================================================================
# Status to Color Mappings (for Rich styling)
# =============================================================================

STATUS_COLORS = {
    STATUS_WORKING: "green",
    STATUS_WAITING: "yellow",
    STATUS_IDLE: "blue",
    STATUS_INACTIVE: "grey50",
}


def get_status_color(status: str, colors: Dict[str, str] = None) -> str:
    """Get color name for a status, falling back to the inactive color."""
    colors = colors or STATUS_COLORS
    return colors.get(status) or colors.get(STATUS_INACTIVE) or STATUS_COLORS[STATUS_INACTIVE]


def get_status_symbol(
    status: str,
    style: str = ICON_STYLE_UNICODE,
    colors: Dict[str, str] = None,
) -> Tuple[str, str]:
    """Get (icon, color) tuple for a status."""
    return get_status_icon(status, style), get_status_color(status, colors)


# =============================================================================
# Status Categorization
# =============================================================================


def is_valid_status(status: str) -> bool:
    """Check if a string is one of the known statuses."""
    return status in ALL_STATUSES


def is_active_status(status: str) -> bool:
    """Check if a status means an agent is present on the surface."""
    return status in (STATUS_WORKING, STATUS_WAITING, STATUS_IDLE)


def needs_attention(status: str) -> bool:
    """Check if status indicates user intervention is required."""
    return status == STATUS_WAITING


def empty_status_counts() -> Dict[str, int]:
    """Return a counts mapping with every status present and zeroed."""
    return {status: 0 for status in ALL_STATUSES}
