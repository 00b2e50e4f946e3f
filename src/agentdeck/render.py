"""
Rendering of status components as rich Text.

Tab titles and the right-status line are built from a declarative list of
components in the config, e.g.:

    right_status:
      components:
        - {type: badge, filter: waiting, label: waiting}
        - {type: separator, text: " | "}
        - {type: badge, filter: working, label: working}

Each component type is a function registered in COMPONENTS taking a
RenderContext and the component's options and returning a Text (empty
Text renders nothing).
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from rich.text import Text

from .config import AgentDeckConfig
from .status_constants import (
    STATUS_INACTIVE,
    STATUS_WORKING,
    empty_status_counts,
    get_status_color,
    get_status_icon,
)

BADGE_FILTER_ALL = "all"


@dataclass
class RenderContext:
    """What a component can show."""

    config: AgentDeckConfig
    status: str = STATUS_INACTIVE
    agent_type: Optional[str] = None
    counts: Dict[str, int] = field(default_factory=empty_status_counts)

    def color(self, status: Optional[str] = None) -> str:
        return get_status_color(status or self.status, dict(self.config.colors))


ComponentRenderer = Callable[[RenderContext, Mapping[str, Any]], Text]

COMPONENTS: Dict[str, ComponentRenderer] = {}


def register(name: str):
    """Decorator registering a component renderer under a type name."""

    def decorator(func: ComponentRenderer) -> ComponentRenderer:
        COMPONENTS[name] = func
        return func

    return decorator


@register("icon")
def render_icon(context: RenderContext, opts: Mapping[str, Any]) -> Text:
    icon = get_status_icon(context.status, context.config.icons.style)
    return Text(icon, style=context.color())


@register("separator")
def render_separator(context: RenderContext, opts: Mapping[str, Any]) -> Text:
    style = " ".join(
        part for part in (opts.get("fg"), f"on {opts['bg']}" if opts.get("bg") else None) if part
    )
    return Text(str(opts.get("text", " ")), style=style)


@register("label")
def render_label(context: RenderContext, opts: Mapping[str, Any]) -> Text:
    """Format string with {status}, {agent_type} and {agent_name} placeholders."""
    agent = context.agent_type or "unknown"
    text = str(opts.get("format", "{status}"))
    text = text.replace("{status}", context.status)
    text = text.replace("{agent_type}", agent).replace("{agent_name}", agent)

    max_width = opts.get("max_width")
    if isinstance(max_width, int) and max_width > 0 and len(text) > max_width:
        text = text[: max_width - 1] + "…"
    return Text(text, style=context.color())


@register("badge")
def render_badge(context: RenderContext, opts: Mapping[str, Any]) -> Text:
    """Count of surfaces in a status; renders nothing when the count is zero."""
    status_filter = opts.get("filter", BADGE_FILTER_ALL)
    if status_filter == BADGE_FILTER_ALL:
        count = sum(context.counts.values())
        color = context.color(STATUS_WORKING)
    else:
        count = context.counts.get(status_filter, 0)
        color = context.color(status_filter)

    if count == 0:
        return Text()

    text = str(count)
    if opts.get("label"):
        text += f" {opts['label']}"
    return Text(text, style=color)


@register("agent_name")
def render_agent_name(context: RenderContext, opts: Mapping[str, Any]) -> Text:
    agent = context.agent_type or "unknown"
    text = agent[:1].upper() if opts.get("short") else agent
    return Text(text, style=context.color())


def render_component(context: RenderContext, component: Mapping[str, Any]) -> Text:
    """Render one component; unknown types render nothing."""
    if not isinstance(component, Mapping):
        return Text()
    renderer = COMPONENTS.get(component.get("type", ""))
    if renderer is None:
        return Text()
    return renderer(context, component)


def render_components(context: RenderContext, components: Sequence[Mapping[str, Any]]) -> Text:
    result = Text()
    for component in components:
        result.append_text(render_component(context, component))
    return result


def render_tab_title(
    status: str,
    agent_type: Optional[str],
    config: AgentDeckConfig,
    title: str = "",
) -> Text:
    """Status components placed before or after a surface's own title."""
    if not config.tab_title.enabled:
        return Text(title)

    context = RenderContext(config=config, status=status, agent_type=agent_type)
    status_text = render_components(context, config.tab_title.components)
    if config.tab_title.position == "right":
        return Text(title) + status_text
    return status_text + Text(title)


def render_right_status(counts: Mapping[str, int], config: AgentDeckConfig) -> Text:
    """Render the aggregate badges line.

    Separators are dropped when nothing visible precedes them (e.g. the
    badge before them is hidden because its count is zero), and trailing
    separators are removed.
    """
    if not config.right_status.enabled:
        return Text()

    merged = empty_status_counts()
    merged.update(counts)
    context = RenderContext(config=config, counts=merged)

    pieces = []
    last_was_text = False
    for component in config.right_status.components:
        rendered = render_component(context, component)
        if not rendered.plain:
            continue
        is_separator = component.get("type") == "separator"
        if is_separator and not last_was_text:
            continue
        pieces.append((is_separator, rendered))
        last_was_text = not is_separator

    while pieces and pieces[-1][0]:
        pieces.pop()

    result = Text()
    for _, rendered in pieces:
        result.append_text(rendered)
    return result
