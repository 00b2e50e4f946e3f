"""
Monitoring commands: status, watch, classify, history.
"""

import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich import print as rprint
from rich.table import Table

from ._shared import ConfigOption, app, console, load_config_or_warn


@app.command()
def status(
    all_surfaces: Annotated[
        bool, typer.Option("--all", "-a", help="Also list panes with no agent")
    ] = False,
    config_path: ConfigOption = None,
):
    """Show the status of every agent running in tmux."""
    from ..monitor import AgentMonitor
    from ..notifier import AttentionNotifier, NullNotifier
    from ..render import render_right_status
    from ..status_constants import get_status_symbol, is_active_status

    config, _ = load_config_or_warn(config_path)
    monitor = AgentMonitor(
        config,
        notifier=AttentionNotifier(NullNotifier(), enabled=False),
    )
    result = monitor.tick()

    if not result.host_available:
        rprint("[red]Error:[/red] Cannot reach tmux (is a tmux server running?)")
        raise typer.Exit(1)

    reports = [r for r in result.surfaces if all_surfaces or is_active_status(r.status)]
    if not reports:
        rprint("[dim]No agents running[/dim]")
        return

    colors = dict(config.colors)
    table = Table(show_header=True, header_style="bold")
    table.add_column("Pane")
    table.add_column("Id", style="dim")
    table.add_column("Agent")
    table.add_column("Status")
    for report in reports:
        icon, color = get_status_symbol(report.status, config.icons.style, colors)
        table.add_row(
            report.label,
            report.surface_id,
            report.agent or "-",
            f"[{color}]{icon} {report.status}[/{color}]",
        )
    console.print(table)

    badges = render_right_status(result.counts, config)
    if badges.plain:
        console.print(badges)


@app.command()
def watch(
    interval: Annotated[
        Optional[float],
        typer.Option("--interval", "-i", help="Seconds between polls (default: update_interval)"),
    ] = None,
    no_notify: Annotated[
        bool, typer.Option("--no-notify", help="Disable desktop notifications")
    ] = False,
    history: Annotated[
        bool, typer.Option("--history", help="Record transitions to status_history.csv")
    ] = False,
    ticks: Annotated[
        Optional[int], typer.Option("--ticks", hidden=True, help="Stop after N polls")
    ] = None,
    config_path: ConfigOption = None,
):
    """Poll tmux continuously, logging transitions and notifying on waits."""
    from ..daemon_logging import DaemonLogger
    from ..monitor import AgentMonitor
    from ..notifier import AttentionNotifier, NullNotifier

    config, _ = load_config_or_warn(config_path)

    if interval is not None and interval < 0.1:
        rprint("[red]Error:[/red] --interval must be at least 0.1 seconds")
        raise typer.Exit(1)

    notifier = None
    if no_notify:
        notifier = AttentionNotifier(NullNotifier(), enabled=False)

    monitor = AgentMonitor(config, notifier=notifier)
    if history:
        monitor.enable_history()

    log = DaemonLogger(colors=dict(config.colors), icon_style=config.icons.style)
    monitor.run(log=log, interval=interval, max_ticks=ticks)


@app.command()
def classify(
    file: Annotated[
        Optional[Path], typer.Argument(help="File with captured pane text (default: stdin)")
    ] = None,
    agent: Annotated[
        str, typer.Option("--agent", "-a", help="Agent whose patterns to use")
    ] = "claude",
    config_path: ConfigOption = None,
):
    """Classify captured terminal text as working, waiting or idle."""
    from ..status_detector import StatusClassifier
    from ..text_normalizer import normalize_text

    config, _ = load_config_or_warn(config_path, quiet=True)

    descriptor = config.agents.get(agent)
    if descriptor is None:
        rprint(f"[red]Error:[/red] Unknown agent '{agent}'")
        rprint(f"[dim]Known agents: {', '.join(config.agents)}[/dim]")
        raise typer.Exit(1)

    if file is None:
        raw = sys.stdin.read()
    else:
        try:
            raw = file.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            rprint(f"[red]Error:[/red] Cannot read {file}: {e}")
            raise typer.Exit(1)

    print(StatusClassifier(config).classify(normalize_text(raw), descriptor))


@app.command()
def history(
    hours: Annotated[
        float, typer.Option("--hours", "-H", help="How far back to show")
    ] = 3.0,
    surface: Annotated[
        Optional[str], typer.Option("--surface", "-s", help="Only this pane (label)")
    ] = None,
):
    """Show recorded status transitions."""
    from ..status_constants import get_status_color
    from ..status_history import read_status_history

    entries = read_status_history(hours=hours, surface=surface)
    if not entries:
        rprint(f"[dim]No transitions in the last {hours:g}h[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Time", style="dim")
    table.add_column("Pane")
    table.add_column("Agent")
    table.add_column("Transition")
    for entry in entries:
        old_color = get_status_color(entry.old_status)
        new_color = get_status_color(entry.new_status)
        table.add_row(
            entry.timestamp.strftime("%H:%M:%S"),
            entry.surface,
            entry.agent or "-",
            f"[{old_color}]{entry.old_status}[/{old_color}] -> [{new_color}]{entry.new_status}[/{new_color}]",
        )
    console.print(table)
