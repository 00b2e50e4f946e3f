"""
Config commands: init, show, path, validate.
"""

from typing import Annotated

import typer
import yaml
from rich import print as rprint

from ._shared import ConfigOption, config_app, console, load_config_or_warn


CONFIG_TEMPLATE = """\
# Agent Deck configuration
# Location: ~/.agentdeck/config.yaml

# Polling interval in milliseconds (minimum 100)
# update_interval: 5000

# How long a working -> idle change must persist before it is reported (ms)
# cooldown_ms: 2000

# Lines of scrollback captured per pane (minimum 10)
# max_lines: 100

# How long an agent identification is reused before re-inspecting processes (ms)
# detection_cache_ttl_ms: 5000

# Trailing non-empty lines inspected by each check
# idle_lines: 5
# working_lines: 10
# waiting_lines: 30

# Only consider these agents (default: all configured agents)
# enabled_agents: [claude, opencode]

# Agents, in detection order. Built-ins: opencode, claude, gemini, codex, aider.
# agents:
#   claude:
#     patterns: [claude, claude-code]
#     status_patterns:
#       waiting: ["do you want to proceed", "\\\\(y/n\\\\)"]
#   myagent:
#     patterns: [myagent]
#     title_patterns: ["^myagent:"]
#     display_name: My Agent
#     viewport_heuristic: true  # treat an unchanged screen as idle
# activity_threshold_ms: 2000

# notifications:
#   enabled: true
#   on_waiting: true
#   timeout_ms: 4000
#   min_gap_ms: 10000   # per pane

# icons:
#   style: unicode      # unicode | nerd | emoji

# colors:
#   working: green
#   waiting: yellow
#   idle: blue
#   inactive: grey50

# tab_title:
#   position: left      # left | right
#   components:
#     - {type: icon}
#     - {type: separator, text: " "}

# right_status:
#   components:
#     - {type: badge, filter: waiting, label: waiting}
#     - {type: separator, text: " | "}
#     - {type: badge, filter: working, label: working}
"""


@config_app.callback(invoke_without_command=True)
def config_default(ctx: typer.Context):
    """Show current configuration (default when no subcommand given)."""
    if ctx.invoked_subcommand is None:
        _config_show(None)


@config_app.command("init")
def config_init(
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Overwrite existing config file")
    ] = False,
    config_path: ConfigOption = None,
):
    """Create a config file with documented defaults.

    Creates ~/.agentdeck/config.yaml with all options commented out.
    Use --force to overwrite an existing config file.
    """
    from ..config import get_config_path

    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    if path.exists() and not force:
        rprint(f"[yellow]Config file already exists:[/yellow] {path}")
        rprint("[dim]Use --force to overwrite[/dim]")
        raise typer.Exit(1)

    path.write_text(CONFIG_TEMPLATE)
    rprint(f"[green]✓[/green] Created config file: [bold]{path}[/bold]")
    rprint("[dim]Edit to customize your settings[/dim]")


@config_app.command("show")
def config_show(config_path: ConfigOption = None):
    """Show the effective configuration (file merged over defaults)."""
    _config_show(config_path)


def _config_show(config_path):
    from ..config import get_config_path

    path = config_path or get_config_path()
    config, _ = load_config_or_warn(path)
    if path.exists():
        rprint(f"[bold]Configuration[/bold] ({path}):\n")
    else:
        rprint(f"[dim]No config file found at {path}, showing defaults[/dim]\n")
    console.print(yaml.safe_dump(config.to_dict(), sort_keys=False, allow_unicode=True), markup=False)


@config_app.command("path")
def config_path_cmd(config_path: ConfigOption = None):
    """Show the config file path."""
    from ..config import get_config_path

    print(config_path or get_config_path())


@config_app.command("validate")
def config_validate(config_path: ConfigOption = None):
    """Check the config file; exits 1 if any option had to be corrected."""
    from ..config import get_config_path

    path = config_path or get_config_path()
    _, warnings = load_config_or_warn(path, quiet=True)
    if warnings:
        for warning in warnings:
            rprint(f"[yellow]![/yellow] {warning}")
        rprint(f"[red]✗[/red] {len(warnings)} problem(s) in {path}")
        raise typer.Exit(1)
    rprint(f"[green]✓[/green] {path} is valid")
