"""
Shared CLI state: Typer apps, console, options, and utilities.
"""

import logging
from pathlib import Path
from typing import Annotated, List, Optional, Tuple

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler

from ..config import AgentDeckConfig, load_config

# Main app
app = typer.Typer(
    name="agentdeck",
    help="Watch AI coding agents in tmux panes and report when they need you",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Config subcommand group
config_app = typer.Typer(
    name="config",
    help="Manage configuration",
    no_args_is_help=False,
    invoke_without_command=True,
)
app.add_typer(config_app, name="config")

# Console for rich output
console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        envvar="AGENTDECK_CONFIG",
        help="Config file (default ~/.agentdeck/config.yaml)",
    ),
]


@app.callback()
def main_callback(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show debug logging")
    ] = False,
):
    """Watch AI coding agents in tmux panes and report when they need you."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(name)s: %(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def load_config_or_warn(path: Optional[Path] = None, quiet: bool = False) -> Tuple[AgentDeckConfig, List[str]]:
    """Load the config, printing any correction warnings."""
    config, warnings = load_config(path)
    if not quiet:
        for warning in warnings:
            rprint(f"[yellow]Config warning:[/yellow] {warning}")
    return config, warnings
