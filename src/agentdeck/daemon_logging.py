"""
Rich-based logging for the monitoring loop.

Pretty themed console output for whoever is watching `agentdeck watch`,
plus a plain-text copy of every line in ~/.agentdeck/monitor.log.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, Mapping, Optional

from rich.console import Console
from rich.text import Text
from rich.theme import Theme

from .config import get_state_dir
from .status_constants import (
    ALL_STATUSES,
    ICON_STYLE_UNICODE,
    get_status_color,
    get_status_icon,
    needs_attention,
)

# Rich theme for monitor logs
MONITOR_THEME = Theme({
    "info": "cyan",
    "warn": "yellow",
    "error": "bold red",
    "success": "bold green",
    "dim": "dim white",
    "highlight": "bold white",
})


def get_log_path() -> Path:
    return get_state_dir() / "monitor.log"


class DaemonLogger:
    """Rich-based logger for the monitor with console output and file logging."""

    def __init__(
        self,
        log_file: Optional[Path] = None,
        console: Optional[Console] = None,
        colors: Optional[Mapping[str, str]] = None,
        icon_style: str = ICON_STYLE_UNICODE,
    ):
        self.log_file = log_file or get_log_path()
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        self.console = console or Console(theme=MONITOR_THEME)
        self.colors = colors
        self.icon_style = icon_style

    def _write_to_file(self, message: str, level: str):
        """Write plain text to log file."""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        line = f"[{timestamp}] [{level}] {message}"
        with open(self.log_file, "a") as f:
            f.write(line + "\n")

    def _print(self, tag: str, message: str):
        self.console.print(f"[dim]{datetime.now().strftime('%H:%M:%S')}[/dim] {tag} {message}")

    def info(self, message: str):
        self._write_to_file(message, "INFO")
        self._print("[info]INFO[/info] ", message)

    def warn(self, message: str):
        self._write_to_file(message, "WARN")
        self._print("[warn]WARN[/warn] ", message)

    def error(self, message: str):
        self._write_to_file(message, "ERROR")
        self._print("[error]ERROR[/error]", message)

    def success(self, message: str):
        self._write_to_file(message, "INFO")
        self._print("[success]OK[/success]   ", message)

    def section(self, title: str):
        """Print a section divider."""
        self._write_to_file(f"=== {title} ===", "INFO")
        self.console.print()
        self.console.rule(f"[bold]{title}[/bold]", style="dim")

    def status_summary(self, counts: Dict[str, int], tick: int):
        """Print one line of per-status counts for a polling tick."""
        status_text = Text()
        status_text.append(f"Tick #{tick}: ", style="dim")
        parts = []
        for i, status in enumerate(ALL_STATUSES):
            count = counts.get(status, 0)
            parts.append(f"{count} {status}")
            if i:
                status_text.append(", ", style="dim")
            style = get_status_color(status, self.colors) if count else "dim"
            status_text.append(f"{count} {status}", style=style)

        self._write_to_file(f"Tick #{tick}: {', '.join(parts)}", "INFO")
        self.console.print(f"[dim]{datetime.now().strftime('%H:%M:%S')}[/dim] ", end="")
        self.console.print(status_text)

    def transition(self, surface: str, agent: Optional[str], old_status: str, new_status: str):
        """Log a committed status change of one surface."""
        style = get_status_color(new_status, self.colors)
        symbol = get_status_icon(new_status, self.icon_style)
        who = agent or "-"

        self._write_to_file(f"  {surface} ({who}): {old_status} -> {new_status}", "INFO")
        line = Text("  ")
        line.append(f"{symbol} ", style=style)
        line.append(surface, style="bold")
        line.append(f" ({who}) ", style="dim")
        line.append(f"{old_status} -> ", style="dim")
        line.append(new_status, style=f"bold {style}" if needs_attention(new_status) else style)
        self.console.print(line)
