"""
Status transition history.

Every committed status change can be appended to a CSV file
(~/.agentdeck/status_history.csv) so transitions can be reviewed later.
"""

import csv
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

from .config import get_state_dir
from .status_constants import is_valid_status

HISTORY_HEADER = ["timestamp", "surface", "agent", "old_status", "new_status"]


@dataclass(frozen=True)
class HistoryEntry:
    timestamp: datetime
    surface: str
    agent: str
    old_status: str
    new_status: str


def get_history_path() -> Path:
    return get_state_dir() / "status_history.csv"


def log_status_change(
    surface: str,
    agent: Optional[str],
    old_status: str,
    new_status: str,
    history_file: Optional[Path] = None,
    timestamp: Optional[datetime] = None,
) -> None:
    """Append one committed transition to the history CSV file.

    Args:
        surface: Surface label or id
        agent: Agent name (empty when the agent left)
        old_status: Previously committed status
        new_status: Newly committed status
        history_file: Optional path override (for testing)
        timestamp: Optional time override (for testing)
    """
    path = history_file or get_history_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    # Check if file exists (to write header)
    write_header = not path.exists()

    with open(path, "a", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        if write_header:
            writer.writerow(HISTORY_HEADER)
        writer.writerow([
            (timestamp or datetime.now()).isoformat(),
            surface,
            agent or "",
            old_status,
            new_status,
        ])


def read_status_history(
    hours: float = 3.0,
    surface: Optional[str] = None,
    history_file: Optional[Path] = None,
) -> List[HistoryEntry]:
    """Read transitions from the last `hours` hours, oldest first.

    Malformed rows are skipped. A missing or unreadable file reads as empty.

    Args:
        hours: How far back to read
        surface: Only return transitions of this surface
        history_file: Optional path override (for testing)
    """
    path = history_file or get_history_path()
    cutoff = datetime.now() - timedelta(hours=hours)

    entries: List[HistoryEntry] = []
    try:
        with open(path, newline="", encoding="utf-8", errors="replace") as f:
            for row in csv.reader(f):
                if len(row) < 5 or row[0] == "timestamp":
                    continue
                try:
                    ts = datetime.fromisoformat(row[0])
                except ValueError:
                    continue
                if ts < cutoff or not (is_valid_status(row[3]) and is_valid_status(row[4])):
                    continue
                if surface is not None and row[1] != surface:
                    continue
                entries.append(HistoryEntry(ts, row[1], row[2], row[3], row[4]))
    except OSError:
        return []
    return entries
