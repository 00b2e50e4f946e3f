"""Tests for the status transition history CSV."""

from datetime import datetime, timedelta

from agentdeck.status_history import (
    HISTORY_HEADER,
    get_history_path,
    log_status_change,
    read_status_history,
)


class TestLogStatusChange:
    """Test appending transitions"""

    def test_writes_header_once(self, tmp_path):
        path = tmp_path / "history.csv"
        log_status_change("work:0.0", "claude", "inactive", "working", history_file=path)
        log_status_change("work:0.0", "claude", "working", "idle", history_file=path)

        lines = path.read_text().splitlines()
        assert lines[0] == ",".join(HISTORY_HEADER)
        assert len(lines) == 3

    def test_missing_agent_written_empty(self, tmp_path):
        path = tmp_path / "history.csv"
        log_status_change("%1", None, "idle", "inactive", history_file=path)
        assert path.read_text().splitlines()[1].endswith(",%1,,idle,inactive")

    def test_default_path_in_state_dir(self, isolated_state_dir):
        log_status_change("%1", "claude", "inactive", "idle")
        assert get_history_path() == isolated_state_dir / "status_history.csv"
        assert get_history_path().exists()


class TestReadStatusHistory:
    """Test reading transitions back"""

    def test_round_trip(self, tmp_path):
        path = tmp_path / "history.csv"
        log_status_change("work:0.0", "claude", "working", "waiting", history_file=path)
        entries = read_status_history(history_file=path)
        assert len(entries) == 1
        assert entries[0].surface == "work:0.0"
        assert entries[0].new_status == "waiting"

    def test_old_entries_filtered(self, tmp_path):
        path = tmp_path / "history.csv"
        old = datetime.now() - timedelta(hours=5)
        log_status_change("%1", "claude", "idle", "working", history_file=path, timestamp=old)
        log_status_change("%1", "claude", "working", "idle", history_file=path)

        entries = read_status_history(hours=3.0, history_file=path)
        assert [e.new_status for e in entries] == ["idle"]

    def test_filter_by_surface(self, tmp_path):
        path = tmp_path / "history.csv"
        log_status_change("%1", "claude", "idle", "working", history_file=path)
        log_status_change("%2", "gemini", "idle", "waiting", history_file=path)
        entries = read_status_history(surface="%2", history_file=path)
        assert [e.agent for e in entries] == ["gemini"]

    def test_malformed_rows_skipped(self, tmp_path):
        path = tmp_path / "history.csv"
        log_status_change("%1", "claude", "idle", "working", history_file=path)
        with open(path, "a") as f:
            f.write("garbage\n")
            f.write("not-a-date,%1,claude,idle,working\n")
        assert len(read_status_history(history_file=path)) == 1

    def test_missing_file(self, tmp_path):
        assert read_status_history(history_file=tmp_path / "missing.csv") == []

    def test_unknown_status_rows_skipped(self, tmp_path):
        path = tmp_path / "history.csv"
        log_status_change("%1", "claude", "idle", "busy", history_file=path)
        log_status_change("%1", "claude", "idle", "working", history_file=path)
        assert [e.new_status for e in read_status_history(history_file=path)] == ["working"]

    def test_non_ascii_label(self, tmp_path):
        path = tmp_path / "history.csv"
        log_status_change("büro:0.0", "claude", "idle", "waiting", history_file=path)
        assert path.read_bytes().decode("utf-8").splitlines()[1].count("büro:0.0") == 1
        assert read_status_history(history_file=path)[0].surface == "büro:0.0"
