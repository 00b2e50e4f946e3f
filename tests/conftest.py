"""
Pytest configuration for agentdeck tests.

Every test gets its own state directory and config path so nothing reads
or writes the user's ~/.agentdeck.
"""

import pytest


@pytest.fixture(autouse=True)
def isolated_state_dir(tmp_path, monkeypatch):
    """Point AGENTDECK_STATE_DIR at a temp directory for the test."""
    state_dir = tmp_path / "agentdeck-state"
    monkeypatch.setenv("AGENTDECK_STATE_DIR", str(state_dir))
    monkeypatch.delenv("AGENTDECK_CONFIG", raising=False)
    monkeypatch.delenv("AGENTDECK_TMUX_SOCKET", raising=False)
    return state_dir
