"""
Unit tests for the tmux host.

libtmux and psutil are mocked; no tmux server is started.
"""

from unittest.mock import MagicMock, patch

import psutil
import pytest
from libtmux._internal.query_list import ObjectDoesNotExist
from libtmux.exc import LibTmuxException

from agentdeck.implementations import TmuxHost, process_info_from_psutil


def make_pane(pane_id="%1", session="work", window=0, index=0):
    pane = MagicMock()
    pane.pane_id = pane_id
    pane.session_name = session
    pane.window_index = str(window)
    pane.pane_index = str(index)
    return pane


def make_server(panes):
    by_id = {p.pane_id: p for p in panes}

    def get(pane_id=None):
        if pane_id not in by_id:
            raise ObjectDoesNotExist()
        return by_id[pane_id]

    server = MagicMock()
    server.panes.__iter__.side_effect = lambda: iter(panes)
    server.panes.get.side_effect = get
    return server


def make_proc(exe="/usr/local/bin/claude", name="claude", cmdline=("claude",), children=()):
    proc = MagicMock()
    proc.exe.return_value = exe
    proc.name.return_value = name
    proc.cmdline.return_value = list(cmdline)
    proc.children.return_value = list(children)
    return proc


@pytest.fixture
def host():
    return TmuxHost(socket_name="agentdeck-test")


class TestServerConnection:
    """Test lazy server creation"""

    def test_socket_name_passed(self, host):
        with patch("agentdeck.implementations.libtmux.Server") as mock_server:
            host.server
        mock_server.assert_called_once_with(socket_name="agentdeck-test")

    def test_socket_from_env(self, monkeypatch):
        monkeypatch.setenv("AGENTDECK_TMUX_SOCKET", "from-env")
        with patch("agentdeck.implementations.libtmux.Server") as mock_server:
            TmuxHost().server
        mock_server.assert_called_once_with(socket_name="from-env")

    def test_default_server(self):
        with patch("agentdeck.implementations.libtmux.Server") as mock_server:
            TmuxHost().server
        mock_server.assert_called_once_with()


class TestListSurfaces:
    """Test pane enumeration"""

    def test_labels(self, host):
        host._server = make_server([make_pane("%1"), make_pane("%4", "api", 2, 1)])
        surfaces = host.list_surfaces()
        assert [(s.surface_id, s.label) for s in surfaces] == [
            ("%1", "work:0.0"),
            ("%4", "api:2.1"),
        ]

    def test_server_error_means_unavailable(self, host):
        server = MagicMock()
        server.panes.__iter__.side_effect = LibTmuxException("no server running")
        host._server = server
        assert host.list_surfaces() is None

    def test_listing_fills_and_prunes_cache(self, host):
        host._server = make_server([make_pane("%1"), make_pane("%2")])
        host.list_surfaces()
        assert set(host._pane_cache) == {"%1", "%2"}

        host._server = make_server([make_pane("%2")])
        host.list_surfaces()
        assert set(host._pane_cache) == {"%2"}


class TestCaptureText:
    """Test reading pane content"""

    def test_joins_lines(self, host):
        pane = make_pane("%1")
        pane.capture_pane.return_value = ["line one", "line two"]
        host._server = make_server([pane])

        assert host.capture_text("%1", lines=50) == "line one\nline two"
        pane.capture_pane.assert_called_once_with(start=-50, escape_sequences=True)

    def test_unknown_pane(self, host):
        host._server = make_server([])
        assert host.capture_text("%9") is None

    def test_cached_pane_reused(self, host):
        pane = make_pane("%1")
        pane.capture_pane.return_value = []
        server = make_server([pane])
        host._server = server

        host.list_surfaces()
        host.capture_text("%1")
        server.panes.get.assert_not_called()

    def test_killed_pane(self, host):
        pane = make_pane("%1")
        pane.capture_pane.side_effect = LibTmuxException("can't find pane")
        host._server = make_server([pane])

        assert host.capture_text("%1") is None
        assert "%1" not in host._pane_cache


class TestTitleAndProcess:
    """Test title and process inspection"""

    def test_title(self, host):
        pane = make_pane("%1")
        pane.display_message.return_value = ["✳ Claude Code"]
        host._server = make_server([pane])

        assert host.get_title("%1") == "✳ Claude Code"
        pane.display_message.assert_called_once_with("#{pane_title}", get_text=True)

    def test_empty_title(self, host):
        pane = make_pane("%1")
        pane.display_message.return_value = []
        host._server = make_server([pane])
        assert host.get_title("%1") is None

    def test_process_info(self, host):
        pane = make_pane("%1")
        pane.display_message.return_value = ["4242"]
        host._server = make_server([pane])
        proc = make_proc(children=[make_proc("/usr/bin/node", "node", ("node", "gemini"))])

        with patch("agentdeck.implementations.psutil.Process", return_value=proc) as mock_process:
            info = host.get_process_info("%1")

        mock_process.assert_called_once_with(4242)
        assert info.executable == "/usr/local/bin/claude"
        assert info.argv == ("claude",)
        assert info.children[0].argv == ("node", "gemini")

    def test_process_gone(self, host):
        pane = make_pane("%1")
        pane.display_message.return_value = ["4242"]
        host._server = make_server([pane])

        with patch("agentdeck.implementations.psutil.Process", side_effect=psutil.NoSuchProcess(4242)):
            assert host.get_process_info("%1") is None

    def test_bad_pid(self, host):
        pane = make_pane("%1")
        pane.display_message.return_value = ["not-a-pid"]
        host._server = make_server([pane])
        assert host.get_process_info("%1") is None


class TestProcessInfoFromPsutil:
    """Test conversion of psutil processes"""

    def test_access_denied_fields_left_empty(self):
        proc = make_proc()
        proc.exe.side_effect = psutil.AccessDenied(1)
        info = process_info_from_psutil(proc)
        assert info.executable is None
        assert info.name == "claude"

    def test_children_not_recursed(self):
        grandchild = make_proc("/usr/bin/claude")
        child = make_proc("/bin/sh", "sh", ("sh",), children=[grandchild])
        info = process_info_from_psutil(make_proc("/bin/zsh", "zsh", ("-zsh",), children=[child]))
        assert info.children[0].name == "sh"
        assert info.children[0].children == ()
        child.children.assert_not_called()

    def test_vanished_child_fields_empty(self):
        child = make_proc()
        child.exe.side_effect = psutil.NoSuchProcess(2)
        child.name.side_effect = psutil.NoSuchProcess(2)
        child.cmdline.side_effect = psutil.NoSuchProcess(2)
        info = process_info_from_psutil(make_proc(children=[child]))
        # Per-field failures map to empty values rather than dropping the child
        assert info.children[0].executable is None


class TestProtocolConformance:
    """Test that hosts and backends satisfy their protocols"""

    def test_tmux_host_is_surface_host(self, host):
        from agentdeck.protocols import SurfaceHost
        assert isinstance(host, SurfaceHost)

    def test_fake_host_is_surface_host(self):
        from agentdeck.protocols import SurfaceHost
        from tests.fixtures import FakeHost
        assert isinstance(FakeHost(), SurfaceHost)

    def test_notifiers_are_backends(self):
        from agentdeck.notifier import DesktopNotifier, NullNotifier
        from agentdeck.protocols import NotificationBackend
        assert isinstance(DesktopNotifier(), NotificationBackend)
        assert isinstance(NullNotifier(), NotificationBackend)
