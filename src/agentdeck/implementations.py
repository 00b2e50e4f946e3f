"""
Real implementations of protocol interfaces.

TmuxHost uses libtmux to list and read tmux panes (the monitored surfaces)
and psutil to inspect the process tree behind each pane.
"""

import logging
import os
import time
from typing import Dict, List, Optional, Tuple

import libtmux
import psutil
from libtmux._internal.query_list import ObjectDoesNotExist
from libtmux.exc import LibTmuxException

from .agent_detector import ProcessInfo
from .protocols import SurfaceInfo

logger = logging.getLogger(__name__)


def _safe_call(method, default=None):
    """Call a psutil accessor, mapping per-field failures to a default."""
    try:
        return method()
    except (psutil.AccessDenied, psutil.ZombieProcess, psutil.NoSuchProcess):
        return default


def process_info_from_psutil(proc: psutil.Process, include_children: bool = True) -> ProcessInfo:
    """Build a ProcessInfo from a psutil process.

    Fields the OS refuses to report are left empty. Children are the
    immediate children only; grandchildren are not inspected.

    Raises:
        psutil.NoSuchProcess: if the process vanished before it could be read
    """
    children: Tuple[ProcessInfo, ...] = ()
    if include_children:
        kids = _safe_call(proc.children, default=[])
        children = tuple(
            info for info in (_child_info(child) for child in kids) if info is not None
        )

    return ProcessInfo(
        executable=_safe_call(proc.exe) or None,
        name=_safe_call(proc.name) or None,
        argv=tuple(_safe_call(proc.cmdline, default=[]) or ()),
        children=children,
    )


def _child_info(child: psutil.Process) -> Optional[ProcessInfo]:
    try:
        return process_info_from_psutil(child, include_children=False)
    except psutil.Error:
        return None


class TmuxHost:
    """Production implementation of SurfaceHost using libtmux and psutil.

    Surfaces are tmux panes, identified by their pane id ("%12"). Pane
    objects are cached for a short TTL: libtmux spawns a subprocess for
    every tmux command, which is expensive when polling many panes.
    """

    # Cache TTL in seconds - pane objects rarely change between ticks
    _CACHE_TTL = 5.0

    def __init__(self, socket_name: Optional[str] = None):
        """Initialize with optional socket name for test isolation.

        If no socket_name is provided, checks AGENTDECK_TMUX_SOCKET env var.
        """
        self._socket_name = socket_name or os.environ.get("AGENTDECK_TMUX_SOCKET")
        self._server: Optional[libtmux.Server] = None
        # Cache: pane_id -> (pane, timestamp)
        self._pane_cache: Dict[str, Tuple[libtmux.Pane, float]] = {}

    @property
    def server(self) -> libtmux.Server:
        """Lazy-load the tmux server connection."""
        if self._server is None:
            if self._socket_name:
                self._server = libtmux.Server(socket_name=self._socket_name)
            else:
                self._server = libtmux.Server()
        return self._server

    def invalidate_cache(self, surface_id: Optional[str] = None) -> None:
        if surface_id is None:
            self._pane_cache.clear()
        else:
            self._pane_cache.pop(surface_id, None)

    def _get_pane(self, surface_id: str) -> Optional[libtmux.Pane]:
        now = time.time()
        cached = self._pane_cache.get(surface_id)
        if cached is not None and now - cached[1] < self._CACHE_TTL:
            return cached[0]

        try:
            pane = self.server.panes.get(pane_id=surface_id)
        except (LibTmuxException, ObjectDoesNotExist):
            self._pane_cache.pop(surface_id, None)
            return None
        self._pane_cache[surface_id] = (pane, now)
        return pane

    def list_surfaces(self) -> Optional[List[SurfaceInfo]]:
        try:
            panes = list(self.server.panes)
        except LibTmuxException as e:
            logger.debug("Cannot list tmux panes: %s", e)
            return None

        now = time.time()
        surfaces = []
        for pane in panes:
            if not pane.pane_id:
                continue
            self._pane_cache[pane.pane_id] = (pane, now)
            label = f"{pane.session_name}:{pane.window_index}.{pane.pane_index}"
            surfaces.append(SurfaceInfo(surface_id=pane.pane_id, label=label))

        # Forget panes that have been closed
        live = {s.surface_id for s in surfaces}
        for surface_id in list(self._pane_cache):
            if surface_id not in live:
                del self._pane_cache[surface_id]
        return surfaces

    def capture_text(self, surface_id: str, lines: int = 100) -> Optional[str]:
        try:
            pane = self._get_pane(surface_id)
            if pane is None:
                return None
            # escape_sequences=True keeps the raw output; the normalizer strips it
            captured = pane.capture_pane(start=-lines, escape_sequences=True)
            if isinstance(captured, list):
                return "\n".join(captured)
            return captured
        except LibTmuxException:
            # Pane may have been killed
            self.invalidate_cache(surface_id)
            return None

    def _display(self, surface_id: str, fmt: str) -> Optional[str]:
        """Read a live pane format variable (cached pane attributes go stale)."""
        try:
            pane = self._get_pane(surface_id)
            if pane is None:
                return None
            output = pane.display_message(fmt, get_text=True)
        except LibTmuxException:
            self.invalidate_cache(surface_id)
            return None
        if not output:
            return None
        return output[0] if isinstance(output, list) else str(output)

    def get_title(self, surface_id: str) -> Optional[str]:
        return self._display(surface_id, "#{pane_title}") or None

    def get_process_info(self, surface_id: str) -> Optional[ProcessInfo]:
        pid_text = self._display(surface_id, "#{pane_pid}")
        if not pid_text:
            return None
        try:
            pid = int(pid_text.strip())
        except ValueError:
            return None

        try:
            return process_info_from_psutil(psutil.Process(pid))
        except psutil.Error as e:
            logger.debug("Cannot inspect process %s of %s: %s", pid, surface_id, e)
            return None
