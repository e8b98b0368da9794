"""Workbench window template and structural maintenance on live windows."""
from __future__ import annotations

import logging

from .config import LayoutConfig
from .identity import BENCH_ID_OPTION
from .identity import ROLE_OPTION
from .identity import WORKSHOP_ID_OPTION
from .identity import PaneRole
from .identity import overflow_window_name
from .plan import DesiredWorkbench
from .tmux import TmuxAdapter
from .tmux import WindowInfo

logger = logging.getLogger(__name__)


class WindowNotFound(LookupError):
    """A window named in the plan is no longer present in the session."""


def find_window(adapter: TmuxAdapter, session_name: str, window_name: str) -> WindowInfo | None:
    for window in adapter.list_windows(session_name):
        if window.name == window_name:
            return window
    return None


def require_window(adapter: TmuxAdapter, session_name: str, window_name: str) -> WindowInfo:
    window = find_window(adapter, session_name, window_name)
    if window is None:
        raise WindowNotFound(f"window {window_name} not found in session {session_name}")
    return window


class WorkbenchBuilder:
    """Lays out the 3-pane workbench: editor | agent / shell."""

    def __init__(self, adapter: TmuxAdapter, layout: LayoutConfig | None = None) -> None:
        self._adapter = adapter
        self._layout = layout or LayoutConfig()

    def create_session(self, session_name: str, workbench: DesiredWorkbench) -> None:
        window_id = self._adapter.new_session(
            session_name,
            window_name=workbench.name,
            start_directory=workbench.path or None,
        )
        self._populate(window_id, workbench)

    def add_window(self, session_name: str, workbench: DesiredWorkbench) -> None:
        window_id = self._adapter.new_window(
            session_name,
            window_name=workbench.name,
            start_directory=workbench.path or None,
        )
        self._populate(window_id, workbench)

    def _populate(self, window_id: str, workbench: DesiredWorkbench) -> None:
        # A half-built window would block AddWindow on the next plan, so it is
        # removed and the next apply starts over.
        try:
            self.setup_panes(window_id, workbench)
        except Exception:
            logger.warning("Template setup failed for %s, removing window %s", workbench.name, window_id)
            try:
                self._adapter.kill_window(window_id)
            except Exception as cleanup_exc:  # noqa: BLE001 - setup error is re-raised
                logger.error("Could not remove half-built window %s: %s", window_id, cleanup_exc)
            raise

    def setup_panes(self, window_id: str, workbench: DesiredWorkbench) -> None:
        """Populate a fresh single-pane window with the tagged workbench panes."""
        panes = self._adapter.list_panes(window_id)
        if not panes:
            raise RuntimeError(f"window {workbench.name} has no initial pane")
        start_directory = workbench.path or None
        editor_pane = panes[0].pane_id
        self._adapter.respawn_pane(editor_pane, self._layout.editor_command, start_directory=start_directory)

        agent_pane = self._adapter.split_window(editor_pane, horizontal=True, start_directory=start_directory)
        # The agent connector is the pane's root process so respawning the
        # pane restarts it.
        self._adapter.respawn_pane(agent_pane, self._layout.agent_command, start_directory=start_directory)

        shell_pane = self._adapter.split_window(agent_pane, horizontal=False, start_directory=start_directory)

        self.reconcile_layout(window_id)

        for pane_id, role in zip((editor_pane, agent_pane, shell_pane), (PaneRole.EDITOR, PaneRole.AGENT, PaneRole.SHELL)):
            self._adapter.set_pane_option(pane_id, ROLE_OPTION, role.value)
            self._adapter.set_pane_option(pane_id, BENCH_ID_OPTION, workbench.id)
            self._adapter.set_pane_option(pane_id, WORKSHOP_ID_OPTION, workbench.workshop_id)
        logger.info("Built workbench window %s (%s)", workbench.name, workbench.id)

    def reconcile_layout(self, window_target: str) -> None:
        # main-pane-width is read when the layout is selected, so it goes first.
        self._adapter.set_window_option(window_target, "main-pane-width", self._layout.main_pane_width)
        self._adapter.select_layout(window_target, self._layout.layout)


class GuestRelocator:
    """Moves untagged panes out of workbench windows into ``<name>-imps``."""

    def __init__(self, adapter: TmuxAdapter, layout: LayoutConfig | None = None) -> None:
        self._adapter = adapter
        self._layout = layout or LayoutConfig()

    def relocate(self, session_name: str, window_name: str) -> int:
        source = require_window(self._adapter, session_name, window_name)
        panes = self._adapter.list_panes(source.window_id)
        guests = [pane.pane_id for pane in panes if PaneRole.parse(pane.role_tag).is_guest]
        if not guests:
            logger.debug("No guest panes in %s, nothing to relocate", window_name)
            return 0
        if len(guests) == len(panes):
            # A window with no tagged pane is not a workbench; tmux cannot
            # break out its last pane either.
            logger.info("Window %s holds only untagged panes, leaving it in place", window_name)
            return 0

        overflow_name = overflow_window_name(window_name)
        overflow = find_window(self._adapter, session_name, overflow_name)
        if overflow is None:
            first, *rest = guests
            overflow_id = self._adapter.break_pane(first, window_name=overflow_name, after=source.window_id)
            logger.info("Created overflow window %s for guest pane %s", overflow_name, first)
        else:
            overflow_id = overflow.window_id
            rest = guests

        for pane_id in rest:
            self._adapter.join_pane(pane_id, overflow_id)
        self._adapter.select_layout(overflow_id, self._layout.overflow_layout)
        logger.info("Relocated %d guest panes from %s to %s", len(guests), window_name, overflow_name)
        return len(guests)


def prune_dead_panes(adapter: TmuxAdapter, session_name: str, window_name: str) -> int:
    window = require_window(adapter, session_name, window_name)
    pruned = 0
    for pane in adapter.list_panes(window.window_id):
        if pane.dead:
            adapter.kill_pane(pane.pane_id)
            pruned += 1
    logger.info("Pruned %d dead panes in %s", pruned, window_name)
    return pruned


def kill_window(adapter: TmuxAdapter, session_name: str, window_name: str) -> None:
    window = require_window(adapter, session_name, window_name)
    adapter.kill_window(window.window_id)
    logger.info("Killed window %s", window_name)
