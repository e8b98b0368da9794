"""Read-only view of the live tmux topology for a workshop session."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from .identity import PaneRole
from .identity import is_overflow_window
from .tmux import TmuxAdapter
from .tmux import TmuxCommandError

logger = logging.getLogger(__name__)


class ObservationError(RuntimeError):
    """The tmux server could not be queried."""


@dataclass(frozen=True)
class ActualPane:
    pane_id: str
    index: int
    dead: bool
    role: PaneRole

    @property
    def is_guest(self) -> bool:
        return self.role.is_guest


@dataclass(frozen=True)
class ActualWindow:
    window_id: str
    name: str
    panes: tuple[ActualPane, ...] = ()

    @property
    def is_overflow(self) -> bool:
        return is_overflow_window(self.name)

    @property
    def dead_count(self) -> int:
        return sum(1 for pane in self.panes if pane.dead)

    @property
    def guest_count(self) -> int:
        return sum(1 for pane in self.panes if pane.is_guest)


@dataclass(frozen=True)
class ActualSession:
    name: str
    exists: bool
    windows: tuple[ActualWindow, ...] = ()

    def window(self, name: str) -> ActualWindow | None:
        for window in self.windows:
            if window.name == name:
                return window
        return None


class SessionObserver:
    """Queries session existence, windows and pane identity, never caching."""

    def __init__(self, adapter: TmuxAdapter) -> None:
        self._adapter = adapter

    def observe(self, session_name: str) -> ActualSession:
        try:
            sessions = self._adapter.list_sessions()
        except TmuxCommandError as exc:
            raise ObservationError(f"failed to list sessions: {exc}") from exc
        if session_name not in sessions:
            return ActualSession(name=session_name, exists=False)

        try:
            window_infos = self._adapter.list_windows(session_name)
        except TmuxCommandError as exc:
            raise ObservationError(f"failed to list windows of {session_name}: {exc}") from exc

        windows: list[ActualWindow] = []
        for info in window_infos:
            try:
                pane_infos = self._adapter.list_panes(info.window_id)
            except TmuxCommandError as exc:
                raise ObservationError(f"failed to list panes of {session_name}:{info.name}: {exc}") from exc
            panes = tuple(
                ActualPane(
                    pane_id=pane.pane_id,
                    index=pane.index,
                    dead=pane.dead,
                    role=PaneRole.parse(pane.role_tag),
                )
                for pane in pane_infos
            )
            windows.append(ActualWindow(window_id=info.window_id, name=info.name, panes=panes))

        logger.debug("Observed %d windows in session %s", len(windows), session_name)
        return ActualSession(name=session_name, exists=True, windows=tuple(windows))
