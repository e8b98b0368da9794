"""Best-effort cosmetic layer: key bindings, pane titles and window flags.

Nothing in here is allowed to block structural convergence. Every tmux call
goes through :meth:`SessionEnricher._attempt`, which logs and counts a failure
and carries on with the next step.
"""
from __future__ import annotations

import logging
from typing import Callable

from . import metrics
from .config import EnrichmentConfig
from .identity import ENRICHED_OPTION
from .identity import PaneRole
from .identity import pane_title
from .tmux import TmuxAdapter

logger = logging.getLogger(__name__)

SESSION_TREE_FORMAT = "#{session_name} [#{@workshop_id}] - #{window_name}"


class SessionEnricher:
    def __init__(self, adapter: TmuxAdapter, config: EnrichmentConfig | None = None) -> None:
        self._adapter = adapter
        self._config = config or EnrichmentConfig()

    def apply(self, session_name: str) -> None:
        if self._config.bindings:
            self.apply_global_bindings()
        self.enrich_session(session_name)

    def apply_global_bindings(self) -> None:
        """Server-wide bindings; rebinding the same key is harmless."""
        cli = self._config.cli_command
        self._attempt(
            "bind-session-tree",
            self._adapter.bind_key,
            "prefix",
            "s",
            ["choose-tree", "-sZ", "-F", SESSION_TREE_FORMAT],
        )
        self._attempt(
            "bind-status-popup",
            self._adapter.bind_key,
            "root",
            "DoubleClick1Status",
            [
                "display-popup",
                "-E",
                "-w",
                "100",
                "-h",
                "30",
                "-T",
                "Workshop Status",
                f"{cli} status --session '#{{session_name}}' | less -R",
            ],
        )
        self._attempt(
            "bind-status-menu",
            self._adapter.bind_key,
            "root",
            "MouseDown3Status",
            [
                "display-menu",
                "-O",
                "-T",
                " Workshop ",
                "-x",
                "M",
                "-y",
                "M",
                "Show Status",
                "s",
                f"display-popup -E -w 100 -h 30 -T 'Workshop Status' \"{cli} status --session '#{{session_name}}' | less -R\"",
                "",
                "",
                "",
                "Swap Left",
                "<",
                "swap-window -t :-1",
                "Swap Right",
                ">",
                "swap-window -t :+1",
                "#{?pane_marked,Unmark,Mark}",
                "m",
                "select-pane -m",
                "Kill",
                "X",
                "kill-window",
                "Respawn",
                "R",
                "respawn-window -k",
                "Rename",
                "r",
                "command-prompt -I \"#W\" \"rename-window -- '%%'\"",
                "New Window",
                "c",
                "new-window",
            ],
        )

    def enrich_session(self, session_name: str) -> None:
        self._attempt("pane-border-status", self._adapter.set_session_option, session_name, "pane-border-status", "top")
        self._attempt(
            "pane-border-format",
            self._adapter.set_session_option,
            session_name,
            "pane-border-format",
            " #{pane_title} ",
        )

        windows = self._attempt("list-windows", self._adapter.list_windows, session_name)
        if windows is None:
            return
        for window in windows:
            panes = self._attempt("list-panes", self._adapter.list_panes, window.window_id)
            for position, pane in enumerate(panes or []):
                title = pane_title(PaneRole.parse(pane.role_tag), position)
                self._attempt("pane-title", self._adapter.set_pane_title, pane.pane_id, title)
            self._attempt("window-flag", self._adapter.set_window_option, window.window_id, ENRICHED_OPTION, "1")
        logger.debug("Enriched session %s", session_name)

    def _attempt(self, step: str, func: Callable, *args):  # type: ignore[no-untyped-def]
        try:
            return func(*args)
        except Exception as exc:  # noqa: BLE001 - enrichment is best effort
            logger.warning("Enrichment step %s failed: %s", step, exc)
            metrics.record_enrichment_failure(step)
            return None
