"""Sequential, fail-fast execution of an :class:`ApplyPlan`."""
from __future__ import annotations

import logging
import time
from typing import Callable

from . import metrics
from .config import EnrichmentConfig
from .config import LayoutConfig
from .enrichment import SessionEnricher
from .plan import ActionType
from .plan import ApplyAction
from .plan import ApplyPlan
from .tmux import TmuxAdapter
from .workbench import GuestRelocator
from .workbench import WorkbenchBuilder
from .workbench import find_window
from .workbench import kill_window
from .workbench import prune_dead_panes
from .workbench import require_window

logger = logging.getLogger(__name__)


class ActionFailed(RuntimeError):
    """An action raised; nothing after it in the plan was attempted."""

    def __init__(self, action: ApplyAction, cause: BaseException) -> None:
        self.action = action
        self.action_type = action.type
        super().__init__(f"action {action.type.value} failed: {cause}")


class PlanExecutor:
    """Dispatches each planned action to its handler, in plan order.

    There is no rollback: every handler converges from whatever state an
    earlier partial run left behind, so re-running observe, plan and apply is
    the recovery path.
    """

    def __init__(
        self,
        adapter: TmuxAdapter,
        *,
        layout: LayoutConfig | None = None,
        enrichment: EnrichmentConfig | None = None,
    ) -> None:
        self._adapter = adapter
        self._builder = WorkbenchBuilder(adapter, layout)
        self._relocator = GuestRelocator(adapter, layout)
        self._enricher = SessionEnricher(adapter, enrichment)
        self._handlers: dict[ActionType, Callable[[ApplyAction], None]] = {
            ActionType.CREATE_SESSION: self._create_session,
            ActionType.ADD_WINDOW: self._add_window,
            ActionType.RELOCATE_GUESTS: self._relocate_guests,
            ActionType.PRUNE_DEAD_PANES: self._prune_dead_panes,
            ActionType.KILL_EMPTY_IMPS: self._kill_empty_imps,
            ActionType.RECONCILE_LAYOUT: self._reconcile_layout,
            ActionType.APPLY_ENRICHMENT: self._apply_enrichment,
        }

    def execute(self, plan: ApplyPlan) -> None:
        started = time.monotonic()
        try:
            for index, action in enumerate(plan.actions, start=1):
                logger.info("[%d/%d] %s: %s", index, len(plan.actions), action.type.value, action.description)
                try:
                    self.execute_action(action)
                except Exception as exc:
                    metrics.record_action(action.type.value, "error")
                    logger.error("Action %s failed: %s", action.type.value, exc)
                    raise ActionFailed(action, exc) from exc
                metrics.record_action(action.type.value, "ok")
        finally:
            metrics.observe_apply_latency(time.monotonic() - started)

    def execute_action(self, action: ApplyAction) -> None:
        handler = self._handlers.get(action.type)
        if handler is None:
            raise ValueError(f"unknown action type: {action.type}")
        handler(action)

    # Handlers ----------------------------------------------------------
    def _create_session(self, action: ApplyAction) -> None:
        if self._adapter.session_exists(action.session_name):
            logger.info("Session %s already exists, adding window instead", action.session_name)
            self._add_window(action)
            return
        self._builder.create_session(action.session_name, action.workbench())

    def _add_window(self, action: ApplyAction) -> None:
        if find_window(self._adapter, action.session_name, action.workbench_name) is not None:
            logger.info("Window %s already exists, skipping", action.workbench_name)
            return
        self._builder.add_window(action.session_name, action.workbench())

    def _relocate_guests(self, action: ApplyAction) -> None:
        self._relocator.relocate(action.session_name, action.window_name)

    def _prune_dead_panes(self, action: ApplyAction) -> None:
        prune_dead_panes(self._adapter, action.session_name, action.window_name)

    def _kill_empty_imps(self, action: ApplyAction) -> None:
        kill_window(self._adapter, action.session_name, action.window_name)

    def _reconcile_layout(self, action: ApplyAction) -> None:
        window = require_window(self._adapter, action.session_name, action.window_name)
        self._builder.reconcile_layout(window.window_id)

    def _apply_enrichment(self, action: ApplyAction) -> None:
        self._enricher.apply(action.session_name)
