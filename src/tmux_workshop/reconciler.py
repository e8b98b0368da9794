"""Observe, diff and apply: the public entry points of the reconciler."""
from __future__ import annotations

import logging
from typing import Sequence

from . import metrics
from .config import EnrichmentConfig
from .config import LayoutConfig
from .executor import PlanExecutor
from .observer import ActualSession
from .observer import SessionObserver
from .plan import ApplyPlan
from .plan import DesiredWorkbench
from .plan import generate_plan
from .plan import validate_desired
from .tmux import TmuxAdapter

logger = logging.getLogger(__name__)


class WorkshopReconciler:
    """Converges one tmux session onto a declared list of workbenches."""

    def __init__(
        self,
        adapter: TmuxAdapter,
        *,
        layout: LayoutConfig | None = None,
        enrichment: EnrichmentConfig | None = None,
    ) -> None:
        self._adapter = adapter
        self._observer = SessionObserver(adapter)
        self._executor = PlanExecutor(adapter, layout=layout, enrichment=enrichment)

    def observe(self, session_name: str) -> ActualSession:
        return self._observer.observe(session_name)

    def plan_apply(self, session_name: str, desired: Sequence[DesiredWorkbench]) -> ApplyPlan:
        """Observe the session afresh and return the actions that converge it."""
        validate_desired(desired)
        actual = self._observer.observe(session_name)
        plan = generate_plan(session_name, desired, actual)
        metrics.record_plan(plan.session_exists, [action.type.value for action in plan.actions])
        logger.info(
            "Planned %d actions for session %s (exists=%s)",
            len(plan.actions),
            session_name,
            plan.session_exists,
        )
        return plan

    def execute_plan(self, plan: ApplyPlan) -> None:
        self._executor.execute(plan)
