"""Workshop-level use cases built on top of the reconciler."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from .config import AppConfig
from .config import WorkshopConfig
from .enrichment import SessionEnricher
from .plan import ApplyPlan
from .plan import DesiredWorkbench
from .plan import WindowStatus
from .reconciler import WorkshopReconciler
from .tmux import TmuxAdapter

logger = logging.getLogger(__name__)


class WorkbenchPathMissing(ValueError):
    pass


@dataclass(frozen=True)
class ApplyOutcome:
    plan: ApplyPlan
    applied: bool


class WorkshopService:
    """Facade that turns a workshop definition into a reconciled tmux session."""

    def __init__(self, config: AppConfig, *, adapter: TmuxAdapter | None = None) -> None:
        self.config = config
        self._adapter = adapter or TmuxAdapter(tmux_bin=config.tmux.bin, socket=config.tmux.socket)
        self._reconciler = WorkshopReconciler(
            self._adapter,
            layout=config.layout,
            enrichment=config.enrichment,
        )

    @property
    def adapter(self) -> TmuxAdapter:
        return self._adapter

    @property
    def workshop(self) -> WorkshopConfig:
        return self.config.require_workshop()

    def desired_workbenches(self) -> list[DesiredWorkbench]:
        workshop = self.workshop
        desired: list[DesiredWorkbench] = []
        for workbench in workshop.workbenches:
            if not workbench.is_active:
                continue
            if not workbench.path.exists():
                raise WorkbenchPathMissing(
                    f"worktree path does not exist for {workbench.id}: {workbench.path}"
                )
            desired.append(
                DesiredWorkbench(
                    name=workbench.name,
                    path=str(workbench.path),
                    id=workbench.id,
                    workshop_id=workshop.id,
                )
            )
        if not desired:
            raise ValueError(f"workshop {workshop.id} has no active workbenches")
        return desired

    def plan(self) -> ApplyPlan:
        return self._reconciler.plan_apply(self.workshop.session_name, self.desired_workbenches())

    def apply(
        self,
        *,
        confirm: Callable[[ApplyPlan], bool] | None = None,
        plan: ApplyPlan | None = None,
    ) -> ApplyOutcome:
        plan = plan or self.plan()
        if not plan.actions:
            return ApplyOutcome(plan=plan, applied=False)
        if confirm is not None and not confirm(plan):
            logger.info("Apply for %s cancelled", plan.session_name)
            return ApplyOutcome(plan=plan, applied=False)
        self._reconciler.execute_plan(plan)
        return ApplyOutcome(plan=plan, applied=True)

    def enrich(self) -> str:
        session_name = self.workshop.session_name
        if not self._adapter.session_exists(session_name):
            raise ValueError(f"no tmux session found for {self.workshop.id}")
        SessionEnricher(self._adapter, self.config.enrichment).apply(session_name)
        return session_name

    def session_status(self, session_name: str | None = None) -> list[WindowStatus]:
        name = session_name or self.workshop.session_name
        actual = self._reconciler.observe(name)
        if not actual.exists:
            raise ValueError(f"no tmux session named {name}")
        return [WindowStatus.from_window(window) for window in actual.windows]
