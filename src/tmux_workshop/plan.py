"""Pure diff between desired workbenches and an observed tmux session."""
from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Sequence

from .identity import is_overflow_window
from .identity import overflow_window_name
from .observer import ActualSession
from .observer import ActualWindow


class ActionType(str, Enum):
    CREATE_SESSION = "CreateSession"
    ADD_WINDOW = "AddWindow"
    RELOCATE_GUESTS = "RelocateGuests"
    PRUNE_DEAD_PANES = "PruneDeadPanes"
    KILL_EMPTY_IMPS = "KillEmptyImps"
    RECONCILE_LAYOUT = "ReconcileLayout"
    APPLY_ENRICHMENT = "ApplyEnrichment"


class Phase(int, Enum):
    CREATION = 0
    CLEANUP = 1
    LAYOUT = 2
    ENRICHMENT = 3


ACTION_PHASES: dict[ActionType, Phase] = {
    ActionType.CREATE_SESSION: Phase.CREATION,
    ActionType.ADD_WINDOW: Phase.CREATION,
    ActionType.RELOCATE_GUESTS: Phase.CLEANUP,
    ActionType.PRUNE_DEAD_PANES: Phase.CLEANUP,
    ActionType.KILL_EMPTY_IMPS: Phase.CLEANUP,
    ActionType.RECONCILE_LAYOUT: Phase.LAYOUT,
    ActionType.APPLY_ENRICHMENT: Phase.ENRICHMENT,
}


@dataclass(frozen=True)
class DesiredWorkbench:
    name: str
    path: str
    id: str
    workshop_id: str


@dataclass(frozen=True)
class ApplyAction:
    type: ActionType
    description: str
    session_name: str
    window_name: str = ""
    workbench_name: str = ""
    workbench_path: str = ""
    workbench_id: str = ""
    workshop_id: str = ""

    @property
    def phase(self) -> Phase:
        return ACTION_PHASES[self.type]

    def workbench(self) -> DesiredWorkbench:
        return DesiredWorkbench(
            name=self.workbench_name,
            path=self.workbench_path,
            id=self.workbench_id,
            workshop_id=self.workshop_id,
        )


@dataclass(frozen=True)
class WindowStatus:
    name: str
    pane_count: int
    dead_panes: int
    healthy: bool
    is_overflow: bool

    @classmethod
    def from_window(cls, window: ActualWindow) -> "WindowStatus":
        pane_count = len(window.panes)
        dead = window.dead_count
        return cls(
            name=window.name,
            pane_count=pane_count,
            dead_panes=dead,
            healthy=dead == 0 and (not window.is_overflow or pane_count > 0),
            is_overflow=window.is_overflow,
        )


@dataclass
class ApplyPlan:
    session_name: str
    session_exists: bool = False
    actions: list[ApplyAction] = field(default_factory=list)
    window_summary: list[WindowStatus] = field(default_factory=list)

    def action_types(self) -> list[ActionType]:
        return [action.type for action in self.actions]

    def actions_of(self, action_type: ActionType) -> list[ApplyAction]:
        return [action for action in self.actions if action.type is action_type]


def validate_desired(desired: Sequence[DesiredWorkbench]) -> None:
    seen: set[str] = set()
    for workbench in desired:
        if not workbench.name:
            raise ValueError("workbench name must not be empty")
        if is_overflow_window(workbench.name):
            raise ValueError(f"workbench name {workbench.name!r} collides with overflow window naming")
        if workbench.name in seen:
            raise ValueError(f"duplicate workbench name {workbench.name!r}")
        seen.add(workbench.name)


def generate_plan(
    session_name: str,
    desired: Sequence[DesiredWorkbench],
    actual: ActualSession,
) -> ApplyPlan:
    """Diff ``desired`` against ``actual``; never touches tmux.

    Actions are collected per phase and concatenated so that creation always
    precedes cleanup, cleanup precedes layout, and enrichment runs last.
    """
    plan = ApplyPlan(session_name=session_name, session_exists=actual.exists)
    creation: list[ApplyAction] = []
    cleanup: list[ApplyAction] = []
    layout: list[ApplyAction] = []

    if not actual.exists:
        if not desired:
            return plan
        first, rest = desired[0], desired[1:]
        creation.append(
            _workbench_action(
                ActionType.CREATE_SESSION,
                f"Create session {session_name} with window {first.name}",
                session_name,
                first,
            )
        )
        for workbench in rest:
            creation.append(_add_window(session_name, workbench))
        plan.actions = [*creation, _enrichment(session_name)]
        return plan

    existing = {window.name for window in actual.windows}
    for workbench in desired:
        if workbench.name not in existing:
            creation.append(_add_window(session_name, workbench))

    for window in actual.windows:
        plan.window_summary.append(WindowStatus.from_window(window))
        action = _cleanup_action(session_name, window)
        if action is not None:
            cleanup.append(action)

    for workbench in desired:
        if workbench.name in existing:
            layout.append(
                ApplyAction(
                    type=ActionType.RECONCILE_LAYOUT,
                    description=f"Reconcile layout on {workbench.name}",
                    session_name=session_name,
                    window_name=workbench.name,
                )
            )

    plan.actions = [*creation, *cleanup, *layout, _enrichment(session_name)]
    return plan


def _cleanup_action(session_name: str, window: ActualWindow) -> ApplyAction | None:
    dead = window.dead_count
    if window.is_overflow:
        if dead > 0 and dead == len(window.panes):
            return ApplyAction(
                type=ActionType.KILL_EMPTY_IMPS,
                description=f"Kill empty {window.name} window (all {dead} panes dead)",
                session_name=session_name,
                window_name=window.name,
            )
        if dead > 0:
            return ApplyAction(
                type=ActionType.PRUNE_DEAD_PANES,
                description=f"Prune {dead} dead panes in {window.name}",
                session_name=session_name,
                window_name=window.name,
            )
        return None

    guests = window.guest_count
    if guests > 0:
        return ApplyAction(
            type=ActionType.RELOCATE_GUESTS,
            description=(
                f"Relocate {guests} guest panes from {window.name} to {overflow_window_name(window.name)}"
            ),
            session_name=session_name,
            window_name=window.name,
        )
    return None


def _add_window(session_name: str, workbench: DesiredWorkbench) -> ApplyAction:
    return _workbench_action(
        ActionType.ADD_WINDOW,
        f"Add window {workbench.name} ({workbench.id})",
        session_name,
        workbench,
    )


def _workbench_action(
    action_type: ActionType,
    description: str,
    session_name: str,
    workbench: DesiredWorkbench,
) -> ApplyAction:
    return ApplyAction(
        type=action_type,
        description=description,
        session_name=session_name,
        window_name=workbench.name,
        workbench_name=workbench.name,
        workbench_path=workbench.path,
        workbench_id=workbench.id,
        workshop_id=workbench.workshop_id,
    )


def _enrichment(session_name: str) -> ApplyAction:
    return ApplyAction(
        type=ActionType.APPLY_ENRICHMENT,
        description="Apply workshop enrichment (bindings, pane titles)",
        session_name=session_name,
    )
