import pytest

from tmux_workshop.identity import PaneRole
from tmux_workshop.observer import ActualPane
from tmux_workshop.observer import ActualSession
from tmux_workshop.observer import ActualWindow
from tmux_workshop.plan import ActionType
from tmux_workshop.plan import DesiredWorkbench
from tmux_workshop.plan import generate_plan
from tmux_workshop.plan import validate_desired
from tmux_workshop.reconciler import WorkshopReconciler
from tmux_workshop.tmux import FakeTmuxAdapter

SESSION = "workshop"


def bench(name: str, idx: int = 1) -> DesiredWorkbench:
    return DesiredWorkbench(name=name, path=f"/tmp/{name}", id=f"BENCH-{idx:03d}", workshop_id="WORK-001")


def pane(pane_id: str, role: PaneRole = PaneRole.UNTAGGED, dead: bool = False, index: int = 0) -> ActualPane:
    return ActualPane(pane_id=pane_id, index=index, dead=dead, role=role)


def workbench_window(name: str, window_id: str = "@1", guests: int = 0) -> ActualWindow:
    panes = [
        pane("%1", PaneRole.EDITOR, index=0),
        pane("%2", PaneRole.AGENT, index=1),
        pane("%3", PaneRole.SHELL, index=2),
    ]
    panes += [pane(f"%g{idx}", index=3 + idx) for idx in range(guests)]
    return ActualWindow(window_id=window_id, name=name, panes=tuple(panes))


def test_empty_desired_without_session_is_empty_plan() -> None:
    plan = generate_plan(SESSION, [], ActualSession(name=SESSION, exists=False))
    assert plan.actions == []
    assert plan.session_exists is False


def test_bootstrap_ordering() -> None:
    desired = [bench("a", 1), bench("b", 2), bench("c", 3)]
    plan = generate_plan(SESSION, desired, ActualSession(name=SESSION, exists=False))

    assert plan.action_types() == [
        ActionType.CREATE_SESSION,
        ActionType.ADD_WINDOW,
        ActionType.ADD_WINDOW,
        ActionType.APPLY_ENRICHMENT,
    ]
    assert [action.workbench_name for action in plan.actions[:3]] == ["a", "b", "c"]
    create = plan.actions[0]
    assert create.workbench_id == "BENCH-001"
    assert create.workshop_id == "WORK-001"
    assert create.workbench_path == "/tmp/a"
    assert plan.window_summary == []


def test_existing_session_adds_only_missing_windows() -> None:
    actual = ActualSession(name=SESSION, exists=True, windows=(workbench_window("a"),))
    plan = generate_plan(SESSION, [bench("a", 1), bench("b", 2)], actual)

    assert plan.session_exists is True
    adds = plan.actions_of(ActionType.ADD_WINDOW)
    assert [action.workbench_name for action in adds] == ["b"]
    layouts = plan.actions_of(ActionType.RECONCILE_LAYOUT)
    assert [action.window_name for action in layouts] == ["a"]
    assert plan.actions[-1].type is ActionType.APPLY_ENRICHMENT


def test_converged_session_still_reconciles_layout_and_enriches() -> None:
    actual = ActualSession(name=SESSION, exists=True, windows=(workbench_window("a"),))
    plan = generate_plan(SESSION, [bench("a")], actual)

    assert plan.action_types() == [ActionType.RECONCILE_LAYOUT, ActionType.APPLY_ENRICHMENT]
    assert plan.window_summary[0].healthy is True
    assert plan.window_summary[0].pane_count == 3


def test_guest_pane_yields_single_relocate_action() -> None:
    actual = ActualSession(name=SESSION, exists=True, windows=(workbench_window("a", guests=1),))
    plan = generate_plan(SESSION, [bench("a")], actual)

    relocations = plan.actions_of(ActionType.RELOCATE_GUESTS)
    assert len(relocations) == 1
    assert relocations[0].window_name == "a"
    assert "a-imps" in relocations[0].description


def test_overflow_all_dead_is_killed_not_pruned() -> None:
    imps = ActualWindow(
        window_id="@2",
        name="a-imps",
        panes=(pane("%7", dead=True), pane("%8", dead=True, index=1)),
    )
    actual = ActualSession(name=SESSION, exists=True, windows=(workbench_window("a"), imps))
    plan = generate_plan(SESSION, [bench("a")], actual)

    assert [action.window_name for action in plan.actions_of(ActionType.KILL_EMPTY_IMPS)] == ["a-imps"]
    assert plan.actions_of(ActionType.PRUNE_DEAD_PANES) == []
    summary = {status.name: status for status in plan.window_summary}
    assert summary["a-imps"].is_overflow is True
    assert summary["a-imps"].dead_panes == 2
    assert summary["a-imps"].healthy is False


def test_overflow_partly_dead_is_pruned_not_killed() -> None:
    imps = ActualWindow(
        window_id="@2",
        name="a-imps",
        panes=(pane("%7", dead=True), pane("%8", dead=False, index=1)),
    )
    actual = ActualSession(name=SESSION, exists=True, windows=(workbench_window("a"), imps))
    plan = generate_plan(SESSION, [bench("a")], actual)

    assert [action.window_name for action in plan.actions_of(ActionType.PRUNE_DEAD_PANES)] == ["a-imps"]
    assert plan.actions_of(ActionType.KILL_EMPTY_IMPS) == []


def test_overflow_panes_are_never_relocated() -> None:
    imps = ActualWindow(window_id="@2", name="a-imps", panes=(pane("%7"),))
    actual = ActualSession(name=SESSION, exists=True, windows=(workbench_window("a"), imps))
    plan = generate_plan(SESSION, [bench("a")], actual)

    assert plan.actions_of(ActionType.RELOCATE_GUESTS) == []
    assert {status.name: status.healthy for status in plan.window_summary}["a-imps"] is True


def test_actions_follow_phase_order() -> None:
    imps = ActualWindow(window_id="@3", name="b-imps", panes=(pane("%9", dead=True),))
    actual = ActualSession(
        name=SESSION,
        exists=True,
        windows=(workbench_window("b", "@2", guests=2), imps),
    )
    plan = generate_plan(SESSION, [bench("a", 1), bench("b", 2)], actual)

    phases = [action.phase for action in plan.actions]
    assert phases == sorted(phases)
    assert plan.action_types() == [
        ActionType.ADD_WINDOW,
        ActionType.RELOCATE_GUESTS,
        ActionType.KILL_EMPTY_IMPS,
        ActionType.RECONCILE_LAYOUT,
        ActionType.APPLY_ENRICHMENT,
    ]


def test_repeated_planning_against_unchanged_state_is_stable() -> None:
    actual = ActualSession(name=SESSION, exists=True, windows=(workbench_window("a"),))
    desired = [bench("a", 1), bench("b", 2)]

    first = generate_plan(SESSION, desired, actual)
    second = generate_plan(SESSION, desired, actual)

    assert first.actions == second.actions
    assert len(first.actions_of(ActionType.ADD_WINDOW)) == 1


def test_windows_outside_the_desired_set_are_only_summarised() -> None:
    stray = ActualWindow(window_id="@5", name="scratch", panes=(pane("%5", PaneRole.SHELL),))
    actual = ActualSession(name=SESSION, exists=True, windows=(workbench_window("a"), stray))
    plan = generate_plan(SESSION, [bench("a")], actual)

    assert [status.name for status in plan.window_summary] == ["a", "scratch"]
    assert all(action.window_name != "scratch" for action in plan.actions)


@pytest.mark.parametrize(
    "desired",
    [
        [bench("a"), bench("a", 2)],
        [bench("a-imps")],
        [bench("")],
    ],
)
def test_validate_desired_rejects_bad_input(desired: list[DesiredWorkbench]) -> None:
    with pytest.raises(ValueError):
        validate_desired(desired)


def test_foreign_role_tag_is_not_relocated(adapter: FakeTmuxAdapter, reconciler: WorkshopReconciler) -> None:
    adapter.add_window(SESSION, "a", [("editor", False), ("agent", False), ("shell", False), ("reviewer", False)])

    plan = reconciler.plan_apply(SESSION, [bench("a")])

    assert plan.actions_of(ActionType.RELOCATE_GUESTS) == []
    assert plan.action_types() == [ActionType.RECONCILE_LAYOUT, ActionType.APPLY_ENRICHMENT]
