from pathlib import Path

import pytest

from tmux_workshop.plan import DesiredWorkbench
from tmux_workshop.reconciler import WorkshopReconciler
from tmux_workshop.tmux import FakeTmuxAdapter

SESSION = "workshop"


@pytest.fixture()
def adapter() -> FakeTmuxAdapter:
    return FakeTmuxAdapter()


@pytest.fixture()
def reconciler(adapter: FakeTmuxAdapter) -> WorkshopReconciler:
    return WorkshopReconciler(adapter)


@pytest.fixture()
def desired(tmp_path: Path) -> list[DesiredWorkbench]:
    benches = []
    for idx, name in enumerate(["api", "web", "docs"], start=1):
        path = tmp_path / name
        path.mkdir()
        benches.append(DesiredWorkbench(name=name, path=str(path), id=f"BENCH-00{idx}", workshop_id="WORK-001"))
    return benches


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TMUX_WORKSHOP_CONFIG", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
