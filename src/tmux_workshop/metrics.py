"""Prometheus metrics helpers for tmux-workshop."""
from __future__ import annotations

from prometheus_client import Counter
from prometheus_client import Histogram
from prometheus_client import start_http_server as _start_http_server

WORKSHOP_PLANS_TOTAL = Counter(
    "workshop_plans_total",
    "Number of reconciliation plans generated",
    labelnames=("session_exists",),
)
WORKSHOP_PLANNED_ACTIONS_TOTAL = Counter(
    "workshop_planned_actions_total",
    "Actions emitted by the plan generator grouped by type",
    labelnames=("action",),
)
WORKSHOP_EXECUTED_ACTIONS_TOTAL = Counter(
    "workshop_executed_actions_total",
    "Actions executed against tmux grouped by type and result",
    labelnames=("action", "result"),
)
WORKSHOP_ENRICHMENT_FAILURES_TOTAL = Counter(
    "workshop_enrichment_failures_total",
    "Best-effort enrichment steps that failed and were skipped",
    labelnames=("step",),
)
WORKSHOP_APPLY_LATENCY = Histogram(
    "workshop_apply_latency_seconds",
    "Time taken to execute a full reconciliation plan",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10),
)


def record_plan(session_exists: bool, action_names: list[str]) -> None:
    """Count a generated plan and the actions it carries."""

    WORKSHOP_PLANS_TOTAL.labels(session_exists=str(session_exists).lower()).inc()
    for name in action_names:
        WORKSHOP_PLANNED_ACTIONS_TOTAL.labels(action=name).inc()


def record_action(action: str, result: str) -> None:
    WORKSHOP_EXECUTED_ACTIONS_TOTAL.labels(action=action, result=result).inc()


def record_enrichment_failure(step: str) -> None:
    WORKSHOP_ENRICHMENT_FAILURES_TOTAL.labels(step=step).inc()


def observe_apply_latency(duration_seconds: float) -> None:
    WORKSHOP_APPLY_LATENCY.observe(duration_seconds)


def start_server(port: int, host: str = "0.0.0.0") -> None:
    """Start the Prometheus metrics HTTP server."""

    _start_http_server(port, addr=host)
