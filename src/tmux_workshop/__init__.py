"""Reconcile tmux sessions onto declared AI-agent workbenches."""

from .plan import ActionType, ApplyAction, ApplyPlan, DesiredWorkbench, WindowStatus
from .reconciler import WorkshopReconciler
from .executor import ActionFailed
from .observer import ObservationError

__all__ = [
    "ActionType",
    "ApplyAction",
    "ApplyPlan",
    "DesiredWorkbench",
    "WindowStatus",
    "WorkshopReconciler",
    "ActionFailed",
    "ObservationError",
]
