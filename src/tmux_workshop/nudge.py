"""Reliable keystroke delivery into an agent pane."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from .config import NudgeConfig
from .tmux import TmuxAdapter
from .tmux import TmuxCommandError

logger = logging.getLogger(__name__)


class NudgeFailed(RuntimeError):
    pass


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    backoff_seconds: float = 0.2

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")


class NudgeDelivery:
    """Types a message into a pane and submits it.

    The text is sent literally, then Escape leaves any vi-style input mode and
    Enter submits. Only the Enter stroke is retried.
    """

    def __init__(
        self,
        adapter: TmuxAdapter,
        *,
        policy: RetryPolicy | None = None,
        settle_seconds: float = 0.5,
        escape_seconds: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._adapter = adapter
        self._policy = policy or RetryPolicy()
        self._settle = settle_seconds
        self._escape = escape_seconds
        self._sleep = sleep

    @classmethod
    def from_config(cls, adapter: TmuxAdapter, config: NudgeConfig, **kwargs) -> "NudgeDelivery":  # type: ignore[no-untyped-def]
        return cls(
            adapter,
            policy=RetryPolicy(attempts=config.attempts, backoff_seconds=config.backoff_ms / 1000.0),
            settle_seconds=config.settle_ms / 1000.0,
            escape_seconds=config.escape_ms / 1000.0,
            **kwargs,
        )

    def nudge(self, target: str, message: str) -> None:
        if not target:
            raise ValueError("nudge target must not be empty")
        try:
            self._adapter.send_keys(target, message, literal=True)
        except TmuxCommandError as exc:
            raise NudgeFailed(f"failed to send message to {target}: {exc}") from exc
        self._sleep(self._settle)

        try:
            self._adapter.send_keys(target, "Escape")
        except TmuxCommandError as exc:
            raise NudgeFailed(f"failed to send Escape to {target}: {exc}") from exc
        self._sleep(self._escape)

        self._submit(target)

    def _submit(self, target: str) -> None:
        last_error: TmuxCommandError | None = None
        for attempt in range(self._policy.attempts):
            if attempt > 0:
                self._sleep(self._policy.backoff_seconds)
            try:
                self._adapter.send_keys(target, "Enter")
            except TmuxCommandError as exc:
                logger.debug("Enter attempt %d for %s failed: %s", attempt + 1, target, exc)
                last_error = exc
                continue
            return
        raise NudgeFailed(
            f"failed to send Enter to {target} after {self._policy.attempts} attempts"
        ) from last_error
