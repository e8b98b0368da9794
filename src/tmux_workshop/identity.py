"""Pane identity tags and naming conventions shared by planner and executor."""
from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)

ROLE_OPTION = "@pane_role"
BENCH_ID_OPTION = "@bench_id"
WORKSHOP_ID_OPTION = "@workshop_id"
ENRICHED_OPTION = "@workshop_enriched"

OVERFLOW_SUFFIX = "-imps"

# Tags written by earlier releases of the workbench template.
_LEGACY_ROLE_TAGS = {
    "vim": "editor",
    "goblin": "agent",
}


class PaneRole(str, Enum):
    EDITOR = "editor"
    AGENT = "agent"
    SHELL = "shell"
    UNKNOWN = "unknown"
    UNTAGGED = ""

    @classmethod
    def parse(cls, raw: str | None) -> "PaneRole":
        """Map a raw ``@pane_role`` value onto the closed role set.

        Values from other tools or newer releases map to UNKNOWN: the pane is
        tagged, so it is not a guest and stays where it is.
        """
        value = (raw or "").strip().lower()
        value = _LEGACY_ROLE_TAGS.get(value, value)
        try:
            return cls(value)
        except ValueError:
            logger.warning("Unrecognised pane role tag %r, leaving pane in place", raw)
            return cls.UNKNOWN

    @property
    def is_guest(self) -> bool:
        return self is PaneRole.UNTAGGED


# Creation order of the canonical workbench panes: editor left, agent
# top-right, shell bottom-right.
WORKBENCH_ROLES = (PaneRole.EDITOR, PaneRole.AGENT, PaneRole.SHELL)

_ROLE_TITLES = {
    PaneRole.EDITOR: "editor",
    PaneRole.AGENT: "agent",
    PaneRole.SHELL: "shell",
}


def overflow_window_name(window_name: str) -> str:
    return f"{window_name}{OVERFLOW_SUFFIX}"


def is_overflow_window(window_name: str) -> bool:
    return window_name.endswith(OVERFLOW_SUFFIX)


def pane_title(role: PaneRole, position: int) -> str:
    """Human readable pane title; untagged panes fall back to their position."""
    if role in _ROLE_TITLES:
        return _ROLE_TITLES[role]
    if position < len(WORKBENCH_ROLES):
        return _ROLE_TITLES[WORKBENCH_ROLES[position]]
    return f"pane-{position}"
