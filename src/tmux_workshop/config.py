"""Configuration loading for tmux-workshop."""
from __future__ import annotations

import shlex
from pathlib import Path
from typing import Any
from typing import Literal

import yaml
from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError
from pydantic import field_validator
from pydantic import model_validator

from .identity import is_overflow_window


class TmuxConfig(BaseModel):
    """How to reach the tmux server."""

    bin: str = "tmux"
    socket: str = "default"


class LayoutConfig(BaseModel):
    """Workbench window template and geometry."""

    layout: str = "main-vertical"
    main_pane_width: str = "50%"
    editor_command: list[str] = Field(default_factory=lambda: ["vim"])
    agent_command: list[str] = Field(default_factory=lambda: ["agent", "connect"])
    overflow_layout: str = "tiled"

    @field_validator("editor_command", "agent_command", mode="before")
    @classmethod
    def _split_command(cls, value: Any) -> Any:
        if isinstance(value, str):
            return shlex.split(value)
        return value

    @field_validator("editor_command", "agent_command")
    @classmethod
    def _require_command(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("command must not be empty")
        return value


class NudgeConfig(BaseModel):
    """Bounded retry policy for keystroke delivery."""

    attempts: int = Field(default=3, ge=1)
    backoff_ms: int = Field(default=200, ge=0)
    settle_ms: int = Field(default=500, ge=0)
    escape_ms: int = Field(default=100, ge=0)


class EnrichmentConfig(BaseModel):
    cli_command: str = "tmux-workshop"
    bindings: bool = True


class WorkbenchConfig(BaseModel):
    id: str
    name: str
    path: Path
    status: Literal["active", "archived"] = "active"

    @field_validator("path")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class WorkshopConfig(BaseModel):
    id: str
    name: str
    workbenches: list[WorkbenchConfig] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _check_session_name(cls, value: str) -> str:
        # tmux rewrites these in session names, so the session would never be found again.
        if not value or any(char in value for char in ".:"):
            raise ValueError(f"workshop name {value!r} must be non-empty and free of '.' and ':'")
        return value

    @property
    def session_name(self) -> str:
        return self.name

    @model_validator(mode="after")
    def _check_workbench_names(self) -> "WorkshopConfig":
        seen: set[str] = set()
        for workbench in self.workbenches:
            if is_overflow_window(workbench.name):
                raise ValueError(f"workbench name {workbench.name!r} is reserved for overflow windows")
            if workbench.name in seen:
                raise ValueError(f"duplicate workbench name {workbench.name!r}")
            seen.add(workbench.name)
        return self


class AppConfig(BaseModel):
    """Top-level tmux-workshop configuration."""

    tmux: TmuxConfig = Field(default_factory=TmuxConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    nudge: NudgeConfig = Field(default_factory=NudgeConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    workshop: WorkshopConfig | None = None
    metrics_port: int | None = None

    def require_workshop(self) -> WorkshopConfig:
        if self.workshop is None:
            raise ValueError("configuration has no workshop section")
        return self.workshop


def load_yaml(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def load_app_config(path: Path) -> AppConfig:
    raw = load_yaml(path)
    try:
        return AppConfig.model_validate(raw or {})
    except ValidationError as exc:
        raise ValueError(f"Invalid workshop config at {path}: {exc}") from exc
