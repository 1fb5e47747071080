"""Configuration management for FlowState IDE capture."""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Annotated
import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_CONTEXT_FILENAME = ".flowstate_context.md"
MAX_RECENT_WORKSPACES = 10


class FlowStateSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    log_level: str = Field(default="INFO", validation_alias="FLOWSTATE_LOG_LEVEL")
    recency_window_minutes: int = Field(
        default=30,
        validation_alias="FLOWSTATE_RECENCY_WINDOW_MINUTES",
        description="Workspaces touched within this window count as recently used.",
    )
    recent_workspace_limit: int = Field(
        default=10,
        validation_alias="FLOWSTATE_RECENT_WORKSPACE_LIMIT",
        description="Maximum number of recent workspaces kept per session.",
    )
    context_summary_limit: int = Field(default=5, validation_alias="FLOWSTATE_CONTEXT_SUMMARY_LIMIT")
    context_todo_limit: int = Field(default=5, validation_alias="FLOWSTATE_CONTEXT_TODO_LIMIT")
    process_check_timeout: float = Field(
        default=5.0, validation_alias="FLOWSTATE_PROCESS_CHECK_TIMEOUT"
    )
    launch_timeout: float = Field(default=10.0, validation_alias="FLOWSTATE_LAUNCH_TIMEOUT")
    context_filename: str = Field(
        default=DEFAULT_CONTEXT_FILENAME, validation_alias="FLOWSTATE_CONTEXT_FILENAME"
    )
    editor_profile_paths: Annotated[tuple[Path, ...], NoDecode] = Field(
        default=(Path("editors"),), validation_alias="FLOWSTATE_EDITOR_PROFILE_PATHS"
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "FLOWSTATE_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator(
        "recency_window_minutes",
        "recent_workspace_limit",
        "context_summary_limit",
        "context_todo_limit",
    )
    @classmethod
    def _validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("limits and windows must be >= 1")
        return value

    @field_validator("recent_workspace_limit")
    @classmethod
    def _validate_recent_limit(cls, value: int) -> int:
        if value > MAX_RECENT_WORKSPACES:
            raise ValueError(f"FLOWSTATE_RECENT_WORKSPACE_LIMIT must be <= {MAX_RECENT_WORKSPACES}")
        return value

    @field_validator("process_check_timeout", "launch_timeout")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be positive")
        return value

    @field_validator("context_filename")
    @classmethod
    def _validate_context_filename(cls, value: str) -> str:
        name = value.strip()
        if not name or Path(name).name != name:
            raise ValueError("FLOWSTATE_CONTEXT_FILENAME must be a bare file name")
        return name

    @field_validator("editor_profile_paths", mode="before")
    @classmethod
    def _parse_profile_paths(cls, value):
        if value is None or value == "":
            return (Path("editors"),)
        if isinstance(value, (list, tuple)):
            return tuple(Path(str(item)) for item in value)
        if isinstance(value, str):
            parts = [part.strip() for part in value.split(os.pathsep) if part.strip()]
            return tuple(Path(part) for part in parts) or (Path("editors"),)
        raise TypeError(
            "FLOWSTATE_EDITOR_PROFILE_PATHS must be a list of paths or a path-separated string"
        )

    @property
    def recency_window(self) -> timedelta:
        return timedelta(minutes=self.recency_window_minutes)


@lru_cache(maxsize=1)
def get_settings() -> FlowStateSettings:
    """Return cached settings instance."""

    settings = FlowStateSettings()
    settings.editor_profile_paths = tuple(
        path.expanduser().resolve() for path in settings.editor_profile_paths
    )
    return settings


__all__ = ["DEFAULT_CONTEXT_FILENAME", "FlowStateSettings", "MAX_RECENT_WORKSPACES", "get_settings"]
