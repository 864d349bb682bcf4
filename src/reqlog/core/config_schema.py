"""Pydantic models for config validation.

``Config.validated()`` returns a typed ``ReqlogConfig`` built from
``Config.config_data``; the derived builders (``search_options()``,
``project_dir()`` ...) read from it. Dict-based ``get``/``set`` access keeps
working unchanged.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from reqlog.docs.config import MatchMode


class PathsConfig(BaseModel):
    """File-system paths. ``~`` is expanded later, against ``base_dir``."""

    base_dir: str = ""
    docs_dir: str = "~/.reqlog/docs"
    log_dir: str = "~/.reqlog/logs"


class StoreSection(BaseModel):
    extension: str = Field(default=".md", min_length=1)
    backup_suffix: str = Field(default=".bak", min_length=1)
    encoding: str = "utf-8"


class SearchSection(BaseModel):
    """Defaults for ``reqlog log search``."""

    match_mode: MatchMode = MatchMode.CONTAINS
    limit: int = Field(default=0, ge=0)
    context_radius: int = Field(default=30, ge=0)

    @field_validator("match_mode", mode="before")
    @classmethod
    def _normalize_mode(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower() or MatchMode.CONTAINS
        if v is None:
            return MatchMode.CONTAINS
        return v


class LoggingSection(BaseModel):
    level: str = "WARNING"
    file: str = ""

    @field_validator("level", mode="after")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {v!r}")
        return level


class ProjectConfig(BaseModel):
    """A configured project; extra keys are kept for other tools."""

    model_config = ConfigDict(extra="allow")

    path: str


class ReqlogConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so consumers can keep their own sections in the
    same file.
    """

    model_config = ConfigDict(extra="allow")

    paths: PathsConfig = PathsConfig()
    store: StoreSection = StoreSection()
    search: SearchSection = SearchSection()
    logging: LoggingSection = LoggingSection()
    projects: dict[str, ProjectConfig] = {}

    @field_validator("projects", mode="before")
    @classmethod
    def _path_shorthand(cls, v: Any) -> Any:
        # ``app: ~/work/app`` is short for ``app: {path: ~/work/app}``
        if isinstance(v, dict):
            return {key: {"path": value} if isinstance(value, str) else value for key, value in v.items()}
        if v is None:
            return {}
        return v
