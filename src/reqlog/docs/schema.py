"""Pydantic models for structured item input (JSON/YAML files, stdin).

These validate what callers hand to ``reqlog log create`` and ``append``
before anything becomes an ``ItemDraft``. Unknown keys are ignored.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class ItemInput(BaseModel):
    """One submitted item. ``tags`` may be a list or a comma-separated string."""

    title: str
    type: str = ""
    domain: str = ""
    context: str = ""
    priority: str = ""
    status: str = ""
    tags: list[str] = []
    notes: str = ""

    @field_validator("type", "domain", "context", "priority", "status", "notes", mode="before")
    @classmethod
    def _none_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("title", mode="after")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be blank")
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return v.split(",")
        return v

    @field_validator("tags", mode="after")
    @classmethod
    def _strip_tags(cls, v: list[str]) -> list[str]:
        return [t.strip() for t in v if t.strip()]


class CreateInput(BaseModel):
    """Payload for creating a document: a project, a title and its items."""

    project: str = Field(min_length=1)
    title: str | None = None
    items: list[ItemInput] = Field(min_length=1)

    @field_validator("items", mode="before")
    @classmethod
    def _single_item(cls, v: Any) -> Any:
        return [v] if isinstance(v, dict) else v


class AppendInput(BaseModel):
    """Payload for appending: ``{"items": [...]}``."""

    items: list[ItemInput] = Field(min_length=1)

    @field_validator("items", mode="before")
    @classmethod
    def _single_item(cls, v: Any) -> Any:
        return [v] if isinstance(v, dict) else v
