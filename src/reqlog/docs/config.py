"""Configuration dataclasses for the document store and search.

These are pure data containers with sensible defaults.
Build them from ``reqlog.core.config.Config`` or constructor args.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path


class MatchMode(StrEnum):
    """How query values are compared against item fields (case-insensitive)."""

    FULL = "full"  # equality
    STARTS = "starts"  # prefix
    CONTAINS = "contains"  # substring


@dataclass
class StoreConfig:
    """Settings for FileDocStore.

    Attributes:
        base_dir: Directory a leading ``~`` expands to. None = home directory,
            looked up on every call.
        extension: File extension of request-log documents.
        backup_suffix: Appended to a document path to name its backup slot.
        encoding: Text encoding for reads and writes.
    """

    base_dir: str | Path | None = None
    extension: str = ".md"
    backup_suffix: str = ".bak"
    encoding: str = "utf-8"


@dataclass
class SearchOptions:
    """Settings for a search call.

    Attributes:
        match_mode: Comparison mode for every query component.
        limit: Maximum matches to return (0 = unlimited).
        context_radius: Characters kept on each side of a text match.
    """

    match_mode: MatchMode = MatchMode.CONTAINS
    limit: int = 0
    context_radius: int = 30
