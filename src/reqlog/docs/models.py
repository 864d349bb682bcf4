"""Request-log document models.

A Document owns an ordered list of Items. The aggregated views that appear in
the file header (``tags``, ``items_index``, ``item_count``) are computed from
``items`` on every access and are never stored separately.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from reqlog.core.exceptions import InvalidInputError, describe_validation_error

from .schema import ItemInput


@dataclass
class ItemDraft:
    """An item as submitted by a caller, before an id and timestamp exist."""

    title: str = ""
    type: str = ""
    domain: str = ""
    context: str = ""
    priority: str = ""
    status: str = ""
    tags: list[str] = field(default_factory=list)
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ItemDraft:
        """Build a draft from decoded JSON/YAML, validated by ``ItemInput``.

        Unknown keys are ignored. ``tags`` may be a list or a comma-separated
        string.

        Raises:
            InvalidInputError: If ``data`` is not a mapping, ``title`` is
                missing, or a field has the wrong type.
        """
        try:
            validated = ItemInput.model_validate(data)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid item: {describe_validation_error(e)}") from e
        return cls.from_input(validated)

    @classmethod
    def from_input(cls, data: ItemInput) -> ItemDraft:
        return cls(**data.model_dump())


@dataclass
class Item:
    """A persisted item inside a request-log document."""

    id: str
    title: str
    type: str = ""
    domain: str = ""
    context: str = ""
    priority: str = ""
    status: str = ""
    tags: list[str] = field(default_factory=list)
    notes: str = ""
    created_at: datetime | None = None

    @classmethod
    def from_draft(cls, draft: ItemDraft, item_id: str, created_at: datetime) -> Item:
        values = {f.name: getattr(draft, f.name) for f in fields(ItemDraft)}
        values["tags"] = list(draft.tags)
        return cls(id=item_id, created_at=created_at, **values)


@dataclass(frozen=True)
class ItemIndexEntry:
    """Header entry for quick lookup without parsing item bodies."""

    id: str
    type: str
    title: str


@dataclass(frozen=True)
class DocMeta:
    """Lightweight listing entry for a document on disk."""

    path: Path
    doc_id: str
    title: str
    item_count: int
    updated_at: datetime


def aggregate_tags(items: Iterable[Item]) -> list[str]:
    """Sorted, de-duplicated union of every item's tags."""
    return sorted({tag for item in items for tag in item.tags})


def build_items_index(items: Iterable[Item]) -> list[ItemIndexEntry]:
    return [ItemIndexEntry(id=item.id, type=item.type, title=item.title) for item in items]


def later_of(current: datetime, candidate: datetime) -> datetime:
    """Return ``candidate`` unless it is earlier than ``current``.

    Compares POSIX timestamps so naive and aware datetimes can be mixed.
    """
    return candidate if candidate.timestamp() >= current.timestamp() else current


@dataclass
class Document:
    """A request-log document (one per file)."""

    doc_id: str
    title: str
    project_id: str
    created_at: datetime
    updated_at: datetime
    items: list[Item] = field(default_factory=list)

    @property
    def tags(self) -> list[str]:
        return aggregate_tags(self.items)

    @property
    def items_index(self) -> list[ItemIndexEntry]:
        return build_items_index(self.items)

    @property
    def item_count(self) -> int:
        return len(self.items)

    def with_item(self, item: Item, now: datetime) -> Document:
        """Return a copy with ``item`` appended and ``updated_at`` advanced."""
        return replace(
            self,
            items=[*self.items, item],
            updated_at=later_of(self.updated_at, now),
        )

    def to_meta(self, path: Path) -> DocMeta:
        return DocMeta(
            path=path,
            doc_id=self.doc_id,
            title=self.title,
            item_count=self.item_count,
            updated_at=self.updated_at,
        )
