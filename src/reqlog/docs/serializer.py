"""Request-log markdown serializer.

A document file is YAML frontmatter followed by one markdown section per
item::

    ---
    type: request-log
    doc_id: REQ-20251203-capture-app
    title: Capture App Request Log
    project_id: capture-app
    item_count: 1
    tags:
    - ux
    items_index:
    - id: REQ-20251203-capture-app-01
      type: enhancement
      title: Add dark mode toggle
    created_at: '2025-12-03T10:00:00+00:00'
    updated_at: '2025-12-03T14:30:00+00:00'
    ---

    ## REQ-20251203-capture-app-01 - Add dark mode toggle

    **Type:** enhancement | **Domain:** web | **Priority:** medium | **Status:** triage
    **Tags:** ux
    **Context:** Settings page redesign
    **Created:** 2025-12-03T14:30:00+00:00

    ### Problem/Goal
    Users need dark mode for better readability at night.

Sections are separated by a ``---`` line. The header aggregates (tags,
item_count, items_index) are regenerated from the items on every
serialize; on parse the body is authoritative.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime
from typing import Any

import yaml
from loguru import logger

from reqlog.core.exceptions import DocumentParseError, NotARequestLogError
from reqlog.core.types import DocSource

from .ids import parse_doc_id, parse_item_id
from .models import Document, Item, aggregate_tags, build_items_index

__all__ = ["DOC_TYPE", "aggregate_tags", "build_items_index", "parse", "serialize"]

DOC_TYPE = "request-log"
ITEM_SEPARATOR = "\n\n---\n\n"
NOTES_HEADING = "### Problem/Goal"

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\n(.*?)\n---[ \t]*(?:\n|\Z)(.*)", re.DOTALL)
_DOC_ID_HINT_RE = re.compile(rf"^(doc_id:\s*REQ-|type:\s*['\"]?{DOC_TYPE})", re.MULTILINE)
_ITEM_HEADER_RE = re.compile(r"^## (REQ-\S+)(?:[ \t]+-(?:[ \t]+(.*?))?)?[ \t]*$", re.MULTILINE)
_META_PAIR_RE = re.compile(r"\*\*(Type|Domain|Priority|Status):\*\*[ \t]*([^|\n]*)")
_FIELD_LINE_RE = re.compile(r"^\*\*(Tags|Context|Created):\*\*[ \t]?(.*)$")
_NOTES_HEADING_RE = re.compile(r"^###\s*Problem/Goal\s*$")
_TRAILING_SEPARATOR_RE = re.compile(r"\n+---[ \t]*\Z")
_LINE_BREAK_RE = re.compile(r"\s*[\r\n]+\s*")


# ---------------------------------------------------------------------------
# Serialize
# ---------------------------------------------------------------------------


def _inline(value: str | None) -> str:
    """Collapse a value onto one line."""
    if not value:
        return ""
    return _LINE_BREAK_RE.sub(" ", value).strip()


def _format_datetime(dt: datetime) -> str:
    return dt.isoformat()


def _serialize_frontmatter(doc: Document) -> str:
    front = {
        "type": DOC_TYPE,
        "doc_id": doc.doc_id,
        "title": _inline(doc.title),
        "project_id": _inline(doc.project_id),
        "item_count": doc.item_count,
        "tags": [_inline(t) for t in doc.tags],
        "items_index": [
            {"id": entry.id, "type": _inline(entry.type), "title": _inline(entry.title)}
            for entry in doc.items_index
        ],
        "created_at": _format_datetime(doc.created_at),
        "updated_at": _format_datetime(doc.updated_at),
    }
    dumped = yaml.safe_dump(front, default_flow_style=False, sort_keys=False, allow_unicode=True, width=1000)
    return f"---\n{dumped.rstrip()}\n---"


def _serialize_item(item: Item) -> str:
    lines = [
        f"## {item.id} - {_inline(item.title)}",
        "",
        (
            f"**Type:** {_inline(item.type)} | **Domain:** {_inline(item.domain)} | "
            f"**Priority:** {_inline(item.priority)} | **Status:** {_inline(item.status)}"
        ),
        f"**Tags:** {', '.join(_inline(t) for t in item.tags)}",
        f"**Context:** {_inline(item.context)}",
    ]
    if item.created_at is not None:
        lines.append(f"**Created:** {_format_datetime(item.created_at)}")
    lines += ["", NOTES_HEADING, (item.notes or "").strip()]
    return "\n".join(lines)


def serialize(doc: Document) -> str:
    """Render a Document as markdown with YAML frontmatter."""
    front = _serialize_frontmatter(doc)
    if not doc.items:
        return f"{front}\n"
    body = ITEM_SEPARATOR.join(_serialize_item(item) for item in doc.items)
    return f"{front}\n\n{body}\n"


# ---------------------------------------------------------------------------
# Parse
# ---------------------------------------------------------------------------


def _parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def _load_frontmatter(header: str, source: DocSource) -> dict[str, Any]:
    # PyYAML raises a bare ValueError for impossible timestamps (2025-02-30)
    try:
        front = yaml.safe_load(header)
    except (yaml.YAMLError, ValueError) as e:
        if _DOC_ID_HINT_RE.search(header):
            raise DocumentParseError(f"invalid YAML frontmatter: {e}", source) from e
        raise NotARequestLogError(f"unreadable frontmatter: {e}", source) from e
    if not isinstance(front, dict):
        raise NotARequestLogError("frontmatter is not a mapping", source)
    return front


def _check_identity(front: dict[str, Any], source: DocSource) -> str:
    declared_type = front.get("type")
    if declared_type is not None and declared_type != DOC_TYPE:
        raise NotARequestLogError(f"document type is {declared_type!r}, not {DOC_TYPE!r}", source)

    doc_id = front.get("doc_id")
    if isinstance(doc_id, str) and parse_doc_id(doc_id):
        return doc_id
    if declared_type == DOC_TYPE:
        raise DocumentParseError(f"missing or invalid doc_id: {doc_id!r}", source)
    raise NotARequestLogError("no request-log doc_id in frontmatter", source)


def _text_field(front: dict[str, Any], key: str, source: DocSource) -> str:
    value = front.get(key)
    if value is None:
        return ""
    if isinstance(value, (str, int, float)):
        return str(value)
    raise DocumentParseError(f"field '{key}' must be a string", source)


def _parse_item(item_id: str, title: str, content: str, source: DocSource) -> Item:
    content = _TRAILING_SEPARATOR_RE.sub("", content.rstrip())
    lines = content.strip("\n").split("\n")

    notes_at = next((i for i, line in enumerate(lines) if _NOTES_HEADING_RE.match(line.strip())), None)
    meta_lines = lines if notes_at is None else lines[:notes_at]
    notes = "" if notes_at is None else "\n".join(lines[notes_at + 1 :]).strip()

    meta: dict[str, str] | None = None
    fields: dict[str, str] = {}
    for line in meta_lines:
        stripped = line.strip()
        if meta is None and stripped.startswith("**Type:**"):
            meta = {key.lower(): value.strip() for key, value in _META_PAIR_RE.findall(stripped)}
            continue
        m = _FIELD_LINE_RE.match(stripped)
        if m:
            fields[m.group(1).lower()] = m.group(2).strip()

    if meta is None:
        raise DocumentParseError(f"item {item_id} is missing its metadata line", source)

    created_at: datetime | None = None
    if fields.get("created"):
        created_at = _parse_datetime(fields["created"])
        if created_at is None:
            raise DocumentParseError(f"item {item_id} has an invalid created timestamp", source)
    else:
        parsed = parse_item_id(item_id)
        created_at = datetime(parsed.date.year, parsed.date.month, parsed.date.day, tzinfo=UTC)

    return Item(
        id=item_id,
        title=title,
        type=meta.get("type", ""),
        domain=meta.get("domain", ""),
        context=fields.get("context", ""),
        priority=meta.get("priority", ""),
        status=meta.get("status", ""),
        tags=[t.strip() for t in fields.get("tags", "").split(",") if t.strip()],
        notes=notes,
        created_at=created_at,
    )


def _parse_items(doc_id: str, body: str, source: DocSource) -> list[Item]:
    headers = []
    for m in _ITEM_HEADER_RE.finditer(body):
        parsed = parse_item_id(m.group(1))
        if parsed is not None and parsed.doc_id == doc_id:
            headers.append(m)

    preamble = body[: headers[0].start()] if headers else body
    stray = _ITEM_HEADER_RE.search(preamble)
    if stray:
        raise DocumentParseError(f"item header {stray.group(1)} does not belong to {doc_id}", source)

    items: list[Item] = []
    seen: set[str] = set()
    for i, m in enumerate(headers):
        item_id = m.group(1)
        if item_id in seen:
            raise DocumentParseError(f"duplicate item id {item_id}", source)
        seen.add(item_id)
        end = headers[i + 1].start() if i + 1 < len(headers) else len(body)
        items.append(_parse_item(item_id, (m.group(2) or "").strip(), body[m.end() : end], source))
    return items


def _warn_on_stale_header(front: dict[str, Any], items: list[Item], source: DocSource) -> None:
    count = front.get("item_count")
    if isinstance(count, int) and count != len(items):
        logger.warning(f"{source or 'document'}: header item_count={count} but body has {len(items)} items")

    index = front.get("items_index") or []
    header_ids = [entry.get("id") for entry in index if isinstance(entry, dict)]
    if header_ids and header_ids != [item.id for item in items]:
        logger.warning(f"{source or 'document'}: header items_index disagrees with body, using body")


def parse(text: str, source: DocSource = None) -> Document:
    """Parse markdown text into a Document.

    Args:
        text: Full file content.
        source: Path or label used in error messages.

    Raises:
        NotARequestLogError: The text has no recognizable request-log identity.
        DocumentParseError: The text is a request log but malformed.
    """
    if not isinstance(text, str):
        raise NotARequestLogError("content is not text", source)
    text = text.replace("\r\n", "\n")
    if text.startswith("\ufeff"):
        text = text[1:]

    m = _FRONTMATTER_RE.match(text)
    if not m:
        raise NotARequestLogError("missing YAML frontmatter", source)
    header, body = m.group(1), m.group(2)

    front = _load_frontmatter(header, source)
    doc_id = _check_identity(front, source)

    for key in ("tags", "items_index"):
        if front.get(key) is not None and not isinstance(front[key], list):
            raise DocumentParseError(f"field '{key}' must be a list", source)

    created_at = _parse_datetime(front.get("created_at"))
    if created_at is None:
        raise DocumentParseError("missing or invalid created_at", source)
    updated_at = _parse_datetime(front.get("updated_at"))
    if updated_at is None:
        raise DocumentParseError("missing or invalid updated_at", source)

    items = _parse_items(doc_id, body, source)
    _warn_on_stale_header(front, items, source)

    return Document(
        doc_id=doc_id,
        title=_text_field(front, "title", source),
        project_id=_text_field(front, "project_id", source),
        created_at=created_at,
        updated_at=updated_at,
        items=items,
    )
