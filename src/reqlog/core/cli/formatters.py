"""Output formatting for CLI commands: human text, JSON, YAML and CSV."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterable, Sequence
from dataclasses import asdict
from datetime import datetime
from typing import Any

import click
import yaml

from reqlog.docs.models import DocMeta, Document, Item
from reqlog.docs.search import SearchMatch
from reqlog.docs.serializer import serialize

FORMATS = ("human", "json", "yaml")
TABLE_FORMATS = (*FORMATS, "csv")

META_CSV_COLUMNS = ("path", "doc_id", "title", "item_count", "updated_at")
MATCH_CSV_COLUMNS = ("doc_id", "doc_path", "item_id", "item_title", "item_type", "matched_fields", "match_text")


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if hasattr(value, "__fspath__"):
        return str(value)
    return value


def item_to_dict(item: Item) -> dict[str, Any]:
    return _jsonable(asdict(item))


def document_to_dict(doc: Document) -> dict[str, Any]:
    return {
        "doc_id": doc.doc_id,
        "title": doc.title,
        "project_id": doc.project_id,
        "item_count": doc.item_count,
        "tags": doc.tags,
        "items_index": [asdict(entry) for entry in doc.items_index],
        "created_at": doc.created_at.isoformat(),
        "updated_at": doc.updated_at.isoformat(),
        "items": [item_to_dict(item) for item in doc.items],
    }


def meta_to_dict(meta: DocMeta) -> dict[str, Any]:
    return _jsonable(asdict(meta))


def match_to_dict(match: SearchMatch) -> dict[str, Any]:
    return {
        "doc_id": match.doc_id,
        "doc_path": str(match.doc_path),
        "item": item_to_dict(match.item),
        "matched_fields": [_jsonable(asdict(f)) for f in match.matched_fields],
    }


def dump(data: Any, fmt: str) -> str:
    """Render plain data as JSON or YAML."""
    if fmt == "json":
        return json.dumps(data, indent=2, ensure_ascii=False)
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True).rstrip()


# ---------------------------------------------------------------------------
# Human output
# ---------------------------------------------------------------------------


def _when(dt: datetime | None) -> str:
    return dt.strftime("%Y-%m-%d %H:%M") if dt else "-"


def human_metas(metas: list[DocMeta]) -> str:
    if not metas:
        return "No request logs found."
    lines = []
    for meta in metas:
        lines.append(f"{meta.doc_id}  {meta.title}  ({meta.item_count} items, updated {_when(meta.updated_at)})")
        lines.append(f"    {meta.path}")
    return "\n".join(lines)


def human_items(items: list[Item]) -> str:
    if not items:
        return "No items."
    lines = []
    for item in items:
        if lines:
            lines.append("")
        lines.append(click.style(f"{item.id}  {item.title}", bold=True))
        lines.append(f"  {item.type or '-'} | {item.domain or '-'} | {item.priority or '-'} | {item.status or '-'}")
        if item.tags:
            lines.append(f"  tags: {', '.join(item.tags)}")
        if item.context:
            lines.append(f"  context: {item.context}")
        if item.notes:
            lines.extend(f"  {line}" for line in item.notes.splitlines())
    return "\n".join(lines)


def human_document(doc: Document) -> str:
    lines = [
        click.style(doc.doc_id, bold=True) + f"  {doc.title}",
        f"project: {doc.project_id}   items: {doc.item_count}   updated: {_when(doc.updated_at)}",
    ]
    if doc.tags:
        lines.append(f"tags: {', '.join(doc.tags)}")
    if doc.items:
        lines.append("")
        lines.append(human_items(doc.items))
    return "\n".join(lines)


def human_matches(matches: list[SearchMatch]) -> str:
    if not matches:
        return "No matches."
    lines = []
    for match in matches:
        lines.append(click.style(f"{match.item.id}  {match.item.title}", bold=True) + f"  [{match.doc_id}]")
        for f in match.matched_fields:
            lines.append(f"  {f.field}: {f.match_text}")
    lines.append("")
    lines.append(f"{len(matches)} match(es)")
    return "\n".join(lines)


def markdown_body(doc: Document) -> str:
    """The serialized item sections, without the frontmatter."""
    return serialize(doc).split("\n---\n", 1)[1].strip()


def rich_document(doc: Document) -> None:
    """Render the document's markdown body in a rich panel on stdout."""
    from rich.console import Console
    from rich.markdown import Markdown
    from rich.panel import Panel

    body = markdown_body(doc)
    console = Console()
    console.print(
        Panel(
            Markdown(body or "_No items yet._"),
            title=f"{doc.doc_id} {doc.title}",
            subtitle=f"{doc.item_count} items, updated {_when(doc.updated_at)}",
        )
    )


# ---------------------------------------------------------------------------
# CSV output
# ---------------------------------------------------------------------------


def to_csv(columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Header row plus one row per entry; fields are quoted only when needed."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(columns)
    writer.writerows(rows)
    return buffer.getvalue().rstrip("\n")


def metas_csv(metas: list[DocMeta]) -> str:
    return to_csv(
        META_CSV_COLUMNS,
        ([str(m.path), m.doc_id, m.title, m.item_count, m.updated_at.isoformat()] for m in metas),
    )


def matches_csv(matches: list[SearchMatch]) -> str:
    # several matched fields share one cell, separated by ";"
    return to_csv(
        MATCH_CSV_COLUMNS,
        (
            [
                m.doc_id,
                str(m.doc_path),
                m.item.id,
                m.item.title,
                m.item.type,
                ";".join(f.field for f in m.matched_fields),
                ";".join(f.match_text for f in m.matched_fields),
            ]
            for m in matches
        ),
    )
