"""Identifier scheme for request-log documents and items.

Document ids look like ``REQ-20251203-capture-app`` and item ids append a
two-digit counter: ``REQ-20251203-capture-app-01``. Parsing is total: the
``parse_*`` functions return None instead of raising so they can be used as
filters.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime

from reqlog.core.exceptions import InvalidInputError

DOC_ID_PREFIX = "REQ"
MAX_ITEM_NUMBER = 99

DOC_ID_PATTERN = re.compile(rf"^{DOC_ID_PREFIX}-([0-9]{{8}})-([a-z0-9-]+)$")
ITEM_ID_PATTERN = re.compile(rf"^{DOC_ID_PREFIX}-([0-9]{{8}})-([a-z0-9-]+)-([0-9]{{2}})$")

_SEPARATOR_RE = re.compile(r"[\s_]+")
_INVALID_SLUG_CHARS_RE = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUN_RE = re.compile(r"-+")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
_PATH_SEPARATORS_RE = re.compile(r"[/\\]")


@dataclass(frozen=True)
class ParsedDocId:
    date: date
    project_slug: str


@dataclass(frozen=True)
class ParsedItemId:
    doc_id: str
    item_number: int
    date: date
    project_slug: str


# ---------------------------------------------------------------------------
# Slugs
# ---------------------------------------------------------------------------


def slugify(text: str) -> str:
    """Convert text to a lowercase, hyphen-separated slug.

    >>> slugify("My Project Name")
    'my-project-name'
    >>> slugify("under_score_text")
    'under-score-text'
    >>> slugify("Special!@#$%Characters")
    'specialcharacters'
    """
    if not text or not isinstance(text, str):
        return ""
    slug = _SEPARATOR_RE.sub("-", text.lower().strip())
    slug = _INVALID_SLUG_CHARS_RE.sub("", slug)
    slug = _HYPHEN_RUN_RE.sub("-", slug)
    return slug.strip("-")


def sanitize_path_segment(text: str) -> str:
    """Slugify text for use as a single path segment.

    Control characters, path separators and ``..`` are removed before
    slugifying, so the result never contains a separator or traversal token.

    >>> sanitize_path_segment("../etc/passwd")
    'etcpasswd'
    """
    if not text or not isinstance(text, str):
        return ""
    cleaned = _CONTROL_CHARS_RE.sub("", text)
    cleaned = _PATH_SEPARATORS_RE.sub("", cleaned)
    cleaned = cleaned.replace("..", "")
    return slugify(cleaned)


def generate_default_project_path(pattern: str, project_name: str) -> str:
    """Substitute ``{name}`` in ``pattern`` with the sanitized project name."""
    safe_name = sanitize_path_segment(project_name) or "untitled"
    return pattern.replace("{name}", safe_name)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


def generate_doc_id(project_slug: str, when: date | datetime | None = None) -> str:
    """Build ``REQ-YYYYMMDD-<slug>`` for a project.

    Raises:
        InvalidInputError: If the project identifier slugifies to nothing.
    """
    normalized = slugify(project_slug)
    if not normalized:
        raise InvalidInputError(f"Invalid project slug: {project_slug!r}")
    when = when or date.today()
    return f"{DOC_ID_PREFIX}-{when.strftime('%Y%m%d')}-{normalized}"


def generate_item_id(doc_id: str, item_number: int) -> str:
    """Build ``<doc_id>-NN`` for the given item number (1-99).

    Raises:
        InvalidInputError: On an invalid doc id or out-of-range number.
    """
    if not is_valid_doc_id(doc_id):
        raise InvalidInputError(f"Invalid document ID: {doc_id!r}")
    if (
        isinstance(item_number, bool)
        or not isinstance(item_number, int)
        or not 1 <= item_number <= MAX_ITEM_NUMBER
    ):
        raise InvalidInputError(
            f"Item number must be an integer between 1 and {MAX_ITEM_NUMBER}, got: {item_number!r}"
        )
    return f"{doc_id}-{item_number:02d}"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse_date(date_str: str) -> date | None:
    try:
        return date(int(date_str[:4]), int(date_str[4:6]), int(date_str[6:8]))
    except ValueError:
        return None


def parse_doc_id(doc_id: str) -> ParsedDocId | None:
    """Split a document id into its date and project slug, or None."""
    if not doc_id or not isinstance(doc_id, str):
        return None
    m = DOC_ID_PATTERN.match(doc_id)
    if not m:
        return None
    parsed_date = _parse_date(m.group(1))
    if parsed_date is None:
        return None
    return ParsedDocId(date=parsed_date, project_slug=m.group(2))


def parse_item_id(item_id: str) -> ParsedItemId | None:
    """Split an item id into doc id, number, date and project slug, or None."""
    if not item_id or not isinstance(item_id, str):
        return None
    m = ITEM_ID_PATTERN.match(item_id)
    if not m:
        return None
    doc_id = f"{DOC_ID_PREFIX}-{m.group(1)}-{m.group(2)}"
    parsed_doc = parse_doc_id(doc_id)
    if parsed_doc is None:
        return None
    return ParsedItemId(
        doc_id=doc_id,
        item_number=int(m.group(3)),
        date=parsed_doc.date,
        project_slug=parsed_doc.project_slug,
    )


def is_valid_doc_id(doc_id: str) -> bool:
    return parse_doc_id(doc_id) is not None


def is_valid_item_id(item_id: str) -> bool:
    return parse_item_id(item_id) is not None


def _id_of(item: object) -> object:
    if isinstance(item, str):
        return item
    if isinstance(item, Mapping):
        return item.get("id")
    return getattr(item, "id", None)


def get_next_item_number(items: Iterable[object]) -> int:
    """Return one past the highest parseable item number, or 1.

    Accepts items with an ``id`` attribute, mappings with an ``"id"`` key,
    or raw id strings. Unparseable ids are ignored. Gaps are not filled.
    """
    numbers = [parsed.item_number for parsed in (parse_item_id(_id_of(i)) for i in items or ()) if parsed]
    if not numbers:
        return 1
    return max(numbers) + 1
