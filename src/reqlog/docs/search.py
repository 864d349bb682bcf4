"""Query parsing and matching over request-log items.

Query syntax:
    - plain text: matched against the item title, then its notes
    - ``tag:<v>`` / ``tags:<v>``: matched against the item's tags
    - ``type:<v>``: matched against the item type
    - ``status:<v>``: matched against the item status

Tokens are whitespace-separated; single or double quotes keep spaces inside
one token. Every component of a query must match (AND). Comparisons are
case-insensitive and use one MatchMode for the whole call.

Example::

    docs = store.load_all("~/docs/app")
    for match in search_documents(docs, 'tag:api status:triage "log in"'):
        print(match.doc_id, match.item.id, match.matched_fields[-1].match_text)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from enum import StrEnum

from reqlog.core.types import PathLike

from .config import MatchMode, SearchOptions
from .models import Document, Item

__all__ = [
    "ComponentKind",
    "MatchMode",
    "MatchedField",
    "QueryComponent",
    "SearchMatch",
    "SearchOptions",
    "extract_context",
    "find_match_position",
    "match_component",
    "match_item",
    "match_string",
    "parse_match_mode",
    "parse_query",
    "search_document",
    "search_documents",
    "tokenize",
]

DEFAULT_CONTEXT_RADIUS = 30
ELLIPSIS = "..."


class ComponentKind(StrEnum):
    TEXT = "text"
    TAG = "tag"
    ITEM_TYPE = "item_type"
    STATUS = "status"


_PREFIXES: tuple[tuple[str, ComponentKind], ...] = (
    ("tags:", ComponentKind.TAG),
    ("tag:", ComponentKind.TAG),
    ("type:", ComponentKind.ITEM_TYPE),
    ("status:", ComponentKind.STATUS),
)


@dataclass(frozen=True)
class QueryComponent:
    kind: ComponentKind
    value: str


@dataclass
class MatchedField:
    """Which field satisfied a component, with highlight offsets for text."""

    field: str
    match_text: str
    start: int | None = None
    end: int | None = None


@dataclass
class SearchMatch:
    item: Item
    doc_id: str
    doc_path: PathLike
    matched_fields: list[MatchedField] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def tokenize(query: str) -> list[str]:
    """Split on whitespace, keeping quoted spans together.

    An unterminated quote runs to the end of the string.
    """
    tokens: list[str] = []
    current: list[str] = []
    quote: str | None = None

    def flush() -> None:
        if current:
            tokens.append("".join(current))
            current.clear()

    for char in query:
        if quote:
            if char == quote:
                flush()
                quote = None
            else:
                current.append(char)
        elif char in ("'", '"'):
            flush()
            quote = char
        elif char.isspace():
            flush()
        else:
            current.append(char)
    flush()
    return tokens


def parse_query(query: str) -> list[QueryComponent]:
    """Parse a raw query into components. Never raises.

    A prefix with nothing after it (``tag:``) is dropped. Unknown prefixes
    are plain text.
    """
    if not query or not query.strip():
        return []

    components: list[QueryComponent] = []
    for token in tokenize(query.strip()):
        lowered = token.lower()
        for prefix, kind in _PREFIXES:
            if lowered.startswith(prefix):
                value = token[len(prefix) :]
                if value:
                    components.append(QueryComponent(kind, value))
                break
        else:
            components.append(QueryComponent(ComponentKind.TEXT, token))
    return components


def parse_match_mode(mode: str | None) -> MatchMode:
    """Normalize a user-supplied mode; anything unknown means ``contains``."""
    if not mode:
        return MatchMode.CONTAINS
    try:
        return MatchMode(str(mode).strip().lower())
    except ValueError:
        return MatchMode.CONTAINS


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def _fold(text: str) -> str:
    return (text or "").casefold()


def match_string(haystack: str, needle: str, mode: MatchMode = MatchMode.CONTAINS) -> bool:
    hay = _fold(haystack)
    pin = _fold(needle)
    if mode == MatchMode.FULL:
        return hay == pin
    if mode == MatchMode.STARTS:
        return hay.startswith(pin)
    return pin in hay


def find_match_position(haystack: str, needle: str) -> tuple[int, int] | None:
    """Character span in ``haystack`` of the first case-insensitive ``needle``.

    Case folding can change length ("İ" folds to two code points, "ß" to
    "ss"), so the match is found in the folded text and mapped back to
    original character offsets.
    """
    pin = _fold(needle)
    if not pin:
        return None
    folded: list[str] = []
    origin: list[int] = []
    for index, char in enumerate(haystack or ""):
        piece = char.casefold()
        folded.append(piece)
        origin.extend([index] * len(piece))
    pos = "".join(folded).find(pin)
    if pos == -1:
        return None
    return origin[pos], origin[pos + len(pin) - 1] + 1


def extract_context(text: str, start: int, end: int, radius: int = DEFAULT_CONTEXT_RADIUS) -> str:
    """Cut ``radius`` characters either side of a span, marking truncation."""
    lo = max(0, start - radius)
    hi = min(len(text), end + radius)
    snippet = text[lo:hi]
    if lo > 0:
        snippet = ELLIPSIS + snippet
    if hi < len(text):
        snippet = snippet + ELLIPSIS
    return snippet


def _text_match(field_name: str, text: str, needle: str, radius: int) -> MatchedField:
    pos = find_match_position(text, needle)
    if pos is None:
        return MatchedField(field=field_name, match_text=text)
    start, end = pos
    return MatchedField(field=field_name, match_text=extract_context(text, start, end, radius), start=start, end=end)


def match_component(
    item: Item,
    component: QueryComponent,
    mode: MatchMode = MatchMode.CONTAINS,
    context_radius: int = DEFAULT_CONTEXT_RADIUS,
) -> MatchedField | None:
    """Match one component against an item, or None."""
    value = component.value
    if component.kind == ComponentKind.TAG:
        tag = next((t for t in item.tags if match_string(t, value, mode)), None)
        return MatchedField(field="tags", match_text=tag) if tag is not None else None
    if component.kind == ComponentKind.ITEM_TYPE:
        return MatchedField(field="type", match_text=item.type) if match_string(item.type, value, mode) else None
    if component.kind == ComponentKind.STATUS:
        return MatchedField(field="status", match_text=item.status) if match_string(item.status, value, mode) else None

    # Text: title first, then notes
    if match_string(item.title, value, mode):
        return _text_match("title", item.title, value, context_radius)
    if match_string(item.notes, value, mode):
        return _text_match("notes", item.notes, value, context_radius)
    return None


def match_item(
    item: Item,
    components: list[QueryComponent],
    mode: MatchMode = MatchMode.CONTAINS,
    context_radius: int = DEFAULT_CONTEXT_RADIUS,
) -> list[MatchedField] | None:
    """All components must match; an empty component list matches nothing."""
    if not components:
        return None
    matched: list[MatchedField] = []
    for component in components:
        hit = match_component(item, component, mode, context_radius)
        if hit is None:
            return None
        matched.append(hit)
    return matched


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


def search_document(
    doc: Document,
    doc_path: PathLike,
    components: list[QueryComponent],
    options: SearchOptions | None = None,
) -> list[SearchMatch]:
    """Scan one document's items in order, stopping at ``options.limit``."""
    options = options or SearchOptions()
    matches: list[SearchMatch] = []
    for item in doc.items:
        fields = match_item(item, components, options.match_mode, options.context_radius)
        if fields is None:
            continue
        matches.append(SearchMatch(item=item, doc_id=doc.doc_id, doc_path=doc_path, matched_fields=fields))
        if options.limit > 0 and len(matches) >= options.limit:
            break
    return matches


def search_documents(
    docs: Iterable[tuple[Document, PathLike]],
    query: str,
    options: SearchOptions | None = None,
) -> list[SearchMatch]:
    """Search ``(doc, path)`` pairs in the given order.

    The query is parsed once. ``options.limit`` applies to the whole call,
    not per document. An empty query returns no matches.
    """
    options = options or SearchOptions()
    components = parse_query(query)
    if not components:
        return []

    results: list[SearchMatch] = []
    for doc, path in docs:
        if options.limit > 0:
            remaining = options.limit - len(results)
            if remaining <= 0:
                break
            doc_options = replace(options, limit=remaining)
        else:
            doc_options = options
        results.extend(search_document(doc, path, components, doc_options))
    return results
