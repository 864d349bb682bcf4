"""Request-log documents: identifiers, models, codec, store, and search.

Provides the document model, a markdown/YAML serializer, the DocStore port
with a filesystem implementation, and a small AND-combined query language.
"""

from .config import MatchMode, SearchOptions, StoreConfig
from .ids import (
    generate_doc_id,
    generate_item_id,
    get_next_item_number,
    parse_doc_id,
    parse_item_id,
    sanitize_path_segment,
    slugify,
)
from .models import DocMeta, Document, Item, ItemDraft, ItemIndexEntry
from .search import SearchMatch, parse_query, search_document, search_documents
from .serializer import parse, serialize
from .store import DocStore, FileDocStore

__all__ = [
    "DocMeta",
    "DocStore",
    "Document",
    "FileDocStore",
    "Item",
    "ItemDraft",
    "ItemIndexEntry",
    "MatchMode",
    "SearchMatch",
    "SearchOptions",
    "StoreConfig",
    "generate_doc_id",
    "generate_item_id",
    "get_next_item_number",
    "parse",
    "parse_doc_id",
    "parse_item_id",
    "parse_query",
    "sanitize_path_segment",
    "search_document",
    "search_documents",
    "serialize",
    "slugify",
]
