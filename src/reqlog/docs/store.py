"""Document store: request-log markdown files on the local filesystem.

``DocStore`` is the port that UIs, the CLI and other adapters call into.
``FileDocStore`` implements it with one file per document and a single
``.bak`` slot per file holding the version before the most recent write.

The store assumes one writer per path. There is no locking and writes are
not atomic; the backup slot is the only recovery mechanism.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loguru import logger

from reqlog.core.clock import Clock, system_clock
from reqlog.core.exceptions import (
    DocumentParseError,
    FileIOError,
    InvalidInputError,
    NotARequestLogError,
    NotFoundError,
)
from reqlog.core.types import PathLike
from reqlog.core.utils.file_io import backup_file, expand_path, nearest_existing_parent, safe_write

from .config import StoreConfig
from .ids import MAX_ITEM_NUMBER, generate_doc_id, generate_item_id, get_next_item_number
from .models import DocMeta, Document, Item, ItemDraft
from .serializer import parse, serialize


@runtime_checkable
class DocStore(Protocol):
    """Port for request-log document persistence."""

    def list(self, directory: PathLike) -> list[DocMeta]:
        """Return metadata for every request-log document in ``directory``,
        most recently updated first."""
        ...

    def read(self, path: PathLike) -> Document:
        """Read and parse one document."""
        ...

    def write(self, path: PathLike, doc: Document) -> Path:
        """Write a complete document, backing up any existing file first."""
        ...

    def append(self, path: PathLike, draft: ItemDraft, clock: Clock | None = None) -> Document:
        """Append an item to an existing document and return the result."""
        ...

    def backup(self, path: PathLike) -> Path:
        """Copy a file into its backup slot and return the backup path."""
        ...

    def is_writable(self, path: PathLike) -> bool:
        """Whether ``path`` could be written right now."""
        ...


class FileDocStore:
    """Filesystem-backed DocStore.

    Example::

        store = FileDocStore(StoreConfig(base_dir="/srv/reqlog"))
        path, doc = store.create("~/docs/app", "app", [ItemDraft(title="Login fails")])
        store.append(path, ItemDraft(title="Dark mode", tags=["ux"]))
        for meta in store.list("~/docs/app"):
            print(meta.doc_id, meta.item_count)
    """

    def __init__(self, config: StoreConfig | None = None, log: Any = None) -> None:
        self.config = config or StoreConfig()
        self._log = log or logger

    def resolve(self, path: PathLike) -> Path:
        """Expand a leading ``~`` against the configured base directory."""
        return expand_path(path, self.config.base_dir)

    # -- Listing --------------------------------------------------------------

    def list(self, directory: PathLike) -> list[DocMeta]:
        """List request-log documents in ``directory`` (non-recursive).

        Files that are not request logs are skipped quietly, malformed or
        unreadable ones with a warning. A missing directory lists as empty.
        """
        root = self.resolve(directory)
        if not root.exists():
            return []
        if not root.is_dir():
            raise FileIOError(f"Failed to list documents in {root}: not a directory")

        try:
            candidates = sorted(
                p for p in root.iterdir() if p.name.endswith(self.config.extension) and p.is_file()
            )
        except OSError as e:
            raise FileIOError(f"Failed to list documents in {root}: {e}") from e

        metas: list[DocMeta] = []
        for path in candidates:
            try:
                doc = parse(path.read_text(encoding=self.config.encoding), source=path)
            except NotARequestLogError as e:
                self._log.debug(f"Skipping {path}: {e.reason}")
                continue
            except DocumentParseError as e:
                self._log.warning(f"Skipping malformed document {path}: {e.reason}")
                continue
            except (OSError, UnicodeDecodeError) as e:
                self._log.warning(f"Skipping unreadable file {path}: {e}")
                continue
            metas.append(doc.to_meta(path))

        metas.sort(key=lambda m: m.updated_at.timestamp(), reverse=True)
        return metas

    def load_all(self, directory: PathLike) -> list[tuple[Document, Path]]:
        """Read every listed document, for feeding into search."""
        docs: list[tuple[Document, Path]] = []
        for meta in self.list(directory):
            try:
                docs.append((self.read(meta.path), meta.path))
            except (NotFoundError, DocumentParseError) as e:
                # Changed on disk between list and read.
                self._log.warning(f"Skipping {meta.path}: {e}")
        return docs

    # -- Read / write ---------------------------------------------------------

    def read(self, path: PathLike) -> Document:
        """Read and parse a document.

        Raises:
            NotFoundError: No file at ``path``.
            DocumentParseError: The file is not a valid request log.
            FileIOError: The file could not be read.
        """
        target = self.resolve(path)
        if not target.is_file():
            raise NotFoundError(f"Document not found: {target}", target)
        try:
            content = target.read_text(encoding=self.config.encoding)
        except FileNotFoundError as e:
            raise NotFoundError(f"Document not found: {target}", target) from e
        except (OSError, UnicodeDecodeError) as e:
            raise FileIOError(f"Failed to read document {target}: {e}") from e
        return parse(content, source=target)

    def write(self, path: PathLike, doc: Document) -> Path:
        """Serialize ``doc`` to ``path``.

        Parent directories are created as needed. If a file already exists
        it is copied to the backup slot before being overwritten; a new file
        never triggers a backup.
        """
        target = self.resolve(path)
        content = serialize(doc)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if target.exists():
                self.backup(target)
            safe_write(target, content, encoding=self.config.encoding)
        except OSError as e:
            raise FileIOError(f"Failed to write document {target}: {e}") from e
        self._log.debug(f"Wrote {doc.doc_id} ({doc.item_count} items) to {target}")
        return target

    def append(self, path: PathLike, draft: ItemDraft, clock: Clock | None = None) -> Document:
        """Append ``draft`` to the document at ``path``.

        Never creates a document. The item gets the next free number and the
        clock's current time; the previous file version lands in the backup
        slot.

        Raises:
            NotFoundError: No document at ``path``.
            InvalidInputError: The document already holds item number 99.
        """
        return self.extend(path, [draft], clock=clock)

    def extend(self, path: PathLike, drafts: Iterable[ItemDraft], clock: Clock | None = None) -> Document:
        """Append several drafts with one read and one write.

        Numbers are checked for every draft before anything is written, so
        either all drafts land or none do, and the backup slot holds the
        version from before the call.

        Raises:
            NotFoundError: No document at ``path``.
            InvalidInputError: No drafts, or the drafts would run past item 99.
        """
        clock = clock or system_clock
        drafts = list(drafts)
        if not drafts:
            raise InvalidInputError("Nothing to append")
        doc = self.read(path)

        first = get_next_item_number(doc.items)
        last = first + len(drafts) - 1
        if last > MAX_ITEM_NUMBER:
            raise InvalidInputError(
                f"{doc.doc_id} has room for {max(MAX_ITEM_NUMBER - first + 1, 0)} more item(s), got {len(drafts)}"
            )

        updated = doc
        for number, draft in enumerate(drafts, start=first):
            now = clock.now()
            updated = updated.with_item(Item.from_draft(draft, generate_item_id(doc.doc_id, number), now), now)

        self.write(path, updated)
        added = [item.id for item in updated.items[-len(drafts) :]]
        self._log.info(f"Appended {', '.join(added)} to {doc.doc_id}")
        return updated

    def create(
        self,
        directory: PathLike,
        project_id: str,
        drafts: Iterable[ItemDraft] = (),
        *,
        title: str | None = None,
        clock: Clock | None = None,
    ) -> tuple[Path, Document]:
        """Create ``<directory>/<doc_id><extension>`` with items numbered from 1.

        Raises:
            InvalidInputError: Bad project id, too many drafts, or the
                document file already exists.
        """
        clock = clock or system_clock
        now = clock.now()
        doc_id = generate_doc_id(project_id, now)
        drafts = list(drafts)
        if len(drafts) > MAX_ITEM_NUMBER:
            raise InvalidInputError(f"A document holds at most {MAX_ITEM_NUMBER} items, got {len(drafts)}")

        target = self.resolve(directory) / f"{doc_id}{self.config.extension}"
        if target.exists():
            raise InvalidInputError(f"Document already exists: {target}")

        doc = Document(
            doc_id=doc_id,
            title=title or f"{project_id} request log",
            project_id=project_id,
            created_at=now,
            updated_at=now,
            items=[Item.from_draft(d, generate_item_id(doc_id, n), now) for n, d in enumerate(drafts, start=1)],
        )
        return self.write(target, doc), doc

    # -- Backup / permissions -------------------------------------------------

    def backup(self, path: PathLike) -> Path:
        """Copy ``path`` to its single backup slot, replacing any older backup.

        Raises:
            NotFoundError: Nothing to back up.
            FileIOError: The copy failed.
        """
        target = self.resolve(path)
        if not target.is_file():
            raise NotFoundError(f"Cannot back up missing file: {target}", target)
        try:
            backup = backup_file(target, self.config.backup_suffix)
        except OSError as e:
            raise FileIOError(f"Failed to create backup of {target}: {e}") from e
        self._log.debug(f"Backed up {target} to {backup}")
        return backup

    def is_writable(self, path: PathLike) -> bool:
        """Check write permission without raising.

        Existing paths are checked directly. For a new path, the nearest
        existing ancestor must be a writable directory.
        """
        try:
            target = self.resolve(path)
            if target.exists():
                return os.access(target, os.W_OK)
            parent = nearest_existing_parent(target)
            return parent is not None and parent.is_dir() and os.access(parent, os.W_OK)
        except (OSError, ValueError, TypeError):
            return False
