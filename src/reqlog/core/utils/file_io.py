"""
File I/O utilities: tilde expansion, safe write, single-slot backups.

All functions operate on explicit paths.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from reqlog.core.types import PathLike

BACKUP_SUFFIX = ".bak"


def expand_path(path: PathLike, base_dir: PathLike | None = None) -> Path:
    """Expand a leading ``~`` against ``base_dir`` (home directory when None).

    Only ``~`` and ``~/...`` are expanded. ``~user`` forms are returned
    unchanged. The base directory is looked up on every call.
    """
    raw = os.fspath(path)
    if raw != "~" and not raw.startswith(("~/", "~" + os.sep)):
        return Path(raw)

    base = Path(base_dir) if base_dir is not None else Path.home()
    rest = raw[2:]
    return base / rest if rest else base


def safe_write(filepath: PathLike, content: str, encoding: str = "utf-8") -> None:
    """Write content to a file, creating parent directories as needed."""
    target = Path(filepath)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding=encoding)


def backup_path_for(file_path: PathLike, suffix: str = BACKUP_SUFFIX) -> Path:
    """Return the single backup slot for ``file_path``."""
    return Path(os.fspath(file_path) + suffix)


def backup_file(file_path: PathLike, suffix: str = BACKUP_SUFFIX) -> Path:
    """Copy ``file_path`` to its backup slot, replacing any previous backup.

    Raises:
        FileNotFoundError: If the source does not exist.
        OSError: If the copy fails.
    """
    src = Path(file_path)
    if not src.is_file():
        raise FileNotFoundError(f"Source file not found: {src}")
    dest = backup_path_for(src, suffix)
    shutil.copy2(str(src), str(dest))
    return dest


def nearest_existing_parent(path: PathLike) -> Path | None:
    """Walk upward from ``path`` and return the first ancestor that exists."""
    current = Path(os.path.abspath(os.fspath(path)))
    for candidate in current.parents:
        if candidate.exists():
            return candidate
    return None
