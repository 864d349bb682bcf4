"""Shared type aliases used across reqlog."""

from pathlib import Path
from typing import Any

# Merged settings and parsed config files
ConfigDict = dict[str, Any]

# Accepted wherever a filesystem path is; a leading "~" expands against the
# store's base directory
PathLike = str | Path

# Label carried by parse errors, usually the file the text came from
DocSource = PathLike | None
