"""
reqlog exception hierarchy.

All reqlog exceptions inherit from ReqlogError, making it easy for consumers
to catch library-level errors while still distinguishing specific failure modes.
"""

from __future__ import annotations


class ReqlogError(Exception):
    """Base exception class for all reqlog errors."""


class ConfigurationError(ReqlogError):
    """Raised for configuration errors (missing keys, invalid values)."""


class InvalidInputError(ReqlogError, ValueError):
    """Raised for bad identifiers, slugs, or item drafts (caller bug)."""


class NotFoundError(ReqlogError, LookupError):
    """Raised when a document or file does not exist."""

    def __init__(self, message: str, path: object = None):
        super().__init__(message)
        self.path = path


class DocumentParseError(ReqlogError):
    """Raised when a request-log document is recognizable but malformed."""

    def __init__(self, reason: str, source: object = None):
        self.reason = reason
        self.source = source
        where = f" in {source}" if source is not None else ""
        super().__init__(f"Failed to parse request-log document{where}: {reason}")


class NotARequestLogError(DocumentParseError):
    """Raised when text carries no recognizable request-log identifier."""


class FileIOError(ReqlogError):
    """Raised for file I/O errors."""


def describe_validation_error(error) -> str:
    """Flatten a pydantic ValidationError to ``search.limit: <msg>; ...``."""
    parts = []
    for err in error.errors():
        location = ".".join(str(p) for p in err["loc"]) or "input"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)
