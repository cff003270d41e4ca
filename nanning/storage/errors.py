"""Error taxonomy for the local persistence layer.

Every public storage operation raises one of these classes instead of a raw
:mod:`sqlite3` exception. The ``kind`` attribute is stable and is what the
request bridge reports to callers alongside the human readable message.
"""

from __future__ import annotations


class StorageError(RuntimeError):
    """Base class for all persistence layer failures."""

    kind = "StorageError"


class InitializationFailure(StorageError):
    """Storage could not be opened or its schema could not be ensured."""

    kind = "InitializationFailure"


class ConstraintViolation(StorageError):
    """A record with the same identifier already exists."""

    kind = "ConstraintViolation"


class NotFound(StorageError):
    """The targeted record does not exist or has been soft deleted."""

    kind = "NotFound"


class CorruptRecord(StorageError):
    """A structured field stored on a record could not be decoded."""

    kind = "CorruptRecord"


class AccessDenied(StorageError):
    """A path falls outside the private data root."""

    kind = "AccessDenied"


class ValidationError(StorageError):
    """The caller supplied a malformed payload."""

    kind = "ValidationError"


class StorageFailure(StorageError):
    """Any other storage engine failure."""

    kind = "StorageFailure"


class IndexUnavailable(StorageError):
    """Internal signal: the full-text index is missing.

    Never surfaced to callers; search falls back to substring matching.
    """

    kind = "IndexUnavailable"


__all__ = [
    "AccessDenied",
    "ConstraintViolation",
    "CorruptRecord",
    "IndexUnavailable",
    "InitializationFailure",
    "NotFound",
    "StorageError",
    "StorageFailure",
    "ValidationError",
]
