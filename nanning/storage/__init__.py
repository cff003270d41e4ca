"""Storage interfaces for the Nanning application."""

from .database import BaseRepository, DatabaseManager, utc_timestamp
from .documents import DocumentRepository, DocumentStatus, DocumentType
from .errors import (
    AccessDenied,
    ConstraintViolation,
    CorruptRecord,
    IndexUnavailable,
    InitializationFailure,
    NotFound,
    StorageError,
    StorageFailure,
    ValidationError,
)
from .library import FolderRepository, SettingsRepository
from .presets import PRESET_THEMES
from .search import SearchIndex
from .themes import ThemeMode, ThemeRepository

__all__ = [
    "AccessDenied",
    "BaseRepository",
    "ConstraintViolation",
    "CorruptRecord",
    "DatabaseManager",
    "DocumentRepository",
    "DocumentStatus",
    "DocumentType",
    "FolderRepository",
    "IndexUnavailable",
    "InitializationFailure",
    "NotFound",
    "PRESET_THEMES",
    "SearchIndex",
    "SettingsRepository",
    "StorageError",
    "StorageFailure",
    "ThemeMode",
    "ThemeRepository",
    "ValidationError",
    "utc_timestamp",
]
