"""Request/response surface over the persistence layer.

The host creates one :class:`StorageBridge` at startup, calls :meth:`init`,
and hands the bridge to whatever layer marshals UI requests. Every public
method returns a :class:`Result` envelope; storage engine exceptions never
escape.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import asdict, dataclass
from typing import Any, Callable, Mapping

from .config import StorageSettings
from .logging import log_call
from .sandbox import SandboxedFileAccess
from .storage import (
    PRESET_THEMES,
    DatabaseManager,
    DocumentRepository,
    FolderRepository,
    NotFound,
    SearchIndex,
    SettingsRepository,
    StorageError,
    StorageFailure,
    ThemeRepository,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Result:
    """Success/failure envelope returned by every bridge call."""

    success: bool
    data: Any = None
    error: str | None = None
    kind: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "Result":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, exc: StorageError) -> "Result":
        return cls(success=False, error=str(exc), kind=exc.kind)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class StorageBridge:
    """Own the persistence handle and expose the application call surface."""

    def __init__(self, settings: StorageSettings) -> None:
        self.settings = settings
        self.database = DatabaseManager(
            settings.database_path,
            journal_mode=settings.journal_mode,
            search_index=settings.search_index,
        )
        self.search_index = SearchIndex(self.database)
        self.documents = DocumentRepository(self.database, self.search_index)
        self.themes = ThemeRepository(self.database)
        self.folders = FolderRepository(self.database)
        self.preferences = SettingsRepository(self.database)
        self.files = SandboxedFileAccess(settings.files_root)

    def _call(self, operation: str, func: Callable[[], Any]) -> Result:
        try:
            return Result.ok(func())
        except StorageError as exc:
            return Result.fail(exc)
        except sqlite3.Error as exc:
            logger.exception("Unexpected storage engine error", extra={"operation": operation})
            return Result.fail(StorageFailure(f"{operation} failed: {exc}"))

    @staticmethod
    def _require(record: Any, message: str) -> Any:
        if record is None:
            raise NotFound(message)
        return record

    # ------------------------------------------------------------------
    # Lifecycle
    @log_call(logger=logger, level=logging.INFO)
    def init(self) -> Result:
        """Open storage; safe to call repeatedly."""

        def _open() -> dict[str, Any]:
            already_open = self.database.is_open
            self.database.initialize()
            if not already_open:
                self.settings.files_root.mkdir(parents=True, exist_ok=True)
                if self.settings.seed_presets:
                    self.themes.seed_presets(PRESET_THEMES)
            return {
                "database_path": str(self.database.path),
                "files_root": str(self.files.root),
                "search_index": self.search_index.is_available(),
            }

        def _guarded() -> dict[str, Any]:
            try:
                return _open()
            except OSError as exc:
                raise StorageFailure(f"Unable to prepare data directory: {exc}") from exc

        return self._call("init", _guarded)

    @log_call(logger=logger, level=logging.INFO)
    def close(self) -> Result:
        return self._call("close", self.database.close)

    # ------------------------------------------------------------------
    # Documents
    @log_call(logger=logger)
    def create_document(self, document: Mapping[str, Any]) -> Result:
        return self._call("createDocument", lambda: self.documents.create(document))

    @log_call(logger=logger)
    def update_document(self, document_id: str, updates: Mapping[str, Any]) -> Result:
        return self._call(
            "updateDocument", lambda: self.documents.update(document_id, updates)
        )

    @log_call(logger=logger)
    def get_document(self, document_id: str) -> Result:
        return self._call(
            "getDocument",
            lambda: self._require(
                self.documents.get(document_id), f"Document {document_id!r} not found"
            ),
        )

    @log_call(logger=logger)
    def list_documents(self) -> Result:
        return self._call("listDocuments", self.documents.list_all)

    @log_call(logger=logger)
    def search_documents(self, query: str) -> Result:
        return self._call("searchDocuments", lambda: self.documents.search(query))

    @log_call(logger=logger)
    def delete_document(self, document_id: str) -> Result:
        return self._call("deleteDocument", lambda: self.documents.delete(document_id))

    # ------------------------------------------------------------------
    # Themes
    @log_call(logger=logger)
    def save_theme(self, theme: Mapping[str, Any]) -> Result:
        return self._call("saveTheme", lambda: self.themes.save(theme))

    @log_call(logger=logger)
    def get_theme(self, theme_id: str) -> Result:
        return self._call(
            "getTheme",
            lambda: self._require(self.themes.get(theme_id), f"Theme {theme_id!r} not found"),
        )

    @log_call(logger=logger)
    def list_themes(self) -> Result:
        return self._call("listThemes", self.themes.list_all)

    @log_call(logger=logger)
    def delete_theme(self, theme_id: str) -> Result:
        """Return the number of deleted rows; ``0`` means missing or preset."""
        return self._call("deleteTheme", lambda: self.themes.delete(theme_id))

    # ------------------------------------------------------------------
    # Folders and settings
    @log_call(logger=logger)
    def create_folder(self, folder: Mapping[str, Any]) -> Result:
        return self._call("createFolder", lambda: self.folders.create(folder))

    @log_call(logger=logger)
    def list_folders(self) -> Result:
        return self._call("listFolders", self.folders.list_all)

    @log_call(logger=logger)
    def get_setting(self, key: str) -> Result:
        return self._call("getSetting", lambda: self.preferences.get(key))

    @log_call(logger=logger)
    def set_setting(self, key: str, value: str | None) -> Result:
        return self._call("setSetting", lambda: self.preferences.set(key, value))

    # ------------------------------------------------------------------
    # Sandboxed files
    @log_call(logger=logger)
    def resolve_path(self, candidate: object) -> Result:
        return self._call("resolvePath", lambda: str(self.files.resolve(candidate)))

    @log_call(logger=logger)
    def read_file(self, candidate: object) -> Result:
        return self._call("readFile", lambda: self.files.read_text(candidate))

    @log_call(logger=logger, include_args=False)
    def write_file(self, candidate: object, content: str) -> Result:
        return self._call(
            "writeFile", lambda: str(self.files.write_text(candidate, content))
        )

    @log_call(logger=logger)
    def file_exists(self, candidate: object) -> Result:
        return self._call("exists", lambda: self.files.exists(candidate))


__all__ = ["Result", "StorageBridge"]
