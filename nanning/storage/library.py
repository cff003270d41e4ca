"""Folder and key/value settings repositories."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Mapping
from typing import Any

from .database import BaseRepository, utc_timestamp
from .errors import ConstraintViolation, ValidationError

logger = logging.getLogger(__name__)


class FolderRepository(BaseRepository):
    """Flat folder records; ``parent_id`` is not enforced as a foreign key."""

    def create(self, folder: Mapping[str, Any]) -> dict[str, Any]:
        folder = self._require_mapping(folder, "Folder")
        folder_id = folder.get("id")
        name = folder.get("name")
        if not isinstance(folder_id, str) or not folder_id.strip():
            raise ValidationError("Folder id is required")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Folder name is required")
        now = utc_timestamp()
        with self.transaction() as connection:
            try:
                connection.execute(
                    """
                    INSERT INTO folders (id, name, parent_id, icon, color, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        folder_id,
                        name,
                        folder.get("parent_id") or None,
                        folder.get("icon") or None,
                        folder.get("color") or None,
                        now,
                        now,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ConstraintViolation(f"Folder {folder_id!r} already exists") from exc
        logger.info("Created folder", extra={"folder_id": folder_id})
        return self.get(folder_id)  # type: ignore[return-value]

    def get(self, folder_id: str) -> dict[str, Any] | None:
        row = self._fetchone("SELECT * FROM folders WHERE id = ?", (folder_id,))
        return self._row_to_dict(row)

    def list_all(self) -> list[dict[str, Any]]:
        rows = self._fetchall("SELECT * FROM folders ORDER BY name")
        return [self._row_to_dict(row) for row in rows]  # type: ignore[misc]


class SettingsRepository(BaseRepository):
    """Plain text key/value settings."""

    def get(self, key: str) -> str | None:
        row = self._fetchone("SELECT value FROM settings WHERE key = ?", (key,))
        return row["value"] if row else None

    def set(self, key: str, value: str | None) -> None:
        if not isinstance(key, str) or not key:
            raise ValidationError("Setting key is required")
        if value is not None and not isinstance(value, str):
            raise ValidationError("Setting values must be text")
        with self.transaction() as connection:
            connection.execute(
                """
                INSERT INTO settings (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value, utc_timestamp()),
            )


__all__ = ["FolderRepository", "SettingsRepository"]
