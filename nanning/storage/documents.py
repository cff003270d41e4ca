"""Document store with soft deletion and JSON encoded tags."""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Mapping
from enum import Enum
from typing import Any, Iterable

from .database import BaseRepository, DatabaseManager, utc_timestamp
from .errors import (
    ConstraintViolation,
    CorruptRecord,
    IndexUnavailable,
    NotFound,
    ValidationError,
)
from .search import SearchIndex

logger = logging.getLogger(__name__)


class DocumentType(str, Enum):
    RICHTEXT = "richtext"
    CODE = "code"
    MARKDOWN = "markdown"


class DocumentStatus(str, Enum):
    """Lifecycle state of a document row.

    ``DELETED`` rows are invisible to reads but keep their identifier
    reserved until physically purged.
    """

    ACTIVE = "active"
    DELETED = "deleted"


DEFAULT_LANGUAGE = "plaintext"


def encode_tags(tags: Iterable[str] | None) -> str | None:
    """Encode an ordered tag sequence for storage."""
    if tags is None:
        return None
    if not isinstance(tags, (list, tuple)):
        raise ValidationError("Tags must be a sequence of strings")
    values = list(tags)
    if not all(isinstance(tag, str) for tag in values):
        raise ValidationError("Tags must be a sequence of strings")
    return json.dumps(values, ensure_ascii=False)


def decode_tags(raw: str | None, *, document_id: str | None = None) -> list[str]:
    """Decode a stored tag blob, refusing anything that is not a string list."""
    if raw in (None, ""):
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise CorruptRecord(f"Document {document_id!r} has undecodable tags") from exc
    if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
        raise CorruptRecord(f"Document {document_id!r} has malformed tags")
    return value


def _coerce_type(value: Any) -> str:
    try:
        return DocumentType(value).value
    except ValueError as exc:
        allowed = ", ".join(member.value for member in DocumentType)
        raise ValidationError(
            f"Unknown document type {value!r}; expected one of {allowed}"
        ) from exc


def _coerce_deleted(updates: Mapping[str, Any]) -> bool | None:
    """Return the requested deletion state, or ``None`` when unchanged."""
    deleted: bool | None = None
    if "status" in updates:
        try:
            deleted = DocumentStatus(updates["status"]) is DocumentStatus.DELETED
        except ValueError as exc:
            raise ValidationError(f"Unknown document status {updates['status']!r}") from exc
    if "is_deleted" in updates:
        flag = bool(updates["is_deleted"])
        if deleted is not None and flag != deleted:
            raise ValidationError("Conflicting status and is_deleted values")
        deleted = flag
    return deleted


class DocumentRepository(BaseRepository):
    """CRUD over documents; deletes are logical and mirrored into the index."""

    UPDATABLE_FIELDS = frozenset(
        {"title", "content", "type", "language", "folder_id", "tags", "is_deleted", "status"}
    )

    def __init__(self, db: DatabaseManager, search_index: SearchIndex | None = None) -> None:
        super().__init__(db)
        self.search_index = search_index or SearchIndex(db)

    def create(self, document: Mapping[str, Any]) -> dict[str, Any]:
        document = self._require_mapping(document, "Document")
        document_id = document.get("id")
        title = document.get("title")
        if not isinstance(document_id, str) or not document_id.strip():
            raise ValidationError("Document id is required")
        if not isinstance(title, str) or not title:
            raise ValidationError("Document title is required")
        content = document.get("content") or ""
        if not isinstance(content, str):
            raise ValidationError("Document content must be text")
        doc_type = _coerce_type(document.get("type") or DocumentType.RICHTEXT)
        language = document.get("language") or DEFAULT_LANGUAGE
        folder_id = document.get("folder_id") or None
        tags_json = encode_tags(document.get("tags"))
        now = utc_timestamp()

        with self.transaction() as connection:
            try:
                connection.execute(
                    """
                    INSERT INTO documents (
                        id, title, content, type, language, folder_id, tags,
                        created_at, updated_at, is_deleted
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0)
                    """,
                    (
                        document_id,
                        title,
                        content,
                        doc_type,
                        language,
                        folder_id,
                        tags_json,
                        now,
                        now,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ConstraintViolation(
                    f"Document {document_id!r} already exists"
                ) from exc
            self.search_index.index_document(connection, document_id, title, content)
            row = self._select(connection, document_id)
        logger.info("Created document", extra={"document_id": document_id, "type": doc_type})
        return self._decode_document_row(row)  # type: ignore[return-value]

    def update(self, document_id: str, updates: Mapping[str, Any]) -> dict[str, Any]:
        """Apply a partial update and advance ``updated_at``.

        A soft deleted document can only be targeted by an update that also
        clears the deletion flag, which is how documents are restored.
        """

        updates = self._require_mapping(updates, "Document update")
        unknown = set(updates) - self.UPDATABLE_FIELDS - {"id"}
        if unknown:
            raise ValidationError(
                "Unknown document fields: " + ", ".join(sorted(unknown))
            )
        deleted = _coerce_deleted(updates)

        assignments: list[str] = []
        values: list[Any] = []
        for key in ("title", "content", "language", "folder_id"):
            if key not in updates:
                continue
            value = updates[key]
            if key == "title" and (not isinstance(value, str) or not value):
                raise ValidationError("Document title is required")
            if key == "content":
                value = value or ""
                if not isinstance(value, str):
                    raise ValidationError("Document content must be text")
            if key == "language":
                value = value or DEFAULT_LANGUAGE
            assignments.append(f"{key} = ?")
            values.append(value)
        if "type" in updates:
            assignments.append("type = ?")
            values.append(_coerce_type(updates["type"] or DocumentType.RICHTEXT))
        if "tags" in updates:
            assignments.append("tags = ?")
            values.append(encode_tags(updates["tags"]))
        if deleted is not None:
            assignments.append("is_deleted = ?")
            values.append(int(deleted))

        with self.transaction() as connection:
            current = self._select(connection, document_id)
            if current is None:
                raise NotFound(f"Document {document_id!r} not found")
            if current["is_deleted"] and deleted is not False:
                raise NotFound(f"Document {document_id!r} not found")
            assignments.append("updated_at = ?")
            values.append(utc_timestamp(after=current["updated_at"]))
            connection.execute(
                f"UPDATE documents SET {', '.join(assignments)} WHERE id = ?",
                [*values, document_id],
            )
            row = self._select(connection, document_id)
            self.search_index.index_document(
                connection,
                document_id,
                row["title"],
                row["content"],
                deleted=bool(row["is_deleted"]),
            )
        logger.info(
            "Updated document",
            extra={
                "document_id": document_id,
                "fields": sorted(key for key in updates if key != "id"),
            },
        )
        return self._decode_document_row(row)  # type: ignore[return-value]

    def delete(self, document_id: str) -> dict[str, Any]:
        """Soft delete ``document_id`` through the regular update path."""
        record = self.update(document_id, {"is_deleted": True})
        logger.info("Soft deleted document", extra={"document_id": document_id})
        return record

    def get(self, document_id: str) -> dict[str, Any] | None:
        row = self._fetchone(
            "SELECT * FROM documents WHERE id = ? AND is_deleted = 0",
            (document_id,),
        )
        return self._decode_document_row(row)

    def list_all(self) -> list[dict[str, Any]]:
        rows = self._fetchall(
            "SELECT * FROM documents WHERE is_deleted = 0 ORDER BY updated_at DESC"
        )
        return [self._decode_document_row(row) for row in rows]  # type: ignore[misc]

    def search(self, query: str) -> list[dict[str, Any]]:
        """Search live documents, preferring the full-text index."""
        if not isinstance(query, str):
            raise ValidationError("Search query must be text")
        if not query.strip():
            return self.list_all()
        try:
            rows = self.search_index.query(query)
        except IndexUnavailable as exc:
            logger.info(
                "Falling back to substring search",
                extra={"query": query, "reason": str(exc)},
            )
            rows = self._substring_match(query)
        return [self._decode_document_row(row) for row in rows]  # type: ignore[misc]

    def _substring_match(self, query: str) -> list[sqlite3.Row]:
        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        return self._fetchall(
            """
            SELECT * FROM documents
            WHERE is_deleted = 0
              AND (title LIKE ? ESCAPE '\\' OR content LIKE ? ESCAPE '\\')
            ORDER BY updated_at DESC
            """,
            (pattern, pattern),
        )

    @staticmethod
    def _select(connection: sqlite3.Connection, document_id: str) -> sqlite3.Row | None:
        return connection.execute(
            "SELECT * FROM documents WHERE id = ?", (document_id,)
        ).fetchone()

    @staticmethod
    def _decode_document_row(row: sqlite3.Row | None) -> dict[str, Any] | None:
        if row is None:
            return None
        record = {key: row[key] for key in row.keys()}
        record["tags"] = decode_tags(record.get("tags"), document_id=record.get("id"))
        record["is_deleted"] = bool(record.get("is_deleted"))
        record["status"] = (
            DocumentStatus.DELETED if record["is_deleted"] else DocumentStatus.ACTIVE
        ).value
        return record


__all__ = [
    "DEFAULT_LANGUAGE",
    "DocumentRepository",
    "DocumentStatus",
    "DocumentType",
    "decode_tags",
    "encode_tags",
]
