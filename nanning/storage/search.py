"""Full-text search index over document titles and content.

The index is an FTS5 table keyed by document id. It is kept consistent by
explicit write-path hooks: every document mutation calls
:meth:`SearchIndex.index_document` inside the same transaction, which deletes
the previous entry and inserts the current title and content (or nothing,
when the document is soft deleted).

The table uses the ``trigram`` tokenizer so a term matches anywhere inside a
word, including runs of CJK text that have no spaces. That keeps index hits
in line with the substring fallback. Trigrams cannot match terms shorter
than three characters, so such queries are handed to the fallback.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from typing import TYPE_CHECKING

from .errors import IndexUnavailable

if TYPE_CHECKING:
    from .database import DatabaseManager

logger = logging.getLogger(__name__)

INDEX_TABLE = "documents_fts"
INDEX_TOKENIZER = "trigram"
MIN_TERM_LENGTH = 3


class SearchIndex:
    """Maintain and query the ``documents_fts`` table."""

    _TOKEN_PATTERN = re.compile(r"\S+", re.UNICODE)
    _SYNTAX_CHARACTERS = "\"()*^+-:{}"
    _OPERATORS = frozenset({"AND", "OR", "NOT"})

    def __init__(self, db: "DatabaseManager") -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Structure
    @staticmethod
    def definition(connection: sqlite3.Connection) -> str | None:
        row = connection.execute(
            "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?",
            (INDEX_TABLE,),
        ).fetchone()
        return row[0] if row else None

    @classmethod
    def exists(cls, connection: sqlite3.Connection) -> bool:
        return cls.definition(connection) is not None

    @classmethod
    def is_current(cls, connection: sqlite3.Connection) -> bool:
        sql = cls.definition(connection)
        return sql is not None and INDEX_TOKENIZER in sql.lower()

    @classmethod
    def create(cls, connection: sqlite3.Connection) -> bool:
        """Create the index table if absent; return whether it is usable.

        A table built with another tokenizer is dropped and recreated; the
        caller repopulates it. A SQLite build without FTS5 or the trigram
        tokenizer leaves the index absent. That is logged and tolerated
        because queries fall back to substring matching.
        """

        if cls.is_current(connection):
            return True
        try:
            with connection:
                if cls.exists(connection):
                    logger.info("Replacing search index built with an older tokenizer")
                    connection.execute(f"DROP TABLE {INDEX_TABLE}")
                connection.execute(
                    f"""
                    CREATE VIRTUAL TABLE {INDEX_TABLE}
                    USING fts5(id UNINDEXED, title, content, tokenize = '{INDEX_TOKENIZER}')
                    """
                )
        except sqlite3.OperationalError as exc:
            logger.warning(
                "Search index unavailable; substring matching will be used",
                extra={"error": str(exc)},
            )
            return False
        return True

    @staticmethod
    def rebuild_with(connection: sqlite3.Connection) -> int:
        """Repopulate the index from live documents using ``connection``."""
        connection.execute(f"DELETE FROM {INDEX_TABLE}")
        connection.execute(
            f"""
            INSERT INTO {INDEX_TABLE} (id, title, content)
            SELECT id, title, content FROM documents WHERE is_deleted = 0
            """
        )
        row = connection.execute(f"SELECT COUNT(*) FROM {INDEX_TABLE}").fetchone()
        return int(row[0]) if row else 0

    def is_available(self) -> bool:
        return self.exists(self.db.connect())

    def rebuild(self) -> int:
        """Discard every index entry and re-index all non-deleted documents."""
        with self.db.transaction() as connection:
            if not self.exists(connection):
                raise IndexUnavailable("Search index is not present")
            count = self.rebuild_with(connection)
        logger.info("Rebuilt search index", extra={"document_count": count})
        return count

    # ------------------------------------------------------------------
    # Write path
    def index_document(
        self,
        connection: sqlite3.Connection,
        document_id: str,
        title: str,
        content: str,
        *,
        deleted: bool = False,
    ) -> bool:
        """Replace the entry for ``document_id`` within the caller's transaction.

        Returns ``False`` when the index is absent and nothing was written.
        """

        if not self.exists(connection):
            logger.debug(
                "Skipping search index update; index absent",
                extra={"document_id": document_id},
            )
            return False
        connection.execute(f"DELETE FROM {INDEX_TABLE} WHERE id = ?", (document_id,))
        if not deleted:
            connection.execute(
                f"INSERT INTO {INDEX_TABLE} (id, title, content) VALUES (?, ?, ?)",
                (document_id, title, content),
            )
        return True

    # ------------------------------------------------------------------
    # Read path
    def query(self, expression: str) -> list[sqlite3.Row]:
        """Return live document rows matching ``expression``.

        Rows are ordered by ``updated_at`` descending. Raises
        :class:`IndexUnavailable` when the index is missing, when a term is
        too short for trigram matching, or when the expression cannot be
        evaluated, so the caller can fall back.
        """

        connection = self.db.connect()
        if not self.exists(connection):
            raise IndexUnavailable("Search index is not present")
        if self._has_short_term(expression):
            raise IndexUnavailable(
                f"Search terms shorter than {MIN_TERM_LENGTH} characters need substring matching"
            )
        attempts = [expression]
        quoted = self._quote_tokens(expression)
        if quoted and quoted != expression:
            attempts.append(quoted)
        last_error: sqlite3.Error | None = None
        for attempt in attempts:
            try:
                return connection.execute(
                    f"""
                    SELECT documents.*
                    FROM {INDEX_TABLE}
                    INNER JOIN documents ON documents.id = {INDEX_TABLE}.id
                    WHERE {INDEX_TABLE} MATCH ? AND documents.is_deleted = 0
                    ORDER BY documents.updated_at DESC
                    """,
                    (attempt,),
                ).fetchall()
            except sqlite3.OperationalError as exc:
                logger.info(
                    "Search index rejected match expression",
                    extra={"expression": attempt, "error": str(exc)},
                )
                last_error = exc
        raise IndexUnavailable(f"Search index could not evaluate query: {last_error}")

    @classmethod
    def _terms(cls, expression: str) -> list[str]:
        terms = []
        for match in cls._TOKEN_PATTERN.finditer(expression or ""):
            token = match.group(0)
            if token in cls._OPERATORS:
                continue
            bare = token.strip(cls._SYNTAX_CHARACTERS).replace('"', "")
            if bare:
                terms.append(bare)
        return terms

    @classmethod
    def _has_short_term(cls, expression: str) -> bool:
        return any(len(term) < MIN_TERM_LENGTH for term in cls._terms(expression))

    @classmethod
    def _quote_tokens(cls, expression: str) -> str:
        """Quote every whitespace separated token so FTS treats it literally."""
        tokens = [
            match.group(0).replace('"', "")
            for match in cls._TOKEN_PATTERN.finditer(expression or "")
        ]
        return " ".join(f'"{token}"' for token in tokens if token)


__all__ = ["INDEX_TABLE", "SearchIndex"]
