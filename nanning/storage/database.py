"""Database connection management and the schema bootstrap."""

from __future__ import annotations

import contextlib
import datetime as _dt
import logging
import re
import sqlite3
import threading
from pathlib import Path
from collections.abc import Mapping
from typing import Any, Iterator, Sequence

from .errors import InitializationFailure, StorageFailure, ValidationError
from .search import SearchIndex

SCHEMA_VERSION = 1
SCHEMA_FILENAME = "schema.sql"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def _parse_schema_objects() -> dict[str, set[str]]:
    """Extract schema object names from ``schema.sql`` for post-bootstrap checks."""

    schema_path = Path(__file__).with_name(SCHEMA_FILENAME)
    schema_sql = schema_path.read_text(encoding="utf-8")
    patterns = {
        "table": re.compile(
            r"CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?(?P<name>[A-Za-z_][\w]*)",
            re.IGNORECASE,
        ),
        "index": re.compile(
            r"CREATE\s+INDEX\s+(?:IF\s+NOT\s+EXISTS\s+)?(?P<name>[A-Za-z_][\w]*)",
            re.IGNORECASE,
        ),
    }
    objects: dict[str, set[str]] = {"table": set(), "index": set()}
    for kind, pattern in patterns.items():
        for match in pattern.finditer(schema_sql):
            objects[kind].add(match.group("name"))
    return objects


EXPECTED_SCHEMA_OBJECTS = _parse_schema_objects()
logger = logging.getLogger(__name__)


def utc_timestamp(after: str | None = None) -> str:
    """Return the current UTC time as a sortable ISO-8601 string.

    When ``after`` is given the result is guaranteed to sort strictly after
    it, even if the wall clock has not advanced or has stepped backwards.
    """

    now = _dt.datetime.now(_dt.timezone.utc).replace(tzinfo=None)
    if after:
        try:
            previous = _dt.datetime.strptime(after, TIMESTAMP_FORMAT)
        except ValueError:
            previous = None
        if previous is not None and now <= previous:
            now = previous + _dt.timedelta(microseconds=1)
    return now.strftime(TIMESTAMP_FORMAT)


class DatabaseManager:
    """Own the single SQLite connection used by the persistence layer.

    ``initialize`` opens the connection and runs the schema bootstrap. It is
    idempotent: calling it again returns the already open connection. A
    failed bootstrap leaves the manager closed and every repository call
    raises :class:`InitializationFailure` until a later ``initialize``
    succeeds.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        journal_mode: str = "WAL",
        search_index: bool = True,
    ) -> None:
        self.path = Path(path)
        self.journal_mode = journal_mode
        self.search_index_enabled = search_index
        self._connection_lock = threading.RLock()
        self._connection: sqlite3.Connection | None = None
        self._failure: BaseException | None = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    @property
    def failure(self) -> BaseException | None:
        """The error raised by the last failed ``initialize`` call, if any."""
        return self._failure

    def connect(self) -> sqlite3.Connection:
        """Return the open connection or raise if storage is unusable."""
        connection = self._connection
        if connection is None:
            if self._failure is not None:
                raise InitializationFailure(
                    f"Storage failed to initialise: {self._failure}"
                )
            raise InitializationFailure("Storage has not been initialised")
        return connection

    def initialize(self) -> sqlite3.Connection:
        """Open the database and ensure the schema and search index exist."""
        with self._connection_lock:
            if self._connection is not None:
                logger.debug("Database already open", extra={"path": str(self.path)})
                return self._connection
            connection: sqlite3.Connection | None = None
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                connection = sqlite3.connect(self.path, check_same_thread=False)
                connection.row_factory = sqlite3.Row
                connection.execute("PRAGMA foreign_keys = ON")
                connection.execute(f"PRAGMA journal_mode = {self.journal_mode}").fetchone()
                self._install_schema(connection)
                if self.search_index_enabled:
                    self._ensure_search_index(connection)
            except (OSError, sqlite3.Error, InitializationFailure) as exc:
                if connection is not None:
                    connection.close()
                self._failure = exc
                logger.error(
                    "Database initialisation failed",
                    extra={"path": str(self.path), "error": str(exc)},
                )
                if isinstance(exc, InitializationFailure):
                    raise
                raise InitializationFailure(
                    f"Unable to open storage at {self.path}: {exc}"
                ) from exc
            self._connection = connection
            self._failure = None
            logger.info("Database initialised", extra={"path": str(self.path)})
            return connection

    def close(self) -> None:
        """Close the underlying database connection if it exists."""
        with self._connection_lock:
            connection = self._connection
            self._connection = None
        if connection is not None:
            connection.close()
            logger.info("Database closed", extra={"path": str(self.path)})

    def _install_schema(self, connection: sqlite3.Connection) -> None:
        schema_path = Path(__file__).with_name(SCHEMA_FILENAME)
        schema_sql = schema_path.read_text(encoding="utf-8")
        with connection:
            connection.executescript(schema_sql)
            if self._get_user_version(connection) < SCHEMA_VERSION:
                self._set_user_version(connection, SCHEMA_VERSION)
        missing = self._missing_schema_objects(connection)
        if missing:
            raise InitializationFailure(
                "Schema bootstrap incomplete; missing " + ", ".join(sorted(missing))
            )

    def _ensure_search_index(self, connection: sqlite3.Connection) -> None:
        existed = SearchIndex.is_current(connection)
        if not SearchIndex.create(connection):
            return
        if existed:
            return
        row = connection.execute(
            "SELECT COUNT(*) FROM documents WHERE is_deleted = 0"
        ).fetchone()
        if row and int(row[0]):
            with connection:
                count = SearchIndex.rebuild_with(connection)
            logger.info(
                "Populated new search index from existing documents",
                extra={"document_count": count},
            )

    @staticmethod
    def _missing_schema_objects(connection: sqlite3.Connection) -> set[str]:
        existing: dict[str, set[str]] = {"table": set(), "index": set()}
        cursor = connection.execute(
            "SELECT type, name FROM sqlite_master WHERE type IN ('table', 'index')"
        )
        for row in cursor.fetchall():
            existing[row["type"]].add(row["name"])
        missing: set[str] = set()
        for kind, expected in EXPECTED_SCHEMA_OBJECTS.items():
            missing.update(expected - existing.get(kind, set()))
        return missing

    @staticmethod
    def _get_user_version(connection: sqlite3.Connection) -> int:
        cursor = connection.execute("PRAGMA user_version")
        row = cursor.fetchone()
        return int(row[0]) if row else 0

    @staticmethod
    def _set_user_version(connection: sqlite3.Connection, version: int) -> None:
        connection.execute(f"PRAGMA user_version = {version}")

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager that wraps operations in a transaction."""
        connection = self.connect()
        try:
            with connection:
                yield connection
        except sqlite3.Error as exc:
            raise StorageFailure(f"Storage operation failed: {exc}") from exc


class BaseRepository:
    """Common utilities shared by repository implementations."""

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self.db.transaction() as connection:
            yield connection

    def _fetchone(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        try:
            return self.db.connect().execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            raise StorageFailure(f"Storage query failed: {exc}") from exc

    def _fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        try:
            return self.db.connect().execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageFailure(f"Storage query failed: {exc}") from exc

    @staticmethod
    def _require_mapping(payload: Any, label: str) -> Mapping[str, Any]:
        if not isinstance(payload, Mapping):
            raise ValidationError(f"{label} must be a mapping of fields")
        return payload

    @staticmethod
    def _row_to_dict(row: sqlite3.Row | None) -> dict[str, Any] | None:
        if row is None:
            return None
        return {key: row[key] for key in row.keys()}


__all__ = [
    "BaseRepository",
    "DatabaseManager",
    "utc_timestamp",
]
