"""SQLite management utilities."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence

from local_rag.core.errors import StorageError

DEFAULT_PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA foreign_keys=ON;",
    "PRAGMA temp_store=MEMORY;",
)


class SQLiteDatabase:
    """Thin wrapper around sqlite3 with explicit transactions and one writer at a time."""

    def __init__(self, db_path: Path, read_only: bool = False) -> None:
        self.db_path = Path(db_path).expanduser()
        self.read_only = read_only
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def connect(self) -> sqlite3.Connection:
        with self._lock:
            if self._connection is None:
                try:
                    self._connection = self._open()
                except sqlite3.Error as exc:
                    raise StorageError(f"Cannot open database {self.db_path}: {exc}") from exc
            return self._connection

    def _open(self) -> sqlite3.Connection:
        if self.read_only:
            uri = f"file:{self.db_path}?mode=ro"
            connection = sqlite3.connect(uri, uri=True, check_same_thread=False, isolation_level=None)
        else:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
        connection.row_factory = sqlite3.Row
        for pragma in DEFAULT_PRAGMAS:
            connection.execute(pragma)
        return connection

    def close(self) -> None:
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def __enter__(self) -> "SQLiteDatabase":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def executescript(self, script: str) -> None:
        with self._lock:
            conn = self.connect()
            try:
                conn.executescript(script)
            except sqlite3.Error as exc:
                raise StorageError(f"Schema setup failed: {exc}") from exc

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[sqlite3.Row]:
        """Run a read statement against the last committed state."""
        with self._lock:
            conn = self.connect()
            try:
                return conn.execute(sql, params or []).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"Query failed: {exc}") from exc

    def query_one(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Row | None:
        rows = self.query(sql, params)
        return rows[0] if rows else None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Yield a cursor inside BEGIN IMMEDIATE; commit on success, roll back on any error.

        ``sqlite3.Error`` raised in the block is re-raised as ``StorageError``;
        anything else propagates unchanged after the rollback.
        """
        with self._lock:
            conn = self.connect()
            cursor = conn.cursor()
            try:
                cursor.execute("BEGIN IMMEDIATE")
                yield cursor
                conn.commit()
            except sqlite3.Error as exc:
                _safe_rollback(conn)
                raise StorageError(f"Transaction rolled back: {exc}") from exc
            except BaseException:
                _safe_rollback(conn)
                raise
            finally:
                cursor.close()

    def ensure_schema(self, schema_sql: str | None = None) -> None:
        if schema_sql is None:
            schema_path = Path(__file__).with_name("schema.sql")
            schema_sql = schema_path.read_text(encoding="utf-8")
        self.executescript(schema_sql)


def _safe_rollback(conn: sqlite3.Connection) -> None:
    if conn.in_transaction:
        conn.rollback()


__all__ = ["SQLiteDatabase"]
