"""Durable chunk/file store with cosine similarity search."""

from __future__ import annotations

import math
import sqlite3
from array import array
from pathlib import Path
from typing import Iterable, Sequence

from local_rag.core.errors import DimensionMismatch, DuplicateId, InvalidArgument, NotFound
from local_rag.core.logging import get_logger
from local_rag.core.metrics import INDEX_SIZE, SEARCH_LATENCY
from local_rag.db.sqlite import SQLiteDatabase
from local_rag.models.entities import Chunk, File, RetrievedChunk
from local_rag.utils.time import from_iso, to_iso

logger = get_logger(__name__)

_CHUNK_COLUMNS = "id, file_id, file_name, ordinal, content, dims, vector"


class VectorStore:
    """Files and their embedded chunks in SQLite.

    Every mutating operation runs in a single transaction, so a failure leaves
    the store exactly as it was before the call. Writes are serialised by the
    database's lock; reads observe the last committed state.
    """

    def __init__(self, database: SQLiteDatabase) -> None:
        self.db = database

    @classmethod
    def from_path(cls, db_path: Path) -> "VectorStore":
        return cls(SQLiteDatabase(db_path))

    def open(self) -> "VectorStore":
        self.db.ensure_schema()
        self._update_index_metric()
        return self

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "VectorStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Files ------------------------------------------------------------

    def insert_file(self, file: File) -> None:
        with self.db.transaction() as cursor:
            _insert_file_row(cursor, file)

    def get_file(self, file_id: str) -> File:
        row = self.db.query_one(
            "SELECT id, name, size_bytes, processed_at FROM files WHERE id = ?",
            [file_id],
        )
        if row is None:
            raise NotFound(f"File '{file_id}' not found", file_id=file_id)
        return _row_to_file(row)

    def list_files(self) -> list[File]:
        rows = self.db.query("SELECT id, name, size_bytes, processed_at FROM files ORDER BY seq ASC")
        return [_row_to_file(row) for row in rows]

    def delete_file(self, file_id: str) -> bool:
        """Remove a file and its chunks. Returns False when the id was unknown."""
        with self.db.transaction() as cursor:
            cursor.execute("DELETE FROM chunks WHERE file_id = ?", [file_id])
            removed_chunks = cursor.rowcount
            cursor.execute("DELETE FROM files WHERE id = ?", [file_id])
            removed = cursor.rowcount > 0
        if removed:
            logger.info("Deleted file %s with %s chunks", file_id, removed_chunks)
            self._update_index_metric()
        return removed

    def clear_all(self) -> None:
        with self.db.transaction() as cursor:
            cursor.execute("DELETE FROM chunks")
            cursor.execute("DELETE FROM files")
        logger.info("Cleared all files and chunks")
        self._update_index_metric()

    # Chunks -----------------------------------------------------------

    def insert_chunks(self, chunks: Sequence[Chunk]) -> None:
        """Insert a batch of chunks; either every row is committed or none is."""
        if not chunks:
            return
        with self.db.transaction() as cursor:
            _insert_chunk_rows(cursor, chunks)
        self._update_index_metric()

    def commit_file(self, file: File, chunks: Sequence[Chunk]) -> None:
        """Insert a file row and all of its chunks in one transaction."""
        with self.db.transaction() as cursor:
            _insert_file_row(cursor, file)
            if chunks:
                _insert_chunk_rows(cursor, chunks)
        self._update_index_metric()

    def list_chunks(self, file_id: str) -> list[Chunk]:
        """Chunks of one file in the order the chunker produced them."""
        rows = self.db.query(
            f"SELECT {_CHUNK_COLUMNS} FROM chunks WHERE file_id = ? ORDER BY ordinal ASC, seq ASC",
            [file_id],
        )
        return [_row_to_chunk(row) for row in rows]

    def count_chunks(self, file_id: str | None = None) -> int:
        """Number of stored chunks, overall or for one file."""
        if file_id is None:
            row = self.db.query_one("SELECT COUNT(*) AS count FROM chunks")
        else:
            row = self.db.query_one("SELECT COUNT(*) AS count FROM chunks WHERE file_id = ?", [file_id])
        return int(row["count"]) if row else 0

    def dimension(self) -> int | None:
        """Dimensionality shared by every stored vector, or None for an empty store."""
        row = self.db.query_one("SELECT dims FROM chunks ORDER BY seq ASC LIMIT 1")
        return int(row["dims"]) if row else None

    # Search -----------------------------------------------------------

    def search(self, query_vector: Sequence[float], top_k: int) -> list[RetrievedChunk]:
        """Rank every stored chunk by cosine similarity to ``query_vector``.

        Chunks with a zero-norm vector have no defined similarity and are left
        out, as is everything when the query itself has zero norm. Results are
        ordered by descending similarity; equal scores keep insertion order.
        """
        if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k <= 0:
            raise InvalidArgument(f"top_k must be a positive integer, got {top_k!r}", top_k=top_k)
        query = _validate_vector(query_vector, what="Query vector")

        with SEARCH_LATENCY.time():
            rows = self.db.query(f"SELECT {_CHUNK_COLUMNS} FROM chunks ORDER BY seq ASC")
            if not rows:
                return []
            dims = int(rows[0]["dims"])
            if len(query) != dims:
                raise DimensionMismatch(
                    f"Query vector has {len(query)} dimensions but the store holds {dims}-dimensional vectors",
                    expected=dims,
                    actual=len(query),
                )
            query_norm = _norm(query)
            if query_norm == 0.0:
                return []

            scored: list[tuple[float, sqlite3.Row]] = []
            for row in rows:
                vector = _decode_vector(row["vector"])
                similarity = _cosine(query, query_norm, vector)
                if similarity is not None:
                    scored.append((similarity, row))
            scored.sort(key=lambda item: item[0], reverse=True)

        return [
            RetrievedChunk(chunk=_row_to_chunk(row), similarity=similarity)
            for similarity, row in scored[:top_k]
        ]

    # ------------------------------------------------------------------

    def _update_index_metric(self) -> None:
        INDEX_SIZE.set(self.count_chunks())


def _insert_file_row(cursor: sqlite3.Cursor, file: File) -> None:
    if file.size_bytes < 0:
        raise InvalidArgument(f"File size must not be negative, got {file.size_bytes}")
    try:
        cursor.execute(
            "INSERT INTO files (id, name, size_bytes, processed_at) VALUES (?, ?, ?, ?)",
            [file.id, file.name, int(file.size_bytes), to_iso(file.processed_at)],
        )
    except sqlite3.IntegrityError as exc:
        raise DuplicateId(f"File '{file.id}' already exists", file_id=file.id) from exc


def _insert_chunk_rows(cursor: sqlite3.Cursor, chunks: Sequence[Chunk]) -> None:
    row = cursor.execute("SELECT dims FROM chunks ORDER BY seq ASC LIMIT 1").fetchone()
    expected = int(row["dims"]) if row else None
    encoded: list[tuple[object, ...]] = []
    for chunk in chunks:
        vector = _validate_vector(chunk.vector, what=f"Vector of chunk '{chunk.id}'")
        if expected is None:
            expected = len(vector)
        elif len(vector) != expected:
            raise DimensionMismatch(
                f"Chunk '{chunk.id}' has {len(vector)} dimensions but the store holds "
                f"{expected}-dimensional vectors",
                expected=expected,
                actual=len(vector),
                chunk_id=chunk.id,
            )
        encoded.append(
            (
                chunk.id,
                chunk.file_id,
                chunk.file_name,
                chunk.ordinal,
                chunk.content,
                len(vector),
                _encode_vector(vector, what=f"Vector of chunk '{chunk.id}'"),
            )
        )

    for file_id in _distinct(chunk.file_id for chunk in chunks):
        if cursor.execute("SELECT 1 FROM files WHERE id = ?", [file_id]).fetchone() is None:
            raise NotFound(f"Chunks reference unknown file '{file_id}'", file_id=file_id)

    try:
        cursor.executemany(f"INSERT INTO chunks ({_CHUNK_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)", encoded)
    except sqlite3.IntegrityError as exc:
        raise DuplicateId(f"Chunk id already exists: {exc}") from exc


def _validate_vector(vector: Sequence[float], what: str) -> list[float]:
    try:
        values = [float(value) for value in vector]
    except (TypeError, ValueError) as exc:
        raise InvalidArgument(f"{what} must be a sequence of numbers") from exc
    if not values:
        raise InvalidArgument(f"{what} is empty")
    if not all(math.isfinite(value) for value in values):
        raise InvalidArgument(f"{what} contains non-finite values")
    return values


def _encode_vector(vector: Sequence[float], what: str) -> bytes:
    """Pack as float32, rejecting values that would not survive the conversion."""
    packed = array("f", vector)
    if not all(math.isfinite(value) for value in packed):
        raise InvalidArgument(f"{what} has values outside the float32 range")
    if any(vector) and not any(packed):
        raise InvalidArgument(f"{what} rounds to all zeros in float32")
    return packed.tobytes()


def _decode_vector(blob: bytes) -> array:
    floats = array("f")
    floats.frombytes(blob)
    return floats


def _norm(vector: Sequence[float]) -> float:
    return math.sqrt(sum(value * value for value in vector))


def _cosine(query: Sequence[float], query_norm: float, vector: Sequence[float]) -> float | None:
    vector_norm = _norm(vector)
    if vector_norm == 0.0:
        return None
    dot = sum(x * y for x, y in zip(query, vector))
    similarity = dot / (query_norm * vector_norm)
    if math.isnan(similarity):
        return None
    return max(-1.0, min(1.0, similarity))


def _distinct(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique


def _row_to_file(row: sqlite3.Row) -> File:
    return File(
        id=row["id"],
        name=row["name"],
        size_bytes=int(row["size_bytes"]),
        processed_at=from_iso(row["processed_at"]),
    )


def _row_to_chunk(row: sqlite3.Row) -> Chunk:
    return Chunk(
        id=row["id"],
        file_id=row["file_id"],
        file_name=row["file_name"],
        content=row["content"],
        vector=tuple(_decode_vector(row["vector"])),
        ordinal=int(row["ordinal"]),
    )


__all__ = ["VectorStore"]
