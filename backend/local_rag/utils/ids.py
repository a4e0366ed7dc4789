"""Opaque identifiers for files and chunks."""

from __future__ import annotations

import uuid

FILE_ID_PREFIX = "file"
CHUNK_ID_PREFIX = "chk"


def _prefixed(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def new_file_id() -> str:
    return _prefixed(FILE_ID_PREFIX)


def new_chunk_id() -> str:
    return _prefixed(CHUNK_ID_PREFIX)


__all__ = ["new_file_id", "new_chunk_id"]
