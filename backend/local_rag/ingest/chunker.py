"""Chunking utilities."""

from __future__ import annotations

from typing import Sequence

from local_rag.core.errors import InvalidArgument, InvalidConfig
from local_rag.models.entities import Chunk, File
from local_rag.utils.ids import new_chunk_id

DEFAULT_CHUNK_SIZE = 500
DEFAULT_CHUNK_OVERLAP = 100


def validate_chunking(size: int, overlap: int) -> None:
    if size <= 0:
        raise InvalidConfig(f"Chunk size must be positive, got {size}", size=size)
    if overlap < 0:
        raise InvalidConfig(f"Chunk overlap must not be negative, got {overlap}", overlap=overlap)
    if overlap >= size:
        raise InvalidConfig(
            f"Chunk overlap ({overlap}) must be smaller than chunk size ({size})",
            size=size,
            overlap=overlap,
        )


def chunk_text(
    text: str,
    size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[str]:
    """Split text into fixed-size character windows that overlap by ``overlap``.

    Windows start at ``0, size - overlap, 2 * (size - overlap), ...`` while the
    start is inside the text. The last window is whatever tail remains; it is
    never padded. Offsets count code points, so multi-byte characters are never
    split.
    """
    validate_chunking(size, overlap)
    step = size - overlap
    return [text[start : start + size] for start in range(0, len(text), step)]


def build_chunks(file: File, texts: Sequence[str], vectors: Sequence[Sequence[float]]) -> list[Chunk]:
    """Pair chunk texts with their vectors as Chunk records for ``file``."""
    if len(texts) != len(vectors):
        raise InvalidArgument(
            f"Got {len(vectors)} vectors for {len(texts)} chunks",
            chunks=len(texts),
            vectors=len(vectors),
        )
    return [
        Chunk(
            id=new_chunk_id(),
            file_id=file.id,
            file_name=file.name,
            content=content,
            vector=tuple(float(value) for value in vector),
            ordinal=ordinal,
        )
        for ordinal, (content, vector) in enumerate(zip(texts, vectors))
    ]


__all__ = ["DEFAULT_CHUNK_SIZE", "DEFAULT_CHUNK_OVERLAP", "chunk_text", "build_chunks", "validate_chunking"]
