"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class File:
    id: str
    name: str
    size_bytes: int
    processed_at: datetime


@dataclass(frozen=True, slots=True)
class Chunk:
    id: str
    file_id: str
    file_name: str
    content: str
    vector: tuple[float, ...]
    ordinal: int = 0

    @property
    def dims(self) -> int:
        return len(self.vector)


@dataclass(frozen=True, slots=True)
class RetrievedChunk:
    """A stored chunk paired with its cosine similarity to a query. Never persisted."""

    chunk: Chunk
    similarity: float

    @property
    def id(self) -> str:
        return self.chunk.id

    @property
    def file_id(self) -> str:
        return self.chunk.file_id

    @property
    def file_name(self) -> str:
        return self.chunk.file_name

    @property
    def content(self) -> str:
        return self.chunk.content


@dataclass(slots=True)
class AnswerResult:
    answer: str
    context: list[RetrievedChunk] = field(default_factory=list)


__all__ = ["File", "Chunk", "RetrievedChunk", "AnswerResult"]
