"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from local_rag.models.entities import Chunk, File, RetrievedChunk


class ProviderOverrides(BaseModel):
    """Per-request provider settings; unset fields fall back to the config file."""

    llm_provider: Literal["ollama", "openrouter"] | None = None
    embedding_provider: Literal["ollama", "openrouter"] | None = None
    llm_model: str | None = None
    embedding_model: str | None = None
    openrouter_api_key: str | None = None
    request_timeout: float | None = Field(default=None, gt=0)


class IngestRequest(BaseModel):
    paths: list[str] = Field(..., min_length=1, description="Files to extract, embed, and store")
    provider: ProviderOverrides | None = None
    timeout: float | None = Field(default=None, gt=0, description="Seconds allowed for embedding one file")


class IngestTextRequest(BaseModel):
    name: str = Field(..., min_length=1)
    text: str
    provider: ProviderOverrides | None = None
    timeout: float | None = Field(default=None, gt=0)


class FileResponse(BaseModel):
    id: str
    name: str
    size_bytes: int
    processed_at: datetime

    @classmethod
    def from_entity(cls, file: File) -> "FileResponse":
        return cls(id=file.id, name=file.name, size_bytes=file.size_bytes, processed_at=file.processed_at)


class IngestResult(BaseModel):
    path: str
    status: Literal["processed", "error"]
    file: FileResponse | None = None
    chunks: int = 0
    detail: str | None = None
    error: str | None = None


class IngestResponse(BaseModel):
    stats: dict[str, int]
    results: list[IngestResult]


class ChunkResponse(BaseModel):
    id: str
    file_id: str
    file_name: str
    ordinal: int
    content: str

    @classmethod
    def from_entity(cls, chunk: Chunk) -> "ChunkResponse":
        return cls(
            id=chunk.id,
            file_id=chunk.file_id,
            file_name=chunk.file_name,
            ordinal=chunk.ordinal,
            content=chunk.content,
        )


class RetrievedChunkResponse(BaseModel):
    chunk_id: str
    file_id: str
    file_name: str
    content: str
    similarity: float

    @classmethod
    def from_entity(cls, item: RetrievedChunk) -> "RetrievedChunkResponse":
        return cls(
            chunk_id=item.id,
            file_id=item.file_id,
            file_name=item.file_name,
            content=item.content,
            similarity=item.similarity,
        )


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1)
    k: int = Field(default=5, ge=1, le=50)
    provider: ProviderOverrides | None = None


class SearchResponse(BaseModel):
    results: list[RetrievedChunkResponse]


class AnswerResponse(BaseModel):
    answer: str
    context: list[RetrievedChunkResponse]


class DeleteResponse(BaseModel):
    status: Literal["ok", "noop"]
    deleted: int


__all__ = [
    "ProviderOverrides",
    "IngestRequest",
    "IngestTextRequest",
    "FileResponse",
    "IngestResult",
    "IngestResponse",
    "ChunkResponse",
    "RetrievedChunkResponse",
    "SearchRequest",
    "SearchResponse",
    "AnswerResponse",
    "DeleteResponse",
]
