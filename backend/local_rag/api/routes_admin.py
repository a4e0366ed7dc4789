"""File catalog and administrative routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from local_rag.api.dependencies import get_store
from local_rag.core.metrics import metrics_response
from local_rag.models.dto import ChunkResponse, DeleteResponse, FileResponse
from local_rag.store.vector_store import VectorStore

router = APIRouter()


@router.get("/files", response_model=list[FileResponse], summary="List ingested files")
def list_files(store: VectorStore = Depends(get_store)) -> list[FileResponse]:
    return [FileResponse.from_entity(file) for file in store.list_files()]


@router.get("/files/{file_id}/chunks", response_model=list[ChunkResponse], summary="Chunks of one file in document order")
def list_file_chunks(file_id: str, store: VectorStore = Depends(get_store)) -> list[ChunkResponse]:
    store.get_file(file_id)
    return [ChunkResponse.from_entity(chunk) for chunk in store.list_chunks(file_id)]


@router.delete("/files/{file_id}", response_model=DeleteResponse, summary="Remove a file and its chunks")
def delete_file(file_id: str, store: VectorStore = Depends(get_store)) -> DeleteResponse:
    removed = store.delete_file(file_id)
    return DeleteResponse(status="ok" if removed else "noop", deleted=int(removed))


@router.delete("/files", response_model=DeleteResponse, summary="Remove every file and chunk")
def clear_files(store: VectorStore = Depends(get_store)) -> DeleteResponse:
    count = len(store.list_files())
    store.clear_all()
    return DeleteResponse(status="ok" if count else "noop", deleted=count)


@router.get("/metrics", summary="Prometheus metrics")
def get_metrics():
    return metrics_response()


__all__ = ["router"]
