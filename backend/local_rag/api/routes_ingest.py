"""Ingest API routes."""

from __future__ import annotations

from pathlib import Path, PurePath

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool

from local_rag.api.dependencies import AppState, get_app_state
from local_rag.core.errors import InvalidArgument, RagError
from local_rag.core.logging import get_logger, log_context
from local_rag.models import entities
from local_rag.models.dto import (
    FileResponse,
    IngestRequest,
    IngestResponse,
    IngestResult,
    IngestTextRequest,
)
from local_rag.providers import embedding_client
from local_rag.retrieval.orchestrator import new_file

logger = get_logger(__name__)

router = APIRouter()


@router.post("", response_model=IngestResponse, summary="Extract, embed, and store files from the server's disk")
def ingest_paths(request: IngestRequest, state: AppState = Depends(get_app_state)) -> IngestResponse:
    embed = embedding_client(state.provider_config(request.provider))
    results: list[IngestResult] = []
    for raw_path in request.paths:
        path = Path(raw_path).expanduser()
        try:
            data = path.read_bytes()
        except OSError as exc:
            logger.error("Failed to read %s: %s", path, exc)
            results.append(
                IngestResult(path=str(path), status="error", detail=f"Cannot read file: {exc}", error="OSError")
            )
            continue
        try:
            stored = state.retriever.ingest_bytes(path.name, data, embed, timeout=request.timeout)
        except RagError as exc:
            results.append(
                IngestResult(path=str(path), status="error", detail=exc.message, error=type(exc).__name__)
            )
            continue
        results.append(_processed(str(path), stored, state))
    return IngestResponse(stats=_stats(results), results=results)


@router.post("/upload", response_model=IngestResult, summary="Extract, embed, and store an uploaded file")
async def ingest_upload(
    file: UploadFile = File(..., description="Document to ingest (.txt, .md, .text, .pdf, .docx)"),
    timeout: float | None = Form(default=None, gt=0, description="Seconds allowed for embedding the file"),
    state: AppState = Depends(get_app_state),
) -> IngestResult:
    name = PurePath(file.filename or "").name
    if not name:
        raise InvalidArgument("Uploaded file has no name")
    data = await file.read()
    logger.info("Received upload %s", name, extra=log_context(size_bytes=len(data)))
    embed = embedding_client(state.provider_config())
    stored = await run_in_threadpool(state.retriever.ingest_bytes, name, data, embed, timeout=timeout)
    return _processed(name, stored, state)


@router.post("/text", response_model=IngestResult, summary="Embed and store already-extracted text")
def ingest_text(request: IngestTextRequest, state: AppState = Depends(get_app_state)) -> IngestResult:
    embed = embedding_client(state.provider_config(request.provider))
    stored = state.retriever.ingest(
        new_file(request.name, len(request.text.encode("utf-8"))),
        request.text,
        embed,
        timeout=request.timeout,
    )
    return _processed(request.name, stored, state)


def _processed(path: str, stored: entities.File, state: AppState) -> IngestResult:
    return IngestResult(
        path=path,
        status="processed",
        file=FileResponse.from_entity(stored),
        chunks=state.store.count_chunks(stored.id),
    )


def _stats(results: list[IngestResult]) -> dict[str, int]:
    processed = [item for item in results if item.status == "processed"]
    return {
        "processed": len(processed),
        "failed": len(results) - len(processed),
        "chunks": sum(item.chunks for item in processed),
    }


__all__ = ["router"]
