"""Ingest and retrieval orchestration."""

from __future__ import annotations

import threading
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Callable, Sequence

from local_rag.core.errors import (
    EmptyDocument,
    InvalidArgument,
    InvalidConfig,
    OperationCancelled,
    ProviderError,
    RagError,
)
from local_rag.core.logging import get_logger, log_context
from local_rag.core.metrics import INGEST_DURATION
from local_rag.ingest.chunker import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    build_chunks,
    chunk_text,
    validate_chunking,
)
from local_rag.ingest.extractors import extension_of, extract_text
from local_rag.models.entities import File, RetrievedChunk
from local_rag.store.vector_store import VectorStore
from local_rag.utils.ids import new_file_id
from local_rag.utils.time import utc_now

logger = get_logger(__name__)

EmbedFn = Callable[[str], Sequence[float]]

EMPTY_DOCUMENT_MESSAGE = "File is empty or content could not be extracted."
_POLL_INTERVAL = 0.05


def new_file(name: str, size_bytes: int) -> File:
    return File(id=new_file_id(), name=name, size_bytes=size_bytes, processed_at=utc_now())


class RetrievalOrchestrator:
    """Chunk, embed, and commit files; embed queries and search the store.

    Holds no state besides its collaborators, so it can be rebuilt freely. The
    embedding callable is passed on every call, which lets provider settings
    change between two ingests.
    """

    def __init__(
        self,
        store: VectorStore,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        max_workers: int = 4,
    ) -> None:
        validate_chunking(chunk_size, chunk_overlap)
        if max_workers < 1:
            raise InvalidConfig(f"max_workers must be at least 1, got {max_workers}")
        self.store = store
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.max_workers = max_workers

    def ingest(
        self,
        file: File,
        text: str,
        embed: EmbedFn,
        *,
        cancel: threading.Event | None = None,
        timeout: float | None = None,
    ) -> File:
        """Embed every chunk of ``text`` and commit ``file`` with all of them, or nothing.

        The first embedding failure, a set ``cancel`` event, or an elapsed
        ``timeout`` (seconds) aborts before anything is written.
        """
        if not text.strip():
            raise EmptyDocument(EMPTY_DOCUMENT_MESSAGE, file_name=file.name)
        started = time.perf_counter()
        texts = chunk_text(text, self.chunk_size, self.chunk_overlap)
        logger.info(
            "Ingesting %s as %s chunks",
            file.name,
            len(texts),
            extra=log_context(file_id=file.id, chunks=len(texts)),
        )
        try:
            vectors = self._embed_all(texts, embed, cancel=cancel, timeout=timeout)
            _raise_if_cancelled(cancel)
            chunks = build_chunks(file, texts, vectors)
            self.store.commit_file(file, chunks)
        except RagError as exc:
            INGEST_DURATION.labels(status="failed").observe(time.perf_counter() - started)
            logger.warning(
                "Ingest of %s aborted, nothing committed: %s",
                file.name,
                exc,
                extra=log_context(file_id=file.id),
            )
            raise
        INGEST_DURATION.labels(status="committed").observe(time.perf_counter() - started)
        logger.info("Committed %s with %s chunks", file.name, len(chunks), extra=log_context(file_id=file.id))
        return file

    def ingest_bytes(
        self,
        name: str,
        data: bytes,
        embed: EmbedFn,
        *,
        cancel: threading.Event | None = None,
        timeout: float | None = None,
    ) -> File:
        """Extract text from an uploaded file and ingest it under a new File record."""
        text = extract_text(data, extension_of(name))
        if not text.strip():
            raise EmptyDocument(EMPTY_DOCUMENT_MESSAGE, file_name=name)
        return self.ingest(new_file(name, len(data)), text, embed, cancel=cancel, timeout=timeout)

    def retrieve(self, query_text: str, top_k: int, embed: EmbedFn) -> list[RetrievedChunk]:
        if not query_text.strip():
            raise InvalidArgument("Query must not be empty")
        if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k <= 0:
            raise InvalidArgument(f"top_k must be a positive integer, got {top_k!r}", top_k=top_k)
        query_vector = _call_embed(embed, query_text, label="query")
        return self.store.search(query_vector, top_k)

    # ------------------------------------------------------------------

    def _embed_all(
        self,
        texts: Sequence[str],
        embed: EmbedFn,
        *,
        cancel: threading.Event | None,
        timeout: float | None,
    ) -> list[Sequence[float]]:
        """Fan out one embedding call per chunk over a bounded pool and join them all."""
        if not texts:
            return []
        deadline = None if timeout is None else time.monotonic() + timeout
        results: list[Sequence[float] | None] = [None] * len(texts)
        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(texts)),
            thread_name_prefix="lrag-embed",
        )
        futures: dict[Future, int] = {
            executor.submit(_embed_chunk, embed, text, index, cancel): index
            for index, text in enumerate(texts)
        }
        pending = set(futures)
        try:
            while pending:
                _raise_if_cancelled(cancel)
                wait_for = _POLL_INTERVAL
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise OperationCancelled(
                            f"Embedding did not finish within {timeout} seconds",
                            timeout=timeout,
                        )
                    wait_for = min(wait_for, remaining)
                done, pending = wait(pending, timeout=wait_for, return_when=FIRST_EXCEPTION)
                for future in done:
                    error = future.exception()
                    if error is not None:
                        raise error
                    results[futures[future]] = future.result()
        finally:
            # Abandon calls still queued; in-flight ones finish in the background
            # and their results are discarded.
            executor.shutdown(wait=False, cancel_futures=True)
        return [vector for vector in results if vector is not None]


def _embed_chunk(
    embed: EmbedFn,
    text: str,
    index: int,
    cancel: threading.Event | None,
) -> Sequence[float]:
    _raise_if_cancelled(cancel)
    return _call_embed(embed, text, label=f"chunk {index}")


def _call_embed(embed: EmbedFn, text: str, label: str) -> Sequence[float]:
    try:
        vector = embed(text)
    except RagError:
        raise
    except Exception as exc:
        raise ProviderError(f"Embedding {label} failed: {exc}") from exc
    if isinstance(vector, (str, bytes)) or not isinstance(vector, Sequence) or not vector:
        raise ProviderError(f"Embedding {label} returned no vector")
    return vector


def _raise_if_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelled("Operation cancelled by caller")


__all__ = ["RetrievalOrchestrator", "EmbedFn", "new_file", "EMPTY_DOCUMENT_MESSAGE"]
