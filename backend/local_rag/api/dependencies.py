"""Shared FastAPI dependencies.

Everything long-lived is built once in the application lifespan and stored on
``app.state.rag``; routes receive it through these accessors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from fastapi import Request

from local_rag.core.config import ProviderConfig, Settings
from local_rag.models.dto import ProviderOverrides
from local_rag.retrieval import AnswerOrchestrator, RetrievalOrchestrator
from local_rag.store.vector_store import VectorStore


@dataclass(slots=True)
class AppState:
    settings: Settings
    store: VectorStore
    retriever: RetrievalOrchestrator
    answerer: AnswerOrchestrator
    load_settings: Callable[[], Settings]

    def provider_config(self, overrides: ProviderOverrides | None = None) -> ProviderConfig:
        """Re-read provider settings for this request and apply body overrides."""
        values = overrides.model_dump(exclude_none=True) if overrides else {}
        return self.load_settings().provider_config(**values)


def build_state(settings: Settings, store: VectorStore, load_settings: Callable[[], Settings]) -> AppState:
    retriever = RetrievalOrchestrator(
        store,
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
        max_workers=settings.embed_concurrency,
    )
    return AppState(
        settings=settings,
        store=store,
        retriever=retriever,
        answerer=AnswerOrchestrator(retriever),
        load_settings=load_settings,
    )


def get_app_state(request: Request) -> AppState:
    return request.app.state.rag


def get_store(request: Request) -> VectorStore:
    return get_app_state(request).store


__all__ = ["AppState", "build_state", "get_app_state", "get_store"]
