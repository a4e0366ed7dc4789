"""FastAPI application setup for Local RAG."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from local_rag.api.dependencies import build_state
from local_rag.api.routes_admin import router as admin_router
from local_rag.api.routes_ingest import router as ingest_router
from local_rag.api.routes_query import router as query_router
from local_rag.core.config import Settings, get_settings
from local_rag.core.errors import RagError
from local_rag.core.logging import configure_logging, get_logger
from local_rag.core.metrics import REQUEST_COUNT, REQUEST_LATENCY
from local_rag.store.vector_store import VectorStore

logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API. With explicit ``settings`` the config file is never read."""
    load_settings: Callable[[], Settings] = (lambda: settings) if settings is not None else Settings.from_yaml

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        resolved = settings or get_settings()
        configure_logging(use_json=resolved.log_json)
        store = VectorStore.from_path(resolved.db_path).open()
        app.state.rag = build_state(resolved, store, load_settings)
        logger.info("Vector store opened at %s", resolved.db_path)
        try:
            yield
        finally:
            store.close()
            logger.info("Vector store closed")

    app = FastAPI(
        title="Local RAG",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://127.0.0.1:5173",
            "http://localhost:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(ingest_router, prefix="/ingest", tags=["ingest"])
    app.include_router(query_router, prefix="", tags=["query"])
    app.include_router(admin_router, prefix="", tags=["admin"])

    @app.exception_handler(RagError)
    async def handle_rag_error(request: Request, exc: RagError) -> JSONResponse:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.middleware("http")
    async def record_metrics(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        REQUEST_LATENCY.labels(endpoint=endpoint, method=request.method).observe(time.perf_counter() - started)
        REQUEST_COUNT.labels(endpoint=endpoint, method=request.method, status=str(response.status_code)).inc()
        return response

    @app.get("/health", tags=["admin"])
    def health() -> dict[str, bool]:
        """Simple liveness check."""
        return {"ok": True}

    return app


app = create_app()
