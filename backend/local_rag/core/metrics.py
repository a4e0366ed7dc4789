"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "lrag_requests_total",
    "Total HTTP requests",
    labelnames=("endpoint", "method", "status"),
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "lrag_request_latency_seconds",
    "Latency of HTTP requests",
    labelnames=("endpoint", "method"),
    registry=REGISTRY,
)

INGEST_DURATION = Histogram(
    "lrag_ingest_duration_seconds",
    "Time spent chunking, embedding, and committing one file",
    labelnames=("status",),
    registry=REGISTRY,
)

SEARCH_LATENCY = Histogram(
    "lrag_search_latency_seconds",
    "Cosine similarity scan latency",
    registry=REGISTRY,
)

INDEX_SIZE = Gauge(
    "lrag_index_chunks",
    "Number of chunks stored in the vector store",
    registry=REGISTRY,
)

PROVIDER_ERRORS = Counter(
    "lrag_provider_errors_total",
    "Failed embedding or generation calls",
    labelnames=("provider", "operation"),
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "INGEST_DURATION",
    "SEARCH_LATENCY",
    "INDEX_SIZE",
    "PROVIDER_ERRORS",
    "metrics_response",
]
