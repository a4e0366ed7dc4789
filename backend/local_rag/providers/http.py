"""Shared JSON-over-HTTP helper for provider backends."""

from __future__ import annotations

from typing import Any, Mapping

import requests

from local_rag.core.errors import ProviderError
from local_rag.core.logging import get_logger, log_context
from local_rag.core.metrics import PROVIDER_ERRORS

logger = get_logger(__name__)


def post_json(
    url: str,
    payload: Mapping[str, Any],
    *,
    provider: str,
    operation: str,
    timeout: float,
    headers: Mapping[str, str] | None = None,
) -> Any:
    """POST ``payload`` and return the decoded JSON body, or raise ProviderError."""
    request_headers = {"Content-Type": "application/json", **(headers or {})}
    try:
        resp = requests.post(url, json=payload, headers=request_headers, timeout=timeout)
    except requests.RequestException as exc:
        _record_failure(provider, operation, f"request to {url} failed: {exc}")
        raise ProviderError(
            f"{provider} {operation} request failed: {exc}",
            provider=provider,
            operation=operation,
        ) from exc

    if not resp.ok:
        body = resp.text[:500]
        _record_failure(provider, operation, f"HTTP {resp.status_code}: {body}")
        raise ProviderError(
            f"{provider} {operation} request failed with status {resp.status_code}: {resp.reason}",
            provider=provider,
            operation=operation,
            status=resp.status_code,
        )
    try:
        return resp.json()
    except ValueError as exc:
        _record_failure(provider, operation, "response was not JSON")
        raise ProviderError(
            f"{provider} {operation} returned a non-JSON response",
            provider=provider,
            operation=operation,
        ) from exc


def malformed(provider: str, operation: str, reason: str) -> ProviderError:
    _record_failure(provider, operation, f"malformed payload: {reason}")
    return ProviderError(
        f"{provider} {operation} returned a malformed payload: {reason}",
        provider=provider,
        operation=operation,
    )


def as_vector(value: Any, provider: str) -> list[float]:
    if not isinstance(value, list) or not value:
        raise malformed(provider, "embedding", "missing or empty embedding")
    try:
        return [float(item) for item in value]
    except (TypeError, ValueError) as exc:
        raise malformed(provider, "embedding", "embedding contains non-numeric values") from exc


def _record_failure(provider: str, operation: str, detail: str) -> None:
    PROVIDER_ERRORS.labels(provider=provider, operation=operation).inc()
    logger.error(
        "Provider %s %s failed: %s",
        provider,
        operation,
        detail,
        extra=log_context(provider=provider, operation=operation),
    )


__all__ = ["post_json", "malformed", "as_vector"]
