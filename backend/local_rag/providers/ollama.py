"""Local model-server backend (Ollama HTTP API)."""

from __future__ import annotations

from typing import Any, Sequence

from local_rag.core.config import ProviderConfig
from local_rag.providers.http import as_vector, malformed, post_json

NAME = "ollama"


def validate(config: ProviderConfig) -> None:
    """Nothing to check up front; the local server needs no credentials."""


def embed(config: ProviderConfig, text: str) -> list[float]:
    data = post_json(
        f"{config.ollama_base_url.rstrip('/')}/api/embeddings",
        {"model": config.embedding_model, "prompt": text},
        provider=NAME,
        operation="embedding",
        timeout=config.request_timeout,
    )
    if not isinstance(data, dict):
        raise malformed(NAME, "embedding", "expected a JSON object")
    return as_vector(data.get("embedding"), NAME)


def generate(config: ProviderConfig, messages: Sequence[dict[str, str]]) -> str:
    data: Any = post_json(
        f"{config.ollama_base_url.rstrip('/')}/api/chat",
        {"model": config.llm_model, "messages": list(messages), "stream": False},
        provider=NAME,
        operation="generation",
        timeout=config.request_timeout,
    )
    try:
        content = data["message"]["content"]
    except (KeyError, TypeError) as exc:
        raise malformed(NAME, "generation", "missing message.content") from exc
    if not isinstance(content, str):
        raise malformed(NAME, "generation", "message.content is not text")
    return content
