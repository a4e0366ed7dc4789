"""Cloud API backend (OpenRouter, OpenAI-compatible endpoints)."""

from __future__ import annotations

from typing import Any, Sequence

from local_rag.core.config import ProviderConfig
from local_rag.core.errors import InvalidConfig
from local_rag.providers.http import as_vector, malformed, post_json

NAME = "openrouter"


def _auth_headers(config: ProviderConfig) -> dict[str, str]:
    if not config.openrouter_api_key:
        raise InvalidConfig("OpenRouter API key is required.", provider=NAME)
    return {"Authorization": f"Bearer {config.openrouter_api_key}"}


def validate(config: ProviderConfig) -> None:
    _auth_headers(config)


def embed(config: ProviderConfig, text: str) -> list[float]:
    headers = _auth_headers(config)
    data: Any = post_json(
        f"{config.openrouter_base_url.rstrip('/')}/embeddings",
        {"model": config.embedding_model, "input": text},
        provider=NAME,
        operation="embedding",
        timeout=config.request_timeout,
        headers=headers,
    )
    try:
        vector = data["data"][0]["embedding"]
    except (KeyError, IndexError, TypeError) as exc:
        raise malformed(NAME, "embedding", "missing data[0].embedding") from exc
    return as_vector(vector, NAME)


def generate(config: ProviderConfig, messages: Sequence[dict[str, str]]) -> str:
    headers = _auth_headers(config)
    data: Any = post_json(
        f"{config.openrouter_base_url.rstrip('/')}/chat/completions",
        {"model": config.llm_model, "messages": list(messages)},
        provider=NAME,
        operation="generation",
        timeout=config.request_timeout,
        headers=headers,
    )
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise malformed(NAME, "generation", "missing choices[0].message.content") from exc
    if not isinstance(content, str):
        raise malformed(NAME, "generation", "choices[0].message.content is not text")
    return content
