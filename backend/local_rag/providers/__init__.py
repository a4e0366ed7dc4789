"""Embedding and generation backends selected by ProviderConfig."""

from __future__ import annotations

from functools import partial
from typing import Callable, Sequence

from local_rag.core.config import ProviderConfig
from local_rag.core.errors import InvalidConfig
from local_rag.providers import ollama, openrouter

EmbedFn = Callable[[str], Sequence[float]]
GenerateFn = Callable[[Sequence[dict[str, str]]], str]

_BACKENDS = {
    ollama.NAME: ollama,
    openrouter.NAME: openrouter,
}


def _backend(name: str):
    try:
        return _BACKENDS[name]
    except KeyError:
        raise InvalidConfig(f"Unsupported provider: {name}", provider=name) from None


def embed(config: ProviderConfig, text: str) -> list[float]:
    """Embed ``text`` with the configured embedding provider."""
    return _backend(config.embedding_provider).embed(config, text)


def generate(config: ProviderConfig, messages: Sequence[dict[str, str]]) -> str:
    """Run one non-streaming chat completion with the configured LLM provider."""
    return _backend(config.llm_provider).generate(config, messages)


def embedding_client(config: ProviderConfig) -> EmbedFn:
    """Bind ``config`` so orchestrators can call ``embed(text)``."""
    _backend(config.embedding_provider).validate(config)
    return partial(embed, config)


def generation_client(config: ProviderConfig) -> GenerateFn:
    _backend(config.llm_provider).validate(config)
    return partial(generate, config)


__all__ = [
    "EmbedFn",
    "GenerateFn",
    "embed",
    "generate",
    "embedding_client",
    "generation_client",
]
