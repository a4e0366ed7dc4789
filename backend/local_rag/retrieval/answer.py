"""Grounded answer generation."""

from __future__ import annotations

from typing import Callable, Sequence

from local_rag.core.errors import InvalidArgument, InvalidConfig, ProviderError, RagError
from local_rag.core.logging import get_logger
from local_rag.models.entities import AnswerResult, RetrievedChunk
from local_rag.retrieval.orchestrator import EmbedFn, RetrievalOrchestrator

logger = get_logger(__name__)

GenerateFn = Callable[[Sequence[dict[str, str]]], str]

CONTEXT_SEPARATOR = "\n---\n"
NO_CONTEXT_PLACEHOLDER = "No context provided."
DEFAULT_TOP_K = 5

PROMPT_TEMPLATE = """You are a helpful AI assistant specialized in answering questions based on provided context.
Your task is to analyze the given context documents and answer the user's question accurately.

RULES:
- Base your answer strictly on the information found in the provided context.
- If the context does not contain enough information to answer the question, state that clearly. Do not make up information.
- Be concise and to the point.

CONTEXT:
---
{context}
---

USER QUESTION:
{query}

ASSISTANT'S ANSWER:
"""


def build_context(retrieved: Sequence[RetrievedChunk]) -> str:
    """Join chunk contents in retrieval order (most similar first)."""
    return CONTEXT_SEPARATOR.join(item.content for item in retrieved)


def build_prompt(query: str, context: str) -> str:
    return PROMPT_TEMPLATE.format(context=context or NO_CONTEXT_PLACEHOLDER, query=query)


class AnswerOrchestrator:
    """Turn a query plus retrieved chunks into one generation call.

    Each call is independent: only the current query and the current retrieval
    go into the prompt.
    """

    def __init__(self, retriever: RetrievalOrchestrator | None = None) -> None:
        self.retriever = retriever

    def answer(self, query: str, retrieved: Sequence[RetrievedChunk], generate: GenerateFn) -> str:
        if not query.strip():
            raise InvalidArgument("Query must not be empty")
        prompt = build_prompt(query, build_context(retrieved))
        messages = [{"role": "user", "content": prompt}]
        try:
            text = generate(messages)
        except RagError:
            raise
        except Exception as exc:
            raise ProviderError(f"Answer generation failed: {exc}") from exc
        if not isinstance(text, str):
            raise ProviderError("Answer generation returned no text")
        logger.debug("Generated answer from %s context chunks", len(retrieved))
        return text

    def ask(
        self,
        query: str,
        embed: EmbedFn,
        generate: GenerateFn,
        top_k: int = DEFAULT_TOP_K,
    ) -> AnswerResult:
        """Retrieve grounding chunks for ``query`` and answer it, keeping the chunks for inspection."""
        if self.retriever is None:
            raise InvalidConfig("AnswerOrchestrator.ask needs a retriever")
        retrieved = self.retriever.retrieve(query, top_k, embed)
        return AnswerResult(answer=self.answer(query, retrieved, generate), context=list(retrieved))


__all__ = [
    "AnswerOrchestrator",
    "GenerateFn",
    "build_context",
    "build_prompt",
    "CONTEXT_SEPARATOR",
    "NO_CONTEXT_PLACEHOLDER",
    "DEFAULT_TOP_K",
]
