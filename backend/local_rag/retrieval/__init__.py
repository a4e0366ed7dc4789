"""Retrieval orchestration components."""

from .orchestrator import RetrievalOrchestrator
from .answer import AnswerOrchestrator, build_context, build_prompt

__all__ = [
    "RetrievalOrchestrator",
    "AnswerOrchestrator",
    "build_context",
    "build_prompt",
]
