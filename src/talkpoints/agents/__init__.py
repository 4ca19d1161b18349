"""LLM-backed collaborators of the talking-points engine."""

from __future__ import annotations

from .talking_points_agent import (
    DocumentRetriever,
    LLMGenerationService,
    NullRetriever,
    build_messages,
    build_retrieval_query,
)

__all__ = [
    "DocumentRetriever",
    "LLMGenerationService",
    "NullRetriever",
    "build_messages",
    "build_retrieval_query",
]
