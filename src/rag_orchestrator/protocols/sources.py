"""Protocols for retrieval sources."""

from __future__ import annotations

from typing import Protocol

from rag_orchestrator.models.domain import Reference


class KnowledgeStore(Protocol):
    async def search(
        self,
        query: str,
        top_k: int,
        rerank_threshold: float,
        filter: str | None = None,
    ) -> list[Reference]:
        """Hybrid keyword + vector search with semantic reranking.

        Results scoring below ``rerank_threshold`` are not returned.
        """
        ...

    async def vector_search(
        self,
        query: str,
        top_k: int,
        filter: str | None = None,
    ) -> list[Reference]:
        """Pure vector similarity search. No reranking, no threshold."""
        ...


class WebSearch(Protocol):
    async def search(self, query: str, top_k: int) -> list[Reference]: ...
