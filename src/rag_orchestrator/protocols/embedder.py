"""Protocol for embedding providers. Used for semantic boost and web filtering."""

from __future__ import annotations

from typing import Protocol


class Embedder(Protocol):
    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """One vector per input text, in input order."""
        ...

    async def embed_query(self, query: str) -> list[float]: ...
