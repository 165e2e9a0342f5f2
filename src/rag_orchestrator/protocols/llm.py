"""Protocol for LLM providers.

Implementations raise ``TransientProviderError`` for retryable transport
failures and ``GenerationError`` for everything else, including output that
does not validate against the requested schema.
"""

from __future__ import annotations

from typing import Protocol, TypeVar

from pydantic import BaseModel

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class LLMProvider(Protocol):
    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 4096,
    ) -> str: ...

    async def generate_structured(
        self,
        prompt: str,
        response_schema: type[SchemaT],
        system: str | None = None,
    ) -> SchemaT: ...
