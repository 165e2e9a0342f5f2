"""OpenAI embedding provider using text-embedding-3-small."""

from __future__ import annotations

import openai
from openai import AsyncOpenAI

from rag_orchestrator.exceptions import EmbeddingError, TransientProviderError
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.resilience.retry import RetryPolicy, with_retry

logger = get_logger("embeddings")


class OpenAIEmbedder:
    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        batch_size: int = 100,
        dimensions: int | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        # SDK retries are disabled; transport retries go through with_retry
        self._client = AsyncOpenAI(api_key=api_key, max_retries=0)
        self._model = model
        self._batch_size = batch_size
        self._dimensions = dimensions
        self._retry = retry_policy or RetryPolicy()

    async def _create(self, batch: list[str]) -> list[list[float]]:
        extra = {"dimensions": self._dimensions} if self._dimensions else {}

        async def call() -> list[list[float]]:
            try:
                response = await self._client.embeddings.create(
                    input=batch, model=self._model, **extra
                )
            except (openai.RateLimitError, openai.APIConnectionError, openai.InternalServerError) as e:
                raise TransientProviderError(f"OpenAI embeddings: {e}") from e
            except openai.OpenAIError as e:
                raise EmbeddingError(f"Failed to embed {len(batch)} texts: {e}") from e
            return [item.embedding for item in response.data]

        return await with_retry("openai_embed", call, self._retry)

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        all_embeddings: list[list[float]] = []
        for i in range(0, len(texts), self._batch_size):
            all_embeddings.extend(await self._create(texts[i : i + self._batch_size]))
        logger.debug("embedded_texts", count=len(texts), model=self._model)
        return all_embeddings

    async def embed_query(self, query: str) -> list[float]:
        vectors = await self._create([query])
        return vectors[0]
