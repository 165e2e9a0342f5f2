"""Knowledge store backed by the Azure AI Search REST API."""

from __future__ import annotations

import httpx

from rag_orchestrator.config.settings import Settings
from rag_orchestrator.exceptions import SourceUnavailableError, TransientProviderError
from rag_orchestrator.models.domain import KnowledgeReference
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.protocols.embedder import Embedder
from rag_orchestrator.resilience.retry import RetryPolicy, with_retry

logger = get_logger("azure_search")

_TRANSIENT_STATUS = {408, 429, 500, 502, 503, 504}


def raise_for_search_status(response: httpx.Response, source: str) -> None:
    if response.status_code < 400:
        return
    detail = response.text[:300]
    if response.status_code in _TRANSIENT_STATUS:
        raise TransientProviderError(f"{source} returned {response.status_code}: {detail}")
    raise SourceUnavailableError(f"{source} returned {response.status_code}: {detail}")


def search_results(response: httpx.Response, field: str, source: str) -> list[dict]:
    """Decode the result array of a search response; a body we cannot read is a source failure."""
    try:
        items = response.json()[field]
    except (ValueError, KeyError, TypeError) as e:
        raise SourceUnavailableError(f"{source} returned an unreadable payload: {e}") from e
    if not isinstance(items, list):
        raise SourceUnavailableError(f"{source} returned {type(items).__name__} for {field!r}")
    return items


class AzureSearchKnowledgeStore:
    def __init__(
        self,
        settings: Settings,
        embedder: Embedder,
        client: httpx.AsyncClient | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._endpoint = settings.azure_search_endpoint.rstrip("/")
        self._index = settings.azure_search_index
        self._api_version = settings.azure_search_api_version
        self._semantic_config = settings.azure_search_semantic_config
        self._vector_field = settings.azure_search_vector_field
        self._content_field = settings.azure_search_content_field
        self._embedder = embedder
        self._client = client or httpx.AsyncClient(
            headers={"api-key": settings.azure_search_api_key},
            timeout=settings.call_timeout_s,
        )
        self._retry = retry_policy or RetryPolicy.from_settings(settings)

    @property
    def _url(self) -> str:
        return f"{self._endpoint}/indexes/{self._index}/docs/search"

    async def _post(self, body: dict, operation: str) -> list[dict]:
        if not self._endpoint:
            raise SourceUnavailableError("Azure AI Search endpoint is not configured")

        async def call() -> list[dict]:
            try:
                response = await self._client.post(
                    self._url, params={"api-version": self._api_version}, json=body
                )
            except httpx.TransportError as e:
                raise TransientProviderError(f"knowledge store unreachable: {e}") from e
            raise_for_search_status(response, "knowledge store")
            return search_results(response, "value", "knowledge store")

        return await with_retry(operation, call, self._retry)

    async def search(
        self,
        query: str,
        top_k: int,
        rerank_threshold: float,
        filter: str | None = None,
    ) -> list[KnowledgeReference]:
        vector = await self._embedder.embed_query(query)
        body: dict = {
            "search": query,
            "top": top_k,
            "queryType": "semantic",
            "semanticConfiguration": self._semantic_config,
            "vectorQueries": [
                {"kind": "vector", "vector": vector, "fields": self._vector_field, "k": top_k}
            ],
        }
        if filter:
            body["filter"] = filter

        hits = await self._post(body, "knowledge_search")
        references = self._to_references(hits)
        kept = [
            r for r in references
            if r.rerank_score is not None and r.rerank_score >= rerank_threshold
        ]
        logger.info(
            "knowledge_search",
            hits=len(references),
            kept=len(kept),
            threshold=rerank_threshold,
        )
        return kept

    async def vector_search(
        self,
        query: str,
        top_k: int,
        filter: str | None = None,
    ) -> list[KnowledgeReference]:
        vector = await self._embedder.embed_query(query)
        body: dict = {
            "top": top_k,
            "vectorQueries": [
                {"kind": "vector", "vector": vector, "fields": self._vector_field, "k": top_k}
            ],
        }
        if filter:
            body["filter"] = filter

        hits = await self._post(body, "knowledge_vector_search")
        logger.info("knowledge_vector_search", hits=len(hits))
        return self._to_references(hits)

    def _to_references(self, hits: list[dict]) -> list[KnowledgeReference]:
        try:
            return [self._to_reference(hit) for hit in hits]
        except (ValueError, TypeError, AttributeError) as e:
            raise SourceUnavailableError(f"knowledge store returned a malformed hit: {e}") from e

    def _to_reference(self, hit: dict) -> KnowledgeReference:
        rerank = hit.get("@search.rerankerScore")
        return KnowledgeReference(
            id=str(hit.get("id", "")),
            content=hit.get(self._content_field) or "",
            raw_score=float(hit.get("@search.score") or 0.0),
            rerank_score=float(rerank) if rerank is not None else None,
            title=hit.get("title"),
            url=hit.get("url"),
            page_number=hit.get("page_number"),
            metadata={"document_id": hit.get("document_id") or hit.get("title")},
        )
