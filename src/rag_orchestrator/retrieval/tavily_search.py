"""Web search backed by the Tavily search API."""

from __future__ import annotations

from datetime import datetime

import httpx

from rag_orchestrator.config.settings import Settings
from rag_orchestrator.exceptions import SourceUnavailableError, TransientProviderError
from rag_orchestrator.models.domain import WebReference
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.resilience.retry import RetryPolicy, with_retry
from rag_orchestrator.retrieval.azure_search import raise_for_search_status, search_results

logger = get_logger("tavily")


def parse_published_date(value: str | None) -> datetime | None:
    if not value:
        return None
    for fmt in ("%Y-%m-%d", "%a, %d %b %Y %H:%M:%S %Z"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


class TavilyWebSearch:
    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._api_key = settings.tavily_api_key
        self._base_url = settings.tavily_base_url.rstrip("/")
        self._search_depth = settings.tavily_search_depth
        self._client = client or httpx.AsyncClient(timeout=settings.call_timeout_s)
        self._retry = retry_policy or RetryPolicy.from_settings(settings)

    async def search(self, query: str, top_k: int) -> list[WebReference]:
        if not self._api_key:
            raise SourceUnavailableError("Tavily API key is not configured")

        payload = {
            "api_key": self._api_key,
            "query": query,
            "max_results": top_k,
            "search_depth": self._search_depth,
            "include_answer": False,
        }

        async def call() -> list[dict]:
            try:
                response = await self._client.post(f"{self._base_url}/search", json=payload)
            except httpx.TransportError as e:
                raise TransientProviderError(f"web search unreachable: {e}") from e
            raise_for_search_status(response, "web search")
            return search_results(response, "results", "web search")

        results = await with_retry("web_search", call, self._retry)
        try:
            references = [
                WebReference(
                    id=item.get("url") or f"web-{i}",
                    content=item.get("content") or "",
                    raw_score=float(item.get("score") or 0.0),
                    url=item.get("url"),
                    title=item.get("title"),
                    published=parse_published_date(item.get("published_date")),
                )
                for i, item in enumerate(results[:top_k])
            ]
        except (ValueError, TypeError, AttributeError) as e:
            raise SourceUnavailableError(f"web search returned a malformed result: {e}") from e
        logger.info("web_search", results=len(references))
        return references
