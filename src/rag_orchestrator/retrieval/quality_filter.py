"""Post-fusion quality filter for web references: authority, relevance, redundancy, denylist."""

from __future__ import annotations

from dataclasses import dataclass

from rag_orchestrator.config.constants import REDUNDANCY_REFERENCE_COUNT
from rag_orchestrator.config.settings import Settings
from rag_orchestrator.exceptions import ProviderError
from rag_orchestrator.models.domain import Reference, ReferenceSource
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.protocols.embedder import Embedder
from rag_orchestrator.retrieval.fusion import cosine_similarities
from rag_orchestrator.scoring.authority import domain_authority
from rag_orchestrator.scoring.reason_codes import ReasonCode

logger = get_logger("quality_filter")

_SAMPLE_CHARS = 500


@dataclass(frozen=True)
class WebQualityScore:
    authority: float
    relevance: float
    redundancy: float


def _is_denied(ref: Reference, denied: set[str]) -> bool:
    domain = ref.domain
    return bool(domain) and any(domain == d or domain.endswith(f".{d}") for d in denied)


class WebQualityFilter:
    def __init__(self, embedder: Embedder | None = None) -> None:
        self._embedder = embedder

    async def filter(
        self,
        query: str,
        references: list[Reference],
        settings: Settings,
    ) -> tuple[list[Reference], int, list[str]]:
        """Drop low-quality references from a fused list, keeping fused order.

        Returns ``(kept, removed_count, reason_codes)``. Knowledge-store references
        are only subject to the denylist.
        """
        denied = settings.denied_domains
        candidates = [r for r in references if not _is_denied(r, denied)]
        web = [r for r in candidates if r.source == ReferenceSource.WEB]
        if not web:
            removed = len(references) - len(candidates)
            return candidates, removed, [ReasonCode.WEB_FILTERED] if removed else []

        reasons: list[str] = []
        scores = await self._score(query, web, candidates, settings)
        if scores is None:
            reasons.append(ReasonCode.WEB_FILTER_DEGRADED)
            scores = {
                r.key: WebQualityScore(domain_authority(r.url), relevance=1.0, redundancy=0.0)
                for r in web
            }

        kept = [
            r
            for r in candidates
            if r.source != ReferenceSource.WEB or self._passes(scores[r.key], settings)
        ]
        removed = len(references) - len(kept)
        if removed:
            reasons.append(ReasonCode.WEB_FILTERED)
            logger.info("web_results_filtered", removed=removed, kept=len(kept))
        return kept, removed, reasons

    @staticmethod
    def _passes(score: WebQualityScore, settings: Settings) -> bool:
        return (
            score.authority > settings.web_min_authority
            and score.relevance > settings.web_min_relevance
            and score.redundancy < settings.web_max_redundancy
        )

    async def _score(
        self,
        query: str,
        web: list[Reference],
        candidates: list[Reference],
        settings: Settings,
    ) -> dict[str, WebQualityScore] | None:
        if self._embedder is None:
            return None

        kb_samples = [
            r.content[:_SAMPLE_CHARS]
            for r in candidates
            if r.source == ReferenceSource.KNOWLEDGE_STORE and r.content
        ][:REDUNDANCY_REFERENCE_COUNT]
        texts = [query, *(r.content for r in web), *kb_samples]
        try:
            vectors = await self._embedder.embed_texts(texts)
        except ProviderError as e:
            logger.warning("web_filter_degraded", error=str(e))
            return None
        if len(vectors) != len(texts):
            logger.warning("web_filter_degraded", error="embedding count mismatch")
            return None

        query_vec = vectors[0]
        web_vecs = vectors[1 : 1 + len(web)]
        kb_vecs = vectors[1 + len(web) :]
        relevance = cosine_similarities(query_vec, web_vecs)

        scores: dict[str, WebQualityScore] = {}
        for i, ref in enumerate(web):
            redundancy = (
                float(cosine_similarities(web_vecs[i], kb_vecs).max()) if kb_vecs else 0.0
            )
            scores[ref.key] = WebQualityScore(
                authority=domain_authority(ref.url),
                relevance=float(relevance[i]),
                redundancy=max(redundancy, 0.0),
            )
        return scores
