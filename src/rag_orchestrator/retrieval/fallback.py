"""Knowledge-store fallback chain: primary threshold, lowered threshold, vector-only."""

from __future__ import annotations

from dataclasses import dataclass

from rag_orchestrator.config.settings import Settings
from rag_orchestrator.exceptions import ProviderError
from rag_orchestrator.models.domain import FallbackLevel, Reference
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.protocols.sources import KnowledgeStore
from rag_orchestrator.scoring.reason_codes import ReasonCode

logger = get_logger("fallback")


@dataclass(frozen=True)
class FallbackOutcome:
    references: tuple[Reference, ...]
    level: FallbackLevel
    threshold: float | None  # None for vector-only
    threshold_history: tuple[float | None, ...]
    reason_codes: tuple[str, ...] = ()

    @property
    def failed(self) -> bool:
        """True when every level raised rather than returning results."""
        return ReasonCode.KNOWLEDGE_UNAVAILABLE in self.reason_codes


def _score(ref: Reference) -> float:
    return ref.rerank_score if ref.rerank_score is not None else ref.raw_score


def above_threshold(references: list[Reference], threshold: float) -> list[Reference]:
    return [r for r in references if _score(r) >= threshold]


class KnowledgeFallbackChain:
    def __init__(self, store: KnowledgeStore) -> None:
        self._store = store

    async def run(self, query: str, settings: Settings, filter: str | None = None) -> FallbackOutcome:
        """Walk the levels in order and stop at the first non-empty, above-threshold set.

        A level whose call fails counts as empty. If every level comes back empty the
        outcome reports the deepest level attempted with no references.
        """
        history: list[float | None] = []
        reasons: list[str] = []
        errors = 0

        levels: list[tuple[FallbackLevel, float | None]] = [
            (FallbackLevel.PRIMARY, settings.rerank_threshold),
            (FallbackLevel.LOWERED_THRESHOLD, settings.fallback_rerank_threshold),
            (FallbackLevel.VECTOR_ONLY, None),
        ]

        for level, threshold in levels:
            history.append(threshold)
            try:
                if threshold is None:
                    results = await self._store.vector_search(
                        query, top_k=settings.knowledge_top_k, filter=filter
                    )
                else:
                    results = await self._store.search(
                        query,
                        top_k=settings.knowledge_top_k,
                        rerank_threshold=threshold,
                        filter=filter,
                    )
                    results = above_threshold(results, threshold)
            except ProviderError as e:
                errors += 1
                logger.warning(
                    "knowledge_level_failed", level=int(level), threshold=threshold, error=str(e)
                )
                results = []

            if results:
                if level > FallbackLevel.PRIMARY:
                    reasons.append(ReasonCode.FALLBACK_USED)
                logger.info(
                    "fallback_level_used",
                    level=int(level),
                    threshold=threshold,
                    results=len(results),
                )
                return FallbackOutcome(
                    references=tuple(results),
                    level=level,
                    threshold=threshold,
                    threshold_history=tuple(history),
                    reason_codes=tuple(reasons),
                )
            logger.info("fallback_level_empty", level=int(level), threshold=threshold)

        reasons.append(
            ReasonCode.KNOWLEDGE_UNAVAILABLE if errors == len(levels) else ReasonCode.NO_RESULTS
        )
        return FallbackOutcome(
            references=(),
            level=FallbackLevel.VECTOR_ONLY,
            threshold=None,
            threshold_history=tuple(history),
            reason_codes=tuple(reasons),
        )
