"""Fusion & scoring: RRF across sources plus an optional bounded semantic boost."""

from __future__ import annotations

import dataclasses

import numpy as np

from rag_orchestrator.config.settings import Settings
from rag_orchestrator.exceptions import ProviderError
from rag_orchestrator.models.domain import Reference
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.protocols.embedder import Embedder
from rag_orchestrator.retrieval.rrf import reciprocal_rank_fusion
from rag_orchestrator.scoring.reason_codes import ReasonCode

logger = get_logger("fusion")


def cosine_similarities(query_vec: list[float], vectors: list[list[float]]) -> np.ndarray:
    """Cosine similarity of one vector against many; zero vectors score 0."""
    if not vectors:
        return np.zeros(0, dtype=np.float32)
    q = np.asarray(query_vec, dtype=np.float32)
    m = np.asarray(vectors, dtype=np.float32)
    if m.ndim != 2 or m.shape[1] != q.shape[0]:
        return np.zeros(len(vectors), dtype=np.float32)
    norms = np.linalg.norm(m, axis=1) * np.linalg.norm(q)
    dots = m @ q
    return np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)


class FusionScorer:
    def __init__(self, embedder: Embedder | None = None) -> None:
        self._embedder = embedder

    async def fuse(
        self,
        query: str,
        result_lists: list[list[Reference]],
        settings: Settings,
    ) -> tuple[list[Reference], list[str]]:
        """Merge source lists into one ordered, deduplicated list.

        With a single non-empty source the list passes through in its own order.
        """
        non_empty = [lst for lst in result_lists if lst]
        if not non_empty:
            return [], []

        fused = reciprocal_rank_fusion(
            non_empty, k=settings.rrf_k, near_duplicates=len(non_empty) > 1
        )

        reasons: list[str] = []
        if settings.semantic_boost_enabled and self._embedder is not None:
            fused, boosted = await self._semantic_boost(query, fused, settings.semantic_boost_weight)
            if not boosted:
                reasons.append(ReasonCode.SEMANTIC_BOOST_FAILED)

        fused = fused[: settings.fusion_top_k]
        logger.info(
            "fused_references",
            sources=len(non_empty),
            candidates=sum(len(lst) for lst in non_empty),
            fused=len(fused),
        )
        return fused, reasons

    async def _semantic_boost(
        self, query: str, references: list[Reference], weight: float
    ) -> tuple[list[Reference], bool]:
        """Add ``weight * max(0, cos(query, ref))`` to each fused score.

        The added term is bounded by ``weight``, so no pair of references can swap
        order unless their base scores are within ``weight`` of each other.
        """
        try:
            query_vec = await self._embedder.embed_query(query)
            ref_vecs = await self._embedder.embed_texts([r.content for r in references])
        except ProviderError as e:
            logger.warning("semantic_boost_failed", error=str(e))
            return references, False
        if len(ref_vecs) != len(references):
            logger.warning("semantic_boost_mismatch", expected=len(references), got=len(ref_vecs))
            return references, False

        sims = np.clip(cosine_similarities(query_vec, ref_vecs), 0.0, 1.0)
        boosted = [
            dataclasses.replace(r, fused_score=r.fused_score + weight * float(sim))
            for r, sim in zip(references, sims)
        ]
        # Stable sort keeps RRF order among equal boosted scores
        boosted.sort(key=lambda r: r.fused_score, reverse=True)
        return boosted, True
