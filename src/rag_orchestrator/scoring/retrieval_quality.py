"""Retrieval quality assessment: coverage, diversity, freshness and authority of fused evidence."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from rag_orchestrator.config.constants import FRESHNESS_HALF_LIFE_DAYS, NEUTRAL_FRESHNESS
from rag_orchestrator.config.settings import Settings
from rag_orchestrator.models.domain import GradeTier, QualityAssessment, Reference
from rag_orchestrator.query.terms import content_terms
from rag_orchestrator.scoring.authority import reference_authority
from rag_orchestrator.scoring.reason_codes import ReasonCode


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RetrievalQualityAssessor:
    def __init__(self, clock: Callable[[], datetime] = _utc_now) -> None:
        self._clock = clock

    def assess(
        self,
        query: str,
        references: Sequence[Reference],
        grading: GradeTier | None = None,
    ) -> QualityAssessment:
        if not references:
            return QualityAssessment(
                coverage=0.0, diversity=0.0, freshness=0.0, authority=0.0, confidence=grading
            )

        # Diversity: distinct source groups (web domain / parent document) per reference
        groups = {r.group for r in references}
        diversity = len(groups) / len(references)

        # Coverage: share of query content terms found anywhere in the evidence
        query_terms = content_terms(query)
        if query_terms:
            evidence_terms: set[str] = set()
            for r in references:
                evidence_terms |= content_terms(r.content)
            coverage = len(query_terms & evidence_terms) / len(query_terms)
        else:
            coverage = 1.0

        now = self._clock()
        freshness = sum(self._freshness(r, now) for r in references) / len(references)
        authority = sum(reference_authority(r) for r in references) / len(references)

        return QualityAssessment(
            coverage=coverage,
            diversity=diversity,
            freshness=freshness,
            authority=authority,
            confidence=grading,
        )

    @staticmethod
    def _freshness(ref: Reference, now: datetime) -> float:
        published = ref.published_at
        if published is None:
            return NEUTRAL_FRESHNESS
        if published.tzinfo is None:
            published = published.replace(tzinfo=timezone.utc)
        age_days = max((now - published).total_seconds() / 86400, 0.0)
        return 0.5 ** (age_days / FRESHNESS_HALF_LIFE_DAYS)


def shortfalls(quality: QualityAssessment, settings: Settings) -> list[str]:
    """Reason codes for every adaptive-reformulation minimum the assessment misses."""
    reasons: list[str] = []
    if quality.coverage < settings.adaptive_min_coverage:
        reasons.append(ReasonCode.LOW_COVERAGE)
    if quality.diversity < settings.adaptive_min_diversity:
        reasons.append(ReasonCode.LOW_DIVERSITY)
    return reasons
