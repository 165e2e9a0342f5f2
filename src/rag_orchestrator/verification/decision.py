"""Critic decision maker: turn a review into one critique attempt and the next loop state."""

from __future__ import annotations

from rag_orchestrator.config.settings import Settings
from rag_orchestrator.models.domain import CriticAction, CritiqueAttempt, LoopState
from rag_orchestrator.models.schemas import CritiqueResponse
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.verification.citations import CitationCheck

logger = get_logger("critic_decision")


class CriticDecisionMaker:
    def decide(
        self,
        attempt_number: int,
        review: CritiqueResponse,
        citations: CitationCheck,
        settings: Settings,
    ) -> tuple[CritiqueAttempt, LoopState]:
        """Accept on an explicit accept or on coverage at/above the auto-accept threshold,
        but never while citations are broken. Exhaust once ``attempt_number`` reaches the
        retry budget. Otherwise revise.

        The model's issues are kept even when the coverage override accepts.
        """
        coverage_ok = review.coverage >= settings.critic_accept_coverage
        model_accepts = review.action == CriticAction.ACCEPT
        coverage_override = coverage_ok and not model_accepts
        issues = tuple(review.issues) + citations.issues

        if (model_accepts or coverage_ok) and citations.valid:
            state = LoopState.ACCEPTED
        elif attempt_number >= settings.critic_max_retries:
            state = LoopState.EXHAUSTED
        else:
            state = LoopState.DRAFTING

        attempt = CritiqueAttempt(
            attempt_number=attempt_number,
            grounded=review.grounded,
            coverage=review.coverage,
            action=CriticAction.ACCEPT if state == LoopState.ACCEPTED else CriticAction.REVISE,
            issues=issues,
            coverage_override=coverage_override and state == LoopState.ACCEPTED,
        )
        logger.info(
            "critic_decision",
            attempt=attempt_number,
            state=str(state),
            coverage=round(review.coverage, 4),
            model_action=review.action,
            coverage_override=attempt.coverage_override,
            citation_issues=len(citations.issues),
        )
        return attempt, state
