"""Critic: LLM review of a draft answer for groundedness and coverage."""

from __future__ import annotations

from collections.abc import Sequence

from rag_orchestrator.config.constants import CRITIC_ANSWER_PREVIEW_CHARS, MAX_CRITIC_ISSUES
from rag_orchestrator.config.safe_defaults import Stage
from rag_orchestrator.config.settings import Settings
from rag_orchestrator.generation.prompt_templates import (
    CRITIC_PROMPT,
    CRITIC_SYSTEM,
    format_reference_block,
)
from rag_orchestrator.generation.structured import structured_or_default
from rag_orchestrator.models.domain import DraftAnswer, Reference
from rag_orchestrator.models.schemas import CritiqueResponse
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.protocols.llm import LLMProvider

logger = get_logger("critic")


class CriticReviewer:
    def __init__(self, llm: LLMProvider) -> None:
        self._llm = llm

    async def review(
        self,
        query: str,
        draft: DraftAnswer,
        references: Sequence[Reference],
        settings: Settings,
    ) -> tuple[CritiqueResponse, bool]:
        prompt = CRITIC_PROMPT.format(
            query=query,
            context=format_reference_block(references[: draft.reference_count]),
            draft=draft.text[:CRITIC_ANSWER_PREVIEW_CHARS],
        )
        result, defaulted = await structured_or_default(
            self._llm, prompt, CritiqueResponse, Stage.CRITIC, settings, system=CRITIC_SYSTEM
        )
        review = result.model_copy(
            update={
                "coverage": max(0.0, min(1.0, result.coverage)),
                "issues": [i.strip() for i in result.issues if i.strip()][:MAX_CRITIC_ISSUES],
            }
        )
        logger.info(
            "critique",
            grounded=review.grounded,
            coverage=round(review.coverage, 4),
            action=review.action,
            issues=len(review.issues),
            defaulted=defaulted,
        )
        return review, defaulted
