"""Planner/router: choose the retrieval strategy for a request."""

from __future__ import annotations

from rag_orchestrator.config.constants import PLANNER_RECENT_TURNS
from rag_orchestrator.config.safe_defaults import Stage
from rag_orchestrator.config.settings import Settings
from rag_orchestrator.generation.prompt_templates import (
    PLANNER_PROMPT,
    PLANNER_SYSTEM,
    format_conversation,
)
from rag_orchestrator.generation.structured import structured_or_default
from rag_orchestrator.models.domain import QueryContext, RetrievalPlan, Strategy
from rag_orchestrator.models.schemas import PlanResponse
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.protocols.llm import LLMProvider

logger = get_logger("planner")


class Planner:
    def __init__(self, llm: LLMProvider) -> None:
        self._llm = llm

    async def plan(self, context: QueryContext, settings: Settings) -> RetrievalPlan:
        conversation = format_conversation(
            context.query, context.history[-PLANNER_RECENT_TURNS:], context.summary
        )
        prompt = PLANNER_PROMPT.format(conversation=conversation)

        result, defaulted = await structured_or_default(
            self._llm, prompt, PlanResponse, Stage.PLANNER, settings, system=PLANNER_SYSTEM
        )

        strategy = Strategy(result.strategy)
        confidence = max(0.0, min(1.0, result.confidence))
        escalated = False

        # Low confidence always gathers maximal evidence, whatever the model picked
        if confidence < settings.planner_dual_retrieval_threshold:
            logger.info(
                "plan_escalated",
                original=str(strategy),
                confidence=round(confidence, 4),
                threshold=settings.planner_dual_retrieval_threshold,
            )
            strategy = Strategy.BOTH
            escalated = True

        plan = RetrievalPlan(
            strategy=strategy,
            confidence=confidence,
            escalated=escalated,
            reasoning=result.reasoning,
        )
        logger.info(
            "plan_decided",
            strategy=str(plan.strategy),
            confidence=round(plan.confidence, 4),
            escalated=plan.escalated,
            defaulted=defaulted,
        )
        return plan
