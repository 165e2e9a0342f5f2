"""Answer synthesis from a token-budgeted context with inline [n] citations."""

from __future__ import annotations

from collections.abc import Sequence

from rag_orchestrator.config.constants import INSUFFICIENT_EVIDENCE_ANSWER
from rag_orchestrator.config.settings import Settings
from rag_orchestrator.generation.context_budget import ContextBudgeter
from rag_orchestrator.generation.prompt_templates import (
    ANSWER_PROMPT,
    ANSWER_SYSTEM,
    DIRECT_ANSWER_PROMPT,
    DIRECT_ANSWER_SYSTEM,
    REVISION_GUIDANCE,
    format_history,
    format_issues,
    format_reference_block,
)
from rag_orchestrator.models.domain import (
    DraftAnswer,
    QueryContext,
    Reference,
    RetrievalPlan,
    Strategy,
)
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.protocols.llm import LLMProvider
from rag_orchestrator.verification.citations import validate_citations

logger = get_logger("generation")


class AnswerSynthesizer:
    def __init__(self, llm: LLMProvider, budgeter: ContextBudgeter) -> None:
        self._llm = llm
        self._budget = budgeter

    async def synthesize(
        self,
        context: QueryContext,
        references: Sequence[Reference],
        plan: RetrievalPlan,
        settings: Settings,
        revision_issues: Sequence[str] = (),
    ) -> DraftAnswer:
        history = self._budget.pack_history(context.history, settings.context_history_token_cap)
        conversation = f"Conversation so far:\n{format_history(history)}\n\n" if history else ""

        if plan.strategy == Strategy.ANSWER_DIRECTLY:
            text = await self._llm.generate(
                DIRECT_ANSWER_PROMPT.format(conversation=conversation, query=context.query),
                system=DIRECT_ANSWER_SYSTEM,
                temperature=settings.gemini_temperature,
                max_tokens=settings.gemini_max_tokens,
            )
            logger.info("generated_direct_answer", answer_len=len(text))
            return DraftAnswer(text=text, cited_reference_indices=frozenset(), reference_count=0)

        if not references:
            logger.info("insufficient_evidence_answer", query_len=len(context.query))
            return DraftAnswer(
                text=INSUFFICIENT_EVIDENCE_ANSWER,
                cited_reference_indices=frozenset(),
                reference_count=0,
            )

        packed = self._budget.pack_references(references, settings.context_reference_token_cap)
        revision = (
            REVISION_GUIDANCE.format(issues=format_issues(revision_issues))
            if revision_issues
            else ""
        )
        prompt = ANSWER_PROMPT.format(
            conversation=conversation,
            query=context.query,
            context=format_reference_block(packed),
            revision=revision,
        )
        text = await self._llm.generate(
            prompt,
            system=ANSWER_SYSTEM,
            temperature=settings.gemini_temperature,
            max_tokens=settings.gemini_max_tokens,
        )

        cited = validate_citations(text, len(packed)).cited
        logger.info(
            "generated_answer",
            query_len=len(context.query),
            answer_len=len(text),
            references=len(packed),
            citations=len(cited),
            revision=bool(revision_issues),
        )
        return DraftAnswer(text=text, cited_reference_indices=cited, reference_count=len(packed))
