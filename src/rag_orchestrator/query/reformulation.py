"""LLM query rewriting for the adaptive retrieval loop."""

from __future__ import annotations

from rag_orchestrator.config.safe_defaults import Stage
from rag_orchestrator.config.settings import Settings
from rag_orchestrator.generation.prompt_templates import REFORMULATION_PROMPT
from rag_orchestrator.generation.structured import structured_or_default
from rag_orchestrator.models.domain import QualityAssessment
from rag_orchestrator.models.schemas import ReformulationResponse
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.protocols.llm import LLMProvider
from rag_orchestrator.query.terms import normalize_whitespace

logger = get_logger("reformulation")


class QueryReformulator:
    def __init__(self, llm: LLMProvider) -> None:
        self._llm = llm

    async def reformulate(
        self,
        query: str,
        quality: QualityAssessment,
        reference_count: int,
        settings: Settings,
    ) -> str | None:
        """Return a rewritten query, or None to keep the current one and stop."""
        prompt = REFORMULATION_PROMPT.format(
            query=query,
            coverage=quality.coverage,
            min_coverage=settings.adaptive_min_coverage,
            diversity=quality.diversity,
            min_diversity=settings.adaptive_min_diversity,
            count=reference_count,
        )
        result, defaulted = await structured_or_default(
            self._llm, prompt, ReformulationResponse, Stage.REFORMULATION, settings
        )
        if result is None:
            return None

        rewritten = normalize_whitespace(result.query)
        if not rewritten or rewritten.lower() == query.strip().lower():
            logger.info("reformulation_unchanged", query=query)
            return None

        logger.info("query_reformulated", original=query, rewritten=rewritten)
        return rewritten
