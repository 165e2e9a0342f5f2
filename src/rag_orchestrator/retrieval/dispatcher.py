"""Retrieval dispatcher: fallback chain, concurrent source fan-out, fusion and the quality gate.

One ``dispatch`` call runs an explicit bounded loop of retrieval attempts. Each
attempt is recorded as an immutable ``RetrievalAttempt``; a new attempt only
happens when adaptive reformulation produced a rewritten query.
"""

from __future__ import annotations

import asyncio
import dataclasses
from dataclasses import dataclass

from rag_orchestrator.config.constants import MAX_RETRIEVAL_ATTEMPTS
from rag_orchestrator.config.settings import Settings
from rag_orchestrator.exceptions import ProviderError
from rag_orchestrator.gate.self_grading import SelfGrader
from rag_orchestrator.models.domain import (
    GradeTier,
    QueryContext,
    Reference,
    ReferenceSource,
    RetrievalAttempt,
    RetrievalDiagnostics,
    RetrievalPlan,
    RetrievalResult,
    Strategy,
)
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.protocols.sources import WebSearch
from rag_orchestrator.query.reformulation import QueryReformulator
from rag_orchestrator.retrieval.fallback import KnowledgeFallbackChain
from rag_orchestrator.retrieval.fusion import FusionScorer
from rag_orchestrator.retrieval.quality_filter import WebQualityFilter
from rag_orchestrator.scoring.reason_codes import ReasonCode
from rag_orchestrator.scoring.retrieval_quality import RetrievalQualityAssessor, shortfalls

logger = get_logger("dispatcher")


@dataclass(frozen=True)
class _WebOutcome:
    references: tuple[Reference, ...]
    failed: bool


class RetrievalDispatcher:
    def __init__(
        self,
        knowledge_chain: KnowledgeFallbackChain,
        web_search: WebSearch,
        fusion: FusionScorer,
        quality_filter: WebQualityFilter,
        grader: SelfGrader,
        assessor: RetrievalQualityAssessor,
        reformulator: QueryReformulator,
    ) -> None:
        self._knowledge = knowledge_chain
        self._web = web_search
        self._fusion = fusion
        self._filter = quality_filter
        self._grader = grader
        self._assessor = assessor
        self._reformulator = reformulator

    async def dispatch(
        self,
        context: QueryContext,
        plan: RetrievalPlan,
        settings: Settings,
    ) -> RetrievalResult:
        if plan.strategy == Strategy.ANSWER_DIRECTLY:
            logger.info("retrieval_skipped", strategy=str(plan.strategy))
            return RetrievalResult(
                references=(),
                diagnostics=RetrievalDiagnostics(queries=(context.query,), escalated=plan.escalated),
            )

        max_attempts = 1
        if settings.adaptive_retrieval_enabled:
            max_attempts = max(1, min(settings.adaptive_max_attempts, MAX_RETRIEVAL_ATTEMPTS))

        attempts: list[RetrievalAttempt] = []
        loop_reasons: list[str] = []
        query = context.query
        for attempt_number in range(1, max_attempts + 1):
            attempt = await self._attempt(query, attempt_number, plan, settings)
            attempts.append(attempt)

            if not settings.adaptive_retrieval_enabled:
                break
            if ReasonCode.ALL_SOURCES_FAILED in attempt.diagnostics.reason_codes:
                break
            misses = shortfalls(attempt.diagnostics.quality, settings)
            if not misses:
                break
            if attempt_number >= max_attempts:
                loop_reasons.append(ReasonCode.REFORMULATION_EXHAUSTED)
                logger.info("reformulation_exhausted", attempts=attempt_number, misses=misses)
                break

            rewritten = await self._reformulator.reformulate(
                query, attempt.diagnostics.quality, len(attempt.references), settings
            )
            if rewritten is None:
                loop_reasons.append(ReasonCode.REFORMULATION_FAILED)
                break
            loop_reasons.append(ReasonCode.QUERY_REFORMULATED)
            query = rewritten

        final = next((a for a in reversed(attempts) if a.references), attempts[-1])
        reasons = list(final.diagnostics.reason_codes)
        if plan.escalated:
            reasons.insert(0, ReasonCode.PLAN_ESCALATED)
        if final.references:
            reasons.extend(shortfalls(final.diagnostics.quality, settings))
        reasons.extend(r for r in loop_reasons if r not in reasons)

        diagnostics = dataclasses.replace(
            final.diagnostics,
            reformulation_attempts=len(attempts) - 1,
            retrieval_attempts=len(attempts),
            queries=tuple(a.query for a in attempts),
            escalated=plan.escalated,
            reason_codes=tuple(reasons),
        )
        logger.info(
            "retrieval_completed",
            references=len(final.references),
            attempts=len(attempts),
            chosen_attempt=final.attempt_number,
            fallback_level=int(diagnostics.fallback_level_used)
            if diagnostics.fallback_level_used
            else None,
            threshold=diagnostics.threshold_used,
        )
        return RetrievalResult(
            references=final.references,
            diagnostics=diagnostics,
            attempts=tuple(attempts),
        )

    async def _attempt(
        self,
        query: str,
        attempt_number: int,
        plan: RetrievalPlan,
        settings: Settings,
    ) -> RetrievalAttempt:
        wants_kb = plan.strategy.wants_knowledge
        wants_web = plan.strategy.wants_web

        kb_outcome, web_outcome = await asyncio.gather(
            self._knowledge.run(query, settings) if wants_kb else _none(),
            self._search_web(query, settings) if wants_web else _none(),
        )
        kb_refs = list(kb_outcome.references) if kb_outcome else []
        web_refs = list(web_outcome.references) if web_outcome else []

        reasons: list[str] = list(kb_outcome.reason_codes) if kb_outcome else []
        if web_outcome and web_outcome.failed:
            reasons.append(ReasonCode.WEB_UNAVAILABLE)

        fused, filtered_out = await self._fuse_and_filter(query, kb_refs, web_refs, settings, reasons)

        grading: GradeTier | None = None
        web_forced = False
        if settings.self_grading_enabled:
            outcome = await self._grader.grade(query, fused, settings)
            grading = outcome.tier
            if outcome.defaulted:
                reasons.append(ReasonCode.GRADER_DEFAULTED)

            if outcome.force_web and web_outcome is None:
                web_forced = True
                reasons.append(ReasonCode.WEB_FORCED)
                logger.info("web_search_forced", tier=str(outcome.tier), strategy=str(plan.strategy))
                web_outcome = await self._search_web(query, settings)
                web_refs = list(web_outcome.references)
                if web_outcome.failed and ReasonCode.WEB_UNAVAILABLE not in reasons:
                    reasons.append(ReasonCode.WEB_UNAVAILABLE)
                if web_refs:
                    fused, removed = await self._fuse_and_filter(
                        query, kb_refs, web_refs, settings, reasons
                    )
                    filtered_out += removed
            elif outcome.refined:
                reasons.append(ReasonCode.EVIDENCE_REFINED)
                fused = list(outcome.references)

        consulted_failed = [
            o.failed for o in (kb_outcome, web_outcome) if o is not None
        ]
        if consulted_failed and all(consulted_failed):
            reasons.append(ReasonCode.ALL_SOURCES_FAILED)
            logger.warning("all_sources_failed", query=query, attempt=attempt_number)

        quality = self._assessor.assess(query, fused, grading)
        if not fused and ReasonCode.NO_RESULTS not in reasons:
            reasons.append(ReasonCode.NO_RESULTS)

        diagnostics = RetrievalDiagnostics(
            fallback_level_used=kb_outcome.level if kb_outcome else None,
            threshold_used=kb_outcome.threshold if kb_outcome else None,
            threshold_history=kb_outcome.threshold_history if kb_outcome else (),
            source_counts={
                str(ReferenceSource.KNOWLEDGE_STORE): sum(
                    1 for r in fused if r.source == ReferenceSource.KNOWLEDGE_STORE
                ),
                str(ReferenceSource.WEB): sum(1 for r in fused if r.source == ReferenceSource.WEB),
            },
            grading=grading,
            web_forced=web_forced,
            quality=quality,
            reason_codes=tuple(dict.fromkeys(reasons)),
            filtered_out=filtered_out,
        )
        logger.info(
            "retrieval_attempt",
            attempt=attempt_number,
            query=query,
            kb=len(kb_refs),
            web=len(web_refs),
            fused=len(fused),
            grading=str(grading) if grading else None,
            coverage=round(quality.coverage, 4),
            diversity=round(quality.diversity, 4),
        )
        return RetrievalAttempt(
            attempt_number=attempt_number,
            query=query,
            references=tuple(fused),
            diagnostics=diagnostics,
        )

    async def _fuse_and_filter(
        self,
        query: str,
        kb_refs: list[Reference],
        web_refs: list[Reference],
        settings: Settings,
        reasons: list[str],
    ) -> tuple[list[Reference], int]:
        fused, fusion_reasons = await self._fusion.fuse(query, [kb_refs, web_refs], settings)
        reasons.extend(fusion_reasons)
        if not settings.web_quality_filter_enabled or not fused:
            return fused, 0
        kept, removed, filter_reasons = await self._filter.filter(query, fused, settings)
        reasons.extend(filter_reasons)
        return kept, removed

    async def _search_web(self, query: str, settings: Settings) -> _WebOutcome:
        try:
            results = await self._web.search(query, top_k=settings.web_results_max)
        except ProviderError as e:
            logger.warning("web_search_failed", error=str(e))
            return _WebOutcome(references=(), failed=True)
        return _WebOutcome(references=tuple(results), failed=False)


async def _none() -> None:
    return None

