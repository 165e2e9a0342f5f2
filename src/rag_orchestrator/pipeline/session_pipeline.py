"""Session pipeline: planner, retrieval and the bounded critic/revision loop."""

from __future__ import annotations

import asyncio
import dataclasses
import re
from collections.abc import Sequence

import structlog

from rag_orchestrator.config.constants import QUALITY_CAVEAT
from rag_orchestrator.config.settings import Settings
from rag_orchestrator.exceptions import RequestCancelledError
from rag_orchestrator.generation.answer_generator import AnswerSynthesizer
from rag_orchestrator.models.domain import (
    CriticAction,
    CritiqueAttempt,
    DraftAnswer,
    EventType,
    LoopState,
    ProgressEvent,
    QueryContext,
    Reference,
    RetrievalPlan,
    RetrievalResult,
    SessionResult,
    Strategy,
)
from rag_orchestrator.models.serialization import critique_payload, diagnostics_payload
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.observability.metrics import (
    log_critique_metrics,
    log_latency,
    log_retrieval_metrics,
)
from rag_orchestrator.observability.tracing import TraceContext
from rag_orchestrator.protocols.events import EventSink
from rag_orchestrator.query.planner import Planner
from rag_orchestrator.resilience.retry import recording_retries
from rag_orchestrator.retrieval.dispatcher import RetrievalDispatcher
from rag_orchestrator.verification.citations import strip_invalid_citations, validate_citations
from rag_orchestrator.verification.critic import CriticReviewer
from rag_orchestrator.verification.decision import CriticDecisionMaker

logger = get_logger("session_pipeline")

_TOKEN_RE = re.compile(r"\s*\S+\s*")


class SessionPipeline:
    def __init__(
        self,
        planner: Planner,
        dispatcher: RetrievalDispatcher,
        synthesizer: AnswerSynthesizer,
        critic: CriticReviewer,
        decider: CriticDecisionMaker,
        settings: Settings,
    ) -> None:
        self._planner = planner
        self._dispatcher = dispatcher
        self._synthesizer = synthesizer
        self._critic = critic
        self._decider = decider
        self._settings = settings

    async def run_session(
        self,
        context: QueryContext,
        prior_critiques: Sequence[CritiqueAttempt] = (),
        settings: Settings | None = None,
    ) -> SessionResult:
        """Run one request to a terminal state (accepted or exhausted)."""
        return await self._run(context, prior_critiques, settings or self._settings, sink=None)

    async def run_session_streaming(
        self,
        context: QueryContext,
        sink: EventSink,
        prior_critiques: Sequence[CritiqueAttempt] = (),
        settings: Settings | None = None,
    ) -> SessionResult:
        """Same control flow as ``run_session`` with ordered progress events.

        Only the final answer is streamed as ``answer_token`` events; rejected drafts
        are reported through their critique summary alone.
        """
        return await self._run(context, prior_critiques, settings or self._settings, sink=sink)

    async def _run(
        self,
        context: QueryContext,
        prior_critiques: Sequence[CritiqueAttempt],
        settings: Settings,
        sink: EventSink | None,
    ) -> SessionResult:
        trace = TraceContext(context.correlation_id)
        with structlog.contextvars.bound_contextvars(trace_id=trace.trace_id):
            try:
                async with asyncio.timeout(settings.request_timeout_s):
                    return await self._execute(context, prior_critiques, settings, sink, trace)
            except TimeoutError as e:
                logger.warning(
                    "session_timed_out",
                    timeout_s=settings.request_timeout_s,
                    elapsed_ms=round(trace.elapsed_ms, 2),
                )
                raise RequestCancelledError(
                    f"request exceeded {settings.request_timeout_s}s"
                ) from e

    async def _execute(
        self,
        context: QueryContext,
        prior_critiques: Sequence[CritiqueAttempt],
        settings: Settings,
        sink: EventSink | None,
        trace: TraceContext,
    ) -> SessionResult:
        with recording_retries() as retries:
            # STEP 1: Plan
            with trace.span("plan"):
                plan = await self._planner.plan(context, settings)
            await _emit(
                sink,
                EventType.PLAN_DECIDED,
                strategy=str(plan.strategy),
                confidence=round(plan.confidence, 4),
                escalated=plan.escalated,
            )

            # STEP 2: Retrieve
            await _emit(sink, EventType.RETRIEVAL_STARTED, strategy=str(plan.strategy))
            with trace.span("retrieval") as span:
                retrieval = await self._dispatcher.dispatch(context, plan, settings)
                span.metadata["references"] = len(retrieval.references)
            retrieval = _with_retries(retrieval, retries.snapshot())
            log_retrieval_metrics(trace.trace_id, retrieval.diagnostics, len(retrieval.references))
            await _emit(
                sink,
                EventType.RETRIEVAL_COMPLETED,
                references=len(retrieval.references),
                diagnostics=diagnostics_payload(retrieval.diagnostics),
            )

            # STEP 3: Draft / critique loop
            draft, critiques, state = await self._critic_loop(
                context, plan, retrieval.references, prior_critiques, settings, sink, trace
            )
            retrieval = _with_retries(retrieval, retries.snapshot())

        # STEP 4: Stream the final answer only
        if sink is not None:
            for token in _TOKEN_RE.findall(draft.text):
                await _emit(sink, EventType.ANSWER_TOKEN, text=token)

        for s in trace.spans:
            log_latency(trace.trace_id, s.name, s.duration_ms)
        logger.info(
            "session_completed",
            state=str(state),
            attempts=len(critiques),
            references=len(retrieval.references),
            caveated=draft.caveated,
            latency_ms=round(trace.elapsed_ms, 2),
        )
        await _emit(sink, EventType.DONE, state=str(state), trace_id=trace.trace_id)

        return SessionResult(
            answer=draft,
            plan=plan,
            retrieval=retrieval,
            critiques=critiques,
            state=state,
            trace_id=trace.trace_id,
            spans=trace.export_spans(),
        )

    async def _critic_loop(
        self,
        context: QueryContext,
        plan: RetrievalPlan,
        references: Sequence[Reference],
        prior_critiques: Sequence[CritiqueAttempt],
        settings: Settings,
        sink: EventSink | None,
        trace: TraceContext,
    ) -> tuple[DraftAnswer, list[CritiqueAttempt], LoopState]:
        critiques: list[CritiqueAttempt] = []
        # Caller-provided history only seeds the first draft's revision guidance
        guidance: tuple[str, ...] = prior_critiques[-1].issues if prior_critiques else ()
        reviewable = plan.strategy != Strategy.ANSWER_DIRECTLY and bool(references)

        draft: DraftAnswer | None = None
        state = LoopState.DRAFTING
        for attempt_number in range(max(settings.critic_max_retries, 0) + 1):
            with trace.span(f"synthesis.{attempt_number}"):
                draft = await self._synthesizer.synthesize(
                    context, references, plan, settings, revision_issues=guidance
                )

            if not reviewable:
                # Nothing to ground against: accept without a critic call
                note = (
                    "Answered directly without retrieval."
                    if plan.strategy == Strategy.ANSWER_DIRECTLY
                    else "No evidence was retrieved; returned an insufficient-evidence answer."
                )
                attempt = CritiqueAttempt(
                    attempt_number=attempt_number,
                    grounded=True,
                    coverage=0.0,
                    action=CriticAction.ACCEPT,
                    issues=(note,),
                )
                state = LoopState.ACCEPTED
            else:
                state = LoopState.CRITIQUING
                with trace.span(f"critique.{attempt_number}"):
                    review, _ = await self._critic.review(
                        context.query, draft, references, settings
                    )
                check = validate_citations(draft.text, draft.reference_count)
                attempt, state = self._decider.decide(attempt_number, review, check, settings)

            critiques.append(attempt)
            log_critique_metrics(
                trace.trace_id,
                attempt.attempt_number,
                attempt.coverage,
                attempt.grounded,
                str(attempt.action),
                len(attempt.issues),
            )
            await _emit(sink, EventType.CRITIQUE_COMPLETED, **critique_payload(attempt))

            if state == LoopState.ACCEPTED:
                break
            if state == LoopState.EXHAUSTED:
                draft = _caveat(draft)
                break
            guidance = attempt.issues

        return draft, critiques, state


def _caveat(draft: DraftAnswer) -> DraftAnswer:
    text = strip_invalid_citations(draft.text, draft.reference_count).rstrip() + QUALITY_CAVEAT
    return dataclasses.replace(
        draft,
        text=text,
        cited_reference_indices=validate_citations(text, draft.reference_count).cited,
        caveated=True,
    )


def _with_retries(retrieval: RetrievalResult, counts: dict[str, int]) -> RetrievalResult:
    return dataclasses.replace(
        retrieval,
        diagnostics=dataclasses.replace(retrieval.diagnostics, transport_retries=counts),
    )


async def _emit(sink: EventSink | None, event_type: EventType, **data) -> None:
    if sink is not None:
        await sink.emit(ProgressEvent(type=event_type, data=data))
