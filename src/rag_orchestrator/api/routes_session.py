"""Session endpoints: one-shot and Server-Sent Events streaming."""

from __future__ import annotations

import asyncio
import json

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from rag_orchestrator.api.dependencies import get_session_pipeline, get_settings, request_settings
from rag_orchestrator.config.settings import Settings
from rag_orchestrator.exceptions import OrchestratorError, RequestCancelledError
from rag_orchestrator.models.domain import (
    ConversationTurn,
    CriticAction,
    CritiqueAttempt,
    QueryContext,
    SessionResult,
)
from rag_orchestrator.models.schemas import (
    CritiqueModel,
    DiagnosticsModel,
    ReferenceModel,
    SessionRequest,
    SessionResponse,
)
from rag_orchestrator.models.serialization import (
    critique_payload,
    diagnostics_payload,
    reference_payload,
)
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.pipeline.events import QueueEventSink
from rag_orchestrator.pipeline.session_pipeline import SessionPipeline

logger = get_logger("routes_session")

router = APIRouter()


def to_query_context(body: SessionRequest, correlation_id: str | None) -> QueryContext:
    return QueryContext(
        query=body.query,
        history=tuple(ConversationTurn(role=t.role, content=t.content) for t in body.history),
        summary=tuple(body.summary),
        correlation_id=correlation_id,
    )


def to_critique_attempts(models: list[CritiqueModel]) -> list[CritiqueAttempt]:
    return [
        CritiqueAttempt(
            attempt_number=m.attempt_number,
            grounded=m.grounded,
            coverage=m.coverage,
            action=CriticAction(m.action),
            issues=tuple(m.issues),
            coverage_override=m.coverage_override,
        )
        for m in models
    ]


def to_response(result: SessionResult, latency_ms: float) -> SessionResponse:
    return SessionResponse(
        answer=result.answer.text,
        strategy=str(result.plan.strategy),
        plan_confidence=round(result.plan.confidence, 4),
        state=str(result.state),
        caveated=result.answer.caveated,
        cited=sorted(result.answer.cited_reference_indices),
        references=[
            ReferenceModel(**reference_payload(i, ref))
            for i, ref in enumerate(result.references, 1)
        ],
        critiques=[CritiqueModel(**critique_payload(c)) for c in result.critiques],
        diagnostics=DiagnosticsModel(**diagnostics_payload(result.diagnostics)),
        trace_id=result.trace_id,
        latency_ms=round(latency_ms, 2),
    )


def _correlation_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.post("/session", response_model=SessionResponse)
async def run_session(
    body: SessionRequest,
    request: Request,
    pipeline: SessionPipeline = Depends(get_session_pipeline),
    settings: Settings = Depends(get_settings),
) -> SessionResponse:
    effective = request_settings(body, settings)
    loop = asyncio.get_running_loop()
    start = loop.time()
    try:
        result = await pipeline.run_session(
            to_query_context(body, _correlation_id(request)),
            prior_critiques=to_critique_attempts(body.prior_critiques),
            settings=effective,
        )
    except RequestCancelledError as e:
        raise HTTPException(status_code=504, detail=str(e)) from e
    except OrchestratorError as e:
        logger.error("session_failed", error=str(e))
        raise HTTPException(status_code=502, detail=str(e)) from e
    return to_response(result, (loop.time() - start) * 1000)


@router.post("/session/stream")
async def run_session_stream(
    body: SessionRequest,
    request: Request,
    pipeline: SessionPipeline = Depends(get_session_pipeline),
    settings: Settings = Depends(get_settings),
):
    """Stream session progress via Server-Sent Events."""
    effective = request_settings(body, settings)
    context = to_query_context(body, _correlation_id(request))
    prior = to_critique_attempts(body.prior_critiques)

    async def event_generator():
        sink = QueueEventSink()
        task = asyncio.create_task(
            pipeline.run_session_streaming(context, sink, prior_critiques=prior, settings=effective)
        )
        task.add_done_callback(lambda _: sink.close())
        try:
            async for event in sink:
                yield f"event: {event.type}\ndata: {json.dumps(event.data)}\n\n"
            await task
        except RequestCancelledError as e:
            yield f"event: error\ndata: {json.dumps({'error': 'timeout', 'detail': str(e)})}\n\n"
        except OrchestratorError as e:
            logger.error("session_stream_failed", error=str(e))
            yield f"event: error\ndata: {json.dumps({'error': 'unavailable', 'detail': str(e)})}\n\n"
        finally:
            # Client disconnect closes the generator; cancel in-flight provider calls
            if not task.done():
                task.cancel()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
