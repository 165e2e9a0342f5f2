"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Request

from rag_orchestrator.models.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    configured = request.app.state.sources_configured
    return HealthResponse(
        status="ok",
        knowledge_store=configured.get("knowledge_store", False),
        web_search=configured.get("web_search", False),
    )
