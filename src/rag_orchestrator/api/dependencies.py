"""FastAPI dependency injection helpers."""

from __future__ import annotations

from fastapi import HTTPException, Request

from rag_orchestrator.config.settings import Settings
from rag_orchestrator.exceptions import ConfigurationError
from rag_orchestrator.models.schemas import SessionRequest
from rag_orchestrator.pipeline.session_pipeline import SessionPipeline


def get_session_pipeline(request: Request) -> SessionPipeline:
    return request.app.state.session_pipeline


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def request_settings(body: SessionRequest, settings: Settings) -> Settings:
    """Apply the request's feature overrides; invalid overrides are a client error."""
    if not body.features:
        return settings
    try:
        return settings.with_overrides(body.features)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
