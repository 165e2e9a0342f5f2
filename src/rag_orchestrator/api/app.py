"""FastAPI application factory with lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from rag_orchestrator.api.middleware import RequestTimingMiddleware
from rag_orchestrator.api.routes_health import router as health_router
from rag_orchestrator.api.routes_session import router as session_router
from rag_orchestrator.config.settings import Settings
from rag_orchestrator.observability.logger import get_logger, setup_logging
from rag_orchestrator.pipeline.factory import build_session_pipeline
from rag_orchestrator.pipeline.session_pipeline import SessionPipeline

logger = get_logger("app")


def sources_configured(settings: Settings) -> dict[str, bool]:
    return {
        "knowledge_store": bool(settings.azure_search_endpoint),
        "web_search": bool(settings.tavily_api_key),
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Pipelines injected through create_app() skip provider wiring
    if getattr(app.state, "session_pipeline", None) is None:
        settings = Settings()
        setup_logging(settings.log_level, settings.log_json)
        app.state.settings = settings
        app.state.session_pipeline = build_session_pipeline(settings)
        app.state.sources_configured = sources_configured(settings)

    configured = app.state.sources_configured
    logger.info(
        "startup_complete",
        knowledge_store=configured["knowledge_store"],
        web_search=configured["web_search"],
        model=app.state.settings.gemini_model,
    )

    yield

    logger.info("shutdown_complete")


def create_app(
    pipeline: SessionPipeline | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    app = FastAPI(
        title="RAG Session Orchestrator",
        version="1.0.0",
        description="Planner, multi-source retrieval and critic loop over a conversation",
        lifespan=lifespan,
    )
    if pipeline is not None:
        settings = settings or Settings()
        app.state.session_pipeline = pipeline
        app.state.settings = settings
        app.state.sources_configured = sources_configured(settings)
    app.add_middleware(RequestTimingMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(session_router, tags=["session"])
    return app
