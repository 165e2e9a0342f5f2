"""Shared test fixtures."""

from __future__ import annotations

import pytest

from fakes import FakeEmbedder, FakeKnowledgeStore, FakeWebSearch, ScriptedLLM, WordEncoding
from rag_orchestrator.config.settings import Settings
from rag_orchestrator.generation.context_budget import ContextBudgeter
from rag_orchestrator.pipeline.factory import build_session_pipeline


@pytest.fixture
def settings():
    """Test settings: fake credentials, no transport back-off."""
    return Settings(
        openai_api_key="test-key",
        google_api_key="test-key",
        transport_initial_delay_s=0.0,
        call_timeout_s=5.0,
        request_timeout_s=10.0,
        log_json=False,
    )


@pytest.fixture
def budgeter():
    return ContextBudgeter(encoding=WordEncoding())


@pytest.fixture
def make_pipeline(settings, budgeter):
    """Build a SessionPipeline wired entirely to fakes."""

    def _make(
        llm: ScriptedLLM,
        knowledge_store: FakeKnowledgeStore | None = None,
        web_search: FakeWebSearch | None = None,
        embedder: FakeEmbedder | None = None,
        **overrides,
    ):
        # Embedding-based web filtering has its own tests
        overrides.setdefault("web_quality_filter_enabled", False)
        return build_session_pipeline(
            settings.model_copy(update=overrides),
            llm=llm,
            embedder=embedder or FakeEmbedder(),
            knowledge_store=knowledge_store or FakeKnowledgeStore(),
            web_search=web_search or FakeWebSearch(),
            budgeter=budgeter,
        )

    return _make
