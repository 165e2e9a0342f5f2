"""Tests for the knowledge-store fallback chain."""

from fakes import FakeKnowledgeStore, kb_ref
from rag_orchestrator.exceptions import SourceUnavailableError, TransientProviderError
from rag_orchestrator.models.domain import FallbackLevel, KnowledgeReference
from rag_orchestrator.retrieval.fallback import KnowledgeFallbackChain, above_threshold
from rag_orchestrator.scoring.reason_codes import ReasonCode


async def test_primary_level_hit(settings):
    store = FakeKnowledgeStore(primary=[kb_ref("a", "alpha", rerank=3.1)])
    outcome = await KnowledgeFallbackChain(store).run("q", settings)
    assert outcome.level == FallbackLevel.PRIMARY
    assert outcome.threshold == 2.5
    assert outcome.threshold_history == (2.5,)
    assert outcome.reason_codes == ()
    assert [r.id for r in outcome.references] == ["a"]
    assert len(store.calls) == 1


async def test_lowered_threshold_when_primary_is_empty(settings):
    store = FakeKnowledgeStore(primary=[], lowered=[kb_ref("a", "alpha", rerank=1.8)])
    outcome = await KnowledgeFallbackChain(store).run("q", settings)
    assert outcome.level == FallbackLevel.LOWERED_THRESHOLD
    assert outcome.threshold == 1.5
    assert outcome.threshold_history == (2.5, 1.5)
    assert outcome.reason_codes == (ReasonCode.FALLBACK_USED,)


async def test_below_threshold_hits_are_dropped_client_side(settings):
    weak = [kb_ref("a", "alpha", rerank=2.0)]
    store = FakeKnowledgeStore(primary=weak, lowered=weak)
    outcome = await KnowledgeFallbackChain(store).run("q", settings)
    assert outcome.level == FallbackLevel.LOWERED_THRESHOLD
    assert [r.rerank_score for r in outcome.references] == [2.0]


async def test_vector_only_when_reranked_levels_are_empty(settings):
    store = FakeKnowledgeStore(
        vector=[kb_ref(str(i), f"text {i}", rerank=None) for i in range(3)]
    )
    outcome = await KnowledgeFallbackChain(store).run("q", settings)
    assert outcome.level == FallbackLevel.VECTOR_ONLY
    assert outcome.threshold is None
    assert outcome.threshold_history == (2.5, 1.5, None)
    assert len(outcome.references) == 3
    assert [c[0] for c in store.calls] == ["search", "search", "vector"]


async def test_failed_level_counts_as_empty(settings):
    store = FakeKnowledgeStore(
        primary=TransientProviderError("503"),
        lowered=[kb_ref("a", "alpha", rerank=1.6)],
    )
    outcome = await KnowledgeFallbackChain(store).run("q", settings)
    assert outcome.level == FallbackLevel.LOWERED_THRESHOLD
    assert not outcome.failed


async def test_every_level_failing_reports_knowledge_unavailable(settings):
    err = SourceUnavailableError("index offline")
    store = FakeKnowledgeStore(primary=err, lowered=err, vector=err)
    outcome = await KnowledgeFallbackChain(store).run("q", settings)
    assert outcome.references == ()
    assert outcome.level == FallbackLevel.VECTOR_ONLY
    assert outcome.threshold is None
    assert outcome.reason_codes == (ReasonCode.KNOWLEDGE_UNAVAILABLE,)
    assert outcome.failed


async def test_every_level_empty_reports_no_results(settings):
    outcome = await KnowledgeFallbackChain(FakeKnowledgeStore()).run("q", settings)
    assert outcome.references == ()
    assert outcome.reason_codes == (ReasonCode.NO_RESULTS,)
    assert not outcome.failed


async def test_thresholds_follow_settings(settings):
    store = FakeKnowledgeStore(lowered=[kb_ref("a", "alpha", rerank=1.1)], primary_threshold=3.0)
    custom = settings.model_copy(update={"rerank_threshold": 3.0, "fallback_rerank_threshold": 1.0})
    outcome = await KnowledgeFallbackChain(store).run("q", custom)
    assert outcome.threshold_history == (3.0, 1.0)


def test_above_threshold_falls_back_to_raw_score():
    refs = [KnowledgeReference(id="a", content="x", raw_score=3.0), kb_ref("b", "y", rerank=2.6)]
    assert [r.id for r in above_threshold(refs, 2.5)] == ["a", "b"]
