"""Tests for FusionScorer: source merging, truncation and the semantic boost."""

import pytest

from fakes import FakeEmbedder, kb_ref, web_ref
from rag_orchestrator.retrieval.fusion import FusionScorer, cosine_similarities
from rag_orchestrator.scoring.reason_codes import ReasonCode


async def test_fuse_nothing(settings):
    fused, reasons = await FusionScorer().fuse("q", [[], []], settings)
    assert fused == []
    assert reasons == []


async def test_fuse_single_source_passes_through_and_truncates(settings):
    refs = [kb_ref(str(i), f"text {i}") for i in range(15)]
    fused, _ = await FusionScorer().fuse("q", [refs, []], settings)
    assert [r.id for r in fused] == [str(i) for i in range(10)]


async def test_semantic_boost_breaks_ties_toward_query_similarity(settings):
    embedder = FakeEmbedder(
        vectors={
            "refund policy": [1.0, 0.0],
            "unrelated text": [0.0, 1.0],
            "refund policy details": [1.0, 0.0],
        }
    )
    kb = [kb_ref("kb", "unrelated text")]
    web = [web_ref("https://example.com/refunds", "refund policy details")]
    boosted = settings.model_copy(update={"semantic_boost_enabled": True})

    fused, reasons = await FusionScorer(embedder).fuse("refund policy", [kb, web], boosted)

    assert [r.id for r in fused] == ["https://example.com/refunds", "kb"]
    assert fused[0].fused_score - fused[1].fused_score == pytest.approx(0.01)
    assert reasons == []


async def test_semantic_boost_cannot_reorder_distant_scores(settings):
    embedder = FakeEmbedder(
        vectors={"q": [1.0, 0.0], "first": [0.0, 1.0], "second": [0.0, 1.0], "third": [1.0, 0.0]}
    )
    refs = [kb_ref("a", "first"), kb_ref("b", "second"), kb_ref("c", "third")]
    boosted = settings.model_copy(
        update={"semantic_boost_enabled": True, "semantic_boost_weight": 1e-6}
    )
    fused, _ = await FusionScorer(embedder).fuse("q", [refs], boosted)
    assert [r.id for r in fused] == ["a", "b", "c"]


async def test_semantic_boost_failure_keeps_rrf_order(settings):
    refs = [kb_ref("a", "first"), kb_ref("b", "second")]
    boosted = settings.model_copy(update={"semantic_boost_enabled": True})
    fused, reasons = await FusionScorer(FakeEmbedder(fail=True)).fuse("q", [refs], boosted)
    assert [r.id for r in fused] == ["a", "b"]
    assert reasons == [ReasonCode.SEMANTIC_BOOST_FAILED]


def test_cosine_similarities_handles_zero_vectors():
    sims = cosine_similarities([1.0, 0.0], [[1.0, 0.0], [0.0, 0.0], [0.0, 2.0]])
    assert sims.tolist() == [1.0, 0.0, 0.0]


def test_cosine_similarities_empty():
    assert len(cosine_similarities([1.0], [])) == 0
