"""Tests for the post-fusion web quality filter."""

from fakes import FakeEmbedder, kb_ref, web_ref
from rag_orchestrator.retrieval.quality_filter import WebQualityFilter
from rag_orchestrator.scoring.reason_codes import ReasonCode

QUERY = "refund policy"

KB = kb_ref("kb-1", "kb text")
GOOD = web_ref("https://example.com/refunds", "good web")
REDUNDANT = web_ref("https://example.net/copy", "dup web")
IRRELEVANT = web_ref("https://example.io/cats", "off topic")
SPAM = web_ref("https://www.pinterest.com/pin/1", "spam web")


def _embedder() -> FakeEmbedder:
    return FakeEmbedder(
        vectors={
            QUERY: [1.0, 1.0, 0.0],
            "kb text": [0.0, 1.0, 0.0],
            "good web": [1.0, 0.0, 0.0],
            "dup web": [0.0, 1.0, 0.0],
            "off topic": [0.0, 0.0, 1.0],
            "spam web": [1.0, 0.0, 0.0],
        }
    )


async def test_filter_drops_low_authority_irrelevant_and_redundant_web(settings):
    refs = [KB, GOOD, REDUNDANT, IRRELEVANT, SPAM]
    kept, removed, reasons = await WebQualityFilter(_embedder()).filter(QUERY, refs, settings)
    assert kept == [KB, GOOD]
    assert removed == 3
    assert reasons == [ReasonCode.WEB_FILTERED]


async def test_filter_keeps_fused_order(settings):
    refs = [GOOD, KB]
    kept, removed, reasons = await WebQualityFilter(_embedder()).filter(QUERY, refs, settings)
    assert kept == [GOOD, KB]
    assert removed == 0
    assert reasons == []


async def test_redundancy_threshold_is_configurable(settings):
    lenient = settings.model_copy(update={"web_max_redundancy": 1.01})
    kept, _, _ = await WebQualityFilter(_embedder()).filter(QUERY, [KB, REDUNDANT], lenient)
    assert kept == [KB, REDUNDANT]


async def test_denylist_matches_subdomains(settings):
    denied = web_ref("https://blog.spam.example/post", "good web")
    with_denylist = settings.model_copy(update={"source_denylist": "spam.example, other.test"})
    kept, removed, reasons = await WebQualityFilter(_embedder()).filter(
        QUERY, [denied, GOOD], with_denylist
    )
    assert kept == [GOOD]
    assert removed == 1
    assert ReasonCode.WEB_FILTERED in reasons


async def test_embedding_failure_degrades_to_authority_only(settings):
    kept, removed, reasons = await WebQualityFilter(FakeEmbedder(fail=True)).filter(
        QUERY, [KB, IRRELEVANT, SPAM], settings
    )
    assert kept == [KB, IRRELEVANT]
    assert removed == 1
    assert reasons == [ReasonCode.WEB_FILTER_DEGRADED, ReasonCode.WEB_FILTERED]


async def test_knowledge_only_list_is_untouched(settings):
    refs = [KB, kb_ref("kb-2", "more text")]
    embedder = _embedder()
    kept, removed, reasons = await WebQualityFilter(embedder).filter(QUERY, refs, settings)
    assert kept == refs
    assert (removed, reasons) == (0, [])
    assert embedder.calls == 0
