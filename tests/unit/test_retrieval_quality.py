"""Tests for retrieval quality assessment and source authority."""

from datetime import datetime, timedelta, timezone

import pytest

from fakes import kb_ref, web_ref
from rag_orchestrator.models.domain import GradeTier, QualityAssessment
from rag_orchestrator.scoring.authority import domain_authority, reference_authority
from rag_orchestrator.scoring.reason_codes import ReasonCode
from rag_orchestrator.scoring.retrieval_quality import RetrievalQualityAssessor, shortfalls

NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def assessor():
    return RetrievalQualityAssessor(clock=lambda: NOW)


def test_empty_evidence_scores_zero(assessor):
    quality = assessor.assess("refund policy", [], GradeTier.INCORRECT)
    assert quality == QualityAssessment(0.0, 0.0, 0.0, 0.0, GradeTier.INCORRECT)


def test_coverage_is_share_of_query_terms_found(assessor):
    refs = [kb_ref("a", "Our refund window is fourteen days."), kb_ref("b", "The policy applies online.")]
    quality = assessor.assess("What is the refund policy duration?", refs)
    # refund + policy of {refund, policy, duration}
    assert quality.coverage == pytest.approx(2 / 3)


def test_query_without_content_terms_is_fully_covered(assessor):
    assert assessor.assess("what is it?", [kb_ref("a", "anything")]).coverage == 1.0


def test_diversity_counts_distinct_documents_and_domains(assessor):
    refs = [
        kb_ref("a#1", "one", document_id="handbook"),
        kb_ref("a#2", "two", document_id="handbook"),
        web_ref("https://www.example.com/x", "three"),
        web_ref("https://example.com/y", "four"),
    ]
    assert assessor.assess("q", refs).diversity == pytest.approx(2 / 4)


def test_freshness_decays_with_age_and_undated_is_neutral(assessor):
    fresh = web_ref("https://a.com/1", "x", published=NOW)
    year_old = web_ref("https://b.com/2", "x", published=NOW - timedelta(days=365))
    undated = kb_ref("c", "x")
    assert assessor.assess("q", [fresh]).freshness == pytest.approx(1.0)
    assert assessor.assess("q", [year_old]).freshness == pytest.approx(0.5)
    assert assessor.assess("q", [undated]).freshness == pytest.approx(0.5)


def test_naive_publication_dates_are_treated_as_utc(assessor):
    naive = web_ref("https://a.com/1", "x", published=datetime(2026, 6, 1))
    assert assessor.assess("q", [naive]).freshness == pytest.approx(1.0)


def test_authority_is_mean_of_reference_authority(assessor):
    refs = [kb_ref("a", "x", rerank=None), web_ref("https://data.census.gov/t", "y")]
    assert assessor.assess("q", refs).authority == pytest.approx(0.9)


def test_shortfalls(settings):
    assert shortfalls(QualityAssessment(0.9, 0.9, 0.5, 0.5), settings) == []
    assert shortfalls(QualityAssessment(0.1, 0.9, 0.5, 0.5), settings) == [ReasonCode.LOW_COVERAGE]
    assert shortfalls(QualityAssessment(0.1, 0.1, 0.5, 0.5), settings) == [
        ReasonCode.LOW_COVERAGE,
        ReasonCode.LOW_DIVERSITY,
    ]


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://www.irs.gov/refunds", 1.0),
        ("https://cs.stanford.edu/paper", 0.9),
        ("https://arxiv.org/abs/1234", 0.95),
        ("https://en.wikipedia.org/wiki/Refund", 0.85),
        ("https://www.pinterest.com/pin/1", 0.1),
        ("https://somebody.blog/post", 0.4),
        ("not a url", 0.3),
        (None, 0.3),
    ],
)
def test_domain_authority(url, expected):
    assert domain_authority(url) == expected


def test_knowledge_authority_uses_reranker_score_when_higher():
    assert reference_authority(kb_ref("a", "x", rerank=None)) == 0.8
    assert reference_authority(kb_ref("a", "x", rerank=2.0)) == 0.8
    assert reference_authority(kb_ref("a", "x", rerank=3.8)) == pytest.approx(0.95)
    assert reference_authority(kb_ref("a", "x", rerank=9.0)) == 1.0
