"""Tests for the self-grading gate and evidence refinement."""

import pytest

from fakes import ScriptedLLM, kb_ref
from rag_orchestrator.gate.self_grading import SelfGrader, refine_references
from rag_orchestrator.models.domain import GradeTier
from rag_orchestrator.models.schemas import DocumentRelevance, GradingResponse

REFS = [
    kb_ref("a", "Refunds take 14 days. Shipping is free over $50. Returns need a receipt."),
    kb_ref("b", "Our office is closed on public holidays."),
]


async def test_empty_evidence_is_incorrect_without_llm_call(settings):
    llm = ScriptedLLM()
    outcome = await SelfGrader(llm).grade("q", [], settings)
    assert outcome.tier == GradeTier.INCORRECT
    assert outcome.force_web
    assert llm.structured_calls == []


async def test_correct_keeps_evidence(settings):
    llm = ScriptedLLM({GradingResponse: [GradingResponse(confidence="correct")]})
    outcome = await SelfGrader(llm).grade("How long do refunds take?", REFS, settings)
    assert outcome.tier == GradeTier.CORRECT
    assert list(outcome.references) == REFS
    assert not outcome.refined
    assert not outcome.force_web


async def test_ambiguous_refines_to_verified_spans(settings):
    grading = GradingResponse(
        confidence="ambiguous",
        documents=[
            DocumentRelevance(index=1, score=0.9, relevant_sentences=["Refunds  take 14 days."]),
            DocumentRelevance(index=2, score=0.1),
        ],
    )
    llm = ScriptedLLM({GradingResponse: [grading]})
    outcome = await SelfGrader(llm).grade("How long do refunds take?", REFS, settings)
    assert outcome.tier == GradeTier.AMBIGUOUS
    assert outcome.refined
    assert [r.id for r in outcome.references] == ["a"]
    assert outcome.references[0].content == "Refunds take 14 days."
    assert not outcome.force_web


async def test_incorrect_forces_web_below_min_tier(settings):
    llm = ScriptedLLM({GradingResponse: [GradingResponse(confidence="incorrect")] * 2})
    outcome = await SelfGrader(llm).grade("q", REFS, settings)
    assert outcome.force_web

    lenient = settings.model_copy(update={"self_grading_min_tier": "incorrect"})
    outcome = await SelfGrader(llm).grade("q", REFS, lenient)
    assert not outcome.force_web


async def test_grader_failure_defaults_to_ambiguous_unchanged(settings):
    outcome = await SelfGrader(ScriptedLLM()).grade("q", REFS, settings)
    assert outcome.tier == GradeTier.AMBIGUOUS
    assert outcome.defaulted
    assert not outcome.refined
    assert list(outcome.references) == REFS


async def test_grader_falls_back_to_plain_json(settings):
    llm = ScriptedLLM(raw=['```json\n{"confidence": "correct", "reasoning": "ok"}\n```'])
    outcome = await SelfGrader(llm).grade("q", REFS, settings)
    assert outcome.tier == GradeTier.CORRECT
    assert not outcome.defaulted


def test_refine_ignores_hallucinated_sentences():
    refined, changed = refine_references(
        REFS, [DocumentRelevance(index=1, score=0.8, relevant_sentences=["Refunds are instant."])]
    )
    assert refined == [REFS[0]]
    assert changed


def test_refine_keeps_originals_when_nothing_survives():
    refined, changed = refine_references(
        REFS,
        [DocumentRelevance(index=1, score=0.2), DocumentRelevance(index=2, score=0.4)],
    )
    assert refined == REFS
    assert not changed


def test_refine_ignores_out_of_range_indexes():
    refined, changed = refine_references(REFS, [DocumentRelevance(index=7, score=1.0)])
    assert refined == REFS
    assert not changed


@pytest.mark.parametrize(
    "grading",
    [
        GradingResponse(confidence="correct"),
        GradingResponse(
            confidence="ambiguous",
            documents=[
                DocumentRelevance(index=1, score=0.8, relevant_sentences=["Returns need a receipt."]),
                DocumentRelevance(index=2, score=0.2),
            ],
        ),
        GradingResponse(confidence="incorrect"),
    ],
)
async def test_regrading_unchanged_evidence_is_stable(settings, grading):
    llm = ScriptedLLM({GradingResponse: [grading, grading]})
    grader = SelfGrader(llm)
    first = await grader.grade("Do returns need a receipt?", REFS, settings)
    second = await grader.grade("Do returns need a receipt?", REFS, settings)

    prompts = llm.calls_for(GradingResponse)
    assert prompts[0] == prompts[1]
    assert second.tier == first.tier
    assert list(second.references) == list(first.references)
    assert second.refined == first.refined
    assert second.force_web == first.force_web
