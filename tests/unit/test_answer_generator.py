"""Tests for answer synthesis."""

from fakes import ScriptedLLM, WordEncoding, kb_ref
from rag_orchestrator.config.constants import INSUFFICIENT_EVIDENCE_ANSWER
from rag_orchestrator.generation.answer_generator import AnswerSynthesizer
from rag_orchestrator.generation.context_budget import ContextBudgeter
from rag_orchestrator.generation.prompt_templates import ANSWER_SYSTEM, DIRECT_ANSWER_SYSTEM
from rag_orchestrator.models.domain import ConversationTurn, QueryContext, RetrievalPlan, Strategy

REFS = [
    kb_ref("a", "Refunds are issued within fourteen days.", title="Refund policy"),
    kb_ref("b", "Store credit never expires.", title="Store credit"),
]
PLAN = RetrievalPlan(Strategy.KNOWLEDGE_ONLY, 0.9)


def _synth(llm) -> AnswerSynthesizer:
    return AnswerSynthesizer(llm, ContextBudgeter(encoding=WordEncoding()))


async def test_answer_cites_numbered_references(settings):
    llm = ScriptedLLM(answers=["Refunds take fourteen days [1]. See also [3]."])
    draft = await _synth(llm).synthesize(QueryContext("refund time?"), REFS, PLAN, settings)
    assert draft.cited_reference_indices == frozenset({1})
    assert draft.reference_count == 2
    assert llm.answer_systems == [ANSWER_SYSTEM]
    prompt = llm.answer_prompts[0]
    assert "[1] Refund policy\nRefunds are issued within fourteen days." in prompt
    assert "[2] Store credit" in prompt


async def test_no_references_returns_insufficient_evidence_without_llm(settings):
    llm = ScriptedLLM()
    draft = await _synth(llm).synthesize(QueryContext("refund time?"), [], PLAN, settings)
    assert draft.text == INSUFFICIENT_EVIDENCE_ANSWER
    assert draft.reference_count == 0
    assert llm.answer_prompts == []


async def test_direct_answer_uses_no_context(settings):
    llm = ScriptedLLM(answers=["Hi! How can I help?"])
    plan = RetrievalPlan(Strategy.ANSWER_DIRECTLY, 0.95)
    draft = await _synth(llm).synthesize(QueryContext("hello"), REFS, plan, settings)
    assert draft.text == "Hi! How can I help?"
    assert draft.reference_count == 0
    assert llm.answer_systems == [DIRECT_ANSWER_SYSTEM]


async def test_reference_budget_limits_numbered_context(settings):
    llm = ScriptedLLM(answers=["Fourteen days [1]."])
    tight = settings.model_copy(update={"context_reference_token_cap": 8})
    draft = await _synth(llm).synthesize(QueryContext("refund time?"), REFS, PLAN, tight)
    assert draft.reference_count == 1
    assert "Store credit" not in llm.answer_prompts[0]


async def test_revision_guidance_and_history_reach_the_prompt(settings):
    llm = ScriptedLLM(answers=["Fourteen days [1]."])
    context = QueryContext(
        "and for store credit?",
        history=(ConversationTurn("user", "refund time?"), ConversationTurn("assistant", "14 days.")),
    )
    await _synth(llm).synthesize(
        context, REFS, PLAN, settings, revision_issues=["Missing citation for store credit."]
    )
    prompt = llm.answer_prompts[0]
    assert "Revision guidance (address these issues):\n- Missing citation for store credit." in prompt
    assert "Conversation so far:\nUser: refund time?\nAssistant: 14 days." in prompt
