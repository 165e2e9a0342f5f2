"""Tests for structured LLM output parsing and safe defaults."""

import pytest

from fakes import ScriptedLLM
from rag_orchestrator.config.safe_defaults import Stage
from rag_orchestrator.exceptions import MalformedOutputError
from rag_orchestrator.generation.structured import parse_json_payload, structured_or_default
from rag_orchestrator.models.schemas import PlanResponse, ReformulationResponse


def test_parse_json_payload_strips_fences_and_prose():
    assert parse_json_payload('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_json_payload('Sure! Here it is: {"a": {"b": 2}} Thanks.') == {"a": {"b": 2}}


def test_parse_json_payload_rejects_non_objects():
    with pytest.raises(MalformedOutputError):
        parse_json_payload("no json here")
    with pytest.raises(ValueError):
        parse_json_payload("{not valid json}")


async def test_native_structured_output(settings):
    plan = PlanResponse(strategy="web_only", confidence=0.7)
    llm = ScriptedLLM({PlanResponse: [plan]})
    result, defaulted = await structured_or_default(llm, "p", PlanResponse, Stage.PLANNER, settings)
    assert result == plan
    assert not defaulted


async def test_plain_json_retry(settings):
    llm = ScriptedLLM(raw=['{"strategy": "both", "confidence": 0.6}'])
    result, defaulted = await structured_or_default(llm, "p", PlanResponse, Stage.PLANNER, settings)
    assert result.strategy == "both"
    assert not defaulted


async def test_schema_mismatch_falls_back_to_safe_default(settings):
    llm = ScriptedLLM(raw=['{"strategy": "guess", "confidence": "high"}'])
    result, defaulted = await structured_or_default(llm, "p", PlanResponse, Stage.PLANNER, settings)
    assert defaulted
    assert result.strategy == "both"
    assert result.confidence == 0.0


async def test_reformulation_default_is_none(settings):
    result, defaulted = await structured_or_default(
        ScriptedLLM(), "p", ReformulationResponse, Stage.REFORMULATION, settings
    )
    assert result is None
    assert defaulted
