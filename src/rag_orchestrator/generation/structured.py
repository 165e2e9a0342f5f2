"""Structured LLM calls with a plain-JSON retry and a per-stage safe default."""

from __future__ import annotations

import json
import re
from typing import TypeVar

from pydantic import BaseModel

from rag_orchestrator.config.safe_defaults import Stage, safe_default
from rag_orchestrator.config.settings import Settings
from rag_orchestrator.exceptions import MalformedOutputError, OrchestratorError
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.protocols.llm import LLMProvider

logger = get_logger("structured")

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_json_payload(raw: str) -> dict:
    """Parse a JSON object from model text, tolerating markdown code fences."""
    text = _FENCE_RE.sub("", raw.strip())
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end < start:
        raise MalformedOutputError("no JSON object in model output")
    data = json.loads(text[start : end + 1])
    if not isinstance(data, dict):
        raise MalformedOutputError("model output is not a JSON object")
    return data


async def structured_or_default(
    llm: LLMProvider,
    prompt: str,
    schema: type[SchemaT],
    stage: Stage,
    settings: Settings,
    system: str | None = None,
) -> tuple[SchemaT | None, bool]:
    """Return ``(result, used_default)``.

    Tries native structured output first, then plain generation parsed as JSON.
    Provider errors and malformed output fall back to the stage's safe default.
    Cancellation is never intercepted.
    """
    try:
        return await llm.generate_structured(prompt, schema, system=system), False
    except (OrchestratorError, ValueError) as first:
        logger.info("structured_output_retry", stage=str(stage), error=str(first))

    try:
        raw = await llm.generate(prompt, system=system, temperature=0.0)
        return schema.model_validate(parse_json_payload(raw)), False
    except (OrchestratorError, ValueError) as e:
        logger.warning("structured_output_failed", stage=str(stage), error=str(e))
        return safe_default(stage, settings), True
