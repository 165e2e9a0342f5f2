"""Safe-default policy for LLM stages whose output cannot be obtained or parsed.

One table, one place: every structured LLM call goes through
``generation.structured.structured_or_default`` which falls back to the entry
registered here for its stage.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum

from pydantic import BaseModel

from rag_orchestrator.config.settings import Settings
from rag_orchestrator.models.schemas import (
    CritiqueResponse,
    GradingResponse,
    PlanResponse,
)


class Stage(StrEnum):
    PLANNER = "planner"
    GRADER = "grader"
    REFORMULATION = "reformulation"
    CRITIC = "critic"


CRITIC_UNAVAILABLE_ISSUE = "Automated quality review was unavailable for this answer."


def _planner_default(settings: Settings) -> PlanResponse:
    # Zero confidence always escalates to dual retrieval
    return PlanResponse(strategy="both", confidence=0.0, reasoning="planner unavailable")


def _grader_default(settings: Settings) -> GradingResponse:
    # Ambiguous with no per-document scores leaves the evidence unchanged
    return GradingResponse(confidence="ambiguous", reasoning="grader unavailable")


def _reformulation_default(settings: Settings) -> None:
    # Keep the current query and stop reformulating
    return None


def _critic_default(settings: Settings) -> CritiqueResponse:
    return CritiqueResponse(
        grounded=True,
        coverage=settings.critic_accept_coverage,
        action="accept",
        issues=[CRITIC_UNAVAILABLE_ISSUE],
    )


SAFE_DEFAULTS: dict[Stage, Callable[[Settings], BaseModel | None]] = {
    Stage.PLANNER: _planner_default,
    Stage.GRADER: _grader_default,
    Stage.REFORMULATION: _reformulation_default,
    Stage.CRITIC: _critic_default,
}


def safe_default(stage: Stage, settings: Settings) -> BaseModel | None:
    return SAFE_DEFAULTS[stage](settings)
