"""Pydantic models for LLM structured output and API request/response serialization."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# --- LLM structured output ---


class PlanResponse(BaseModel):
    strategy: Literal["knowledge_only", "web_only", "both", "answer_directly"]
    confidence: float
    reasoning: str = ""


class DocumentRelevance(BaseModel):
    index: int  # 1-based position in the evidence list
    score: float
    relevant_sentences: list[str] = []


class GradingResponse(BaseModel):
    confidence: Literal["correct", "ambiguous", "incorrect"]
    reasoning: str = ""
    documents: list[DocumentRelevance] = []


class ReformulationResponse(BaseModel):
    query: str
    reasoning: str = ""


class CritiqueResponse(BaseModel):
    grounded: bool
    coverage: float
    action: Literal["accept", "revise"]
    issues: list[str] = []


# --- API ---


class TurnModel(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class CritiqueModel(BaseModel):
    attempt_number: int
    grounded: bool
    coverage: float
    action: Literal["accept", "revise"]
    issues: list[str] = []
    coverage_override: bool = False


class SessionRequest(BaseModel):
    query: str = Field(min_length=1)
    history: list[TurnModel] = Field(default_factory=list)
    summary: list[str] = Field(default_factory=list)
    prior_critiques: list[CritiqueModel] = Field(default_factory=list)
    features: dict[str, bool | int | float | str] = Field(default_factory=dict)


class ReferenceModel(BaseModel):
    index: int
    id: str
    source: Literal["knowledge_store", "web"]
    title: str | None = None
    url: str | None = None
    fused_score: float
    snippet: str


class DiagnosticsModel(BaseModel):
    fallback_level_used: int | None
    threshold_used: float | None
    threshold_history: list[float | None]
    source_counts: dict[str, int]
    reformulation_attempts: int
    retrieval_attempts: int
    queries: list[str]
    grading: str | None
    web_forced: bool
    escalated: bool
    reason_codes: list[str]
    transport_retries: dict[str, int]
    filtered_out: int
    quality: dict[str, float | str | None] | None = None


class SessionResponse(BaseModel):
    answer: str
    strategy: str
    plan_confidence: float
    state: Literal["accepted", "exhausted"]
    caveated: bool
    cited: list[int]
    references: list[ReferenceModel]
    critiques: list[CritiqueModel]
    diagnostics: DiagnosticsModel
    trace_id: str
    latency_ms: float


class HealthResponse(BaseModel):
    status: str
    knowledge_store: bool
    web_search: bool
