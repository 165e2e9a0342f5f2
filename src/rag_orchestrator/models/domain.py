"""Core domain objects used throughout the system.

Everything here is request-scoped. Entities that cross component boundaries are
frozen; components attach new information by building new instances.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum, StrEnum
from urllib.parse import urlparse


class Strategy(StrEnum):
    KNOWLEDGE_ONLY = "knowledge_only"
    WEB_ONLY = "web_only"
    BOTH = "both"
    ANSWER_DIRECTLY = "answer_directly"

    @property
    def wants_knowledge(self) -> bool:
        return self in (Strategy.KNOWLEDGE_ONLY, Strategy.BOTH)

    @property
    def wants_web(self) -> bool:
        return self in (Strategy.WEB_ONLY, Strategy.BOTH)


class ReferenceSource(StrEnum):
    KNOWLEDGE_STORE = "knowledge_store"
    WEB = "web"


class FallbackLevel(IntEnum):
    PRIMARY = 1
    LOWERED_THRESHOLD = 2
    VECTOR_ONLY = 3


class GradeTier(StrEnum):
    CORRECT = "correct"
    AMBIGUOUS = "ambiguous"
    INCORRECT = "incorrect"

    @property
    def rank(self) -> int:
        return {"incorrect": 0, "ambiguous": 1, "correct": 2}[self.value]


class CriticAction(StrEnum):
    ACCEPT = "accept"
    REVISE = "revise"


class LoopState(StrEnum):
    DRAFTING = "drafting"
    CRITIQUING = "critiquing"
    ACCEPTED = "accepted"
    EXHAUSTED = "exhausted"


class EventType(StrEnum):
    PLAN_DECIDED = "plan_decided"
    RETRIEVAL_STARTED = "retrieval_started"
    RETRIEVAL_COMPLETED = "retrieval_completed"
    CRITIQUE_COMPLETED = "critique_completed"
    ANSWER_TOKEN = "answer_token"
    DONE = "done"


@dataclass(frozen=True)
class ConversationTurn:
    role: str  # "user" | "assistant"
    content: str


@dataclass(frozen=True)
class QueryContext:
    query: str
    history: tuple[ConversationTurn, ...] = ()
    summary: tuple[str, ...] = ()  # compacted bullets of older turns
    correlation_id: str | None = None


@dataclass(frozen=True)
class RetrievalPlan:
    strategy: Strategy
    confidence: float
    escalated: bool = False
    reasoning: str = ""


@dataclass(frozen=True)
class Reference:
    id: str
    content: str
    source: ReferenceSource
    raw_score: float = 0.0
    fused_score: float = 0.0
    rerank_score: float | None = None
    url: str | None = None
    title: str | None = None
    metadata: dict = field(default_factory=dict, hash=False, compare=False)

    @property
    def key(self) -> str:
        """Identity used to recognise the same reference across source lists.

        Knowledge-store chunks are identified by chunk id, since every chunk of a
        document carries the document's url. Web pages by normalized url, query included.
        """
        if self.source == ReferenceSource.KNOWLEDGE_STORE or not self.url:
            return self.id
        parsed = urlparse(self.url)
        key = f"{parsed.netloc.lower()}{parsed.path.rstrip('/')}"
        return f"{key}?{parsed.query}" if parsed.query else key

    @property
    def domain(self) -> str:
        if not self.url:
            return ""
        host = urlparse(self.url).netloc.lower()
        return host[4:] if host.startswith("www.") else host

    @property
    def group(self) -> str:
        """Source grouping used for diversity: web domain or parent document."""
        if self.source == ReferenceSource.WEB:
            return self.domain or self.id
        return str(self.metadata.get("document_id") or self.title or self.id)

    @property
    def published_at(self) -> datetime | None:
        return None


@dataclass(frozen=True)
class KnowledgeReference(Reference):
    source: ReferenceSource = ReferenceSource.KNOWLEDGE_STORE
    page_number: int | None = None


@dataclass(frozen=True)
class WebReference(Reference):
    source: ReferenceSource = ReferenceSource.WEB
    published: datetime | None = None

    @property
    def published_at(self) -> datetime | None:
        return self.published


@dataclass(frozen=True)
class QualityAssessment:
    coverage: float
    diversity: float
    freshness: float
    authority: float
    confidence: GradeTier | None = None


@dataclass(frozen=True)
class RetrievalDiagnostics:
    fallback_level_used: FallbackLevel | None = None
    threshold_used: float | None = None
    threshold_history: tuple[float | None, ...] = ()
    source_counts: dict[str, int] = field(default_factory=dict, hash=False)
    reformulation_attempts: int = 0
    retrieval_attempts: int = 0
    queries: tuple[str, ...] = ()
    grading: GradeTier | None = None
    web_forced: bool = False
    escalated: bool = False
    quality: QualityAssessment | None = None
    reason_codes: tuple[str, ...] = ()
    transport_retries: dict[str, int] = field(default_factory=dict, hash=False)
    filtered_out: int = 0


@dataclass(frozen=True)
class RetrievalAttempt:
    attempt_number: int
    query: str
    references: tuple[Reference, ...]
    diagnostics: RetrievalDiagnostics


@dataclass(frozen=True)
class RetrievalResult:
    references: tuple[Reference, ...]
    diagnostics: RetrievalDiagnostics
    attempts: tuple[RetrievalAttempt, ...] = ()


@dataclass(frozen=True)
class CritiqueAttempt:
    attempt_number: int
    grounded: bool
    coverage: float
    action: CriticAction
    issues: tuple[str, ...] = ()
    coverage_override: bool = False


@dataclass(frozen=True)
class DraftAnswer:
    text: str
    cited_reference_indices: frozenset[int]
    reference_count: int
    caveated: bool = False


@dataclass(frozen=True)
class ProgressEvent:
    type: EventType
    data: dict = field(default_factory=dict, hash=False)


@dataclass
class SessionResult:
    answer: DraftAnswer
    plan: RetrievalPlan
    retrieval: RetrievalResult
    critiques: list[CritiqueAttempt]
    state: LoopState
    trace_id: str
    spans: list[dict] = field(default_factory=list)

    @property
    def diagnostics(self) -> RetrievalDiagnostics:
        return self.retrieval.diagnostics

    @property
    def references(self) -> tuple[Reference, ...]:
        return self.retrieval.references
