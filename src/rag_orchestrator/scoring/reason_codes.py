"""Machine-readable reason codes surfaced in retrieval diagnostics."""

from __future__ import annotations

from enum import StrEnum


class ReasonCode(StrEnum):
    NO_RESULTS = "NO_RESULTS"
    FALLBACK_USED = "FALLBACK_USED"
    KNOWLEDGE_UNAVAILABLE = "KNOWLEDGE_UNAVAILABLE"
    WEB_UNAVAILABLE = "WEB_UNAVAILABLE"
    ALL_SOURCES_FAILED = "ALL_SOURCES_FAILED"
    PLAN_ESCALATED = "PLAN_ESCALATED"
    GRADER_DEFAULTED = "GRADER_DEFAULTED"
    EVIDENCE_REFINED = "EVIDENCE_REFINED"
    WEB_FORCED = "WEB_FORCED"
    WEB_FILTERED = "WEB_FILTERED"
    SEMANTIC_BOOST_FAILED = "SEMANTIC_BOOST_FAILED"
    WEB_FILTER_DEGRADED = "WEB_FILTER_DEGRADED"
    LOW_COVERAGE = "LOW_COVERAGE"
    LOW_DIVERSITY = "LOW_DIVERSITY"
    QUERY_REFORMULATED = "QUERY_REFORMULATED"
    REFORMULATION_FAILED = "REFORMULATION_FAILED"
    REFORMULATION_EXHAUSTED = "REFORMULATION_EXHAUSTED"
