"""JSON-ready payloads for progress events and API responses."""

from __future__ import annotations

from rag_orchestrator.models.domain import CritiqueAttempt, Reference, RetrievalDiagnostics

SNIPPET_CHARS = 300


def diagnostics_payload(diagnostics: RetrievalDiagnostics) -> dict:
    quality = diagnostics.quality
    return {
        "fallback_level_used": int(diagnostics.fallback_level_used)
        if diagnostics.fallback_level_used is not None
        else None,
        "threshold_used": diagnostics.threshold_used,
        "threshold_history": list(diagnostics.threshold_history),
        "source_counts": dict(diagnostics.source_counts),
        "reformulation_attempts": diagnostics.reformulation_attempts,
        "retrieval_attempts": diagnostics.retrieval_attempts,
        "queries": list(diagnostics.queries),
        "grading": str(diagnostics.grading) if diagnostics.grading else None,
        "web_forced": diagnostics.web_forced,
        "escalated": diagnostics.escalated,
        "reason_codes": [str(r) for r in diagnostics.reason_codes],
        "transport_retries": dict(diagnostics.transport_retries),
        "filtered_out": diagnostics.filtered_out,
        "quality": {
            "coverage": round(quality.coverage, 4),
            "diversity": round(quality.diversity, 4),
            "freshness": round(quality.freshness, 4),
            "authority": round(quality.authority, 4),
            "confidence": str(quality.confidence) if quality.confidence else None,
        }
        if quality
        else None,
    }


def critique_payload(attempt: CritiqueAttempt) -> dict:
    return {
        "attempt_number": attempt.attempt_number,
        "grounded": attempt.grounded,
        "coverage": round(attempt.coverage, 4),
        "action": str(attempt.action),
        "issues": list(attempt.issues),
        "coverage_override": attempt.coverage_override,
    }


def reference_payload(index: int, ref: Reference) -> dict:
    return {
        "index": index,
        "id": ref.id,
        "source": str(ref.source),
        "title": ref.title,
        "url": ref.url,
        "fused_score": round(ref.fused_score, 6),
        "snippet": ref.content[:SNIPPET_CHARS],
    }
