"""Metric recording helpers for sessions."""

from __future__ import annotations

from rag_orchestrator.models.domain import RetrievalDiagnostics
from rag_orchestrator.observability.logger import get_logger

logger = get_logger("metrics")


def log_retrieval_metrics(trace_id: str, diagnostics: RetrievalDiagnostics, num_references: int) -> None:
    quality = diagnostics.quality
    logger.info(
        "retrieval_metrics",
        trace_id=trace_id,
        num_references=num_references,
        fallback_level=int(diagnostics.fallback_level_used) if diagnostics.fallback_level_used else None,
        threshold=diagnostics.threshold_used,
        source_counts=diagnostics.source_counts,
        attempts=diagnostics.retrieval_attempts,
        grading=str(diagnostics.grading) if diagnostics.grading else None,
        coverage=round(quality.coverage, 4) if quality else None,
        diversity=round(quality.diversity, 4) if quality else None,
        transport_retries=diagnostics.transport_retries,
    )


def log_critique_metrics(
    trace_id: str,
    attempt: int,
    coverage: float,
    grounded: bool,
    action: str,
    issues: int,
) -> None:
    logger.info(
        "critique_metrics",
        trace_id=trace_id,
        attempt=attempt,
        coverage=round(coverage, 4),
        grounded=grounded,
        action=action,
        issues=issues,
    )


def log_latency(trace_id: str, stage: str, duration_ms: float) -> None:
    logger.info(
        "latency",
        trace_id=trace_id,
        stage=stage,
        duration_ms=round(duration_ms, 2),
    )
