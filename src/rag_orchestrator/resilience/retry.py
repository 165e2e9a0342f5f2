"""Bounded exponential back-off for transport-level provider failures.

Only ``TransientProviderError`` and per-call timeouts are retried. Every other
exception propagates on the first failure, and ``asyncio.CancelledError`` is
never intercepted, so cancelling the owning task stops all further attempts.

Retries are counted per operation in a request-scoped ``RetryRecorder`` bound
through a context variable; the session pipeline copies the counts into the
retrieval diagnostics.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TypeVar

from rag_orchestrator.config.settings import Settings
from rag_orchestrator.exceptions import TransientProviderError
from rag_orchestrator.observability.logger import get_logger

logger = get_logger("retry")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    initial_delay_s: float = 0.5
    max_delay_s: float = 8.0
    call_timeout_s: float | None = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_retries=settings.transport_max_retries,
            initial_delay_s=settings.transport_initial_delay_s,
            max_delay_s=settings.transport_max_delay_s,
            call_timeout_s=settings.call_timeout_s,
        )

    def delay_for(self, attempt: int) -> float:
        """Back-off before retry number ``attempt`` (1-based)."""
        return min(self.initial_delay_s * 2 ** (attempt - 1), self.max_delay_s)


class RetryRecorder:
    def __init__(self) -> None:
        self.counts: Counter[str] = Counter()

    def record(self, operation: str) -> None:
        self.counts[operation] += 1

    def snapshot(self) -> dict[str, int]:
        return dict(self.counts)


_recorder: ContextVar[RetryRecorder | None] = ContextVar("retry_recorder", default=None)


@contextmanager
def recording_retries() -> Iterator[RetryRecorder]:
    recorder = RetryRecorder()
    token = _recorder.set(recorder)
    try:
        yield recorder
    finally:
        _recorder.reset(token)


async def with_retry(
    operation: str,
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
) -> T:
    """Run ``fn`` with per-call timeout and bounded exponential back-off."""
    attempt = 0
    while True:
        attempt += 1
        try:
            if policy.call_timeout_s is None:
                return await fn()
            return await asyncio.wait_for(fn(), timeout=policy.call_timeout_s)
        except (TransientProviderError, TimeoutError) as e:
            if attempt > policy.max_retries:
                logger.warning(
                    "transport_retries_exhausted",
                    operation=operation,
                    attempts=attempt,
                    error=str(e) or type(e).__name__,
                )
                if isinstance(e, TransientProviderError):
                    raise
                raise TransientProviderError(
                    f"{operation} timed out after {policy.call_timeout_s}s"
                ) from e

            delay = policy.delay_for(attempt)
            logger.info(
                "transport_retry",
                operation=operation,
                attempt=attempt,
                max_retries=policy.max_retries,
                delay_s=delay,
                error=str(e) or type(e).__name__,
            )
            recorder = _recorder.get()
            if recorder is not None:
                recorder.record(operation)
            await asyncio.sleep(delay)
