"""Tests for bounded transport retries."""

import asyncio

import pytest

from rag_orchestrator.exceptions import GenerationError, TransientProviderError
from rag_orchestrator.resilience.retry import RetryPolicy, recording_retries, with_retry

FAST = RetryPolicy(max_retries=2, initial_delay_s=0.0, max_delay_s=0.0, call_timeout_s=1.0)


class Flaky:
    def __init__(self, failures: list[Exception], result: str = "ok") -> None:
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


async def test_transient_failure_is_retried_and_recorded():
    fn = Flaky([TransientProviderError("429")])
    with recording_retries() as recorder:
        assert await with_retry("llm", fn, FAST) == "ok"
    assert fn.calls == 2
    assert recorder.snapshot() == {"llm": 1}


async def test_retries_are_bounded():
    fn = Flaky([TransientProviderError("503")] * 5)
    with pytest.raises(TransientProviderError):
        await with_retry("search", fn, FAST)
    assert fn.calls == 3


async def test_non_transient_errors_propagate_immediately():
    fn = Flaky([GenerationError("bad request")])
    with pytest.raises(GenerationError):
        await with_retry("llm", fn, FAST)
    assert fn.calls == 1


async def test_call_timeout_becomes_transient_after_retries():
    calls = 0

    async def slow() -> str:
        nonlocal calls
        calls += 1
        await asyncio.sleep(1)
        return "late"

    policy = RetryPolicy(max_retries=1, initial_delay_s=0.0, max_delay_s=0.0, call_timeout_s=0.01)
    with pytest.raises(TransientProviderError, match="timed out"):
        await with_retry("embed", slow, policy)
    assert calls == 2


async def test_retries_outside_a_session_are_not_recorded():
    fn = Flaky([TransientProviderError("429")])
    assert await with_retry("llm", fn, FAST) == "ok"


def test_backoff_is_exponential_and_capped():
    policy = RetryPolicy(initial_delay_s=0.5, max_delay_s=3.0)
    assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == [0.5, 1.0, 2.0, 3.0]
