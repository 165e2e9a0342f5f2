"""Event sinks for streaming sessions."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from rag_orchestrator.models.domain import ProgressEvent


class QueueEventSink:
    """Buffers events for a single consumer, e.g. an SSE response."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[ProgressEvent | None] = asyncio.Queue()

    async def emit(self, event: ProgressEvent) -> None:
        await self._queue.put(event)

    def close(self) -> None:
        self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

