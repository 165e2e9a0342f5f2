"""Protocol for progress event consumers."""

from __future__ import annotations

from typing import Protocol

from rag_orchestrator.models.domain import ProgressEvent


class EventSink(Protocol):
    async def emit(self, event: ProgressEvent) -> None: ...
