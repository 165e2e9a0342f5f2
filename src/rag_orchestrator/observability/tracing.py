"""Per-session span timings.

A ``TraceContext`` lives for exactly one session. Spans are closed in the order
their blocks exit; a span whose block raised carries the exception type, and a
cancelled one is marked ``cancelled``.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from uuid import uuid4


@dataclass
class Span:
    name: str
    offset_ms: float
    duration_ms: float = 0.0
    status: str = "ok"
    metadata: dict = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "offset_ms": round(self.offset_ms, 2),
            "duration_ms": round(self.duration_ms, 2),
            "status": self.status,
            **self.metadata,
        }


class TraceContext:
    def __init__(self, trace_id: str | None = None) -> None:
        # Caller correlation ids double as trace ids so logs line up across services
        self.trace_id = trace_id or uuid4().hex
        self.spans: list[Span] = []
        self._origin = time.perf_counter()

    def _now_ms(self) -> float:
        return (time.perf_counter() - self._origin) * 1000

    @contextmanager
    def span(self, name: str, **metadata) -> Iterator[Span]:
        opened = self._now_ms()
        s = Span(name=name, offset_ms=opened, metadata=metadata)
        try:
            yield s
        except asyncio.CancelledError:
            s.status = "cancelled"
            raise
        except Exception as e:
            s.status = type(e).__name__
            raise
        finally:
            s.duration_ms = self._now_ms() - opened
            self.spans.append(s)

    @property
    def elapsed_ms(self) -> float:
        return self._now_ms()

    def export_spans(self) -> list[dict]:
        return [s.as_dict() for s in self.spans]
