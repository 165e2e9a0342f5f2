"""Token budgeting for references and conversation history using tiktoken."""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from typing import Protocol

import tiktoken

from rag_orchestrator.models.domain import ConversationTurn, Reference
from rag_orchestrator.observability.logger import get_logger

logger = get_logger("context_budget")


class Encoding(Protocol):
    def encode(self, text: str) -> list[int]: ...

    def decode(self, tokens: list[int]) -> str: ...


class ContextBudgeter:
    def __init__(self, encoding_name: str = "o200k_base", encoding: Encoding | None = None) -> None:
        self._encoding_name = encoding_name
        self._encoding = encoding

    @property
    def encoding(self) -> Encoding:
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding(self._encoding_name)
        return self._encoding

    def count(self, text: str) -> int:
        return len(self.encoding.encode(text))

    def truncate(self, text: str, max_tokens: int) -> str:
        tokens = self.encoding.encode(text)
        if len(tokens) <= max_tokens:
            return text
        return self.encoding.decode(tokens[:max_tokens])

    def pack_references(self, references: Sequence[Reference], cap: int) -> list[Reference]:
        """Longest prefix of ``references`` that fits in ``cap`` tokens.

        The prefix keeps citation numbering stable. A first reference that alone
        exceeds the cap is truncated rather than dropped.
        """
        packed: list[Reference] = []
        used = 0
        for ref in references:
            tokens = self.count(ref.content)
            if used + tokens <= cap:
                packed.append(ref)
                used += tokens
                continue
            if not packed and cap > 0:
                packed.append(dataclasses.replace(ref, content=self.truncate(ref.content, cap)))
                used = cap
            break

        if len(packed) < len(references):
            logger.info(
                "references_trimmed",
                kept=len(packed),
                dropped=len(references) - len(packed),
                cap=cap,
            )
        return packed

    def pack_history(self, turns: Sequence[ConversationTurn], cap: int) -> list[ConversationTurn]:
        """Newest turns that fit in ``cap`` tokens, returned oldest first."""
        kept: list[ConversationTurn] = []
        used = 0
        for turn in reversed(turns):
            tokens = self.count(f"{turn.role}: {turn.content}")
            if used + tokens > cap:
                break
            kept.append(turn)
            used += tokens
        kept.reverse()
        return kept
