"""Query term extraction shared by coverage scoring and span verification."""

from __future__ import annotations

import re

from rag_orchestrator.config.constants import STOPWORDS


def tokenize(text: str) -> list[str]:
    """Lowercase, strip punctuation, remove stopwords and single characters."""
    text = text.lower()
    text = re.sub(r"[^\w\s]", " ", text)
    return [t for t in text.split() if t not in STOPWORDS and len(t) > 1]


def content_terms(text: str) -> set[str]:
    return set(tokenize(text))


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()
