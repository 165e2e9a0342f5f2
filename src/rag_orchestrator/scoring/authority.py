"""Source trust scores for web domains and knowledge-store references."""

from __future__ import annotations

from urllib.parse import urlparse

from rag_orchestrator.models.domain import Reference, ReferenceSource

# Suffix or exact-domain match; first match wins
TRUSTED_DOMAINS: dict[str, float] = {
    ".gov": 1.0,
    ".edu": 0.9,
    "arxiv.org": 0.95,
    "azure.microsoft.com": 0.9,
    "microsoft.com": 0.85,
    "openai.com": 0.85,
    "wikipedia.org": 0.85,
    "reuters.com": 0.85,
    "nytimes.com": 0.8,
    "github.com": 0.8,
    "stackoverflow.com": 0.75,
    ".org": 0.7,
}

SPAM_DOMAINS = frozenset({"pinterest.com", "quora.com", "answers.com"})

DEFAULT_WEB_AUTHORITY = 0.4
UNPARSABLE_URL_AUTHORITY = 0.3
SPAM_AUTHORITY = 0.1

# Curated knowledge-store content; reranker scores normalise against this range
KNOWLEDGE_BASE_AUTHORITY = 0.8
RERANKER_SCORE_MAX = 4.0


def domain_authority(url: str | None) -> float:
    if not url:
        return UNPARSABLE_URL_AUTHORITY
    try:
        host = urlparse(url).hostname
    except ValueError:
        return UNPARSABLE_URL_AUTHORITY
    if not host:
        return UNPARSABLE_URL_AUTHORITY

    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    if host in SPAM_DOMAINS:
        return SPAM_AUTHORITY
    for pattern, score in TRUSTED_DOMAINS.items():
        if host == pattern or host.endswith(pattern if pattern.startswith(".") else f".{pattern}"):
            return score
    return DEFAULT_WEB_AUTHORITY


def reference_authority(ref: Reference) -> float:
    if ref.source == ReferenceSource.WEB:
        return domain_authority(ref.url)
    if ref.rerank_score is not None:
        return max(KNOWLEDGE_BASE_AUTHORITY, min(ref.rerank_score / RERANKER_SCORE_MAX, 1.0))
    return KNOWLEDGE_BASE_AUTHORITY
