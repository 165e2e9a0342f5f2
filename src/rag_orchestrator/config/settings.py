"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings

from rag_orchestrator.exceptions import ConfigurationError


class Settings(BaseSettings):
    # API Keys
    openai_api_key: str = ""
    google_api_key: str = ""
    tavily_api_key: str = ""
    azure_search_api_key: str = ""

    # Embedding
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_batch_size: int = 100

    # LLM / Gemini
    gemini_model: str = "gemini-2.0-flash"
    gemini_temperature: float = 0.1
    gemini_max_tokens: int = 4096

    # Knowledge store (Azure AI Search)
    azure_search_endpoint: str = ""
    azure_search_index: str = "knowledge"
    azure_search_api_version: str = "2024-07-01"
    azure_search_semantic_config: str = "default"
    azure_search_vector_field: str = "content_vector"
    azure_search_content_field: str = "content"
    knowledge_top_k: int = 5

    # Web search (Tavily)
    tavily_base_url: str = "https://api.tavily.com"
    tavily_search_depth: str = "basic"
    web_results_max: int = 6

    # Reranker thresholds for the knowledge-store fallback chain
    rerank_threshold: float = 2.5
    fallback_rerank_threshold: float = 1.5

    # Planner
    planner_dual_retrieval_threshold: float = 0.45

    # Critic loop
    critic_max_retries: int = 1
    critic_accept_coverage: float = 0.8

    # Adaptive reformulation
    adaptive_retrieval_enabled: bool = True
    adaptive_min_coverage: float = 0.4
    adaptive_min_diversity: float = 0.3
    adaptive_max_attempts: int = 3

    # Self-grading gate
    self_grading_enabled: bool = True
    self_grading_min_tier: Literal["correct", "ambiguous", "incorrect"] = "ambiguous"

    # Fusion
    rrf_k: int = 60
    fusion_top_k: int = 10
    semantic_boost_enabled: bool = False
    semantic_boost_weight: float = 0.01

    # Web quality filter
    web_quality_filter_enabled: bool = True
    web_min_authority: float = 0.3
    web_max_redundancy: float = 0.9
    web_min_relevance: float = 0.3
    source_denylist: str = ""  # comma-separated list of domains

    # Context budget
    tiktoken_encoding: str = "o200k_base"
    context_reference_token_cap: int = 6000
    context_history_token_cap: int = 1800

    # Transport retries
    transport_max_retries: int = 2
    transport_initial_delay_s: float = 0.5
    transport_max_delay_s: float = 8.0
    call_timeout_s: float = 30.0

    # Request
    request_timeout_s: float = 120.0

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = {"env_file": ".env", "env_prefix": "ORCH_"}

    @property
    def denied_domains(self) -> set[str]:
        return {d.strip().lower() for d in self.source_denylist.split(",") if d.strip()}

    def with_overrides(self, overrides: dict) -> Settings:
        """Per-request copy with feature toggles and thresholds replaced.

        Only fields in ``OVERRIDABLE_FIELDS`` may change; credentials and endpoints never do.
        """
        unknown = sorted(set(overrides) - OVERRIDABLE_FIELDS)
        if unknown:
            raise ConfigurationError(f"Unknown or non-overridable settings: {', '.join(unknown)}")

        update: dict = {}
        for name, value in overrides.items():
            current = getattr(self, name)
            if isinstance(current, bool):
                if not isinstance(value, bool):
                    raise ConfigurationError(f"{name} expects a boolean")
            elif isinstance(current, (int, float)):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ConfigurationError(f"{name} expects a number")
                value = type(current)(value)
            elif not isinstance(value, str):
                raise ConfigurationError(f"{name} expects a string")
            update[name] = value
        if "self_grading_min_tier" in update and update["self_grading_min_tier"] not in (
            "correct",
            "ambiguous",
            "incorrect",
        ):
            raise ConfigurationError("self_grading_min_tier must be correct, ambiguous or incorrect")
        return self.model_copy(update=update)


OVERRIDABLE_FIELDS = frozenset(
    {
        "knowledge_top_k",
        "web_results_max",
        "rerank_threshold",
        "fallback_rerank_threshold",
        "planner_dual_retrieval_threshold",
        "critic_max_retries",
        "critic_accept_coverage",
        "adaptive_retrieval_enabled",
        "adaptive_min_coverage",
        "adaptive_min_diversity",
        "adaptive_max_attempts",
        "self_grading_enabled",
        "self_grading_min_tier",
        "rrf_k",
        "fusion_top_k",
        "semantic_boost_enabled",
        "semantic_boost_weight",
        "web_quality_filter_enabled",
        "web_min_authority",
        "web_max_redundancy",
        "web_min_relevance",
        "source_denylist",
    }
)
