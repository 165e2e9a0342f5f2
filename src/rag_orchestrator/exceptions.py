"""Custom exception hierarchy for the answer orchestrator."""


class OrchestratorError(Exception):
    """Base exception for all orchestrator errors."""


class ConfigurationError(OrchestratorError):
    """Error in system configuration."""


class ProviderError(OrchestratorError):
    """An external provider (LLM, embeddings, search) failed."""


class TransientProviderError(ProviderError):
    """Rate limit, 5xx, network error or per-call timeout. Safe to retry."""


class SourceUnavailableError(ProviderError):
    """A retrieval source (knowledge store or web search) could not be queried."""


class GenerationError(ProviderError):
    """Error during LLM generation."""


class EmbeddingError(ProviderError):
    """Error generating embeddings."""


class MalformedOutputError(OrchestratorError):
    """LLM output could not be parsed into the expected structure."""


class RequestCancelledError(OrchestratorError):
    """The request deadline elapsed before a session finished."""
