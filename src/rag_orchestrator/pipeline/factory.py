"""Wire providers and components into a SessionPipeline."""

from __future__ import annotations

from rag_orchestrator.config.settings import Settings
from rag_orchestrator.embeddings.openai_embedder import OpenAIEmbedder
from rag_orchestrator.gate.self_grading import SelfGrader
from rag_orchestrator.generation.answer_generator import AnswerSynthesizer
from rag_orchestrator.generation.context_budget import ContextBudgeter
from rag_orchestrator.generation.gemini_provider import GeminiProvider
from rag_orchestrator.pipeline.session_pipeline import SessionPipeline
from rag_orchestrator.protocols.embedder import Embedder
from rag_orchestrator.protocols.llm import LLMProvider
from rag_orchestrator.protocols.sources import KnowledgeStore, WebSearch
from rag_orchestrator.query.planner import Planner
from rag_orchestrator.query.reformulation import QueryReformulator
from rag_orchestrator.resilience.retry import RetryPolicy
from rag_orchestrator.retrieval.azure_search import AzureSearchKnowledgeStore
from rag_orchestrator.retrieval.dispatcher import RetrievalDispatcher
from rag_orchestrator.retrieval.fallback import KnowledgeFallbackChain
from rag_orchestrator.retrieval.fusion import FusionScorer
from rag_orchestrator.retrieval.quality_filter import WebQualityFilter
from rag_orchestrator.retrieval.tavily_search import TavilyWebSearch
from rag_orchestrator.scoring.retrieval_quality import RetrievalQualityAssessor
from rag_orchestrator.verification.critic import CriticReviewer
from rag_orchestrator.verification.decision import CriticDecisionMaker


def build_session_pipeline(
    settings: Settings,
    llm: LLMProvider | None = None,
    embedder: Embedder | None = None,
    knowledge_store: KnowledgeStore | None = None,
    web_search: WebSearch | None = None,
    budgeter: ContextBudgeter | None = None,
) -> SessionPipeline:
    """Any collaborator left as None is built from settings against the real provider."""
    retry = RetryPolicy.from_settings(settings)

    # LLM
    llm = llm or GeminiProvider(
        api_key=settings.google_api_key, model=settings.gemini_model, retry_policy=retry
    )

    # Embedding
    embedder = embedder or OpenAIEmbedder(
        api_key=settings.openai_api_key,
        model=settings.embedding_model,
        batch_size=settings.embedding_batch_size,
        dimensions=settings.embedding_dimensions,
        retry_policy=retry,
    )

    # Sources
    knowledge_store = knowledge_store or AzureSearchKnowledgeStore(
        settings, embedder=embedder, retry_policy=retry
    )
    web_search = web_search or TavilyWebSearch(settings, retry_policy=retry)

    # Retrieval
    dispatcher = RetrievalDispatcher(
        knowledge_chain=KnowledgeFallbackChain(knowledge_store),
        web_search=web_search,
        fusion=FusionScorer(embedder),
        quality_filter=WebQualityFilter(embedder),
        grader=SelfGrader(llm),
        assessor=RetrievalQualityAssessor(),
        reformulator=QueryReformulator(llm),
    )

    # Generation + verification
    synthesizer = AnswerSynthesizer(
        llm, budgeter or ContextBudgeter(encoding_name=settings.tiktoken_encoding)
    )

    return SessionPipeline(
        planner=Planner(llm),
        dispatcher=dispatcher,
        synthesizer=synthesizer,
        critic=CriticReviewer(llm),
        decider=CriticDecisionMaker(),
        settings=settings,
    )
