"""Self-grading gate: the LLM grades fused evidence and ambiguous evidence is refined to relevant spans."""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass

from rag_orchestrator.config.constants import GRADING_DOC_PREVIEW_CHARS, REFINE_MIN_RELEVANCE
from rag_orchestrator.config.safe_defaults import Stage
from rag_orchestrator.config.settings import Settings
from rag_orchestrator.generation.prompt_templates import GRADING_PROMPT, format_reference_block
from rag_orchestrator.generation.structured import structured_or_default
from rag_orchestrator.models.domain import GradeTier, Reference
from rag_orchestrator.models.schemas import DocumentRelevance, GradingResponse
from rag_orchestrator.observability.logger import get_logger
from rag_orchestrator.protocols.llm import LLMProvider
from rag_orchestrator.query.terms import normalize_whitespace

logger = get_logger("self_grading")


@dataclass(frozen=True)
class GradeOutcome:
    tier: GradeTier
    references: tuple[Reference, ...]
    refined: bool = False
    defaulted: bool = False
    force_web: bool = False


def _verified_spans(content: str, sentences: Sequence[str]) -> list[str]:
    """Keep only sentences that really occur in the original content."""
    haystack = normalize_whitespace(content).lower()
    spans: list[str] = []
    for sentence in sentences:
        s = normalize_whitespace(sentence)
        if s and s.lower() in haystack and s not in spans:
            spans.append(s)
    return spans


def refine_references(
    references: Sequence[Reference],
    scores: Sequence[DocumentRelevance],
) -> tuple[list[Reference], bool]:
    """Strip-level refinement.

    Documents scored at or above the relevance cut-off are kept (in their original
    order) with content reduced to their verified relevant sentences. If nothing
    survives, the original set is returned unchanged.
    """
    by_index: dict[int, DocumentRelevance] = {}
    for s in scores:
        if 1 <= s.index <= len(references) and s.index not in by_index:
            by_index[s.index] = s
    if not by_index:
        return list(references), False

    refined: list[Reference] = []
    for index in sorted(by_index):
        doc = by_index[index]
        if doc.score < REFINE_MIN_RELEVANCE:
            continue
        original = references[index - 1]
        spans = _verified_spans(original.content, doc.relevant_sentences)
        if spans:
            refined.append(dataclasses.replace(original, content=" ".join(spans)))
        else:
            refined.append(original)

    if not refined:
        return list(references), False
    changed = len(refined) != len(references) or any(
        a.content != b.content for a, b in zip(refined, references)
    )
    return refined, changed


class SelfGrader:
    def __init__(self, llm: LLMProvider) -> None:
        self._llm = llm

    async def grade(
        self,
        query: str,
        references: Sequence[Reference],
        settings: Settings,
    ) -> GradeOutcome:
        min_tier = GradeTier(settings.self_grading_min_tier)
        if not references:
            tier = GradeTier.INCORRECT
            return GradeOutcome(
                tier=tier, references=(), force_web=tier.rank < min_tier.rank
            )

        prompt = GRADING_PROMPT.format(
            query=query,
            documents=format_reference_block(references, max_chars=GRADING_DOC_PREVIEW_CHARS),
        )
        result, defaulted = await structured_or_default(
            self._llm, prompt, GradingResponse, Stage.GRADER, settings
        )
        tier = GradeTier(result.confidence)

        kept: list[Reference] = list(references)
        refined = False
        if tier == GradeTier.AMBIGUOUS:
            kept, refined = refine_references(references, result.documents)

        outcome = GradeOutcome(
            tier=tier,
            references=tuple(kept),
            refined=refined,
            defaulted=defaulted,
            force_web=tier.rank < min_tier.rank,
        )
        logger.info(
            "evidence_graded",
            tier=str(tier),
            refined=refined,
            kept=len(kept),
            original=len(references),
            force_web=outcome.force_web,
            defaulted=defaulted,
        )
        return outcome
