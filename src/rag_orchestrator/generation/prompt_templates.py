"""All prompt templates for the orchestrator."""

from __future__ import annotations

from collections.abc import Sequence

from rag_orchestrator.models.domain import ConversationTurn, Reference

PLANNER_SYSTEM = """You route user requests to the right evidence sources. Respond with JSON only."""

PLANNER_PROMPT = """Decide how to gather evidence for the latest user request.

Strategies:
- "knowledge_only": the internal knowledge base should contain the answer.
- "web_only": the request needs current or public information from the web.
- "both": consult the knowledge base and the web.
- "answer_directly": conversational or trivial requests that need no evidence.

Return a JSON object:
- "strategy": one of the strategies above
- "confidence": float between 0.0 and 1.0, how sure you are of the strategy
- "reasoning": one short sentence

{conversation}"""

GRADING_PROMPT = """Grade how well the retrieved documents answer the question.

Question: {query}

Documents:
{documents}

Grades:
- "correct": at least one document clearly answers the question.
- "ambiguous": the documents are partially relevant or only answer part of the question.
- "incorrect": the documents are not relevant to the question.

Return a JSON object:
- "confidence": "correct", "ambiguous" or "incorrect"
- "reasoning": one short sentence
- "documents": list of {{"index": int, "score": float 0.0-1.0, "relevant_sentences": list of sentences copied verbatim from that document}}"""

REFORMULATION_PROMPT = """The retrieved evidence for this query is weak. Rewrite the query so a search engine returns better, more varied results. Keep the user's intent; add specific terms, synonyms or the missing aspects.

Original query: {query}

Current retrieval:
- Coverage: {coverage:.2f} (target: >= {min_coverage:.2f})
- Diversity: {diversity:.2f} (target: >= {min_diversity:.2f})
- Documents retrieved: {count}

Return a JSON object:
- "query": the rewritten search query
- "reasoning": one short sentence"""

ANSWER_SYSTEM = """You are a precise, factual assistant. Respond using ONLY the provided context.
Rules:
- Cite evidence inline as [1], [2], etc., matching the numbered context entries.
- Every factual claim needs at least one citation. Never cite a number that is not in the context.
- If the context does not contain enough information, say so clearly.
- Never make up information not present in the context.
- Be concise and direct."""

ANSWER_PROMPT = """{conversation}Question: {query}

Context:
{context}
{revision}
Provide a clear, well-cited answer based on the context above."""

REVISION_GUIDANCE = """
Revision guidance (address these issues):
{issues}
"""

DIRECT_ANSWER_SYSTEM = """You are a helpful assistant. Answer conversationally and briefly. No citations are needed."""

DIRECT_ANSWER_PROMPT = """{conversation}User: {query}"""

CRITIC_SYSTEM = """You are an impartial quality reviewer. Respond with JSON only."""

CRITIC_PROMPT = """Review the draft answer against the numbered context.

Question: {query}

Context:
{context}

Draft answer:
{draft}

Check:
- grounded: is every factual claim traceable to a cited context entry?
- coverage: fraction (0.0-1.0) of the relevant context the answer meaningfully uses.
- issues: concrete problems to fix, such as unsupported claims, wrong or missing citations, missed evidence (at most 5).
- action: "accept" if the answer is grounded and complete, otherwise "revise".

Return a JSON object with keys "grounded", "coverage", "action", "issues"."""


def format_reference_block(references: Sequence[Reference], max_chars: int | None = None) -> str:
    """Format references as a numbered evidence block; numbering is 1-based and positional."""
    lines = []
    for i, ref in enumerate(references, 1):
        text = ref.content if max_chars is None else ref.content[:max_chars]
        header = f"[{i}]"
        if ref.title:
            header += f" {ref.title}"
        if ref.url:
            header += f" ({ref.url})"
        lines.append(f"{header}\n{text}")
    return "\n\n".join(lines)


def format_history(turns: Sequence[ConversationTurn]) -> str:
    return "\n".join(f"{t.role.capitalize()}: {t.content}" for t in turns)


def format_conversation(
    query: str,
    history: Sequence[ConversationTurn],
    summary: Sequence[str],
) -> str:
    parts = []
    if summary:
        parts.append("Conversation summary:\n" + "\n".join(f"- {s}" for s in summary))
    if history:
        parts.append("Recent conversation:\n" + format_history(history))
    parts.append(f"Latest request: {query}")
    return "\n\n".join(parts)


def format_issues(issues: Sequence[str]) -> str:
    return "\n".join(f"- {issue}" for issue in issues)
