"""Inline citation markers: extraction, integrity validation and stripping."""

from __future__ import annotations

import re
from dataclasses import dataclass

CITATION_RE = re.compile(r"\[(\d+)\]")


@dataclass(frozen=True)
class CitationCheck:
    cited: frozenset[int]
    invalid: tuple[int, ...]
    issues: tuple[str, ...]

    @property
    def valid(self) -> bool:
        return not self.issues


def extract_citations(text: str) -> list[int]:
    """All ``[n]`` markers in order of appearance, duplicates included."""
    return [int(m) for m in CITATION_RE.findall(text)]


def validate_citations(text: str, reference_count: int) -> CitationCheck:
    markers = extract_citations(text)
    invalid = tuple(sorted({n for n in markers if n < 1 or n > reference_count}))
    cited = frozenset(n for n in markers if 1 <= n <= reference_count)

    issues: list[str] = []
    if invalid:
        listed = ", ".join(f"[{n}]" for n in invalid)
        issues.append(
            f"Citation {listed} does not match any of the {reference_count} provided sources."
        )
    if reference_count > 0 and not markers:
        issues.append("The answer does not cite any of the provided sources.")
    return CitationCheck(cited=cited, invalid=invalid, issues=tuple(issues))


def strip_invalid_citations(text: str, reference_count: int) -> str:
    def replace(match: re.Match) -> str:
        n = int(match.group(1))
        return match.group(0) if 1 <= n <= reference_count else ""

    stripped = CITATION_RE.sub(replace, text)
    # Collapse spaces left behind before punctuation
    return re.sub(r"[ \t]+([.,;:!?])", r"\1", stripped)
