"""Reciprocal Rank Fusion for merging ranked reference lists from different sources."""

from __future__ import annotations

import dataclasses
from collections import defaultdict

from datasketch import MinHash, MinHashLSH

from rag_orchestrator.config.constants import (
    MINHASH_NUM_PERM,
    NEAR_DUPLICATE_THRESHOLD,
    SHINGLE_SIZE,
)
from rag_orchestrator.models.domain import Reference


def _shingles(text: str) -> set[str]:
    words = text.lower().split()
    if len(words) < SHINGLE_SIZE:
        return set(words)
    return {" ".join(words[i : i + SHINGLE_SIZE]) for i in range(len(words) - SHINGLE_SIZE + 1)}


def _minhash(shingles: set[str]) -> MinHash:
    mh = MinHash(num_perm=MINHASH_NUM_PERM)
    for s in shingles:
        mh.update(s.encode("utf-8"))
    return mh


class _Deduplicator:
    """Maps each reference to a representative key: identity first, then near-duplicate content."""

    def __init__(self, near_duplicates: bool) -> None:
        self.representatives: dict[str, Reference] = {}
        self._lsh = (
            MinHashLSH(threshold=NEAR_DUPLICATE_THRESHOLD, num_perm=MINHASH_NUM_PERM)
            if near_duplicates
            else None
        )

    def resolve(self, ref: Reference) -> str:
        if ref.key in self.representatives:
            return ref.key

        mh = None
        if self._lsh is not None:
            shingles = _shingles(ref.content)
            if shingles:
                mh = _minhash(shingles)
                matches = self._lsh.query(mh)
                if matches:
                    # Earliest registered representative wins
                    return min(matches, key=list(self.representatives).index)

        self.representatives[ref.key] = ref
        if mh is not None:
            self._lsh.insert(ref.key, mh)
        return ref.key


def reciprocal_rank_fusion(
    result_lists: list[list[Reference]],
    k: int = 60,
    near_duplicates: bool = True,
) -> list[Reference]:
    """Merge multiple ranked reference lists using RRF.

    Args:
        result_lists: Each list is ordered best-first by its own source.
        k: RRF constant (higher = more weight to lower-ranked results).
        near_duplicates: Also merge references whose content is a near-duplicate
            of an earlier one, not only references with the same identity.

    Returns:
        One list of representative references with ``fused_score`` set, ordered by
        fused score descending. Ties keep first-seen order.
    """
    dedupe = _Deduplicator(near_duplicates)
    scores: dict[str, float] = defaultdict(float)

    for result_list in result_lists:
        counted: set[str] = set()
        for rank, ref in enumerate(result_list, start=1):
            key = dedupe.resolve(ref)
            # A reference contributes once per list, at its best rank
            if key in counted:
                continue
            counted.add(key)
            scores[key] += 1.0 / (k + rank)

    first_seen = {key: i for i, key in enumerate(dedupe.representatives)}
    ordered = sorted(scores, key=lambda key: (-scores[key], first_seen[key]))
    return [
        dataclasses.replace(dedupe.representatives[key], fused_score=scores[key])
        for key in ordered
    ]
