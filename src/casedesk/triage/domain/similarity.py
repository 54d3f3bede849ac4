"""
Similarity Ranking
==================

Cosine similarity and top-K selection shared by the FAQ and case-memory
corpora.
"""

import math
from typing import List, Sequence, Tuple, TypeVar

T = TypeVar("T")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity over the shared-length prefix of two vectors.

    Entries beyond the shorter vector are ignored. Returns 0.0 when
    either vector has zero norm (or is empty).
    """
    n = min(len(a or ()), len(b or ()))
    dot = norm_a = norm_b = 0.0
    for i in range(n):
        ai = a[i] or 0.0
        bi = b[i] or 0.0
        dot += ai * bi
        norm_a += ai * ai
        norm_b += bi * bi
    if not norm_a or not norm_b:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def top_k(scored: Sequence[Tuple[T, float]], k: int) -> List[Tuple[T, float]]:
    """
    Rank (item, score) pairs by descending score and keep the first k.

    Ties keep the original corpus order (sorted() is stable).
    """
    if k <= 0:
        return []
    return sorted(scored, key=lambda pair: pair[1], reverse=True)[:k]


def rank_by_similarity(
    query: Sequence[float],
    corpus: Sequence[Tuple[T, Sequence[float]]],
    k: int
) -> List[Tuple[T, float]]:
    """Score each (item, embedding) against the query and return the top k."""
    return top_k([(item, cosine_similarity(query, vector)) for item, vector in corpus], k)
