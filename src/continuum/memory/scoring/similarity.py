"""Vector similarity helpers used by the novelty factor."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Vectors of different length, empty vectors and zero vectors have no
    defined direction and score 0.0.
    """
    if vec_a is None or vec_b is None or len(vec_a) != len(vec_b) or len(vec_a) == 0:
        return 0.0

    a = np.asarray(vec_a, dtype=float)
    b = np.asarray(vec_b, dtype=float)
    denominator = float(np.linalg.norm(a) * np.linalg.norm(b))
    if denominator == 0.0:
        return 0.0
    similarity = float(np.dot(a, b) / denominator)
    return max(-1.0, min(1.0, similarity))


def max_cosine_similarity(
    query: Sequence[float],
    candidates: Sequence[Sequence[float]],
) -> Optional[float]:
    """
    Highest cosine similarity between ``query`` and any candidate vector.

    Candidates whose dimension differs from the query count as 0.0. Returns
    ``None`` when there are no candidates at all.
    """
    if not candidates:
        return None

    query_array = np.asarray(query, dtype=float)
    query_norm = float(np.linalg.norm(query_array))

    matching = [vector for vector in candidates if len(vector) == len(query_array)]
    mismatched = len(candidates) - len(matching)
    if mismatched:
        logger.debug("Ignoring %d embeddings with mismatched dimension", mismatched)

    best = 0.0 if mismatched else None
    if matching and query_norm > 0.0:
        matrix = np.asarray(matching, dtype=float)
        norms = np.linalg.norm(matrix, axis=1)
        with np.errstate(divide="ignore", invalid="ignore"):
            similarities = np.where(norms > 0.0, matrix @ query_array / (norms * query_norm), 0.0)
        top = float(np.clip(similarities.max(), -1.0, 1.0))
        best = top if best is None else max(best, top)
    elif matching:
        best = 0.0

    return best
