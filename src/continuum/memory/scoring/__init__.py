"""Surprise scoring for tier promotion decisions."""

from continuum.memory.scoring.markers import MarkerMatcher
from continuum.memory.scoring.similarity import cosine_similarity, max_cosine_similarity
from continuum.memory.scoring.surprise import SurpriseScorer

__all__ = [
    "MarkerMatcher",
    "SurpriseScorer",
    "cosine_similarity",
    "max_cosine_similarity",
]
