"""
Surprise Scoring

This module computes the surprise score that drives tier promotion. A memory is
scored against a corpus snapshot with six weighted factors:

- novelty: how unlike the corpus the memory is (embeddings, or tag overlap)
- contradiction: correction language, stronger when the topic already exists
- user emphasis: explicit "remember this" style markers, saturating
- temporal novelty: recent-event language versus timeless statements
- emotional weight: magnitude of valence combined with intensity
- interconnectivity: share of the corpus that is tag-connected to the memory

Love and breakthrough bonuses are added on top and the total is clamped to
``[0, 1]``. Scoring is pure: it never touches a store and the same inputs
always produce the same breakdown.
"""

import logging
from typing import Any, Iterable, List, Optional

from continuum.memory.config.settings import ContinuumConfig, default_config
from continuum.memory.config.validation import validate_configuration
from continuum.memory.models.memory_item import Memory, coerce_memory
from continuum.memory.models.surprise import BonusBreakdown, SurpriseBreakdown
from continuum.memory.scoring.markers import MarkerMatcher
from continuum.memory.scoring.similarity import max_cosine_similarity

logger = logging.getLogger(__name__)

# Emphasis saturates at three distinct markers.
EMPHASIS_SCALE = (0.0, 0.7, 0.85, 1.0)

CONTRADICTION_WITH_OVERLAP = 0.85
CONTRADICTION_WITHOUT_OVERLAP = 0.5

TEMPORAL_RECENT = 0.7
TEMPORAL_TIMELESS = 0.4
TEMPORAL_DEFAULT = 0.5

EMOTIONAL_VALENCE_SHARE = 0.4
EMOTIONAL_INTENSITY_SHARE = 0.6

EMPTY_CORPUS_INTERCONNECTIVITY = 0.5


def _clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return max(lower, min(upper, value))


class SurpriseScorer:
    """
    Scores memories against a corpus snapshot.

    The configuration is validated once, on construction; a scorer built from
    an invalid configuration raises ``ConfigurationError`` immediately.
    """

    def __init__(self, config: Optional[ContinuumConfig] = None):
        """
        Initialize the scorer.

        Args:
            config: Scoring configuration. Defaults to the built-in tables.
        """
        self.config = validate_configuration(config or default_config())
        self.weights = self.config.weights
        self.bonuses = self.config.bonuses

        markers = self.config.markers
        self._emphasis = MarkerMatcher(markers.emphasis)
        self._love = MarkerMatcher(markers.love)
        self._breakthrough = MarkerMatcher(markers.breakthrough)
        self._negation = MarkerMatcher(markers.negation)
        self._recency = MarkerMatcher(markers.recency)
        self._timeless = MarkerMatcher(markers.timeless)

    # ------------------------------------------------------------------
    # Individual factors
    # ------------------------------------------------------------------

    def novelty(self, memory: Memory, corpus: List[Memory]) -> float:
        """
        Novelty of ``memory`` relative to ``corpus``.

        Uses ``1 - max cosine similarity`` when the memory and at least one
        corpus item carry embeddings. Otherwise the share of the memory's tags
        that no corpus item carries is used; a memory without tags scores 0.
        """
        if memory.embedding is not None and corpus:
            candidates = [item.embedding for item in corpus if item.embedding is not None]
            if candidates:
                similarity = max_cosine_similarity(memory.embedding, candidates)
                return _clamp(1.0 - similarity)

        known_tags = set()
        for item in corpus:
            known_tags.update(item.tags)
        new_tags = memory.tags - known_tags
        return len(new_tags) / max(len(memory.tags), 1)

    def contradiction(self, memory: Any, corpus: Iterable[Any]) -> float:
        """
        Contradiction signal of ``memory`` against ``corpus``.

        Returns 0.85 when correction language co-occurs with at least one
        tag-sharing corpus item, 0.5 for correction language alone and 0.0
        otherwise.
        """
        memory = coerce_memory(memory)
        if not self._negation.contains_any(memory.content):
            return 0.0

        for item in corpus:
            item = coerce_memory(item)
            if item.id != memory.id and memory.shares_tag_with(item):
                return CONTRADICTION_WITH_OVERLAP
        return CONTRADICTION_WITHOUT_OVERLAP

    def user_emphasis(self, memory: Memory) -> float:
        count = self._emphasis.count(memory.content)
        return EMPHASIS_SCALE[min(count, len(EMPHASIS_SCALE) - 1)]

    def temporal_novelty(self, memory: Memory) -> float:
        # Recency wins when both kinds of marker are present.
        if self._recency.contains_any(memory.content):
            return TEMPORAL_RECENT
        if self._timeless.contains_any(memory.content):
            return TEMPORAL_TIMELESS
        return TEMPORAL_DEFAULT

    def emotional_weight(self, memory: Memory) -> float:
        return _clamp(
            EMOTIONAL_VALENCE_SHARE * abs(memory.emotional_valence)
            + EMOTIONAL_INTENSITY_SHARE * memory.emotional_intensity
        )

    def interconnectivity(self, memory: Memory, corpus: List[Memory]) -> float:
        if not corpus:
            return EMPTY_CORPUS_INTERCONNECTIVITY
        connected = sum(1 for item in corpus if memory.shares_tag_with(item))
        return min(1.0, connected / len(corpus))

    def detect_love(self, memory: Memory) -> bool:
        """True when any tag or the content contains a love-context marker."""
        if any(self._love.contains_any(tag) for tag in memory.tags):
            return True
        return self._love.contains_any(memory.content)

    def detect_breakthrough(self, memory: Memory) -> bool:
        return self._breakthrough.contains_any(memory.content)

    # ------------------------------------------------------------------
    # Composite score
    # ------------------------------------------------------------------

    def score(self, memory: Any, corpus: Iterable[Any] = ()) -> SurpriseBreakdown:
        """
        Compute the full surprise breakdown for ``memory``.

        Args:
            memory: A ``Memory`` (or mapping validated into one)
            corpus: Other memories to compare against. Any entry with the same
                    id as ``memory`` is excluded.

        Returns:
            SurpriseBreakdown with the six raw factors, bonuses and the
            clamped final score.

        Raises:
            ValidationError: If ``memory`` or a corpus entry is malformed
        """
        memory = coerce_memory(memory)
        others = [item for item in (coerce_memory(entry) for entry in corpus) if item.id != memory.id]

        factors = {
            "novelty": self.novelty(memory, others),
            "contradiction": self.contradiction(memory, others),
            "user_emphasis": self.user_emphasis(memory),
            "temporal_novelty": self.temporal_novelty(memory),
            "emotional_weight": self.emotional_weight(memory),
            "interconnectivity": self.interconnectivity(memory, others),
        }
        weights = self.weights.as_dict()
        base_score = sum(factors[name] * weights[name] for name in factors)

        love_applied = self.detect_love(memory)
        breakthrough_applied = self.detect_breakthrough(memory)
        bonuses = BonusBreakdown(
            love_applied=love_applied,
            love=self.bonuses.love if love_applied else 0.0,
            breakthrough_applied=breakthrough_applied,
            breakthrough=self.bonuses.breakthrough if breakthrough_applied else 0.0,
        )

        final_score = _clamp(base_score + bonuses.total)
        logger.debug(
            "Scored memory %s against %d corpus items: base=%.4f final=%.4f",
            memory.id,
            len(others),
            base_score,
            final_score,
        )

        return SurpriseBreakdown(
            **factors,
            bonuses=bonuses,
            base_score=base_score,
            final_score=final_score,
        )
