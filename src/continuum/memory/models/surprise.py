"""Result models for surprise scoring and identity verification."""

from typing import Dict

from pydantic import BaseModel, Field


class BonusBreakdown(BaseModel):
    """Additive bonuses applied on top of the weighted factor sum."""

    love_applied: bool = False
    love: float = 0.0
    breakthrough_applied: bool = False
    breakthrough: float = 0.0

    @property
    def total(self) -> float:
        return self.love + self.breakthrough


class SurpriseBreakdown(BaseModel):
    """
    Full explanation of a surprise score.

    The six factor values are reported raw (before weighting) so downstream
    consumers can explain why a memory was or was not promoted.
    """

    novelty: float
    contradiction: float
    user_emphasis: float
    temporal_novelty: float
    emotional_weight: float
    interconnectivity: float
    bonuses: BonusBreakdown = Field(default_factory=BonusBreakdown)
    base_score: float
    final_score: float = Field(ge=0.0, le=1.0)

    def factors(self) -> Dict[str, float]:
        """Return the six raw factor values keyed by name."""
        return {
            "novelty": self.novelty,
            "contradiction": self.contradiction,
            "user_emphasis": self.user_emphasis,
            "temporal_novelty": self.temporal_novelty,
            "emotional_weight": self.emotional_weight,
            "interconnectivity": self.interconnectivity,
        }


class IdentityVerdict(BaseModel):
    """Outcome of the identity coherence check for a terminal-tier candidate."""

    safe: bool
    reason: str
    contradiction: float
    extends_existing: bool = False
