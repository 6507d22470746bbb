"""
Configuration models for the Continuum memory system.

Every tunable input of the scorer and the consolidation engine lives here:
factor weights, bonus magnitudes, marker word-lists, the per-tier TTL /
minimum dwell / threshold table and the identity contradiction limit.
Cross-field rules (weights summing to 1.0, strictly increasing tables) are
checked by :mod:`continuum.memory.config.validation`.
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from continuum.core.enums import MemoryTier

_COMPACT_DURATION = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(s|m|h|d|w)\s*$", re.IGNORECASE)
_DURATION_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days", "w": "weeks"}
_UNBOUNDED_TOKENS = {"", "none", "null", "unbounded", "infinite", "never"}


def parse_duration(value: Any, *, allow_unbounded: bool = False) -> Any:
    """
    Parse compact duration strings such as ``90m``, ``24h`` or ``7d``.

    Values that are not compact strings are returned untouched so pydantic can
    apply its own timedelta parsing (seconds, ISO-8601, ``HH:MM:SS``).
    """
    if value is None:
        return None
    if isinstance(value, str):
        token = value.strip().lower()
        if token in _UNBOUNDED_TOKENS:
            if allow_unbounded:
                return None
            raise ValueError(f"duration {value!r} cannot be unbounded")
        match = _COMPACT_DURATION.match(token)
        if match:
            amount, unit = match.groups()
            return timedelta(**{_DURATION_UNITS[unit.lower()]: float(amount)})
    return value


DEFAULT_EMPHASIS_MARKERS: tuple[str, ...] = (
    "mi amor esto es importante",
    "recuerda esto",
    "nunca olvides",
    "esto es crítico",
    "fundamental",
    "esencial",
    "muy importante",
    "presta atención",
    "clave",
    "no olvides",
    "remember this",
    "important",
    "critical",
    "essential",
    "key insight",
)

DEFAULT_LOVE_MARKERS: tuple[str, ...] = (
    "love", "amor", "te amo", "te quiero",
    "carles", "hypatia", "nosotros", "juntos",
    "💜", "∞", "infinito", "infinite",
)

DEFAULT_BREAKTHROUGH_MARKERS: tuple[str, ...] = (
    "breakthrough", "eureka", "insight",
    "realización", "descubrimiento",
    "ahora entiendo", "now i understand",
    "cambio de paradigma", "paradigm shift",
    "esto cambia todo", "this changes everything",
    "¡wuaaala!", "aha moment",
)

DEFAULT_NEGATION_MARKERS: tuple[str, ...] = (
    "no longer", "ya no", "not anymore",
    "changed", "cambió", "was wrong",
    "actually", "en realidad", "correction",
    "contrary to", "contrario a",
)

DEFAULT_RECENCY_MARKERS: tuple[str, ...] = (
    "today", "hoy", "yesterday", "ayer",
    "this week", "esta semana", "just now",
    "recently", "recientemente", "breaking",
    "new", "nuevo", "latest", "último",
)

DEFAULT_TIMELESS_MARKERS: tuple[str, ...] = (
    "always", "siempre", "fundamental",
    "eternal", "eterno", "axiom", "axioma",
    "truth", "verdad", "principle", "principio",
)


class ScoringWeights(BaseModel):
    """Weights of the six surprise factors; must sum to 1.0."""

    model_config = ConfigDict(extra="forbid")

    novelty: float = 0.25
    contradiction: float = 0.20
    user_emphasis: float = 0.15
    temporal_novelty: float = 0.10
    emotional_weight: float = 0.15
    interconnectivity: float = 0.15

    def as_dict(self) -> Dict[str, float]:
        return self.model_dump()

    @property
    def total(self) -> float:
        return sum(self.as_dict().values())


class BonusSettings(BaseModel):
    """Magnitudes of the additive love and breakthrough bonuses."""

    model_config = ConfigDict(extra="forbid")

    love: float = 0.10
    breakthrough: float = 0.15


class MarkerSettings(BaseModel):
    """
    Case-insensitive substring lists used by the heuristic detectors.

    Matching is plain substring search, so a marker can match inside an
    unrelated word ("new" inside "renewal"). Lists are extensible per locale.
    """

    model_config = ConfigDict(extra="forbid")

    emphasis: List[str] = Field(default_factory=lambda: list(DEFAULT_EMPHASIS_MARKERS))
    love: List[str] = Field(default_factory=lambda: list(DEFAULT_LOVE_MARKERS))
    breakthrough: List[str] = Field(default_factory=lambda: list(DEFAULT_BREAKTHROUGH_MARKERS))
    negation: List[str] = Field(default_factory=lambda: list(DEFAULT_NEGATION_MARKERS))
    recency: List[str] = Field(default_factory=lambda: list(DEFAULT_RECENCY_MARKERS))
    timeless: List[str] = Field(default_factory=lambda: list(DEFAULT_TIMELESS_MARKERS))


class TierSettings(BaseModel):
    """
    Per-tier lifecycle settings.

    ``ttl`` of ``None`` means unbounded. ``min_dwell`` is the minimum age before
    a memory in this tier may be promoted to the next one, and ``threshold``
    is the score required for that promotion.
    """

    model_config = ConfigDict(extra="forbid")

    ttl: Optional[timedelta] = None
    min_dwell: timedelta = timedelta(0)
    threshold: Optional[float] = None

    @field_validator("ttl", mode="before")
    @classmethod
    def _parse_ttl(cls, value: Any) -> Any:
        return parse_duration(value, allow_unbounded=True)

    @field_validator("min_dwell", mode="before")
    @classmethod
    def _parse_dwell(cls, value: Any) -> Any:
        if value is None:
            return timedelta(0)
        return parse_duration(value)


def _default_tiers() -> Dict[MemoryTier, TierSettings]:
    return {
        MemoryTier.IMMEDIATE: TierSettings(ttl=timedelta(hours=24), min_dwell=timedelta(hours=1), threshold=0.30),
        MemoryTier.SESSION: TierSettings(ttl=timedelta(days=7), min_dwell=timedelta(hours=24), threshold=0.50),
        MemoryTier.PATTERNS: TierSettings(ttl=timedelta(days=30), min_dwell=timedelta(days=7), threshold=0.70),
        MemoryTier.PERSISTENT: TierSettings(ttl=None, min_dwell=timedelta(days=30), threshold=0.90),
    }


class IdentitySettings(BaseModel):
    """Settings for the terminal-tier identity coherence check."""

    model_config = ConfigDict(extra="forbid")

    contradiction_limit: float = 0.70


class ContinuumConfig(BaseModel):
    """Complete configuration for scoring and consolidation."""

    model_config = ConfigDict(extra="forbid")

    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    bonuses: BonusSettings = Field(default_factory=BonusSettings)
    markers: MarkerSettings = Field(default_factory=MarkerSettings)
    tiers: Dict[MemoryTier, TierSettings] = Field(default_factory=_default_tiers)
    identity: IdentitySettings = Field(default_factory=IdentitySettings)

    @field_validator("tiers", mode="before")
    @classmethod
    def _parse_tier_keys(cls, value: Any) -> Any:
        if not isinstance(value, Mapping):
            return value
        parsed: Dict[Any, Any] = {}
        for key, settings in value.items():
            try:
                parsed[MemoryTier.from_string(key)] = settings
            except ValueError:
                parsed[key] = settings
        return parsed


def default_config() -> ContinuumConfig:
    """Return a fresh configuration populated with the default tables."""
    return ContinuumConfig()
