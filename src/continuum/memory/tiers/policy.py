"""
Tier Policy

This module provides the TierPolicy class, the data-driven lookup of TTL,
minimum dwell time and promotion threshold for the source tiers t1 to t4. The
table is validated once at construction; lookups never re-check it.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from continuum.core.enums import MemoryTier
from continuum.core.exceptions import InvalidTierError
from continuum.memory.config.settings import ContinuumConfig, TierSettings, default_config
from continuum.memory.config.validation import validate_configuration

logger = logging.getLogger(__name__)


class TierPolicy:
    """
    Static lifecycle rules for each source tier.

    The terminal tier t5 has no TTL, dwell or threshold; asking for them
    raises ``InvalidTierError``.
    """

    def __init__(self, config: Optional[ContinuumConfig] = None):
        """
        Initialize the policy.

        Args:
            config: Configuration holding the tier table. Defaults to the
                    built-in table.

        Raises:
            ConfigurationError: If the table violates its ordering rules
        """
        config = validate_configuration(config or default_config())
        self._tiers: Dict[MemoryTier, TierSettings] = dict(config.tiers)
        logger.debug("Initialized TierPolicy for tiers %s", ", ".join(str(t) for t in self._tiers))

    def _settings(self, tier: Any) -> TierSettings:
        try:
            tier = MemoryTier.from_string(tier)
        except ValueError as e:
            raise InvalidTierError(tier, str(e)) from e

        settings = self._tiers.get(tier)
        if settings is None:
            raise InvalidTierError(tier, f"Tier {tier} is a promotion destination only and has no policy")
        return settings

    def ttl(self, tier: Any) -> Optional[timedelta]:
        """Return the TTL of ``tier``, or ``None`` when it is unbounded."""
        return self._settings(tier).ttl

    def min_dwell(self, tier: Any) -> timedelta:
        return self._settings(tier).min_dwell

    def threshold(self, tier: Any) -> float:
        return self._settings(tier).threshold

    def next_tier(self, tier: Any) -> Optional[MemoryTier]:
        return MemoryTier.from_string(tier).next_tier()

    def target_for(self, tier: Any, score: float) -> Optional[MemoryTier]:
        """
        Return the promotion target for a memory at ``tier`` with ``score``.

        Promotion is one level at a time, so the target is the next tier when
        the score reaches the tier's threshold and ``None`` otherwise.
        """
        if score >= self.threshold(tier):
            return self.next_tier(tier)
        return None

    def is_too_young(self, tier: Any, age: timedelta) -> bool:
        return age < self.min_dwell(tier)

    def is_expired(self, tier: Any, age: timedelta, score: float) -> bool:
        """
        Return True when a memory should expire.

        A memory expires only if its tier has a finite TTL, its age is strictly
        greater than that TTL and its score is below the tier's threshold.
        """
        ttl = self.ttl(tier)
        if ttl is None:
            return False
        return age > ttl and score < self.threshold(tier)

    def describe(self) -> Dict[str, Dict[str, Any]]:
        """Return a printable view of the policy table, keyed by tier."""
        table: Dict[str, Dict[str, Any]] = {}
        for tier in MemoryTier.source_tiers():
            settings = self._tiers[tier]
            table[tier.storage_key] = {
                "label": tier.canonical_label,
                "ttl": settings.ttl,
                "min_dwell": settings.min_dwell,
                "threshold": settings.threshold,
                "next_tier": tier.next_tier(),
            }
        return table
