"""Enumerations for the Continuum tiered memory system."""

from __future__ import annotations

import logging
from enum import Enum, unique

logger = logging.getLogger(__name__)


class MemoryTier(str, Enum):
    """
    Represents the five-level memory hierarchy.

    Tiers are ordered ``T1 < T2 < T3 < T4 < T5``. Memories land in ``T1`` and
    are promoted one level at a time. ``T5`` is terminal: it is only ever a
    promotion target, never a processing source.

    Attributes:
        IMMEDIATE: Volatile landing tier (t1)
        SESSION: Short-lived session tier (t2)
        PATTERNS: Recurring pattern tier (t3)
        PERSISTENT: Durable tier without expiry (t4)
        CORE: Terminal, identity-protected tier (t5)
    """
    IMMEDIATE = "t1"
    SESSION = "t2"
    PATTERNS = "t3"
    PERSISTENT = "t4"
    CORE = "t5"

    # Positional aliases
    T1 = IMMEDIATE
    T2 = SESSION
    T3 = PATTERNS
    T4 = PERSISTENT
    T5 = CORE

    def __str__(self) -> str:
        return self.storage_key

    @property
    def canonical_label(self) -> str:
        """Return the descriptive label for the tier."""
        return _MEMORY_TIER_CANONICAL_LABELS[self]

    @property
    def storage_key(self) -> str:
        """Return the storage-layer key associated with this tier."""
        return self.value

    @property
    def rank(self) -> int:
        """Return the 1-based position of the tier in the hierarchy."""
        return _MEMORY_TIER_ORDER.index(self) + 1

    @property
    def is_terminal(self) -> bool:
        return self is MemoryTier.CORE

    def next_tier(self) -> MemoryTier | None:
        """Return the tier directly above this one, or ``None`` for the terminal tier."""
        index = _MEMORY_TIER_ORDER.index(self)
        if index + 1 >= len(_MEMORY_TIER_ORDER):
            return None
        return _MEMORY_TIER_ORDER[index + 1]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, MemoryTier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, MemoryTier):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, MemoryTier):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, MemoryTier):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def ordered(cls) -> tuple[MemoryTier, ...]:
        """Return all tiers from lowest to highest."""
        return _MEMORY_TIER_ORDER

    @classmethod
    def source_tiers(cls) -> tuple[MemoryTier, ...]:
        """Return the tiers processed by a consolidation cycle, in order."""
        return _MEMORY_TIER_ORDER[:-1]

    @classmethod
    def _normalize_key(cls, tier_name: str) -> str:
        return tier_name.strip().replace("-", "_").replace(" ", "_").lower()

    @classmethod
    def from_string(cls, tier_name: str) -> MemoryTier:
        """Convert a string (or alias) to a MemoryTier enum value."""
        if isinstance(tier_name, MemoryTier):
            return tier_name

        if not isinstance(tier_name, str):
            raise ValueError("Memory tier must be provided as a string")

        tier = _MEMORY_TIER_NORMALIZED_MAP.get(cls._normalize_key(tier_name))
        if tier is not None:
            return tier

        valid_inputs = sorted(_MEMORY_TIER_NORMALIZED_MAP.keys())
        logger.error(
            "Invalid memory tier: '%s'. Valid tiers are: %s",
            tier_name,
            ", ".join(valid_inputs),
        )
        raise ValueError(
            f"Invalid memory tier: '{tier_name}'. Valid tiers are: {', '.join(valid_inputs)}"
        )


_MEMORY_TIER_ORDER: tuple[MemoryTier, ...] = (
    MemoryTier.IMMEDIATE,
    MemoryTier.SESSION,
    MemoryTier.PATTERNS,
    MemoryTier.PERSISTENT,
    MemoryTier.CORE,
)

_MEMORY_TIER_CANONICAL_LABELS: dict[MemoryTier, str] = {
    MemoryTier.IMMEDIATE: "immediate",
    MemoryTier.SESSION: "session",
    MemoryTier.PATTERNS: "patterns",
    MemoryTier.PERSISTENT: "persistent",
    MemoryTier.CORE: "core",
}

_MEMORY_TIER_ALIASES: dict[MemoryTier, tuple[str, ...]] = {
    MemoryTier.IMMEDIATE: ("immediate", "f1", "level_1", "l1"),
    MemoryTier.SESSION: ("session", "f2", "level_2", "l2"),
    MemoryTier.PATTERNS: ("patterns", "pattern", "f3", "level_3", "l3"),
    MemoryTier.PERSISTENT: ("persistent", "f4", "level_4", "l4"),
    MemoryTier.CORE: ("core", "core_identity", "identity", "f5", "level_5", "l5"),
}


def _build_memory_tier_normalized_map() -> dict[str, MemoryTier]:
    normalized_map: dict[str, MemoryTier] = {}
    for tier, aliases in _MEMORY_TIER_ALIASES.items():
        augmented_aliases = set(aliases) | {
            tier.storage_key,
            tier.canonical_label,
            tier.name,
            tier.name.lower(),
        }
        for alias in augmented_aliases:
            normalized_map[MemoryTier._normalize_key(str(alias))] = tier
    return normalized_map


_MEMORY_TIER_NORMALIZED_MAP: dict[str, MemoryTier] = _build_memory_tier_normalized_map()


@unique
class ConsolidationAction(str, Enum):
    """Outcome of evaluating one memory during a consolidation pass."""

    KEPT = "kept"
    CONSOLIDATED = "consolidated"
    EXPIRED = "expired"
    PROTECTED = "protected"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value
