"""Validation helpers for Continuum configuration inputs."""

from __future__ import annotations

import math
from datetime import timedelta
from typing import Optional, Sequence

from continuum.core.enums import MemoryTier
from continuum.core.exceptions import ConfigurationError
from continuum.memory.config.settings import ContinuumConfig, MarkerSettings, ScoringWeights, TierSettings

WEIGHT_SUM_TOLERANCE = 1e-6


def _validate_weights(weights: ScoringWeights) -> None:
    for name, value in weights.as_dict().items():
        if not math.isfinite(value) or value < 0.0:
            raise ConfigurationError(
                f"weights.{name} must be a non-negative number, received {value}",
                setting=f"weights.{name}",
            )

    total = weights.total
    if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
        raise ConfigurationError(
            f"Scoring weights must sum to 1.0, received {total:.6f}",
            setting="weights",
        )


def _validate_bonuses(config: ContinuumConfig) -> None:
    for name, value in config.bonuses.model_dump().items():
        if not math.isfinite(value) or value < 0.0:
            raise ConfigurationError(
                f"bonuses.{name} must be a non-negative number, received {value}",
                setting=f"bonuses.{name}",
            )


def _validate_markers(markers: MarkerSettings) -> None:
    for name, values in markers.model_dump().items():
        blank = [value for value in values if not isinstance(value, str) or not value.strip()]
        if blank:
            raise ConfigurationError(
                f"markers.{name} must contain only non-empty strings",
                setting=f"markers.{name}",
            )


def _strictly_increasing(values: Sequence[float]) -> bool:
    return all(later > earlier for earlier, later in zip(values, values[1:]))


def _ttl_rank(ttl: Optional[timedelta]) -> float:
    return math.inf if ttl is None else ttl.total_seconds()


def _validate_tiers(tiers: dict[MemoryTier, TierSettings]) -> None:
    if MemoryTier.CORE in tiers:
        raise ConfigurationError(
            "Tier t5 is a promotion destination only and must not define a TTL, dwell or threshold",
            setting="tiers.t5",
        )

    sources = MemoryTier.source_tiers()
    missing = [tier.storage_key for tier in sources if tier not in tiers]
    if missing:
        raise ConfigurationError(
            f"Tier table is missing entries for: {', '.join(missing)}",
            setting="tiers",
        )

    for tier in sources:
        settings = tiers[tier]
        if settings.threshold is None:
            raise ConfigurationError(
                f"tiers.{tier}.threshold is required",
                setting=f"tiers.{tier}.threshold",
            )
        if not 0.0 < settings.threshold <= 1.0:
            raise ConfigurationError(
                f"tiers.{tier}.threshold must be in (0, 1], received {settings.threshold}",
                setting=f"tiers.{tier}.threshold",
            )
        if settings.min_dwell < timedelta(0):
            raise ConfigurationError(
                f"tiers.{tier}.min_dwell must not be negative",
                setting=f"tiers.{tier}.min_dwell",
            )
        if settings.ttl is not None and settings.ttl <= timedelta(0):
            raise ConfigurationError(
                f"tiers.{tier}.ttl must be positive or unbounded",
                setting=f"tiers.{tier}.ttl",
            )

    thresholds = [tiers[tier].threshold for tier in sources]
    if not _strictly_increasing(thresholds):
        raise ConfigurationError(
            f"Promotion thresholds must strictly increase from t1 to t4, received {thresholds}",
            setting="tiers.threshold",
        )

    # Unbounded counts as infinite, so at most the last tiers may be unbounded and
    # two unbounded TTLs in a row are not strictly increasing.
    ttl_ranks = [_ttl_rank(tiers[tier].ttl) for tier in sources]
    if not _strictly_increasing(ttl_ranks):
        rendered = [str(tiers[tier].ttl) if tiers[tier].ttl is not None else "unbounded" for tier in sources]
        raise ConfigurationError(
            f"TTLs must strictly increase from t1 to t4, received {rendered}",
            setting="tiers.ttl",
        )


def validate_configuration(config: ContinuumConfig) -> ContinuumConfig:
    """Validate a configuration before any engine component is constructed."""

    if not isinstance(config, ContinuumConfig):
        raise ConfigurationError(
            f"Expected a ContinuumConfig, received {type(config).__name__}"
        )

    _validate_weights(config.weights)
    _validate_bonuses(config)
    _validate_markers(config.markers)
    _validate_tiers(config.tiers)

    limit = config.identity.contradiction_limit
    if not 0.0 <= limit <= 1.0:
        raise ConfigurationError(
            f"identity.contradiction_limit must be in [0, 1], received {limit}",
            setting="identity.contradiction_limit",
        )

    return config
