"""Core enumerations and exceptions shared across the Continuum packages."""

from continuum.core.enums import ConsolidationAction, MemoryTier
from continuum.core.exceptions import (
    ConfigurationError,
    ContinuumError,
    InvalidTierError,
    MemoryExistsError,
    MemoryNotFoundError,
    PersistenceError,
    ValidationError,
)

__all__ = [
    "ConfigurationError",
    "ConsolidationAction",
    "ContinuumError",
    "InvalidTierError",
    "MemoryExistsError",
    "MemoryNotFoundError",
    "MemoryTier",
    "PersistenceError",
    "ValidationError",
]
