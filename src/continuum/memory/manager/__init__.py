"""Continuum consolidation manager public interface."""

from continuum.memory.manager.audit import ConsolidationAuditTrail, MemoryLogSanitizer
from continuum.memory.manager.consolidation import ConsolidationEngine
from continuum.memory.manager.consolidation_pipeline import (
    ConsolidationPipeline,
    ConsolidationTransaction,
)
from continuum.memory.manager.identity_guard import IdentityGuard

__all__ = [
    "ConsolidationAuditTrail",
    "ConsolidationEngine",
    "ConsolidationPipeline",
    "ConsolidationTransaction",
    "IdentityGuard",
    "MemoryLogSanitizer",
]
