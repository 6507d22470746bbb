"""
Memory Models Package

Record types, scoring breakdowns and consolidation reports used across the
Continuum memory system.
"""

from continuum.memory.models.consolidation import (
    AuditLogEntry,
    ConsolidationDecision,
    ConsolidationReport,
    ConsolidationResult,
    CycleSummary,
)
from continuum.memory.models.memory_item import (
    ConsolidationEvent,
    Memory,
    TieredMemory,
    coerce_memory,
    coerce_tiered_memory,
    ensure_utc,
)
from continuum.memory.models.surprise import BonusBreakdown, IdentityVerdict, SurpriseBreakdown

__all__ = [
    "AuditLogEntry",
    "BonusBreakdown",
    "ConsolidationDecision",
    "ConsolidationEvent",
    "ConsolidationReport",
    "ConsolidationResult",
    "CycleSummary",
    "IdentityVerdict",
    "Memory",
    "SurpriseBreakdown",
    "TieredMemory",
    "coerce_memory",
    "coerce_tiered_memory",
    "ensure_utc",
]
