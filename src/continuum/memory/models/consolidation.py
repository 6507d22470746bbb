"""
Consolidation Result Models

Decisions, per-memory results, per-tier reports and cycle summaries produced
by the consolidation engine, plus the audit log entry written for every
promotion.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from continuum.core.enums import ConsolidationAction, MemoryTier
from continuum.memory.models.surprise import IdentityVerdict, SurpriseBreakdown


class ConsolidationDecision(BaseModel):
    """The pure outcome of evaluating one memory; carries no side effects."""

    memory_id: str
    action: ConsolidationAction
    from_tier: MemoryTier
    to_tier: Optional[MemoryTier] = None
    score: float
    reason: str
    breakdown: SurpriseBreakdown
    identity: Optional[IdentityVerdict] = None


class ConsolidationResult(BaseModel):
    """A per-memory line of a consolidation report."""

    memory_id: str
    action: ConsolidationAction
    from_tier: MemoryTier
    to_tier: Optional[MemoryTier] = None
    score: Optional[float] = None
    reason: str

    # Populated when ``action`` is FAILED
    intended_action: Optional[ConsolidationAction] = None
    error_type: Optional[str] = None
    error: Optional[str] = None
    completed_steps: List[str] = Field(default_factory=list)

    breakdown: Optional[SurpriseBreakdown] = None

    @classmethod
    def from_decision(cls, decision: ConsolidationDecision) -> "ConsolidationResult":
        return cls(
            memory_id=decision.memory_id,
            action=decision.action,
            from_tier=decision.from_tier,
            to_tier=decision.to_tier,
            score=decision.score,
            reason=decision.reason,
            breakdown=decision.breakdown,
        )


class ConsolidationReport(BaseModel):
    """Outcome counts and per-memory detail for one ``process_tier`` call."""

    timestamp: datetime
    tier_processed: MemoryTier
    dry_run: bool = False
    total_memories: int = 0
    consolidated: int = 0
    kept: int = 0
    expired: int = 0
    protected: int = 0
    failed: int = 0
    results: List[ConsolidationResult] = Field(default_factory=list)

    @classmethod
    def from_results(
        cls,
        *,
        timestamp: datetime,
        tier: MemoryTier,
        results: Sequence[ConsolidationResult],
        dry_run: bool = False,
    ) -> "ConsolidationReport":
        counts = {action: 0 for action in ConsolidationAction}
        for result in results:
            counts[result.action] += 1

        return cls(
            timestamp=timestamp,
            tier_processed=tier,
            dry_run=dry_run,
            total_memories=len(results),
            consolidated=counts[ConsolidationAction.CONSOLIDATED],
            kept=counts[ConsolidationAction.KEPT],
            expired=counts[ConsolidationAction.EXPIRED],
            protected=counts[ConsolidationAction.PROTECTED],
            failed=counts[ConsolidationAction.FAILED],
            results=list(results),
        )

    def results_for(self, action: ConsolidationAction) -> List[ConsolidationResult]:
        return [result for result in self.results if result.action == action]


class CycleSummary(BaseModel):
    """Aggregated totals for a full consolidation cycle."""

    success: bool
    dry_run: bool = False
    total_processed: int = 0
    total_consolidated: int = 0
    total_expired: int = 0
    total_protected: int = 0
    total_failed: int = 0
    reports: List[ConsolidationReport] = Field(default_factory=list)

    @classmethod
    def from_reports(cls, reports: Sequence[ConsolidationReport], *, dry_run: bool = False) -> "CycleSummary":
        total_failed = sum(report.failed for report in reports)
        return cls(
            success=total_failed == 0,
            dry_run=dry_run,
            total_processed=sum(report.total_memories for report in reports),
            total_consolidated=sum(report.consolidated for report in reports),
            total_expired=sum(report.expired for report in reports),
            total_protected=sum(report.protected for report in reports),
            total_failed=total_failed,
            reports=list(reports),
        )


class AuditLogEntry(BaseModel):
    """Audit record appended to the store for every consolidation."""

    observation_type: str = "consolidation"
    event: str = "MEMORY_CONSOLIDATED"
    memory_id: str
    from_tier: MemoryTier
    to_tier: MemoryTier
    timestamp: datetime
    score: float
    reason: str
    factors: Dict[str, float] = Field(default_factory=dict)
    bonuses: Dict[str, Any] = Field(default_factory=dict)
    identity_reason: Optional[str] = None
