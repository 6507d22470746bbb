"""
Consolidation Engine

This module drives tier consolidation. For every memory in a source tier the
engine computes its surprise score against a corpus snapshot and decides one
of four outcomes:

- Expired: past the tier's TTL without earning promotion; deleted
- Kept: too young, or below the tier's promotion threshold
- Consolidated: promoted one tier up (through the identity check for t5)
- Protected: eligible for t5 but rejected by the identity check

Decisions are plain values. Persistence side effects are applied per memory
through the store and a failure for one memory is recorded in the report as
a failed outcome without stopping the rest of the tier.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from continuum.core.enums import ConsolidationAction, MemoryTier
from continuum.core.exceptions import (
    InvalidTierError,
    MemoryNotFoundError,
    PersistenceError,
    ValidationError,
)
from continuum.memory.config.settings import ContinuumConfig, default_config
from continuum.memory.config.validation import validate_configuration
from continuum.memory.interfaces.memory_store import MemoryStore
from continuum.memory.manager.audit import ConsolidationAuditTrail
from continuum.memory.manager.consolidation_pipeline import (
    ConsolidationPipeline,
    ConsolidationTransaction,
)
from continuum.memory.manager.identity_guard import IdentityGuard
from continuum.memory.models.consolidation import (
    ConsolidationDecision,
    ConsolidationReport,
    ConsolidationResult,
)
from continuum.memory.models.memory_item import (
    ConsolidationEvent,
    Memory,
    TieredMemory,
    coerce_tiered_memory,
    ensure_utc,
)
from continuum.memory.scoring.surprise import SurpriseScorer
from continuum.memory.tiers.policy import TierPolicy

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _format_age(age) -> str:
    hours = age.total_seconds() / 3600
    if abs(hours) < 48:
        return f"{hours:.1f}h"
    return f"{hours / 24:.1f}d"


class ConsolidationEngine:
    """
    Orchestrates consolidation cycles over a MemoryStore.

    The engine validates its configuration on construction, so an invalid
    weight vector or tier table fails before any cycle runs.
    """

    def __init__(
        self,
        store: MemoryStore,
        config: Optional[ContinuumConfig] = None,
        *,
        dry_run: bool = False,
        clock: Optional[Clock] = None,
        scorer: Optional[SurpriseScorer] = None,
        policy: Optional[TierPolicy] = None,
        guard: Optional[IdentityGuard] = None,
        pipeline: Optional[ConsolidationPipeline] = None,
        audit_trail: Optional[ConsolidationAuditTrail] = None,
    ):
        """
        Initialize the engine.

        Args:
            store: Persistence collaborator
            config: Scoring and tier configuration (defaults to built-ins)
            dry_run: When True, decisions are reported but never applied
            clock: Callable returning the current time; defaults to UTC now
            scorer: Optional scorer override
            policy: Optional tier policy override
            guard: Optional identity guard override
            pipeline: Optional per-memory persistence pipeline
            audit_trail: Optional audit trail

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        self.store = store
        self.config = validate_configuration(config or default_config())
        self.dry_run = dry_run
        self._clock = clock or _utc_now
        self.scorer = scorer or SurpriseScorer(self.config)
        self.policy = policy or TierPolicy(self.config)
        self.guard = guard or IdentityGuard(self.scorer, self.config.identity.contradiction_limit)
        self._pipeline = pipeline or ConsolidationPipeline(log=logger.getChild("pipeline"))
        self._audit = audit_trail or ConsolidationAuditTrail()

    def _resolve_now(self, now: Optional[datetime]) -> datetime:
        return ensure_utc(now if now is not None else self._clock())

    # ------------------------------------------------------------------
    # Decision procedure
    # ------------------------------------------------------------------

    def evaluate(
        self,
        memory: Any,
        corpus: Iterable[Any] = (),
        *,
        now: Optional[datetime] = None,
        terminal_corpus: Optional[Iterable[Any]] = None,
    ) -> ConsolidationDecision:
        """
        Decide the outcome for one memory without touching the store.

        Args:
            memory: The memory to evaluate (a ``TieredMemory`` or mapping)
            corpus: Corpus snapshot; entries with the memory's id are ignored
            now: Evaluation time (defaults to the engine clock)
            terminal_corpus: t5 members for the identity check. When omitted,
                             the t5 members of ``corpus`` are used.

        Returns:
            ConsolidationDecision

        Raises:
            ValidationError: If the memory or a corpus entry is malformed
            InvalidTierError: If the memory is already in t5
        """
        memory = coerce_tiered_memory(memory)
        if memory.tier.is_terminal:
            raise InvalidTierError(memory.tier, "Memories in t5 are never evaluated for consolidation")

        corpus = [item if isinstance(item, Memory) else coerce_tiered_memory(item) for item in corpus]
        if terminal_corpus is None:
            terminal_corpus = [item for item in corpus if getattr(item, "tier", None) is MemoryTier.CORE]
        return self._decide(memory, corpus, list(terminal_corpus), self._resolve_now(now))

    def _decide(
        self,
        memory: TieredMemory,
        corpus: Sequence[Memory],
        terminal_corpus: Sequence[Memory],
        now: datetime,
    ) -> ConsolidationDecision:
        tier = memory.tier
        age = memory.age_at(now)
        breakdown = self.scorer.score(memory, corpus)
        score = breakdown.final_score
        threshold = self.policy.threshold(tier)

        def decision(action: ConsolidationAction, reason: str, to_tier=None, identity=None):
            return ConsolidationDecision(
                memory_id=memory.id,
                action=action,
                from_tier=tier,
                to_tier=to_tier,
                score=score,
                reason=reason,
                breakdown=breakdown,
                identity=identity,
            )

        if self.policy.is_expired(tier, age, score):
            return decision(
                ConsolidationAction.EXPIRED,
                f"Expired: age {_format_age(age)} exceeds TTL {_format_age(self.policy.ttl(tier))} "
                f"with score {score:.2f} below threshold {threshold:.2f}",
            )

        min_dwell = self.policy.min_dwell(tier)
        if self.policy.is_too_young(tier, age):
            return decision(
                ConsolidationAction.KEPT,
                f"Too young: age {_format_age(age)} below minimum dwell {_format_age(min_dwell)}",
            )

        target = self.policy.target_for(tier, score)
        if target is None:
            return decision(
                ConsolidationAction.KEPT,
                f"Below threshold: score {score:.2f} < {threshold:.2f}",
            )

        if target.is_terminal:
            verdict = self.guard.verify(memory, terminal_corpus)
            if not verdict.safe:
                return decision(ConsolidationAction.PROTECTED, verdict.reason, to_tier=target, identity=verdict)
            return decision(
                ConsolidationAction.CONSOLIDATED,
                f"Score {score:.2f} >= {threshold:.2f}; {verdict.reason}",
                to_tier=target,
                identity=verdict,
            )

        return decision(
            ConsolidationAction.CONSOLIDATED,
            f"Score {score:.2f} >= {threshold:.2f}",
            to_tier=target,
        )

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    async def process_tier(
        self,
        tier: Any,
        now: Optional[datetime] = None,
        *,
        dry_run: Optional[bool] = None,
    ) -> ConsolidationReport:
        """
        Process every member of ``tier`` against a single corpus snapshot.

        Args:
            tier: Source tier (t1 to t4)
            now: Evaluation time (defaults to the engine clock)
            dry_run: Override the engine's dry-run setting for this call

        Returns:
            ConsolidationReport for the tier
        """
        try:
            tier = MemoryTier.from_string(tier)
        except ValueError as e:
            raise InvalidTierError(tier, str(e)) from e

        now = self._resolve_now(now)
        dry_run = self.dry_run if dry_run is None else dry_run

        if tier.is_terminal:
            logger.warning("Tier %s is terminal and is never processed as a consolidation source", tier)
            return ConsolidationReport.from_results(timestamp=now, tier=tier, results=[], dry_run=dry_run)

        members = await self.store.fetch_by_tier(tier)
        corpus = self.load_corpus(await self.store.fetch_all())
        return await self._process_snapshot(tier, members, corpus, now, dry_run)

    async def run_full_cycle(
        self,
        now: Optional[datetime] = None,
        *,
        dry_run: Optional[bool] = None,
    ) -> List[ConsolidationReport]:
        """
        Process t1, t2, t3 and t4 once each, in that order.

        Every tier's membership and the corpus are snapshotted before the
        first tier is processed, so a memory promoted during this cycle is
        only evaluated at its new tier in the next cycle.
        """
        now = self._resolve_now(now)
        dry_run = self.dry_run if dry_run is None else dry_run

        memberships: Dict[MemoryTier, List[Dict[str, Any]]] = {}
        for tier in MemoryTier.source_tiers():
            memberships[tier] = await self.store.fetch_by_tier(tier)
        corpus = self.load_corpus(await self.store.fetch_all())

        logger.info(
            "Starting %sconsolidation cycle at %s (%s)",
            "dry-run " if dry_run else "",
            now.isoformat(),
            ", ".join(f"{tier}={len(members)}" for tier, members in memberships.items()),
        )

        reports = []
        for tier in MemoryTier.source_tiers():
            reports.append(await self._process_snapshot(tier, memberships[tier], corpus, now, dry_run))
        return reports

    def load_corpus(self, records: Iterable[Any]) -> List[TieredMemory]:
        corpus = []
        for record in records:
            try:
                corpus.append(coerce_tiered_memory(record))
            except ValidationError as e:
                logger.warning("Excluding malformed record from corpus: %s", e.message)
        return corpus

    async def _process_snapshot(
        self,
        tier: MemoryTier,
        members: Sequence[Any],
        corpus: Sequence[TieredMemory],
        now: datetime,
        dry_run: bool,
    ) -> ConsolidationReport:
        terminal_corpus = [item for item in corpus if item.tier is MemoryTier.CORE]

        results: List[ConsolidationResult] = []
        for record in members:
            results.append(await self._process_member(tier, record, corpus, terminal_corpus, now, dry_run))

        report = ConsolidationReport.from_results(timestamp=now, tier=tier, results=results, dry_run=dry_run)
        logger.info(
            "Processed tier %s%s: %d memories, %d consolidated, %d kept, %d expired, %d protected, %d failed",
            tier,
            " (dry-run)" if dry_run else "",
            report.total_memories,
            report.consolidated,
            report.kept,
            report.expired,
            report.protected,
            report.failed,
        )
        return report

    async def _process_member(
        self,
        tier: MemoryTier,
        record: Any,
        corpus: Sequence[TieredMemory],
        terminal_corpus: Sequence[TieredMemory],
        now: datetime,
        dry_run: bool,
    ) -> ConsolidationResult:
        try:
            memory = coerce_tiered_memory(record)
        except ValidationError as e:
            memory_id = e.memory_id or "<unknown>"
            logger.error("Rejected malformed memory %s in tier %s: %s", memory_id, tier, e.message)
            return ConsolidationResult(
                memory_id=memory_id,
                action=ConsolidationAction.FAILED,
                from_tier=tier,
                reason=f"Validation failed: {e.message}",
                error_type=type(e).__name__,
                error=e.message,
            )

        if memory.tier is not tier:
            logger.warning("Memory %s is listed in %s but records tier %s", memory.id, tier, memory.tier)
            memory = memory.model_copy(update={"tier": tier})

        try:
            decision = self._decide(memory, corpus, terminal_corpus, now)
        except Exception as e:
            logger.exception("Failed to evaluate memory %s in tier %s", memory.id, tier)
            return ConsolidationResult(
                memory_id=memory.id,
                action=ConsolidationAction.FAILED,
                from_tier=tier,
                reason=f"Evaluation failed: {e}",
                error_type=type(e).__name__,
                error=str(e),
            )

        logger.debug("Memory %s in %s: %s (%s)", memory.id, tier, decision.action.value, decision.reason)
        if dry_run:
            return ConsolidationResult.from_decision(decision)

        try:
            await self._pipeline.run(
                memory.id,
                lambda transaction: self._apply(transaction, memory, decision, now),
            )
        except PersistenceError as e:
            if isinstance(e, MemoryNotFoundError):
                logger.warning("Memory %s disappeared before it could be %s", memory.id, decision.action.value)
            else:
                logger.error("Failed to apply %s to memory %s: %s", decision.action.value, memory.id, e.message)
            return ConsolidationResult(
                memory_id=memory.id,
                action=ConsolidationAction.FAILED,
                from_tier=tier,
                to_tier=decision.to_tier,
                score=decision.score,
                reason=f"{decision.action.value} failed: {e.message}",
                intended_action=decision.action,
                error_type=type(e).__name__,
                error=e.message,
                completed_steps=e.completed_steps,
                breakdown=decision.breakdown,
            )

        return ConsolidationResult.from_decision(decision)

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    async def _apply(
        self,
        transaction: ConsolidationTransaction,
        memory: TieredMemory,
        decision: ConsolidationDecision,
        now: datetime,
    ) -> None:
        store = self.store
        tier = decision.from_tier

        if decision.action is ConsolidationAction.EXPIRED:
            await transaction.stage(lambda: store.delete(memory.id, tier=tier), description="delete")
            logger.info("Expired memory %s from %s", memory.id, tier)
            return

        if decision.action is ConsolidationAction.CONSOLIDATED:
            history = list(memory.consolidation_history)
            event_time = now
            if history and history[-1].timestamp > event_time:
                event_time = history[-1].timestamp
            history.append(
                ConsolidationEvent(
                    from_tier=tier,
                    to_tier=decision.to_tier,
                    timestamp=event_time,
                    score=decision.score,
                    reason=decision.reason,
                )
            )
            fields = {
                "last_surprise_score": decision.score,
                "consolidation_history": [event.model_dump(mode="json") for event in history],
                "last_accessed": now.isoformat(),
                "consolidated_at": now.isoformat(),
            }
            await transaction.stage(
                lambda: store.move(memory.id, tier, decision.to_tier, fields),
                description="move",
            )
            await transaction.stage(
                lambda: self._audit.record_consolidation(store, memory, decision, timestamp=now),
                description="audit",
            )
            return

        # Kept and Protected only refresh the access time.
        await transaction.stage(
            lambda: store.update(memory.id, {"last_accessed": now.isoformat()}, tier=tier),
            description="touch",
        )


__all__ = ["ConsolidationEngine"]
