"""Audit logging helpers for the consolidation engine.

Every promotion produces two records: a structured, redacted log line and an
``AuditLogEntry`` appended to the store. Memory content never appears in the
log line; only lengths, tag counts and scoring metadata do.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, MutableMapping

from continuum.core.enums import MemoryTier
from continuum.memory.interfaces.memory_store import MemoryStore
from continuum.memory.models.consolidation import AuditLogEntry, ConsolidationDecision
from continuum.memory.models.memory_item import Memory


class MemoryLogSanitizer:
    """Provide redaction helpers for logging payloads."""

    def summarize_memory(self, memory: Memory) -> dict[str, Any]:
        """Return a summary of ``memory`` that carries no content text."""

        return {
            "id": memory.id,
            "content_length": len(memory.content),
            "has_embedding": memory.embedding is not None,
            "embedding_dimensions": len(memory.embedding) if memory.embedding is not None else None,
            "tag_count": len(memory.tags),
            "related_count": len(memory.related_to),
            "has_source": memory.source is not None,
        }


class ConsolidationAuditTrail:
    """Emit sanitized audit logs and persist audit entries for promotions."""

    def __init__(
        self,
        *,
        log: logging.Logger | None = None,
        sanitizer: MemoryLogSanitizer | None = None,
    ) -> None:
        self._log = log or logging.getLogger(__name__).getChild("audit")
        self._sanitizer = sanitizer or MemoryLogSanitizer()

    def build_entry(self, decision: ConsolidationDecision, *, timestamp: datetime) -> AuditLogEntry:
        """Build the store-side audit entry for a consolidation decision."""

        bonuses = decision.breakdown.bonuses
        return AuditLogEntry(
            memory_id=decision.memory_id,
            from_tier=decision.from_tier,
            to_tier=decision.to_tier,
            timestamp=timestamp,
            score=decision.score,
            reason=decision.reason,
            factors=decision.breakdown.factors(),
            bonuses=bonuses.model_dump(),
            identity_reason=decision.identity.reason if decision.identity else None,
        )

    async def record_consolidation(
        self,
        store: MemoryStore,
        memory: Memory,
        decision: ConsolidationDecision,
        *,
        timestamp: datetime,
    ) -> AuditLogEntry:
        """Log the promotion and append its entry to ``store``."""

        entry = self.build_entry(decision, timestamp=timestamp)
        payload: dict[str, Any] = {
            "action": "memory.consolidated",
            **self._sanitizer.summarize_memory(memory),
            "source_tier": decision.from_tier,
            "target_tier": decision.to_tier,
            "score": round(decision.score, 4),
        }
        self._log.info("%s | %s", "memory.consolidated", self._serialize(payload))

        await store.append_audit_log(entry)
        return entry

    def _serialize(self, payload: MutableMapping[str, Any]) -> str:
        return json.dumps(payload, sort_keys=True, default=self._json_default)

    def _json_default(self, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, MemoryTier):
            return value.storage_key
        if isinstance(value, set):
            return sorted(value)
        return str(value)


__all__ = ["ConsolidationAuditTrail", "MemoryLogSanitizer"]
