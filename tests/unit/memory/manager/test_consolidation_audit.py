import json
import logging

import pytest

from continuum.core.enums import ConsolidationAction, MemoryTier
from continuum.memory.backends import InMemoryMemoryStore
from continuum.memory.manager import ConsolidationAuditTrail, MemoryLogSanitizer
from continuum.memory.models import ConsolidationDecision, IdentityVerdict, coerce_memory
from continuum.memory.scoring import SurpriseScorer
from tests.factories.memories import NOW, memory_record

SECRET = "my bank pin is 4321"


def _decision(memory, **kwargs):
    breakdown = SurpriseScorer().score(memory)
    values = dict(
        memory_id=memory.id,
        action=ConsolidationAction.CONSOLIDATED,
        from_tier=MemoryTier.T1,
        to_tier=MemoryTier.T2,
        score=breakdown.final_score,
        reason="Score high enough",
        breakdown=breakdown,
    )
    values.update(kwargs)
    return ConsolidationDecision(**values)


def test_sanitizer_summarizes_without_content():
    memory = coerce_memory(memory_record(content=SECRET, tags=("a", "b"), embedding=[0.1, 0.2, 0.3]))

    summary = MemoryLogSanitizer().summarize_memory(memory)

    assert summary == {
        "id": "mem-1",
        "content_length": len(SECRET),
        "has_embedding": True,
        "embedding_dimensions": 3,
        "tag_count": 2,
        "related_count": 0,
        "has_source": False,
    }


@pytest.mark.asyncio
async def test_record_consolidation_logs_redacted_payload_and_appends_entry(capture_logger):
    handler = capture_logger("continuum.memory.manager.audit.audit", logging.INFO)
    memory = coerce_memory(memory_record(content=SECRET))
    store = InMemoryMemoryStore()

    entry = await ConsolidationAuditTrail().record_consolidation(store, memory, _decision(memory), timestamp=NOW)

    [message] = handler.messages
    assert SECRET not in message
    event, payload = message.split(" | ", 1)
    assert event == "memory.consolidated"
    data = json.loads(payload)
    assert data["source_tier"] == "t1"
    assert data["target_tier"] == "t2"
    assert data["content_length"] == len(SECRET)

    assert entry.memory_id == "mem-1"
    assert entry.timestamp == NOW
    assert store.audit_log == [entry.model_dump(mode="json")]
    assert SECRET not in json.dumps(store.audit_log)


def test_entry_carries_identity_reason_for_terminal_promotions():
    memory = coerce_memory(memory_record())
    verdict = IdentityVerdict(safe=True, reason="Extends an existing identity facet", contradiction=0.0)
    decision = _decision(memory, from_tier=MemoryTier.T4, to_tier=MemoryTier.T5, identity=verdict)

    entry = ConsolidationAuditTrail().build_entry(decision, timestamp=NOW)

    assert entry.identity_reason == "Extends an existing identity facet"
    assert entry.to_tier is MemoryTier.T5
    assert entry.factors == decision.breakdown.factors()
