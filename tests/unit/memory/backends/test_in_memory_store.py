import pytest

from continuum.core.enums import MemoryTier
from continuum.core.exceptions import (
    InvalidTierError,
    MemoryExistsError,
    MemoryNotFoundError,
    PersistenceError,
    ValidationError,
)
from continuum.memory.backends import InMemoryMemoryStore
from continuum.memory.models import AuditLogEntry
from tests.factories.memories import NOW, memory_record


@pytest.fixture
def store():
    return InMemoryMemoryStore.from_records(
        [
            memory_record("a", tier="t1"),
            memory_record("b", tier="session"),
            memory_record("core", tier="t5"),
        ]
    )


@pytest.mark.asyncio
async def test_fetch_by_tier_and_fetch_all(store):
    assert [r["id"] for r in await store.fetch_by_tier(MemoryTier.T1)] == ["a"]
    assert [r["tier"] for r in await store.fetch_by_tier("t2")] == ["t2"]
    assert [r["id"] for r in await store.fetch_all()] == ["a", "b", "core"]
    assert len(store) == 3


@pytest.mark.asyncio
async def test_returned_records_are_copies(store):
    [record] = await store.fetch_by_tier("t1")
    record["content"] = "mutated"

    assert store.get_record("t1", "a")["content"] != "mutated"


@pytest.mark.asyncio
async def test_update_merges_fields(store):
    await store.update("a", {"last_accessed": NOW.isoformat(), "access_count": 3})

    record = store.get_record("t1", "a")
    assert record["last_accessed"] == NOW.isoformat()
    assert record["access_count"] == 3


@pytest.mark.asyncio
async def test_update_rejects_tier_changes(store):
    with pytest.raises(PersistenceError, match="cannot be changed"):
        await store.update("a", {"tier": "t2"})


@pytest.mark.asyncio
async def test_terminal_tier_is_append_only(store):
    with pytest.raises(PersistenceError, match="append-only"):
        await store.update("core", {"content": "rewritten"})
    with pytest.raises(PersistenceError, match="append-only"):
        await store.delete("core")
    with pytest.raises(PersistenceError):
        await store.move("core", "t5", "t4")

    assert store.ids_in("t5") == ["core"]


@pytest.mark.asyncio
async def test_unknown_ids_raise_not_found(store):
    with pytest.raises(MemoryNotFoundError):
        await store.update("missing", {"access_count": 1})
    with pytest.raises(MemoryNotFoundError):
        await store.delete("missing")
    with pytest.raises(MemoryNotFoundError):
        await store.move("missing", "t1", "t2")
    with pytest.raises(MemoryNotFoundError):
        await store.update("a", {"access_count": 1}, tier="t2")


@pytest.mark.asyncio
async def test_move_inserts_with_provenance_then_removes(store):
    await store.move("a", "t1", "t2", {"last_surprise_score": 0.4, "consolidated_at": NOW.isoformat()})

    assert store.ids_in("t1") == []
    record = store.get_record("t2", "a")
    assert record["tier"] == "t2"
    assert record["consolidated_from"] == "t1"
    assert record["consolidated_at"] == NOW.isoformat()
    assert record["last_surprise_score"] == 0.4


@pytest.mark.asyncio
async def test_move_stamps_consolidated_at_when_not_given(store):
    await store.move("a", "t1", "t2")

    assert store.get_record("t2", "a")["consolidated_at"]


@pytest.mark.asyncio
async def test_move_refuses_to_overwrite_unrelated_destination_copy():
    store = InMemoryMemoryStore.from_records([memory_record("a", tier="t1"), memory_record("a", tier="t2")])

    with pytest.raises(MemoryExistsError):
        await store.move("a", "t1", "t2")

    assert store.ids_in("t1") == ["a"]


@pytest.mark.asyncio
async def test_move_resumes_after_interrupted_insert():
    store = InMemoryMemoryStore.from_records(
        [
            memory_record("a", tier="t1"),
            memory_record("a", tier="t2", consolidated_from="t1", content="promoted copy"),
        ]
    )

    await store.move("a", "t1", "t2", {"content": "ignored"})

    assert store.ids_in("t1") == []
    assert store.get_record("t2", "a")["content"] == "promoted copy"


@pytest.mark.asyncio
async def test_move_between_same_tier_is_rejected(store):
    with pytest.raises(PersistenceError):
        await store.move("a", "t1", "t1")


@pytest.mark.asyncio
async def test_delete_removes_a_specific_copy():
    store = InMemoryMemoryStore.from_records([memory_record("a", tier="t1"), memory_record("a", tier="t2")])

    await store.delete("a", tier="t1")

    assert store.ids_in("t1") == []
    assert store.ids_in("t2") == ["a"]


@pytest.mark.asyncio
async def test_update_without_tier_targets_the_highest_copy():
    store = InMemoryMemoryStore.from_records([memory_record("a", tier="t1"), memory_record("a", tier="t3")])

    await store.update("a", {"access_count": 7})

    assert store.get_record("t3", "a")["access_count"] == 7
    assert "access_count" not in store.get_record("t1", "a")


@pytest.mark.asyncio
async def test_reconcile_keeps_the_highest_copy():
    store = InMemoryMemoryStore.from_records(
        [
            memory_record("a", tier="t1"),
            memory_record("a", tier="t2", consolidated_from="t1"),
            memory_record("b", tier="t1"),
        ]
    )

    assert await store.find_duplicates() == {"a": [MemoryTier.T1, MemoryTier.T2]}
    assert await store.reconcile() == ["a"]
    assert store.ids_in("t1") == ["b"]
    assert store.ids_in("t2") == ["a"]
    assert await store.find_duplicates() == {}


@pytest.mark.asyncio
async def test_append_audit_log_serializes_entry(store):
    entry = AuditLogEntry(
        memory_id="a",
        from_tier=MemoryTier.T1,
        to_tier=MemoryTier.T2,
        timestamp=NOW,
        score=0.5,
        reason="Score 0.50 >= 0.30",
    )

    await store.append_audit_log(entry)

    [logged] = store.audit_log
    assert logged["event"] == "MEMORY_CONSOLIDATED"
    assert logged["from_tier"] == "t1"
    assert logged["timestamp"].startswith("2025-01-15T12:00:00")


@pytest.mark.asyncio
async def test_add_rejects_duplicates_in_the_same_tier(store):
    await store.add(memory_record("c", tier="t3"))

    with pytest.raises(MemoryExistsError):
        await store.add(memory_record("c", tier="t3"))


@pytest.mark.asyncio
async def test_backend_failures_are_wrapped():
    class BrokenStore(InMemoryMemoryStore):
        async def _read_tier(self, tier):
            raise OSError("unreachable")

    with pytest.raises(PersistenceError) as excinfo:
        await BrokenStore().fetch_all()

    assert excinfo.value.operation == "fetch_all"
    assert isinstance(excinfo.value.cause, OSError)


@pytest.mark.asyncio
async def test_invalid_tier_arguments(store):
    with pytest.raises(InvalidTierError):
        await store.fetch_by_tier("t9")


@pytest.mark.parametrize(
    "records",
    [
        [{"tier": "t1", "content": "x"}],
        [{"id": "x", "content": "x"}],
        [{"id": "x", "tier": "t8"}],
        [memory_record("x"), memory_record("x")],
        ["not a mapping"],
    ],
)
def test_from_records_rejects_unusable_records(records):
    with pytest.raises(ValidationError):
        InMemoryMemoryStore.from_records(records)


def test_snapshot_orders_records_by_tier_then_id():
    store = InMemoryMemoryStore.from_records(
        [memory_record("z", tier="t1"), memory_record("b", tier="t2"), memory_record("a", tier="t1")],
        audit_log=[{"memory_id": "old"}],
    )

    snapshot = store.snapshot()

    assert [(r["tier"], r["id"]) for r in snapshot["memories"]] == [("t1", "a"), ("t1", "z"), ("t2", "b")]
    assert snapshot["audit_log"] == [{"memory_id": "old"}]
