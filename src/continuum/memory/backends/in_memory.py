"""
In-Memory Memory Store

This module provides a dictionary-backed MemoryStore. Records are held per
tier and deep-copied on the way in and out so callers never share state with
the store. It backs the CLI snapshot workflow and the test suite.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from continuum.core.enums import MemoryTier
from continuum.core.exceptions import MemoryExistsError, ValidationError
from continuum.memory.backends.base import BaseMemoryStore

logger = logging.getLogger(__name__)


def _record_id(record: Mapping[str, Any]) -> Optional[str]:
    value = record.get("id", record.get("_id"))
    return str(value) if value is not None else None


def _record_tier(record: Mapping[str, Any]) -> MemoryTier:
    raw = record.get("tier", record.get("cms_level"))
    if raw is None:
        raise ValidationError(
            f"Record {_record_id(record)!r} has no tier",
            memory_id=_record_id(record),
        )
    try:
        return MemoryTier.from_string(raw)
    except ValueError as e:
        raise ValidationError(str(e), memory_id=_record_id(record)) from e


class InMemoryMemoryStore(BaseMemoryStore):
    """
    Dictionary-backed store.

    Records are only checked for an id and a tier on the way in; full
    validation is left to the engine so malformed records show up in the
    consolidation report rather than blocking the load.
    """

    def __init__(self) -> None:
        self._tiers: Dict[MemoryTier, Dict[str, Dict[str, Any]]] = {
            tier: {} for tier in MemoryTier.ordered()
        }
        self._audit_log: List[Dict[str, Any]] = []
        self._lock = asyncio.Lock()

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        audit_log: Optional[Iterable[Mapping[str, Any]]] = None,
    ) -> "InMemoryMemoryStore":
        """
        Build a store from plain record mappings.

        Raises:
            ValidationError: If a record has no id or tier, or an id repeats
                             within a tier
        """
        store = cls()
        for record in records:
            if not isinstance(record, Mapping):
                raise ValidationError(f"Expected a record mapping, received {type(record).__name__}")
            memory_id = _record_id(record)
            if not memory_id:
                raise ValidationError("Record has no id")
            tier = _record_tier(record)
            bucket = store._tiers[tier]
            if memory_id in bucket:
                raise ValidationError(
                    f"Duplicate memory id {memory_id!r} in tier {tier}",
                    memory_id=memory_id,
                )
            stored = copy.deepcopy(dict(record))
            stored["tier"] = tier.storage_key
            bucket[memory_id] = stored

        store._audit_log = [copy.deepcopy(dict(entry)) for entry in audit_log or ()]
        logger.debug(
            "Loaded in-memory store: %s",
            ", ".join(f"{tier}={len(bucket)}" for tier, bucket in store._tiers.items()),
        )
        return store

    async def add(self, record: Mapping[str, Any]) -> None:
        """Insert a new record into the tier it names."""
        memory_id = _record_id(record)
        if not memory_id:
            raise ValidationError("Record has no id")
        tier = _record_tier(record)
        stored = dict(record)
        stored["tier"] = tier.storage_key
        await self._insert(tier, stored)

    #-----------------------------------------------------------------------
    # Primitives
    #-----------------------------------------------------------------------

    async def _read_tier(self, tier: MemoryTier) -> List[Dict[str, Any]]:
        async with self._lock:
            return [copy.deepcopy(record) for record in self._tiers[tier].values()]

    async def _get(self, tier: MemoryTier, memory_id: str) -> Optional[Dict[str, Any]]:
        async with self._lock:
            record = self._tiers[tier].get(memory_id)
            return copy.deepcopy(record) if record is not None else None

    async def _insert(self, tier: MemoryTier, record: Dict[str, Any]) -> None:
        memory_id = _record_id(record)
        async with self._lock:
            if memory_id in self._tiers[tier]:
                raise MemoryExistsError(memory_id, tier)
            self._tiers[tier][memory_id] = copy.deepcopy(record)

    async def _replace(self, tier: MemoryTier, memory_id: str, record: Dict[str, Any]) -> None:
        async with self._lock:
            self._tiers[tier][memory_id] = copy.deepcopy(record)

    async def _remove(self, tier: MemoryTier, memory_id: str) -> bool:
        async with self._lock:
            return self._tiers[tier].pop(memory_id, None) is not None

    async def _write_audit(self, entry: Dict[str, Any]) -> None:
        async with self._lock:
            self._audit_log.append(copy.deepcopy(entry))

    #-----------------------------------------------------------------------
    # Inspection
    #-----------------------------------------------------------------------

    @property
    def audit_log(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._audit_log)

    def ids_in(self, tier: MemoryTier) -> List[str]:
        """Return the ids currently held in ``tier``, sorted."""
        return sorted(self._tiers[MemoryTier.from_string(tier)])

    def get_record(self, tier: MemoryTier, memory_id: str) -> Optional[Dict[str, Any]]:
        record = self._tiers[MemoryTier.from_string(tier)].get(memory_id)
        return copy.deepcopy(record) if record is not None else None

    def export_records(self) -> List[Dict[str, Any]]:
        """Return every record, ordered by tier and then id."""
        return [
            copy.deepcopy(self._tiers[tier][memory_id])
            for tier in MemoryTier.ordered()
            for memory_id in sorted(self._tiers[tier])
        ]

    def snapshot(self) -> Dict[str, Any]:
        """Return the store contents in the snapshot file layout."""
        return {"memories": self.export_records(), "audit_log": self.audit_log}

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._tiers.values())
