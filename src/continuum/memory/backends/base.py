"""
Base Memory Store

This module provides the BaseMemoryStore class, which implements the
MemoryStore interface on top of a handful of tier-scoped primitives. Concrete
backends supply the primitives; the base class owns the cross-tier rules:

- the two-phase move (insert at destination with provenance, then remove
  from source) and its idempotent resumption
- the terminal tier being append-only
- wrapping backend failures into ``PersistenceError``
- duplicate detection and reconciliation after an interrupted move
"""

from __future__ import annotations

import abc
import copy
import logging
from datetime import UTC, datetime
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, TypeVar

from continuum.core.enums import MemoryTier
from continuum.core.exceptions import (
    InvalidTierError,
    MemoryExistsError,
    MemoryNotFoundError,
    PersistenceError,
)
from continuum.memory.interfaces.memory_store import MemoryStore
from continuum.memory.models.consolidation import AuditLogEntry

logger = logging.getLogger(__name__)

_ResultT = TypeVar("_ResultT")

# Fields that only ``move`` may change.
_PROTECTED_FIELDS = frozenset({"id", "_id", "tier", "cms_level"})


class BaseMemoryStore(MemoryStore, abc.ABC):
    """
    Base class for all memory stores.

    Subclasses must implement the tier-scoped primitives for the technology
    they support.
    """

    #-----------------------------------------------------------------------
    # Primitives
    #-----------------------------------------------------------------------

    @abc.abstractmethod
    async def _read_tier(self, tier: MemoryTier) -> List[Dict[str, Any]]:
        """Return copies of every record in ``tier``."""

    @abc.abstractmethod
    async def _get(self, tier: MemoryTier, memory_id: str) -> Optional[Dict[str, Any]]:
        """Return a copy of the record for ``memory_id`` in ``tier``, if any."""

    @abc.abstractmethod
    async def _insert(self, tier: MemoryTier, record: Dict[str, Any]) -> None:
        """Insert ``record`` into ``tier``; raise ``MemoryExistsError`` on a clash."""

    @abc.abstractmethod
    async def _replace(self, tier: MemoryTier, memory_id: str, record: Dict[str, Any]) -> None:
        """Overwrite the record for ``memory_id`` in ``tier``."""

    @abc.abstractmethod
    async def _remove(self, tier: MemoryTier, memory_id: str) -> bool:
        """Remove the record for ``memory_id`` from ``tier``; return whether it existed."""

    @abc.abstractmethod
    async def _write_audit(self, entry: Dict[str, Any]) -> None:
        """Persist a serialized audit log entry."""

    async def _locate(self, memory_id: str) -> List[MemoryTier]:
        """Return every tier holding a record for ``memory_id``, lowest first."""
        tiers = []
        for tier in MemoryTier.ordered():
            if await self._get(tier, memory_id) is not None:
                tiers.append(tier)
        return tiers

    #-----------------------------------------------------------------------
    # MemoryStore implementation
    #-----------------------------------------------------------------------

    async def fetch_by_tier(self, tier: MemoryTier) -> List[Dict[str, Any]]:
        tier = self._coerce_tier(tier)
        return await self._execute("fetch_by_tier", None, lambda: self._read_tier(tier))

    async def fetch_all(self) -> List[Dict[str, Any]]:
        async def _read_all() -> List[Dict[str, Any]]:
            records: List[Dict[str, Any]] = []
            for tier in MemoryTier.ordered():
                records.extend(await self._read_tier(tier))
            return records

        return await self._execute("fetch_all", None, _read_all)

    async def update(
        self,
        memory_id: str,
        fields: Mapping[str, Any],
        tier: Optional[MemoryTier] = None,
    ) -> None:
        """
        Merge ``fields`` into the record for ``memory_id``.

        Args:
            memory_id: The record to update
            fields: Field values to merge
            tier: Optional tier holding the record. When omitted and the id is
                  present in several tiers, the highest copy is updated.

        Raises:
            MemoryNotFoundError: If the record does not exist
            PersistenceError: If the record is in t5, ``fields`` tries to
                              change the id or tier, or the write fails
        """
        forbidden = sorted(_PROTECTED_FIELDS.intersection(fields))
        if forbidden:
            raise PersistenceError(
                "update",
                memory_id=memory_id,
                message=f"Fields {forbidden} cannot be changed by update; use move to change tiers",
            )

        target = await self._resolve_tier("update", memory_id, tier)

        async def _apply() -> None:
            record = await self._get(target, memory_id)
            if record is None:
                raise MemoryNotFoundError(memory_id, operation="update")
            record.update(copy.deepcopy(dict(fields)))
            await self._replace(target, memory_id, record)

        await self._execute("update", memory_id, _apply)
        logger.debug("Updated memory %s in %s: %s", memory_id, target, sorted(fields))

    async def move(
        self,
        memory_id: str,
        from_tier: MemoryTier,
        to_tier: MemoryTier,
        fields: Optional[Mapping[str, Any]] = None,
    ) -> None:
        from_tier = self._coerce_tier(from_tier)
        to_tier = self._coerce_tier(to_tier)
        if from_tier.is_terminal or from_tier == to_tier:
            raise PersistenceError(
                "move",
                memory_id=memory_id,
                message=f"Cannot move memory '{memory_id}' from {from_tier} to {to_tier}",
            )

        completed: List[str] = []
        source = await self._execute("move", memory_id, lambda: self._get(from_tier, memory_id))
        existing = await self._execute("move", memory_id, lambda: self._get(to_tier, memory_id))

        if existing is not None:
            if str(existing.get("consolidated_from")) != from_tier.storage_key:
                raise MemoryExistsError(memory_id, to_tier, operation="move")
            # A previous move was interrupted after the insert phase.
            logger.info(
                "Resuming interrupted move of %s from %s to %s",
                memory_id,
                from_tier,
                to_tier,
            )
            completed.append("insert")
        elif source is None:
            raise MemoryNotFoundError(memory_id, operation="move")
        else:
            record = copy.deepcopy(source)
            record.update(copy.deepcopy(dict(fields or {})))
            record["tier"] = to_tier.storage_key
            record["consolidated_from"] = from_tier.storage_key
            if not (fields or {}).get("consolidated_at"):
                record["consolidated_at"] = datetime.now(UTC).isoformat()

            await self._execute("move", memory_id, lambda: self._insert(to_tier, record), completed)
            completed.append("insert")

        if source is not None:
            await self._execute("move", memory_id, lambda: self._remove(from_tier, memory_id), completed)
            completed.append("remove")

        logger.debug("Moved memory %s from %s to %s (%s)", memory_id, from_tier, to_tier, completed)

    async def delete(self, memory_id: str, tier: Optional[MemoryTier] = None) -> None:
        """
        Delete the record for ``memory_id``.

        Args:
            memory_id: The record to delete
            tier: Optional tier holding the record; defaults to the highest copy

        Raises:
            MemoryNotFoundError: If the record does not exist
            PersistenceError: If the record is in t5 or the removal fails
        """
        target = await self._resolve_tier("delete", memory_id, tier)

        removed = await self._execute("delete", memory_id, lambda: self._remove(target, memory_id))
        if not removed:
            raise MemoryNotFoundError(memory_id, operation="delete")
        logger.debug("Deleted memory %s from %s", memory_id, target)

    async def append_audit_log(self, entry: AuditLogEntry) -> None:
        document = entry.model_dump(mode="json")
        await self._execute("append_audit_log", entry.memory_id, lambda: self._write_audit(document))

    #-----------------------------------------------------------------------
    # Reconciliation
    #-----------------------------------------------------------------------

    async def find_duplicates(self) -> Dict[str, List[MemoryTier]]:
        """Return ids held in more than one tier, mapped to those tiers."""
        seen: Dict[str, List[MemoryTier]] = {}
        for tier in MemoryTier.ordered():
            for record in await self._read_tier(tier):
                memory_id = str(record.get("id", record.get("_id")))
                seen.setdefault(memory_id, []).append(tier)
        return {memory_id: tiers for memory_id, tiers in seen.items() if len(tiers) > 1}

    async def reconcile(self) -> List[str]:
        """
        Resolve duplicates left behind by interrupted moves.

        The highest-tier copy carries the consolidation provenance and is
        trusted; every lower copy is removed.

        Returns:
            The ids that were reconciled
        """
        reconciled: List[str] = []
        for memory_id, tiers in (await self.find_duplicates()).items():
            keep = max(tiers)
            for tier in tiers:
                if tier != keep:
                    await self._execute("reconcile", memory_id, lambda t=tier: self._remove(t, memory_id))
            logger.info("Reconciled memory %s: kept copy in %s, removed %s", memory_id, keep,
                        ", ".join(str(t) for t in tiers if t != keep))
            reconciled.append(memory_id)
        return reconciled

    #-----------------------------------------------------------------------
    # Helpers
    #-----------------------------------------------------------------------

    @staticmethod
    def _coerce_tier(tier: Any) -> MemoryTier:
        try:
            return MemoryTier.from_string(tier)
        except ValueError as e:
            raise InvalidTierError(tier, str(e)) from e

    async def _resolve_tier(self, operation: str, memory_id: str, tier: Optional[MemoryTier]) -> MemoryTier:
        if tier is not None:
            target = self._coerce_tier(tier)
            if await self._execute(operation, memory_id, lambda: self._get(target, memory_id)) is None:
                raise MemoryNotFoundError(memory_id, operation=operation)
        else:
            tiers = await self._execute(operation, memory_id, lambda: self._locate(memory_id))
            if not tiers:
                raise MemoryNotFoundError(memory_id, operation=operation)
            target = tiers[-1]

        if target.is_terminal:
            raise PersistenceError(
                operation,
                memory_id=memory_id,
                message=f"Memory '{memory_id}' is in the append-only tier {target}",
            )
        return target

    async def _execute(
        self,
        operation: str,
        memory_id: Optional[str],
        action: Callable[[], Awaitable[_ResultT]],
        completed_steps: Optional[List[str]] = None,
    ) -> _ResultT:
        """Run a primitive, wrapping unexpected failures into ``PersistenceError``."""
        try:
            return await action()
        except PersistenceError as e:
            if completed_steps and not e.completed_steps:
                e.completed_steps = list(completed_steps)
            raise
        except Exception as e:
            logger.exception(
                "%s.%s failed for memory %s",
                self.__class__.__name__,
                operation,
                memory_id,
            )
            raise PersistenceError(
                operation,
                memory_id=memory_id,
                cause=e,
                completed_steps=completed_steps,
            ) from e
