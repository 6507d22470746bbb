"""
Memory Store Interface

This module defines the abstract interface between the consolidation engine
and whatever technology persists memories. The engine only ever talks to a
store through these named operations.

Records cross this boundary as plain JSON-compatible mappings; the engine
validates them into ``TieredMemory`` instances itself.
"""

import abc
from typing import Any, Dict, List, Mapping, Optional

from continuum.core.enums import MemoryTier
from continuum.memory.models.consolidation import AuditLogEntry


class MemoryStore(abc.ABC):
    """
    Abstract Base Class defining the persistence contract of the engine.

    Implementations are responsible for:
    1. Returning tier membership and the full corpus
    2. Applying field updates, moves and deletions for a single memory id
    3. Appending audit log entries

    ``update``, ``move`` and ``delete`` raise ``MemoryNotFoundError`` when the
    id is unknown; any other failure surfaces as ``PersistenceError``.
    """

    @abc.abstractmethod
    async def fetch_by_tier(self, tier: MemoryTier) -> List[Dict[str, Any]]:
        """
        Return every record currently held in ``tier``.

        Args:
            tier: The tier to list

        Returns:
            List of record mappings
        """

    @abc.abstractmethod
    async def fetch_all(self) -> List[Dict[str, Any]]:
        """Return every record in every tier, t5 included."""

    @abc.abstractmethod
    async def update(
        self,
        memory_id: str,
        fields: Mapping[str, Any],
        tier: Optional[MemoryTier] = None,
    ) -> None:
        """
        Merge ``fields`` into the stored record for ``memory_id``.

        ``tier`` names the copy to update when an interrupted move left the
        id in two tiers.

        Raises:
            MemoryNotFoundError: If no record has this id
            PersistenceError: If the update fails
        """

    @abc.abstractmethod
    async def move(
        self,
        memory_id: str,
        from_tier: MemoryTier,
        to_tier: MemoryTier,
        fields: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Move a record from ``from_tier`` to ``to_tier``.

        The move is two-phase and not atomic: the record is first inserted at
        the destination carrying ``consolidated_from`` provenance (and
        ``fields`` merged in), then removed from the source. Calling ``move``
        again after a failure between the phases completes the removal.

        Raises:
            MemoryNotFoundError: If the record exists in neither tier
            MemoryExistsError: If the destination already holds an unrelated
                record with this id
            PersistenceError: If either phase fails
        """

    @abc.abstractmethod
    async def delete(self, memory_id: str, tier: Optional[MemoryTier] = None) -> None:
        """
        Permanently delete the record for ``memory_id`` (in ``tier`` if given).

        Raises:
            MemoryNotFoundError: If no record has this id
            PersistenceError: If the deletion fails
        """

    @abc.abstractmethod
    async def append_audit_log(self, entry: AuditLogEntry) -> None:
        """Append ``entry`` to the store's audit log."""
