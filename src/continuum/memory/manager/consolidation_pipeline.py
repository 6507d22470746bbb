"""Staged execution of per-memory persistence side effects."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from continuum.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)


TransactionCallable = Callable[["ConsolidationTransaction"], Awaitable[Any]]


class ConsolidationTransaction:
    """
    Execute the persistence steps for one memory, recording their progress.

    Steps are not rolled back on failure. A failed step raises
    ``PersistenceError`` whose ``completed_steps`` lists what already ran, so
    the report shows exactly where the memory was left.
    """

    def __init__(self, name: str, *, log: Optional[logging.Logger] = None) -> None:
        self._name = name
        self._log = log or logger
        self.completed_steps: List[str] = []

    async def stage(
        self,
        action: Callable[[], Awaitable[Any]],
        *,
        description: str | None = None,
    ) -> Any:
        """Run ``action`` and record it as completed."""

        step = description or getattr(action, "__name__", "step")

        try:
            result = await action()
        except PersistenceError as exc:
            self._log.warning(
                "Consolidation transaction %s failed during step %s: %s",
                self._name,
                step,
                exc,
            )
            exc.completed_steps = self.completed_steps + [
                f"{step}:{inner}" for inner in exc.completed_steps
            ]
            raise
        except Exception as exc:
            self._log.exception(
                "Consolidation transaction %s failed during step %s due to %s",
                self._name,
                step,
                exc,
            )
            raise PersistenceError(
                step,
                memory_id=self._name,
                cause=exc,
                completed_steps=self.completed_steps,
            ) from exc

        self.completed_steps.append(step)
        return result


class ConsolidationPipeline:
    """Serialize persistence work per memory id."""

    def __init__(self, *, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger
        self._locks: Dict[str, asyncio.Lock] = {}
        # Tasks holding or awaiting each key's lock
        self._users: Dict[str, int] = {}

    async def run(self, key: str, runner: TransactionCallable) -> Any:
        """Execute ``runner`` for ``key`` while holding that key's lock."""

        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1

        try:
            async with lock:
                transaction = ConsolidationTransaction(key, log=self._log)
                return await runner(transaction)
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    @property
    def active_keys(self) -> List[str]:
        """Memory ids that currently hold or await a lock."""
        return list(self._locks)


__all__ = [
    "ConsolidationPipeline",
    "ConsolidationTransaction",
]
