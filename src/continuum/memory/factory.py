"""
Consolidation Engine Factory.

This module provides the entry points an external scheduler uses to run
consolidation: building a configured engine for a store, and running one full
cycle that returns aggregated totals.

Usage:
    from continuum.memory.factory import run_consolidation

    summary = await run_consolidation(store)
    if not summary.success:
        ...
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from continuum.memory.config.loader import load_config
from continuum.memory.config.settings import ContinuumConfig
from continuum.memory.interfaces.memory_store import MemoryStore
from continuum.memory.manager.consolidation import ConsolidationEngine
from continuum.memory.models.consolidation import CycleSummary

logger = logging.getLogger(__name__)


def create_consolidation_engine(
    store: MemoryStore,
    config: Optional[Union[ContinuumConfig, str, Path]] = None,
    *,
    dry_run: bool = False,
    **kwargs,
) -> ConsolidationEngine:
    """
    Create a configured consolidation engine.

    Args:
        store: The store the engine reads and mutates
        config: A ``ContinuumConfig``, a path to a YAML configuration file, or
                None to load from ``CONTINUUM_CONFIG_PATH`` / the defaults
        dry_run: Report decisions without applying them
        **kwargs: Additional keyword arguments passed to the engine

    Returns:
        ConsolidationEngine

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    if not isinstance(config, ContinuumConfig):
        config = load_config(config)

    logger.info("Creating consolidation engine (dry_run=%s)", dry_run)
    return ConsolidationEngine(store, config, dry_run=dry_run, **kwargs)


async def run_consolidation(
    store: MemoryStore,
    config: Optional[Union[ContinuumConfig, str, Path]] = None,
    *,
    dry_run: bool = False,
    now: Optional[datetime] = None,
) -> CycleSummary:
    """
    Run one full consolidation cycle and summarize it.

    Returns:
        CycleSummary whose ``success`` is False when any memory failed
    """
    engine = create_consolidation_engine(store, config, dry_run=dry_run)
    reports = await engine.run_full_cycle(now)
    summary = CycleSummary.from_reports(reports, dry_run=dry_run)

    log = logger.info if summary.success else logger.warning
    log(
        "Consolidation cycle finished: %d processed, %d consolidated, %d expired, %d protected, %d failed",
        summary.total_processed,
        summary.total_consolidated,
        summary.total_expired,
        summary.total_protected,
        summary.total_failed,
    )
    return summary
