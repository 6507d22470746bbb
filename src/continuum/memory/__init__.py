"""
Continuum - Memory Module
=========================

Tiered memory consolidation:

1. ``SurpriseScorer`` computes a composite [0, 1] score for a memory against a
   corpus snapshot.
2. ``TierPolicy`` holds the per-tier TTL, minimum dwell and promotion threshold.
3. ``IdentityGuard`` protects the terminal tier from contradictory content.
4. ``ConsolidationEngine`` runs a cycle over tiers t1..t4 and applies outcomes
   through a ``MemoryStore``.

Usage:
------
```python
from continuum.memory.backends import InMemoryMemoryStore
from continuum.memory.factory import create_consolidation_engine

store = InMemoryMemoryStore.from_records(records)
engine = create_consolidation_engine(store, dry_run=True)
reports = await engine.run_full_cycle()
```
"""

import logging

logger = logging.getLogger(__name__)
