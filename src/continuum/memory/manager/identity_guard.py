"""Identity coherence check for promotions into the terminal tier."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from continuum.memory.models.memory_item import coerce_memory
from continuum.memory.models.surprise import IdentityVerdict
from continuum.memory.scoring.surprise import SurpriseScorer

logger = logging.getLogger(__name__)

DEFAULT_CONTRADICTION_LIMIT = 0.70


class IdentityGuard:
    """
    Admission check applied only when the promotion target is t5.

    A candidate is unsafe when its contradiction signal, recomputed against
    the terminal-tier corpus alone, exceeds ``contradiction_limit``. Safe
    candidates are admitted whether they extend an existing facet or
    introduce a new one; the distinction is recorded for the audit trail.
    """

    def __init__(self, scorer: SurpriseScorer, contradiction_limit: Optional[float] = None) -> None:
        self._scorer = scorer
        if contradiction_limit is None:
            contradiction_limit = scorer.config.identity.contradiction_limit
        self.contradiction_limit = contradiction_limit

    def verify(self, candidate: Any, terminal_corpus: Iterable[Any]) -> IdentityVerdict:
        candidate = coerce_memory(candidate)
        corpus = [
            item
            for item in (coerce_memory(entry) for entry in terminal_corpus)
            if item.id != candidate.id
        ]

        contradiction = self._scorer.contradiction(candidate, corpus)
        if contradiction > self.contradiction_limit:
            logger.warning(
                "Identity check rejected memory %s: contradiction %.2f exceeds %.2f",
                candidate.id,
                contradiction,
                self.contradiction_limit,
            )
            return IdentityVerdict(
                safe=False,
                reason=(
                    f"Potential identity conflict (contradiction {contradiction:.2f} > "
                    f"{self.contradiction_limit:.2f}); manual review required"
                ),
                contradiction=contradiction,
            )

        extends = any(candidate.shares_tag_with(item) for item in corpus)
        reason = "Extends an existing identity facet" if extends else "Introduces a new identity facet"
        return IdentityVerdict(
            safe=True,
            reason=reason,
            contradiction=contradiction,
            extends_existing=extends,
        )
