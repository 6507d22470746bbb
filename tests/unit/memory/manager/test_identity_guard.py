import logging

import pytest

from continuum.memory.manager import IdentityGuard
from continuum.memory.scoring import SurpriseScorer
from tests.factories.memories import memory_record


class FixedContradictionScorer(SurpriseScorer):
    """Scorer whose contradiction signal is pinned for guard tests."""

    def __init__(self, contradiction: float):
        super().__init__()
        self.fixed = contradiction
        self.calls = []

    def contradiction(self, memory, corpus):
        self.calls.append((memory.id, [item.id for item in corpus]))
        return self.fixed


def _candidate(**kwargs):
    kwargs.setdefault("tags", ("identity",))
    return memory_record("candidate", tier="t4", **kwargs)


@pytest.mark.parametrize(
    "contradiction, safe",
    [
        (0.71, False),
        (0.70, True),
        (0.69, True),
    ],
)
def test_limit_is_exclusive(contradiction, safe):
    guard = IdentityGuard(FixedContradictionScorer(contradiction))

    verdict = guard.verify(_candidate(), [])

    assert verdict.safe is safe
    assert verdict.contradiction == pytest.approx(contradiction)


def test_unsafe_verdict_requests_review_and_logs(capture_logger):
    handler = capture_logger("continuum.memory.manager.identity_guard", logging.WARNING)
    guard = IdentityGuard(FixedContradictionScorer(0.85))

    verdict = guard.verify(_candidate(), [])

    assert verdict.safe is False
    assert "manual review required" in verdict.reason
    assert "candidate" in handler.messages[0]


def test_safe_verdict_distinguishes_new_and_extended_facets():
    guard = IdentityGuard(FixedContradictionScorer(0.0))
    core = [memory_record("core-1", tier="t5", tags=("identity", "values"))]

    extended = guard.verify(_candidate(), core)
    new = guard.verify(_candidate(tags=("music",)), core)

    assert extended.extends_existing is True
    assert extended.reason == "Extends an existing identity facet"
    assert new.extends_existing is False
    assert new.reason == "Introduces a new identity facet"


def test_candidate_is_excluded_from_terminal_corpus():
    scorer = FixedContradictionScorer(0.0)
    guard = IdentityGuard(scorer)

    guard.verify(_candidate(), [_candidate(), memory_record("core-1", tier="t5")])

    assert scorer.calls == [("candidate", ["core-1"])]


def test_default_limit_comes_from_configuration():
    assert IdentityGuard(SurpriseScorer()).contradiction_limit == pytest.approx(0.70)
    assert IdentityGuard(SurpriseScorer(), contradiction_limit=0.9).contradiction_limit == 0.9


def test_real_scorer_rejects_correction_of_existing_facet():
    guard = IdentityGuard(SurpriseScorer())
    core = [memory_record("core-1", tier="t5", content="I value honesty", tags=("identity",))]

    conflict = guard.verify(_candidate(content="Actually I no longer value honesty"), core)
    unrelated = guard.verify(_candidate(content="Actually I no longer value honesty", tags=("music",)), core)

    assert conflict.safe is False
    assert conflict.contradiction == pytest.approx(0.85)
    assert unrelated.safe is True
    assert unrelated.contradiction == pytest.approx(0.5)
