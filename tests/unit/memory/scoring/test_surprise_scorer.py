import logging

import pytest

from continuum.core.exceptions import ConfigurationError, ValidationError
from continuum.memory.config.settings import BonusSettings, ContinuumConfig, MarkerSettings, ScoringWeights
from continuum.memory.models.memory_item import coerce_memory
from continuum.memory.scoring import SurpriseScorer
from tests.factories.memories import memory_record, surprising_record


@pytest.fixture
def scorer():
    return SurpriseScorer()


def _memory(memory_id="mem-1", **kwargs):
    return coerce_memory(memory_record(memory_id, **kwargs))


def test_plain_memory_against_empty_corpus(scorer):
    breakdown = scorer.score(memory_record(tags=("a", "b")))

    assert breakdown.novelty == pytest.approx(1.0)
    assert breakdown.contradiction == 0.0
    assert breakdown.user_emphasis == 0.0
    assert breakdown.temporal_novelty == pytest.approx(0.5)
    assert breakdown.emotional_weight == 0.0
    assert breakdown.interconnectivity == pytest.approx(0.5)
    assert breakdown.base_score == pytest.approx(0.375)
    assert breakdown.final_score == pytest.approx(0.375)
    assert breakdown.bonuses.total == 0.0


def test_memory_without_tags_has_no_novelty(scorer):
    assert scorer.score(memory_record(tags=())).novelty == 0.0


def test_novelty_counts_tags_unknown_to_the_corpus(scorer):
    corpus = [memory_record("other", tags=("a", "c"))]

    breakdown = scorer.score(memory_record(tags=("a", "b")), corpus)

    assert breakdown.novelty == pytest.approx(0.5)
    assert breakdown.interconnectivity == pytest.approx(1.0)


def test_love_tag_adds_bonus_on_top_of_base(scorer):
    breakdown = scorer.score(memory_record(tags=("love",)))

    assert breakdown.bonuses.love_applied is True
    assert breakdown.bonuses.love == pytest.approx(0.10)
    assert breakdown.bonuses.breakthrough_applied is False
    assert breakdown.final_score == pytest.approx(breakdown.base_score + 0.10)
    assert breakdown.final_score == pytest.approx(0.475)


def test_love_marker_in_content_also_counts(scorer):
    assert scorer.detect_love(_memory(content="Te quiero mucho")) is True
    assert scorer.detect_love(_memory(content="Plain note")) is False


def test_breakthrough_bonus(scorer):
    breakdown = scorer.score(memory_record(content="Eureka, that explains the bug"))

    assert breakdown.bonuses.breakthrough_applied is True
    assert breakdown.final_score == pytest.approx(breakdown.base_score + 0.15)


def test_score_saturates_at_one(scorer):
    breakdown = scorer.score(surprising_record())

    assert breakdown.base_score == pytest.approx(0.795)
    assert breakdown.final_score == 1.0


@pytest.mark.parametrize(
    "content, corpus_tags, expected",
    [
        ("Actually the meeting moved to Friday", ("meeting",), 0.85),
        ("Actually the meeting moved to Friday", ("lunch",), 0.5),
        ("The meeting moved to Friday", ("meeting",), 0.0),
    ],
)
def test_contradiction_levels(scorer, content, corpus_tags, expected):
    memory = _memory(content=content, tags=("meeting",))
    corpus = [_memory("other", tags=corpus_tags)]

    assert scorer.contradiction(memory, corpus) == pytest.approx(expected)


def test_contradiction_ignores_the_memory_itself(scorer):
    memory = _memory(content="Actually it changed", tags=("meeting",))

    assert scorer.contradiction(memory, [memory]) == pytest.approx(0.5)


@pytest.mark.parametrize(
    "content, expected",
    [
        ("Plain note", 0.0),
        ("This is critical", 0.7),
        ("Important and critical", 0.85),
        ("Remember this: important and critical", 1.0),
        ("Remember this: important, critical, essential", 1.0),
        ("IMPORTANT important Important", 0.7),
    ],
)
def test_user_emphasis_saturates(scorer, content, expected):
    assert scorer.user_emphasis(_memory(content=content)) == pytest.approx(expected)


@pytest.mark.parametrize(
    "content, expected",
    [
        ("It happened today", 0.7),
        ("It was always so", 0.4),
        ("Today and always", 0.7),
        ("Plain note", 0.5),
    ],
)
def test_temporal_novelty(scorer, content, expected):
    assert scorer.temporal_novelty(_memory(content=content)) == pytest.approx(expected)


def test_emotional_weight_uses_valence_magnitude(scorer):
    memory = _memory(emotional_valence=-0.5, emotional_intensity=0.5)

    assert scorer.emotional_weight(memory) == pytest.approx(0.5)


def test_interconnectivity_is_share_of_connected_corpus(scorer):
    memory = _memory(tags=("x",))
    corpus = [
        _memory("c1", tags=("x", "y")),
        _memory("c2", tags=("y",)),
        _memory("c3"),
        _memory("c4", tags=("z",)),
    ]

    assert scorer.interconnectivity(memory, corpus) == pytest.approx(0.25)


@pytest.mark.parametrize(
    "corpus_embedding, expected",
    [
        ([1.0, 0.0], 0.0),
        ([0.0, 1.0], 1.0),
        ([-1.0, 0.0], 1.0),
        ([1.0, 0.0, 0.0], 1.0),
    ],
)
def test_novelty_from_embeddings(scorer, corpus_embedding, expected):
    memory = memory_record(tags=("a",), embedding=[1.0, 0.0])
    corpus = [memory_record("other", tags=("a",), embedding=corpus_embedding)]

    assert scorer.score(memory, corpus).novelty == pytest.approx(expected)


def test_novelty_falls_back_to_tags_without_corpus_embeddings(scorer):
    memory = memory_record(tags=("a", "b"), embedding=[1.0, 0.0])
    corpus = [memory_record("other", tags=("a",))]

    assert scorer.score(memory, corpus).novelty == pytest.approx(0.5)


def test_memory_is_excluded_from_its_own_corpus(scorer):
    record = memory_record(tags=("a", "b"))

    assert scorer.score(record, [record]) == scorer.score(record)


def test_scoring_is_deterministic(scorer):
    corpus = [memory_record("c1", tags=("a",)), memory_record("c2", content="today")]
    record = surprising_record(tags=("a", "journal"))

    assert scorer.score(record, corpus) == scorer.score(record, list(corpus))


def test_malformed_memory_raises_validation_error(scorer):
    with pytest.raises(ValidationError) as excinfo:
        scorer.score({"id": "broken"})

    assert excinfo.value.memory_id == "broken"


def test_malformed_corpus_entry_raises_validation_error(scorer):
    with pytest.raises(ValidationError):
        scorer.score(memory_record(), [{"id": "c1", "content": "no timestamp"}])


def test_invalid_weights_fail_at_construction():
    config = ContinuumConfig(weights=ScoringWeights(novelty=0.5))

    with pytest.raises(ConfigurationError):
        SurpriseScorer(config)


def test_custom_markers_and_bonuses():
    config = ContinuumConfig(
        markers=MarkerSettings(love=["sunrise"]),
        bonuses=BonusSettings(love=0.2, breakthrough=0.0),
    )
    scorer = SurpriseScorer(config)

    breakdown = scorer.score(memory_record(content="A sunrise walk"))

    assert breakdown.bonuses.love == pytest.approx(0.2)
    assert scorer.detect_love(_memory(tags=("love",))) is False


def test_scoring_logs_at_debug(scorer, capture_logger):
    handler = capture_logger("continuum.memory.scoring.surprise", logging.DEBUG)

    scorer.score(memory_record("logged"))

    assert any("logged" in record.getMessage() for record in handler.records)
