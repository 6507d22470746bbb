import pytest

from continuum.memory.scoring import MarkerMatcher, cosine_similarity, max_cosine_similarity


def test_cosine_similarity_basic_directions():
    assert cosine_similarity([1.0, 0.0], [2.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 3.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)


@pytest.mark.parametrize(
    "vec_a, vec_b",
    [
        ([1.0, 0.0], [1.0, 0.0, 0.0]),
        ([], []),
        ([0.0, 0.0], [1.0, 0.0]),
        (None, [1.0]),
    ],
)
def test_cosine_similarity_undefined_cases_score_zero(vec_a, vec_b):
    assert cosine_similarity(vec_a, vec_b) == 0.0


def test_max_cosine_similarity_picks_the_closest_candidate():
    best = max_cosine_similarity([1.0, 0.0], [[0.0, 1.0], [1.0, 1.0], [1.0, 0.1]])

    assert best == pytest.approx(cosine_similarity([1.0, 0.0], [1.0, 0.1]))


def test_max_cosine_similarity_without_candidates():
    assert max_cosine_similarity([1.0, 0.0], []) is None


def test_mismatched_candidates_count_as_zero():
    assert max_cosine_similarity([1.0, 0.0], [[1.0, 0.0, 0.0]]) == 0.0
    assert max_cosine_similarity([1.0, 0.0], [[1.0, 0.0, 0.0], [-1.0, 0.0]]) == 0.0


def test_zero_vectors_never_divide_by_zero():
    assert max_cosine_similarity([0.0, 0.0], [[1.0, 0.0]]) == 0.0
    assert max_cosine_similarity([1.0, 0.0], [[0.0, 0.0], [-1.0, 0.0]]) == 0.0


def test_marker_matcher_normalises_and_deduplicates():
    matcher = MarkerMatcher(["Important", "important ", "", "  ", "Critical"])

    assert matcher.markers == ("important", "critical")
    assert len(matcher) == 2


def test_marker_matcher_is_case_insensitive_substring_search():
    matcher = MarkerMatcher(["new", "today"])

    assert matcher.contains_any("TODAY is the day")
    assert matcher.matches("A renewal, today") == ("new", "today")
    assert matcher.count("A renewal, today, new and new") == 2
    assert not matcher.contains_any("")
    assert matcher.matches("") == ()
