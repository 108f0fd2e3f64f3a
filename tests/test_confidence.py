import pytest

from core.confidence import ConfidenceScorer, score
from models.detection import MatchCategory, RawMatch


def _match(category, subtype=None, value="x"):
    return RawMatch(category=category, matched_value=value, subtype=subtype)


ALL_KINDS = [
    _match(MatchCategory.SCRIPT, "src"),
    _match(MatchCategory.SCRIPT, "regex"),
    _match(MatchCategory.SCRIPT, "keyword"),
    _match(MatchCategory.SCRIPT, "id"),
    _match(MatchCategory.WINDOW_VARIABLE),
    _match(MatchCategory.CLASS),
    _match(MatchCategory.DATA_ATTRIBUTE),
    _match(MatchCategory.API_REQUEST),
    _match(MatchCategory.COOKIE),
    _match(MatchCategory.HEAD_TAG),
]


def test_no_matches_scores_zero():
    assert score([]) == 0


@pytest.mark.parametrize("match,expected", [
    (_match(MatchCategory.SCRIPT, "src"), 40),
    (_match(MatchCategory.SCRIPT, "regex"), 30),
    (_match(MatchCategory.SCRIPT, "keyword"), 30),
    (_match(MatchCategory.SCRIPT, "id"), 25),
    (_match(MatchCategory.SCRIPT), 30),
    (_match(MatchCategory.WINDOW_VARIABLE), 35),
    (_match(MatchCategory.CLASS), 8),
    (_match(MatchCategory.DATA_ATTRIBUTE), 15),
    (_match(MatchCategory.API_REQUEST), 45),
    (_match(MatchCategory.COOKIE), 40),
    (_match(MatchCategory.HEAD_TAG), 30),
])
def test_weights(match, expected):
    assert ConfidenceScorer.weight(match) == expected


def test_low_value_matches_are_summed_without_floor():
    matches = [_match(MatchCategory.CLASS), _match(MatchCategory.CLASS), _match(MatchCategory.DATA_ATTRIBUTE)]
    assert score(matches) == 8 + 8 + 15


def test_regex_fallback_is_not_high_value():
    assert score([_match(MatchCategory.SCRIPT, "regex")]) == 30
    assert score([_match(MatchCategory.SCRIPT, "keyword"), _match(MatchCategory.SCRIPT, "id")]) == 55


@pytest.mark.parametrize("match", [
    _match(MatchCategory.SCRIPT, "src"),
    _match(MatchCategory.WINDOW_VARIABLE),
    _match(MatchCategory.API_REQUEST),
    _match(MatchCategory.COOKIE),
    _match(MatchCategory.HEAD_TAG),
])
def test_single_high_value_match_floors_at_70(match):
    assert score([match]) == 70
    assert score([match, _match(MatchCategory.CLASS)]) == 70


def test_floor_does_not_lower_higher_scores():
    matches = [_match(MatchCategory.API_REQUEST), _match(MatchCategory.WINDOW_VARIABLE)]
    assert score(matches) == 80


def test_score_saturates_at_100():
    assert score(ALL_KINDS) == 100
    assert score([_match(MatchCategory.API_REQUEST)] * 10) == 100


def test_duplicates_are_counted():
    assert score([_match(MatchCategory.CLASS)] * 3) == 24


def test_score_is_monotonic():
    current = []
    previous = score(current)
    for match in ALL_KINDS + ALL_KINDS:
        current.append(match)
        result = score(current)
        assert previous <= result <= 100
        previous = result


def test_high_value_lists_always_at_least_70():
    low = [_match(MatchCategory.CLASS), _match(MatchCategory.SCRIPT, "id")]
    for high in [m for m in ALL_KINDS if ConfidenceScorer.is_high_value(m)]:
        assert score(low + [high]) >= 70
