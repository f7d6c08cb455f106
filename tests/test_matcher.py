from datetime import datetime, timedelta, timezone

import pytest

from surebet.matcher import find_matches, keep_best_matches, time_difference_minutes, to_epoch_millis
from surebet.models import RawFixture

KICK_OFF = datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)


def fixture(source_id, home, away, minutes=0.0, source="a"):
    return RawFixture(
        source_id=source_id,
        home_team=home,
        away_team=away,
        league_name="League",
        start_time=KICK_OFF + timedelta(minutes=minutes),
        sport="Football",
        source=source,
    )


def test_reversed_listing_is_detected():
    a = fixture("a1", "Real Madrid", "Barcelona")
    b = fixture("b1", "Barcelona", "Real Madrid", minutes=1, source="b")

    matches = find_matches([a], [b])

    assert len(matches) == 1
    assert matches[0].is_teams_reversed is True
    assert matches[0].similarity_score == 1.0
    assert matches[0].time_delta_minutes == pytest.approx(1.0)


def test_threshold_and_time_window_are_inclusive():
    a = fixture("a1", "abcde", "vwxyz")
    b = fixture("b1", "abcxy", "vwxab", minutes=5, source="b")

    matches = find_matches([a], [b])

    assert len(matches) == 1
    assert matches[0].similarity_score == 0.6
    assert matches[0].time_delta_minutes == 5.0
    assert matches[0].is_teams_reversed is False


def test_pair_just_outside_time_window_is_excluded():
    a = fixture("a1", "abcde", "vwxyz")
    b = fixture("b1", "abcxy", "vwxab", minutes=5.01, source="b")

    assert find_matches([a], [b]) == []


def test_pair_below_similarity_threshold_is_excluded():
    a = fixture("a1", "abcde", "vwxyz")
    b = fixture("b1", "abcxy", "vwabc", source="b")

    assert find_matches([a], [b]) == []


def test_one_fixture_can_match_several_and_best_comes_first():
    a = fixture("a1", "Arsenal", "Chelsea")
    close = fixture("b1", "Arsenal FC", "Chelsea", source="b")
    exact = fixture("b2", "Arsenal", "Chelsea", minutes=2, source="b")

    matches = find_matches([a], [close, exact])

    assert [m.fixture_b.source_id for m in matches] == ["b2", "b1"]
    assert matches[0].similarity_score > matches[1].similarity_score


def test_equal_scores_keep_cross_product_order():
    a1 = fixture("a1", "Arsenal", "Chelsea")
    a2 = fixture("a2", "Arsenal", "Chelsea", minutes=1)
    b = fixture("b1", "Arsenal", "Chelsea", source="b")

    matches = find_matches([a1, a2], [b])

    assert [m.fixture_a.source_id for m in matches] == ["a1", "a2"]


def test_keep_best_matches_uses_each_fixture_once():
    a = fixture("a1", "Arsenal", "Chelsea")
    close = fixture("b1", "Arsenal FC", "Chelsea", source="b")
    exact = fixture("b2", "Arsenal", "Chelsea", source="b")

    best = keep_best_matches(find_matches([a], [close, exact]))

    assert len(best) == 1
    assert best[0].fixture_b.source_id == "b2"


def test_malformed_fixtures_are_skipped(caplog):
    good = fixture("a1", "Arsenal", "Chelsea")
    no_time = RawFixture("a2", "Arsenal", "Chelsea", "League", None, "Football")
    no_team = fixture("a3", "", "Chelsea")
    b = fixture("b1", "Arsenal", "Chelsea", source="b")

    matches = find_matches([no_time, no_team, good], [b])

    assert [m.fixture_a.source_id for m in matches] == ["a1"]
    assert "a2" in caplog.text
    assert "a3" in caplog.text


def test_timestamps_in_any_supported_form():
    assert to_epoch_millis(1714586400) == 1714586400000
    assert to_epoch_millis("2024-05-01T18:00:00Z") == 1714586400000
    assert to_epoch_millis(datetime(2024, 5, 1, 18, 0)) == 1714586400000
    assert time_difference_minutes(1714586400, "2024-05-01T18:03:00+00:00") == pytest.approx(3.0)


def test_invalid_timestamp_is_rejected():
    with pytest.raises(TypeError):
        to_epoch_millis(None)
    with pytest.raises(ValueError):
        to_epoch_millis("tomorrow")
