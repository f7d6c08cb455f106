"""Find the same match in two independently scraped fixture lists."""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Sequence, Tuple, Union

from .config import MAX_TIME_DIFFERENCE_MINUTES, SIMILARITY_THRESHOLD
from .models import MatchedFixturePair, RawFixture
from .similarity import string_similarity

logger = logging.getLogger(__name__)

Timestamp = Union[datetime, int, float, str]


def to_epoch_millis(value: Timestamp) -> float:
    """
    Normalize a timestamp to epoch milliseconds.

    Numbers are epoch seconds (the unit both feeds use), strings are
    ISO 8601. Naive datetimes are taken to be UTC.
    """
    if isinstance(value, bool):
        raise TypeError(f"Not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return float(value) * 1000
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        raise TypeError(f"Not a timestamp: {value!r}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp() * 1000


def time_difference_minutes(t1: Timestamp, t2: Timestamp) -> float:
    """Absolute difference between two timestamps in minutes."""
    return abs(to_epoch_millis(t1) - to_epoch_millis(t2)) / 60000


def team_similarity(a: RawFixture, b: RawFixture) -> Tuple[float, bool]:
    """
    Score how alike the team names of two fixtures are.

    Sources sometimes list home and away the other way round, so the
    crossed pairing is scored too and the better of the two wins.

    Returns:
        Tuple of (average similarity of the winning pairing, is_reversed)
    """
    home_similarity = string_similarity(a.home_team, b.home_team)
    away_similarity = string_similarity(a.away_team, b.away_team)
    reverse_home_similarity = string_similarity(a.home_team, b.away_team)
    reverse_away_similarity = string_similarity(a.away_team, b.home_team)

    is_reversed = (reverse_home_similarity + reverse_away_similarity) > (home_similarity + away_similarity)
    if is_reversed:
        return (reverse_home_similarity + reverse_away_similarity) / 2, True
    return (home_similarity + away_similarity) / 2, False


def _start_millis(fixtures: Sequence[RawFixture], label: str) -> List[Tuple[RawFixture, float]]:
    """Pair each usable fixture with its start time, dropping malformed ones."""
    usable = []
    for fixture in fixtures:
        if not fixture.home_team or not fixture.away_team:
            logger.warning(f"Skipping {label} fixture {fixture.source_id}: missing team names")
            continue
        try:
            usable.append((fixture, to_epoch_millis(fixture.start_time)))
        except (TypeError, ValueError, OverflowError, OSError) as e:
            logger.warning(f"Skipping {label} fixture {fixture.source_id}: bad start time ({e})")
    return usable


def find_matches(
    fixtures_a: Sequence[RawFixture],
    fixtures_b: Sequence[RawFixture],
    similarity_threshold: float = SIMILARITY_THRESHOLD,
    max_time_difference: float = MAX_TIME_DIFFERENCE_MINUTES,
) -> List[MatchedFixturePair]:
    """
    Pair up fixtures from two sources.

    Every fixture of ``fixtures_a`` is compared with every fixture of
    ``fixtures_b``. A pair is kept when the team similarity reaches the
    threshold and the kick-off times are close enough. One fixture may end
    up in several pairs.

    Args:
        fixtures_a: Fixtures from the first source
        fixtures_b: Fixtures from the second source
        similarity_threshold: Minimum average team name similarity
        max_time_difference: Maximum kick-off difference in minutes

    Returns:
        Matched pairs, highest similarity first
    """
    usable_a = _start_millis(fixtures_a, "first-source")
    usable_b = _start_millis(fixtures_b, "second-source")

    matches = []
    for a, a_millis in usable_a:
        for b, b_millis in usable_b:
            similarity, is_reversed = team_similarity(a, b)
            time_delta = abs(a_millis - b_millis) / 60000

            if similarity >= similarity_threshold and time_delta <= max_time_difference:
                matches.append(MatchedFixturePair(
                    fixture_a=a,
                    fixture_b=b,
                    similarity_score=similarity,
                    is_teams_reversed=is_reversed,
                    time_delta_minutes=time_delta,
                ))

    logger.debug(f"Compared {len(usable_a)}x{len(usable_b)} fixtures, {len(matches)} matches")

    # sorted() is stable: ties keep cross-product order
    return sorted(matches, key=lambda m: m.similarity_score, reverse=True)


def keep_best_matches(matches: Sequence[MatchedFixturePair]) -> List[MatchedFixturePair]:
    """
    Reduce matches to at most one pair per fixture on either side.

    Pairs are taken greedily in the given order (best first when fed the
    output of ``find_matches``), skipping any pair whose fixture is already
    used.
    """
    used_a: Dict[str, bool] = {}
    used_b: Dict[str, bool] = {}
    best = []
    for match in matches:
        key_a = match.fixture_a.source_id
        key_b = match.fixture_b.source_id
        if key_a in used_a or key_b in used_b:
            continue
        used_a[key_a] = True
        used_b[key_b] = True
        best.append(match)
    return best


def describe_match(match: MatchedFixturePair) -> str:
    """One-line summary used in logs and the CLI."""
    a, b = match.fixture_a, match.fixture_b
    return (
        f"{a.home_team} vs {a.away_team} <-> {b.home_team} vs {b.away_team} "
        f"(similarity {match.similarity_score:.2f}, {match.time_delta_minutes:.0f} min"
        f"{', reversed' if match.is_teams_reversed else ''})"
    )
