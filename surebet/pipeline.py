"""Scan orchestration: collect fixtures, pair them up, compare their odds."""
import time
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config import DATA_REFRESH_MINUTES, DEFAULT_TOTAL_STAKE
from .matcher import describe_match, find_matches, keep_best_matches
from .melbet_api import MelbetClient
from .models import ArbitrageOpportunity, MatchedFixturePair, RawFixture
from .mostbet_api import MostbetClient
from .normalize import normalize
from .scanner import scan

logger = logging.getLogger(__name__)


@dataclass
class PairScan:
    """Result of scanning one matched fixture pair."""
    pair: MatchedFixturePair
    success: bool
    opportunities: List[ArbitrageOpportunity] = field(default_factory=list)
    error: Optional[str] = None


class FixtureCache:
    """
    Keep a fixture list until it is older than the refresh interval.

    Args:
        loader: Called to (re)load the fixtures
        ttl_minutes: Age after which the list is reloaded
        clock: Returns the current time in seconds
    """

    def __init__(
        self,
        loader: Callable[[], List[RawFixture]],
        ttl_minutes: float = DATA_REFRESH_MINUTES,
        clock: Callable[[], float] = time.time,
    ):
        self.loader = loader
        self.ttl_seconds = ttl_minutes * 60
        self.clock = clock
        self._fixtures: Optional[List[RawFixture]] = None
        self._fetched_at: Optional[float] = None

    @classmethod
    def for_client(
        cls,
        client,
        ttl_minutes: float = DATA_REFRESH_MINUTES,
        clock: Callable[[], float] = time.time,
    ) -> "FixtureCache":
        """Cache over ``collect_fixtures(client)``."""
        return cls(lambda: collect_fixtures(client), ttl_minutes=ttl_minutes, clock=clock)

    @property
    def fetched_at(self) -> Optional[float]:
        return self._fetched_at

    def is_stale(self) -> bool:
        if self._fetched_at is None:
            return True
        return self.clock() - self._fetched_at > self.ttl_seconds

    def get(self) -> List[RawFixture]:
        """Return the cached fixtures, reloading them first if stale."""
        if self.is_stale():
            logger.info("Fixture list is stale, refreshing")
            self._fixtures = list(self.loader())
            self._fetched_at = self.clock()
        return self._fixtures

    def invalidate(self):
        self._fixtures = None
        self._fetched_at = None


def collect_fixtures(client) -> List[RawFixture]:
    """
    Collect every upcoming fixture a feed client lists.

    Args:
        client: MostbetClient or MelbetClient

    Returns:
        Fixtures collected before any error; errors are logged, not raised
    """
    fixtures = []
    try:
        for fixture in client.iter_fixtures():
            fixtures.append(fixture)
    except Exception as e:
        logger.error(f"Error collecting fixtures from {client.source_id}: {e}")

    logger.info(f"Collected {len(fixtures)} fixtures from {client.source_id}")
    return fixtures


def find_pairs(
    fixtures_a: List[RawFixture],
    fixtures_b: List[RawFixture],
    best_only: bool = False,
) -> List[MatchedFixturePair]:
    """
    Match fixtures of two sources.

    Args:
        fixtures_a: Fixtures of the first source
        fixtures_b: Fixtures of the second source
        best_only: Keep at most one pair per fixture

    Returns:
        Matched pairs, highest similarity first
    """
    pairs = find_matches(fixtures_a, fixtures_b)
    if best_only:
        pairs = keep_best_matches(pairs)
    logger.info(f"Matched {len(pairs)} fixture pairs")
    return pairs


def scan_pair(
    pair: MatchedFixturePair,
    mostbet_client: MostbetClient,
    melbet_client: MelbetClient,
    total_stake: float = DEFAULT_TOTAL_STAKE,
    include_all: bool = False,
) -> PairScan:
    """
    Fetch both books of a matched pair and look for arbitrage.

    ``fixture_a`` of the pair is a Mostbet fixture, ``fixture_b`` a MelBet
    one. Failures are reported on the result, never raised.

    Returns:
        PairScan with the pair's opportunities, highest profit first
    """
    a, b = pair.fixture_a, pair.fixture_b
    logger.debug(f"Scanning {describe_match(pair)}")
    try:
        book_a = normalize(mostbet_client.source_id, mostbet_client.get_line(a.source_id))
        book_b = normalize(melbet_client.source_id, melbet_client.get_game(b.source_id))
    except Exception as e:
        logger.error(f"Error fetching odds for {a.home_team} vs {a.away_team}: {e}")
        return PairScan(pair=pair, success=False, error=str(e))

    if not book_a.success or not book_b.success:
        missing = mostbet_client.source_id if not book_a.success else melbet_client.source_id
        logger.warning(f"No odds from {missing} for {a.home_team} vs {a.away_team}")
        return PairScan(pair=pair, success=False, error=f"No odds from {missing}")

    opportunities = scan(
        book_a,
        book_b,
        total_stake=total_stake,
        include_all=include_all,
        teams_reversed=pair.is_teams_reversed,
    )
    return PairScan(pair=pair, success=True, opportunities=opportunities)


def rank_opportunities(results: List[PairScan]) -> List[Tuple[MatchedFixturePair, ArbitrageOpportunity]]:
    """All opportunities of a scan, most profitable first."""
    ranked = [(r.pair, o) for r in results for o in r.opportunities]
    ranked.sort(key=lambda item: item[1].profit_percent, reverse=True)
    return ranked


def run_scan(
    limit: int = None,
    best_only: bool = False,
    total_stake: float = DEFAULT_TOTAL_STAKE,
    mostbet_client: MostbetClient = None,
    melbet_client: MelbetClient = None,
    fixtures_a: List[RawFixture] = None,
    fixtures_b: List[RawFixture] = None,
    cache_a: FixtureCache = None,
    cache_b: FixtureCache = None,
) -> Tuple[Dict[str, int], List[PairScan]]:
    """
    Run a full scan: collect fixtures, match them, scan every pair.

    Args:
        limit: Scan at most this many pairs (all if None)
        best_only: Keep at most one pair per fixture
        total_stake: Stake to distribute in each opportunity
        mostbet_client: MostbetClient instance
        melbet_client: MelbetClient instance
        fixtures_a: Mostbet fixtures (collected if not provided)
        fixtures_b: MelBet fixtures (collected if not provided)
        cache_a: Cache to take Mostbet fixtures from instead of collecting them
        cache_b: Cache to take MelBet fixtures from instead of collecting them

    Returns:
        Tuple of (stats dict, per-pair results)
    """
    stats = {
        "fixtures_a": 0,
        "fixtures_b": 0,
        "pairs": 0,
        "scanned": 0,
        "opportunities": 0,
        "errors": 0,
    }

    if mostbet_client is None:
        mostbet_client = MostbetClient()
    if melbet_client is None:
        melbet_client = MelbetClient()

    if fixtures_a is None:
        logger.info("Fetching fixtures from Mostbet...")
        fixtures_a = cache_a.get() if cache_a else collect_fixtures(mostbet_client)
    if fixtures_b is None:
        logger.info("Fetching fixtures from MelBet...")
        fixtures_b = cache_b.get() if cache_b else collect_fixtures(melbet_client)
    stats["fixtures_a"] = len(fixtures_a)
    stats["fixtures_b"] = len(fixtures_b)

    pairs = find_pairs(fixtures_a, fixtures_b, best_only)
    stats["pairs"] = len(pairs)
    if limit is not None:
        pairs = pairs[:limit]

    results = []
    for pair in pairs:
        result = scan_pair(pair, mostbet_client, melbet_client, total_stake)
        results.append(result)
        if result.success:
            stats["scanned"] += 1
            stats["opportunities"] += len(result.opportunities)
        else:
            stats["errors"] += 1

    return stats, results


def opportunity_to_record(opportunity: ArbitrageOpportunity) -> Dict[str, Any]:
    return {
        "market": opportunity.market,
        "title": opportunity.title,
        "odds": [
            {"label": q.label, "odds": q.odds, "bookmaker": q.source_id}
            for q in opportunity.outcome_odds
        ],
        "is_arbitrage": opportunity.is_arbitrage,
        "profit_percent": opportunity.profit_percent,
        "total_stake": opportunity.total_stake,
        "stake_distribution": list(opportunity.stake_distribution),
        "expected_return": opportunity.expected_return,
        "expected_profit": opportunity.expected_profit,
        "condition": opportunity.condition,
    }


def scan_to_record(result: PairScan) -> Dict[str, Any]:
    """JSON-ready form of a PairScan."""
    pair = result.pair
    return {
        "fixture_a": pair.fixture_a.to_record(),
        "fixture_b": pair.fixture_b.to_record(),
        "similarity_score": round(pair.similarity_score, 4),
        "is_teams_reversed": pair.is_teams_reversed,
        "time_delta_minutes": pair.time_delta_minutes,
        "success": result.success,
        "error": result.error,
        "opportunities": [opportunity_to_record(o) for o in result.opportunities],
    }
