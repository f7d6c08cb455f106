"""Data models for fixtures, odds books and arbitrage results."""
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from .markets import mirror_market_key, mirror_outcome


def parse_epoch_seconds(value: Any) -> Optional[datetime]:
    """Convert a feed's epoch-seconds field to a UTC datetime, or None if unusable."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


@dataclass(frozen=True)
class RawFixture:
    """A scheduled match as listed by one bookmaker."""
    source_id: str
    home_team: str
    away_team: str
    league_name: str
    start_time: datetime
    sport: str
    source: str = ""

    @classmethod
    def from_record(cls, record: Dict[str, Any], source: str = "") -> "RawFixture":
        """
        Build a fixture from a snapshot record.

        Accepts ``match_id``/``source_id``, ``home_team``, ``away_team``,
        ``league_name``, ``sport`` and either ``timestamp`` (epoch seconds)
        or ``date``/``start_time`` (ISO 8601).
        """
        source_id = record.get("source_id", record.get("match_id"))
        home_team = record.get("home_team")
        away_team = record.get("away_team")
        if source_id in (None, "") or not home_team or not away_team:
            raise ValueError(f"Fixture record missing id or team names: {record}")

        if record.get("timestamp") is not None:
            start_time = datetime.fromtimestamp(float(record["timestamp"]), tz=timezone.utc)
        else:
            raw_date = record.get("start_time") or record.get("date")
            if not raw_date:
                raise ValueError(f"Fixture record missing start time: {record}")
            start_time = datetime.fromisoformat(str(raw_date).replace("Z", "+00:00"))
            if start_time.tzinfo is None:
                start_time = start_time.replace(tzinfo=timezone.utc)

        return cls(
            source_id=str(source_id),
            home_team=str(home_team),
            away_team=str(away_team),
            league_name=str(record.get("league_name") or ""),
            start_time=start_time,
            sport=str(record.get("sport") or ""),
            source=str(record.get("source") or source),
        )

    def to_record(self) -> Dict[str, Any]:
        """Inverse of ``from_record``."""
        return {
            "match_id": self.source_id,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "league_name": self.league_name,
            "sport": self.sport,
            "timestamp": int(self.start_time.timestamp()),
            "date": self.start_time.isoformat(),
            "source": self.source,
        }


@dataclass(frozen=True)
class MatchedFixturePair:
    """Two fixtures, one per source, believed to be the same match."""
    fixture_a: RawFixture
    fixture_b: RawFixture
    similarity_score: float
    is_teams_reversed: bool
    time_delta_minutes: float


@dataclass
class OddsBook:
    """Canonical odds for one fixture at one bookmaker."""
    source_id: str
    fixture_ref: str
    markets: Dict[str, Dict[str, float]] = field(default_factory=dict)
    home_team: str = ""
    away_team: str = ""
    league: str = ""
    start_time: Optional[datetime] = None
    success: bool = True
    # Set on mirror images; the raw market keys still list the original home team first
    is_swapped: bool = False

    def swapped(self) -> "OddsBook":
        """Return the same book seen with home and away exchanged."""
        markets = {}
        for market, outcomes in self.markets.items():
            markets[mirror_market_key(market)] = {
                mirror_outcome(market, label): odds for label, odds in outcomes.items()
            }
        return replace(
            self,
            markets=markets,
            home_team=self.away_team,
            away_team=self.home_team,
            is_swapped=not self.is_swapped,
        )


@dataclass(frozen=True)
class OutcomeQuote:
    """The odds chosen for one outcome and the bookmaker offering them."""
    label: str
    odds: float
    source_id: str


@dataclass(frozen=True)
class ArbitrageResult:
    """Outcome of evaluating one set of mutually exclusive odds."""
    is_arbitrage: bool
    profit_percent: float
    total_stake: float
    stake_distribution: Tuple[float, ...]
    expected_return: float
    expected_profit: float
    total_implied: float


@dataclass(frozen=True)
class ArbitrageOpportunity:
    """An evaluated market of a matched fixture pair."""
    market: str
    title: str
    outcome_odds: Tuple[OutcomeQuote, ...]
    is_arbitrage: bool
    profit_percent: float
    total_stake: float
    stake_distribution: Tuple[float, ...]
    expected_return: float
    expected_profit: float
    condition: str
