"""Normalize 1xBet line feed payloads (also served to MelBet) into odds books.

A ``GetGameZip`` payload lists market groups under ``Value.GE``. Each group
has an id ``G`` and a list of columns ``E``; every column is a list of
options ``{"C": odds, "P": parameter}``. Segment markets (corners, offsides,
...) live in separate sub-games which the feed client attaches under the
top-level ``SubGames`` key, keyed by sub-game name.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from .markets import OVER, SEGMENTS, UNDER, handicap_label, parse_odds, segment_market, total_label
from .models import OddsBook, parse_epoch_seconds

logger = logging.getLogger(__name__)

COLUMNS = "columns"
TOTALS = "totals"
HANDICAP = "handicap"

# Group id -> (market, layout, outcome per column)
GROUPS: Dict[int, Tuple[str, str, Tuple[str, ...]]] = {
    1: ("1X2", COLUMNS, ("W1", "X", "W2")),
    8: ("Double Chance", COLUMNS, ("1X", "12", "X2")),
    17: ("Total", TOTALS, ()),
    15: ("Home Team Total", TOTALS, ()),
    62: ("Away Team Total", TOTALS, ()),
    2: ("Handicap", HANDICAP, ()),
    2854: ("Asian Handicap", HANDICAP, ()),
}

# Groups read from segment sub-games, named "<segment> - <market>"
SUB_GAME_GROUPS = (1, 17, 15, 62, 2)


def _column(columns: List[Any], index: int) -> List[Dict[str, Any]]:
    if index >= len(columns) or not isinstance(columns[index], list):
        return []
    return [option for option in columns[index] if isinstance(option, dict)]


def _read_columns(columns: List[Any], labels: Tuple[str, ...]) -> Dict[str, float]:
    """First option of each column is the price of that column's outcome."""
    odds = {}
    for index, label in enumerate(labels):
        options = _column(columns, index)
        if not options:
            continue
        price = parse_odds(options[0].get("C"))
        if price is not None:
            odds[label] = price
    return odds


def _read_totals(columns: List[Any]) -> Dict[str, float]:
    """Column 0 holds the overs, column 1 the unders, one option per line."""
    odds = {}
    for index, side in ((0, OVER), (1, UNDER)):
        for option in _column(columns, index):
            line, price = option.get("P"), parse_odds(option.get("C"))
            if line and price is not None:
                odds[total_label(side, line)] = price
    return odds


def _read_handicaps(columns: List[Any], teams: Tuple[str, str]) -> Dict[str, float]:
    """Column 0 holds home handicaps, column 1 away; a missing P is level."""
    odds = {}
    for index, team in ((0, teams[0]), (1, teams[1])):
        for option in _column(columns, index):
            price = parse_odds(option.get("C"))
            if price is not None:
                odds[handicap_label(team, option.get("P") or 0)] = price
    return odds


def _read_group(group: Dict[str, Any], teams: Tuple[str, str]) -> Optional[Tuple[str, Dict[str, float]]]:
    spec = GROUPS.get(group.get("G"))
    if spec is None:
        return None
    market, layout, labels = spec
    columns = group.get("E") or []

    if layout == COLUMNS:
        odds = _read_columns(columns, labels)
    elif layout == TOTALS:
        odds = _read_totals(columns)
    else:
        odds = _read_handicaps(columns, teams)
    return market, odds


def _read_markets(value: Dict[str, Any], teams: Tuple[str, str],
                  allowed: Tuple[int, ...] = tuple(GROUPS), prefix: str = "") -> Dict[str, Dict[str, float]]:
    """Read every known group of one game, isolating failures per group."""
    markets = {}
    groups = value.get("GE")
    for group in (groups if isinstance(groups, list) else ()):
        if not isinstance(group, dict) or group.get("G") not in allowed:
            continue
        try:
            parsed = _read_group(group, teams)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.debug(f"Skipping 1xBet group {group.get('G')}: {e}")
            continue
        if not parsed:
            continue
        market, odds = parsed
        key = segment_market(prefix, market) if prefix else market
        # The feed repeats some groups; the first one wins
        if odds and key not in markets:
            markets[key] = odds
    return markets


def _team_name(raw: Any, default: str) -> str:
    return raw.strip() if isinstance(raw, str) and raw.strip() else default


def normalize_onexbet(data: Optional[Dict[str, Any]], source_id: str = "melbet") -> OddsBook:
    """
    Convert a 1xBet ``GetGameZip`` payload to an OddsBook.

    Args:
        data: Decoded JSON payload, optionally with a ``SubGames`` mapping of
            sub-game name (``"Corners"``, ``"Offsides"``...) to that
            sub-game's own ``GetGameZip`` payload
        source_id: Bookmaker key recorded on the book

    Returns:
        OddsBook with every market that has at least one usable price, or an
        unsuccessful empty book when the payload carries no game
    """
    value = data.get("Value") if isinstance(data, dict) else None
    if not isinstance(value, dict):
        logger.warning("1xBet payload has no Value")
        return OddsBook(source_id=source_id, fixture_ref="", success=False)

    home_team = _team_name(value.get("O1"), "Home")
    away_team = _team_name(value.get("O2"), "Away")
    teams = (home_team, away_team)

    start_time = parse_epoch_seconds(value.get("S"))
    if start_time is None and value.get("S"):
        logger.debug(f"Ignoring 1xBet start time {value.get('S')!r}")

    book = OddsBook(
        source_id=source_id,
        fixture_ref=str(value.get("I") or value.get("CI") or ""),
        home_team=home_team,
        away_team=away_team,
        league=str(value.get("L") or ""),
        start_time=start_time,
    )
    book.markets.update(_read_markets(value, teams))

    sub_games = data.get("SubGames")
    for segment, sub_game in (sub_games.items() if isinstance(sub_games, dict) else ()):
        if segment not in SEGMENTS:
            logger.debug(f"Ignoring 1xBet sub-game {segment}")
            continue
        sub_value = sub_game.get("Value") if isinstance(sub_game, dict) else None
        if not isinstance(sub_value, dict):
            continue
        book.markets.update(_read_markets(sub_value, teams, SUB_GAME_GROUPS, prefix=segment))

    logger.debug(f"1xBet {home_team} vs {away_team}: {len(book.markets)} markets")
    return book
