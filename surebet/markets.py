"""Canonical market catalogue shared by the normalizers and the scanner.

Every market an ``OddsBook`` may carry is listed here once, together with
its family. Normalizers translate bookmaker spellings into these keys and
labels; the scanner decides how to evaluate a market from its family alone.
"""
import math
import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

THREE_WAY = "three_way"
DOUBLE_CHANCE = "double_chance"
TWO_WAY = "two_way"
TOTALS = "totals"
HANDICAP = "handicap"
FIRST_LAST = "first_last"

THREE_WAY_OUTCOMES = ("W1", "X", "W2")
DOUBLE_CHANCE_OUTCOMES = ("1X", "X2", "12")
BTTS_OUTCOMES = ("Yes", "No")
DRAW_NO_BET_OUTCOMES = ("W1", "W2")
FIRST_LAST_OUTCOMES = ("Team 1", "Team 2", "No Event")

SEGMENTS = ("Corners", "Yellow Cards", "Fouls", "Offsides", "Throw-ins")

OVER = "Over"
UNDER = "Under"


@dataclass(frozen=True)
class Market:
    """A canonical market and the outcomes that exhaust it."""
    key: str
    family: str
    outcomes: Tuple[str, ...] = ()


def segment_market(segment: str, suffix: str) -> str:
    """Key of a segment variant, e.g. ``("Corners", "1X2") -> "Corners - 1X2"``."""
    return f"{segment} - {suffix}"


def _build_catalogue() -> Dict[str, Market]:
    markets = [
        Market("1X2", THREE_WAY, THREE_WAY_OUTCOMES),
        Market("Double Chance", DOUBLE_CHANCE, DOUBLE_CHANCE_OUTCOMES),
        Market("Both Teams To Score", TWO_WAY, BTTS_OUTCOMES),
        Market("Draw No Bet", TWO_WAY, DRAW_NO_BET_OUTCOMES),
        Market("Total", TOTALS),
        Market("Asian Total", TOTALS),
        Market("Home Team Total", TOTALS),
        Market("Away Team Total", TOTALS),
        Market("Handicap", HANDICAP),
        Market("Asian Handicap", HANDICAP),
    ]
    for segment in SEGMENTS:
        markets.extend([
            Market(segment_market(segment, "1X2"), THREE_WAY, THREE_WAY_OUTCOMES),
            Market(segment_market(segment, "Total"), TOTALS),
            Market(segment_market(segment, "Home Team Total"), TOTALS),
            Market(segment_market(segment, "Away Team Total"), TOTALS),
            Market(segment_market(segment, "Handicap"), HANDICAP),
        ])
    for event in ("Corner", "Yellow Card", "Goal"):
        for order in ("First", "Last"):
            markets.append(Market(f"{order} {event}", FIRST_LAST, FIRST_LAST_OUTCOMES))
    return {market.key: market for market in markets}


MARKETS = _build_catalogue()

# Bookmaker spellings of canonical outcome labels
OUTCOME_ALIASES = {
    "Х": "X",  # Cyrillic
    "2X": "X2",
    "X1": "1X",
    "21": "12",
    "yes": "Yes",
    "no": "No",
    "No Goal": "No Event",
    "No goal": "No Event",
    "No event": "No Event",
}

# Outcomes that trade places when home and away are exchanged
_MIRRORED_OUTCOMES = {
    "W1": "W2",
    "W2": "W1",
    "1X": "X2",
    "X2": "1X",
    "Team 1": "Team 2",
    "Team 2": "Team 1",
}

_TOTAL_KEY_RE = re.compile(r"^(?:Total\s+)?(Over|Under)\s*\(([-+]?\d+(?:\.\d+)?)\)$")
_HANDICAP_KEY_RE = re.compile(r"^(.*\S)\s+\(([-+]?\d+(?:\.\d+)?)\)$")


def get_market(key: str) -> Optional[Market]:
    return MARKETS.get(key)


def canonical_outcome(raw: str) -> str:
    """Map a bookmaker outcome spelling onto the canonical label."""
    text = raw.strip()
    return OUTCOME_ALIASES.get(text, text)


def _format_number(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return repr(float(value))


def format_line(value) -> str:
    """Render a total line the way the feed quoted it (``2.5``, ``3``)."""
    if isinstance(value, str):
        return value.strip().lstrip("+")
    return _format_number(float(value))


def format_handicap(value) -> str:
    """Render a signed handicap value: ``-1.5``, ``+1.5``, ``0``."""
    number = float(value)
    if number == 0:
        return "0"
    text = _format_number(abs(number))
    return f"-{text}" if number < 0 else f"+{text}"


def total_label(side: str, line) -> str:
    return f"Total {side} ({format_line(line)})"


def handicap_label(team: str, value) -> str:
    return f"{team} ({format_handicap(value)})"


def parse_total_key(key: str) -> Optional[Tuple[str, str, float]]:
    """
    Parse an Over/Under outcome key.

    Both the ``Total Over (2.5)`` and the shorter ``Over (2.5)`` spellings
    are accepted.

    Returns:
        Tuple of (side, line as quoted, line value) or None
    """
    match = _TOTAL_KEY_RE.match(key.strip())
    if not match:
        return None
    side, line = match.group(1), match.group(2)
    return side, line, float(line)


def parse_handicap_key(key: str) -> Optional[Tuple[str, float]]:
    """Parse ``<team> (<signed value>)`` into (team, value)."""
    match = _HANDICAP_KEY_RE.match(key.strip())
    if not match:
        return None
    return match.group(1), float(match.group(2))


def line_key(value: float) -> float:
    """Bucket a line value so that ``2.5`` and ``2.50`` compare equal."""
    return round(value, 4)


def is_valid_odds(value) -> bool:
    return parse_odds(value) is not None


def parse_odds(value) -> Optional[float]:
    """
    Convert a quoted price to decimal odds.

    Args:
        value: Number or numeric string as found in a feed

    Returns:
        Decimal odds, or None unless the value is a finite number >= 1.0
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number < 1.0:
        return None
    return number


def mirror_market_key(key: str) -> str:
    """Exchange home and away team-specific market keys."""
    if "Home Team" in key:
        return key.replace("Home Team", "Away Team")
    if "Away Team" in key:
        return key.replace("Away Team", "Home Team")
    return key


def mirror_outcome(market_key: str, label: str) -> str:
    """Exchange home and away outcome labels of side-dependent markets."""
    market = MARKETS.get(market_key)
    if market is None or market.family in (TOTALS, HANDICAP):
        return label
    return _MIRRORED_OUTCOMES.get(label, label)
