"""Normalize Mostbet line payloads into canonical odds books.

Mostbet groups outcomes into ``outcome_groups`` (one per market) and lists
the group ids of broader sections under ``markets``. Each canonical market
is looked up through a table of group titles; a few markets fall back to a
search across groups when the dedicated group is missing.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .markets import (
    BTTS_OUTCOMES,
    DOUBLE_CHANCE_OUTCOMES,
    DRAW_NO_BET_OUTCOMES,
    FIRST_LAST_OUTCOMES,
    OVER,
    SEGMENTS,
    THREE_WAY_OUTCOMES,
    UNDER,
    canonical_outcome,
    handicap_label,
    parse_odds,
    segment_market,
    total_label,
)
from .models import OddsBook, parse_epoch_seconds

logger = logging.getLogger(__name__)

_PAREN_NUMBER_RE = re.compile(r"\(\s*([+-]?\d+(?:\.\d+)?)\s*\)")
# Unbracketed line: the number right after "Over", "Under" or "Total"
_BARE_LINE_RE = re.compile(r"\b(?:Over|Under|Total)\s+(\d+(?:\.\d+)?)\b")
_SIGNED_NUMBER_RE = re.compile(r"(?<![\w.])([+-]?\d+(?:\.\d+)?)(?![\w.])")
# "Handicap 1", "Asian handicap 2", "Handicaр 1" with a Cyrillic "р" or "с"
_HANDICAP_TEAM_RE = re.compile(r"handi[cс]a[pр]\s+([12])\b", re.IGNORECASE)
_TEAM_WORD_RE = re.compile(r"\b(Team 1|Team 2|Home|Away)\b", re.IGNORECASE)

_SEGMENT_WORDS = ("corner", "card", "foul", "offside", "throw")

Teams = Tuple[str, str]
OutcomeParser = Callable[[Dict[str, Any], Teams], Optional[str]]


# Outcome parsers: raw Mostbet outcome -> canonical outcome label, or None

def _choice_parser(labels: Tuple[str, ...]) -> OutcomeParser:
    def parse(outcome: Dict[str, Any], teams: Teams) -> Optional[str]:
        for raw in (outcome.get("type_title"), outcome.get("alias")):
            if raw:
                label = canonical_outcome(str(raw))
                if label in labels:
                    return label
        return None
    return parse


def parse_total_title(title: str) -> Optional[Tuple[str, str]]:
    """
    Read side and line from a totals outcome title.

    Handles ``Total Over (2.5)``, ``Total (2.5) Over``,
    ``Asian Total (2.25) Under`` and ``Total Over 2.5``.

    Returns:
        Tuple of (side, line as quoted) or None
    """
    if "Over" in title:
        side = OVER
    elif "Under" in title:
        side = UNDER
    else:
        return None

    match = _PAREN_NUMBER_RE.search(title)
    if match:
        return side, match.group(1).lstrip("+")
    match = _BARE_LINE_RE.search(title)
    if not match:
        return None
    return side, match.group(1)


def parse_handicap_title(title: str) -> Optional[Tuple[int, float]]:
    """
    Read team number and handicap value from a handicap outcome title.

    Handles ``Handicap 1 (-2.5)``, ``Asian handicap 2 +0.5`` and titles that
    name the side as ``Team 1``/``Home``/``Team 2``/``Away``. A title with a
    team but no value is a level (0) handicap.

    Returns:
        Tuple of (1 for home or 2 for away, handicap value) or None
    """
    match = _HANDICAP_TEAM_RE.search(title)
    if match:
        team = int(match.group(1))
    else:
        match = _TEAM_WORD_RE.search(title)
        if not match:
            return None
        word = match.group(1).lower()
        team = 1 if word in ("team 1", "home") else 2
    rest = f"{title[:match.start()]} {title[match.end():]}"

    value = _PAREN_NUMBER_RE.search(rest) or _SIGNED_NUMBER_RE.search(rest)
    if not value:
        return team, 0.0
    return team, float(value.group(1))


def _total_outcome(outcome: Dict[str, Any], teams: Teams) -> Optional[str]:
    title = outcome.get("type_title")
    if not title:
        return None
    parsed = parse_total_title(str(title))
    if not parsed:
        return None
    return total_label(*parsed)


def _handicap_outcome(outcome: Dict[str, Any], teams: Teams) -> Optional[str]:
    title = outcome.get("type_title")
    if not title:
        return None
    parsed = parse_handicap_title(str(title))
    if not parsed:
        return None
    team, value = parsed
    return handicap_label(teams[team - 1], value)


THREE_WAY = _choice_parser(THREE_WAY_OUTCOMES)
DOUBLE_CHANCE = _choice_parser(DOUBLE_CHANCE_OUTCOMES)
BOTH_TEAMS = _choice_parser(BTTS_OUTCOMES)
DRAW_NO_BET = _choice_parser(DRAW_NO_BET_OUTCOMES)
FIRST_LAST = _choice_parser(FIRST_LAST_OUTCOMES)
TOTAL = _total_outcome
HANDICAP = _handicap_outcome


@dataclass(frozen=True)
class GroupRule:
    """Where a canonical market lives in a Mostbet payload."""
    market: str
    parser: OutcomeParser
    titles: Tuple[str, ...]


def _rule(market: str, parser: OutcomeParser, *titles: str) -> GroupRule:
    return GroupRule(market, parser, tuple(t.lower() for t in titles))


def _build_rules() -> List[GroupRule]:
    rules = [
        _rule("1X2", THREE_WAY, "1x2"),
        _rule("Double Chance", DOUBLE_CHANCE, "Double Chance"),
        _rule("Both Teams To Score", BOTH_TEAMS, "Both Teams To Score"),
        _rule("Draw No Bet", DRAW_NO_BET, "Draw No Bet"),
        _rule("Total", TOTAL, "Total"),
        _rule("Asian Total", TOTAL, "Asian Total"),
        _rule("Home Team Total", TOTAL, "Home Team Total", "Total Home Team"),
        _rule("Away Team Total", TOTAL, "Away Team Total", "Total Away Team"),
        _rule("Handicap", HANDICAP, "Handicap"),
        _rule("Asian Handicap", HANDICAP, "Asian handicap"),
    ]
    for segment in SEGMENTS:
        rules.extend([
            _rule(segment_market(segment, "1X2"), THREE_WAY, f"{segment} - 1x2"),
            _rule(segment_market(segment, "Total"), TOTAL, f"{segment} - Total"),
            _rule(segment_market(segment, "Home Team Total"), TOTAL,
                  f"{segment} - Home Team Total", f"{segment} - Total Home Team"),
            _rule(segment_market(segment, "Away Team Total"), TOTAL,
                  f"{segment} - Away Team Total", f"{segment} - Total Away Team"),
            _rule(segment_market(segment, "Handicap"), HANDICAP, f"{segment} - Handicap"),
        ])
    for event in ("Corner", "Yellow Card", "Goal"):
        for order in ("First", "Last"):
            rules.append(_rule(f"{order} {event}", FIRST_LAST, f"{order} {event}"))
    return rules


GROUP_RULES = _build_rules()

# Sections under ``markets`` whose groups carry a segment's main markets
SEGMENT_SECTIONS = {
    "corners": "Corners",
    "yellow cards": "Yellow Cards",
    "fouls": "Fouls",
}


class _Payload:
    """Lookup helpers over one Mostbet line payload."""

    def __init__(self, data: Dict[str, Any]):
        self.groups = [g for g in data.get("outcome_groups") or [] if isinstance(g, dict)]
        self.sections = [m for m in data.get("markets") or [] if isinstance(m, dict)]
        self._by_id = {g.get("id"): g for g in self.groups if isinstance(g.get("id"), (int, str))}

    def group_titled(self, titles: Iterable[str]) -> Optional[Dict[str, Any]]:
        titles = set(titles)
        for group in self.groups:
            if str(group.get("title") or "").strip().lower() in titles:
                return group
        return None

    def section_groups(self, title: str) -> List[Dict[str, Any]]:
        for section in self.sections:
            if str(section.get("title") or "").strip().lower() == title:
                return [self._by_id[i] for i in section.get("groups") or [] if i in self._by_id]
        return []

    def outcomes(self, groups: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [o for g in groups for o in g.get("outcomes") or [] if isinstance(o, dict)]


def _collect(outcomes: Iterable[Dict[str, Any]], parser: OutcomeParser, teams: Teams) -> Dict[str, float]:
    """Parse outcomes into {label: odds}; the first quote of a label wins."""
    odds = {}
    for outcome in outcomes:
        label = parser(outcome, teams)
        if label is None or label in odds:
            continue
        price = parse_odds(outcome.get("odd"))
        if price is not None:
            odds[label] = price
    return odds


def _field(obj: Any, key: str) -> Dict[str, Any]:
    """Nested object under ``key``; anything but a dict reads as empty."""
    value = obj.get(key) if isinstance(obj, dict) else None
    return value if isinstance(value, dict) else {}


def _title(group: Dict[str, Any]) -> str:
    return str(group.get("title") or "").lower()


def _is_segment_title(title: str) -> bool:
    title = title.lower()
    return any(word in title for word in _SEGMENT_WORDS)


def _fallback_outcomes(payload: _Payload, market: str) -> List[Dict[str, Any]]:
    """Outcomes for a market that has no dedicated group."""
    groups = payload.groups

    if market == "Double Chance":
        for group in groups:
            if _collect(group.get("outcomes") or [], DOUBLE_CHANCE, ("", "")):
                return payload.outcomes([group])
        return []

    if market == "Asian Total":
        return [o for o in payload.outcomes(groups) if "Asian Total" in str(o.get("type_title") or "")]

    if market == "Handicap":
        return [
            o for g in groups if not _is_segment_title(_title(g)) and "asian" not in _title(g)
            for o in payload.outcomes([g]) if "Handicap" in str(o.get("type_title") or "")
        ]

    if market == "Total":
        section = [
            g for g in payload.section_groups("total")
            if not _is_segment_title(_title(g)) and "team" not in _title(g) and "asian" not in _title(g)
        ]
        return [
            o for o in payload.outcomes(section)
            if not _is_segment_title(str(o.get("type_title") or ""))
        ]

    if market == "Fouls - 1X2":
        for group in groups:
            if "foul" in _title(group) or group.get("id") == 12705:
                if _collect(group.get("outcomes") or [], THREE_WAY, ("", "")):
                    return payload.outcomes([group])
        return []

    for side in ("Home", "Away"):
        if market == f"Corners - {side} Team Total":
            return [
                o for g in groups for o in payload.outcomes([g])
                if ("Corners" in str(g.get("title") or "") or "Corners" in str(o.get("type_title") or ""))
                and "Total" in str(o.get("type_title") or "")
                and (side in str(g.get("title") or "") or side in str(o.get("type_title") or ""))
            ]

    return []


def _section_markets(payload: _Payload, teams: Teams) -> Dict[str, Dict[str, float]]:
    """Segment markets found by scanning the groups of a ``markets`` section."""
    found = {}
    for section_title, segment in SEGMENT_SECTIONS.items():
        groups = payload.section_groups(section_title)
        if not groups:
            continue
        for suffix, parser in (("1X2", THREE_WAY), ("Total", TOTAL), ("Handicap", HANDICAP)):
            for group in groups:
                title = _title(group)
                if suffix == "Total" and ("home" in title or "away" in title or "team" in title):
                    continue
                odds = _collect(group.get("outcomes") or [], parser, teams)
                if odds:
                    found[segment_market(segment, suffix)] = odds
                    break
    return found


def normalize_mostbet(data: Optional[Dict[str, Any]], source_id: str = "mostbet") -> OddsBook:
    """
    Convert a Mostbet ``/api/v1/lines/<id>.json`` payload to an OddsBook.

    Args:
        data: Decoded JSON payload
        source_id: Bookmaker key recorded on the book

    Returns:
        OddsBook with every market that has at least one usable price, or an
        unsuccessful empty book when the payload carries no match
    """
    line = _field(data, "line")
    match = _field(line, "match")
    if not match:
        logger.warning("Mostbet payload has no match")
        return OddsBook(source_id=source_id, fixture_ref="", success=False)

    home_team = str(_field(match, "team1").get("title") or "Home")
    away_team = str(_field(match, "team2").get("title") or "Away")
    teams = (home_team, away_team)

    start_time = parse_epoch_seconds(match.get("begin_at"))
    if start_time is None and match.get("begin_at"):
        logger.debug(f"Ignoring Mostbet begin_at {match.get('begin_at')!r}")

    book = OddsBook(
        source_id=source_id,
        fixture_ref=str(line.get("id") or match.get("id") or ""),
        home_team=home_team,
        away_team=away_team,
        league=str(_field(data, "line_subcategory").get("title") or ""),
        start_time=start_time,
    )

    payload = _Payload(data)
    for rule in GROUP_RULES:
        try:
            group = payload.group_titled(rule.titles)
            outcomes = payload.outcomes([group]) if group else _fallback_outcomes(payload, rule.market)
            odds = _collect(outcomes, rule.parser, teams)
            if odds:
                book.markets[rule.market] = odds
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.debug(f"Skipping Mostbet market {rule.market}: {e}")

    try:
        for market, odds in _section_markets(payload, teams).items():
            book.markets.setdefault(market, odds)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.debug(f"Skipping Mostbet segment sections: {e}")

    logger.debug(f"Mostbet {home_team} vs {away_team}: {len(book.markets)} markets")
    return book
