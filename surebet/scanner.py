"""Find arbitrage opportunities between two odds books of the same match."""
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .arbitrage import DegenerateOddsError, evaluate, format_condition
from .config import DEFAULT_TOTAL_STAKE, HANDICAP_TOLERANCE
from .markets import (
    DOUBLE_CHANCE,
    FIRST_LAST,
    HANDICAP,
    OVER,
    THREE_WAY,
    TOTALS,
    TWO_WAY,
    UNDER,
    Market,
    canonical_outcome,
    format_line,
    get_market,
    handicap_label,
    line_key,
    parse_handicap_key,
    parse_odds,
    parse_total_key,
    total_label,
)
from .models import ArbitrageOpportunity, OddsBook, OutcomeQuote

logger = logging.getLogger(__name__)

HOME = "home"
AWAY = "away"

DIRECT_FAMILIES = (THREE_WAY, DOUBLE_CHANCE, TWO_WAY, FIRST_LAST)


def best_quote(
    label: str,
    price_a: Optional[float],
    price_b: Optional[float],
    source_a: str,
    source_b: str,
) -> Optional[OutcomeQuote]:
    """
    Pick the higher of two prices for one outcome.

    Equal prices go to the first book. Unusable prices count as missing.

    Returns:
        OutcomeQuote, or None when neither book has a usable price
    """
    price_a = parse_odds(price_a)
    price_b = parse_odds(price_b)
    if price_a is None and price_b is None:
        return None
    if price_b is None or (price_a is not None and price_a >= price_b):
        return OutcomeQuote(label=label, odds=price_a, source_id=source_a)
    return OutcomeQuote(label=label, odds=price_b, source_id=source_b)


def _opportunity(market: str, title: str, quotes: Sequence[OutcomeQuote], total_stake: float) -> ArbitrageOpportunity:
    odds = [q.odds for q in quotes]
    result = evaluate(odds, total_stake)
    return ArbitrageOpportunity(
        market=market,
        title=title,
        outcome_odds=tuple(quotes),
        is_arbitrage=result.is_arbitrage,
        profit_percent=result.profit_percent,
        total_stake=result.total_stake,
        stake_distribution=result.stake_distribution,
        expected_return=result.expected_return,
        expected_profit=result.expected_profit,
        condition=format_condition(odds),
    )


def _canonical(odds: Dict[str, float]) -> Dict[str, float]:
    canonical = {}
    for label, price in odds.items():
        canonical.setdefault(canonical_outcome(label), price)
    return canonical


def _scan_direct(market: Market, book_a: OddsBook, book_b: OddsBook, total_stake: float) -> List[ArbitrageOpportunity]:
    """Markets whose outcome labels are fixed: 1X2, double chance, BTTS..."""
    odds_a = _canonical(book_a.markets[market.key])
    odds_b = _canonical(book_b.markets[market.key])

    quotes = []
    for label in market.outcomes:
        quote = best_quote(label, odds_a.get(label), odds_b.get(label), book_a.source_id, book_b.source_id)
        if quote is None:
            logger.debug(f"{market.key}: no price for {label}, skipping")
            return []
        quotes.append(quote)
    return [_opportunity(market.key, market.key, quotes, total_stake)]


def _index_totals(odds: Dict[str, float]) -> Dict[float, Dict[str, Tuple[str, float]]]:
    """Group totals outcomes by line: {line: {side: (line as quoted, price)}}."""
    lines: Dict[float, Dict[str, Tuple[str, float]]] = {}
    for key, price in odds.items():
        parsed = parse_total_key(key)
        if parsed is None:
            continue
        side, quoted, value = parsed
        lines.setdefault(line_key(value), {}).setdefault(side, (quoted, price))
    return lines


def _scan_totals(market: Market, book_a: OddsBook, book_b: OddsBook, total_stake: float) -> List[ArbitrageOpportunity]:
    """Over/Under markets, one evaluation per line."""
    lines_a = _index_totals(book_a.markets[market.key])
    lines_b = _index_totals(book_b.markets[market.key])

    opportunities = []
    for line in sorted(set(lines_a) | set(lines_b)):
        sides_a = lines_a.get(line, {})
        sides_b = lines_b.get(line, {})
        # At least one book must quote the complete line
        if not (OVER in sides_a and UNDER in sides_a) and not (OVER in sides_b and UNDER in sides_b):
            continue

        quoted = format_line(next(iter(sides_a.values() or sides_b.values()))[0])
        quotes = []
        for side in (OVER, UNDER):
            quote = best_quote(
                total_label(side, quoted),
                sides_a.get(side, (None, None))[1],
                sides_b.get(side, (None, None))[1],
                book_a.source_id,
                book_b.source_id,
            )
            if quote is None:
                break
            quotes.append(quote)
        if len(quotes) == 2:
            opportunities.append(_opportunity(market.key, f"{market.key} ({quoted})", quotes, total_stake))
    return opportunities


def _index_handicaps(book: OddsBook, market_key: str) -> Tuple[Dict[str, Dict[float, float]], Dict[str, str]]:
    """
    Split handicap outcomes into home and away legs.

    A key's team is matched against the book's own team names; when that
    fails the first team named in the market is home and the second away,
    the other way round for a swapped book.

    Returns:
        Tuple of ({side: {value: price}}, {side: team name})
    """
    parsed = []
    teams_in_order: List[str] = []
    for key, price in book.markets[market_key].items():
        result = parse_handicap_key(key)
        if result is None:
            continue
        team, value = result
        parsed.append((team, value, price))
        if team not in teams_in_order:
            teams_in_order.append(team)

    home_name = book.home_team.strip().lower()
    away_name = book.away_team.strip().lower()
    fallback_sides = (AWAY, HOME) if book.is_swapped else (HOME, AWAY)
    legs: Dict[str, Dict[float, float]] = {HOME: {}, AWAY: {}}
    names: Dict[str, str] = {HOME: book.home_team, AWAY: book.away_team}

    for team, value, price in parsed:
        name = team.strip().lower()
        if home_name and name == home_name:
            side = HOME
        elif away_name and name == away_name:
            side = AWAY
        elif teams_in_order.index(team) < 2:
            side = fallback_sides[teams_in_order.index(team)]
        else:
            continue
        legs[side].setdefault(line_key(value), price)
        if not names[side]:
            names[side] = team
    return legs, names


def _find_line(lines: Sequence[float], target: float) -> Optional[float]:
    for value in lines:
        if abs(value - target) <= HANDICAP_TOLERANCE:
            return value
    return None


def _scan_handicaps(market: Market, book_a: OddsBook, book_b: OddsBook, total_stake: float) -> List[ArbitrageOpportunity]:
    """Handicap markets: a home line against the away line of opposite sign."""
    legs_a, names_a = _index_handicaps(book_a, market.key)
    legs_b, names_b = _index_handicaps(book_b, market.key)

    home_team = names_a[HOME] or names_b[HOME]
    away_team = names_a[AWAY] or names_b[AWAY]
    away_lines = sorted(set(legs_a[AWAY]) | set(legs_b[AWAY]))

    opportunities = []
    for home_value in sorted(set(legs_a[HOME]) | set(legs_b[HOME])):
        away_value = _find_line(away_lines, -home_value)
        if away_value is None:
            continue

        home_quote = best_quote(
            handicap_label(home_team, home_value),
            legs_a[HOME].get(home_value),
            legs_b[HOME].get(home_value),
            book_a.source_id,
            book_b.source_id,
        )
        away_quote = best_quote(
            handicap_label(away_team, away_value),
            legs_a[AWAY].get(away_value),
            legs_b[AWAY].get(away_value),
            book_a.source_id,
            book_b.source_id,
        )
        if home_quote is None or away_quote is None:
            continue

        title = f"{market.key}: {home_quote.label} / {away_quote.label}"
        opportunities.append(_opportunity(market.key, title, [home_quote, away_quote], total_stake))
    return opportunities


SCANNERS = {
    THREE_WAY: _scan_direct,
    DOUBLE_CHANCE: _scan_direct,
    TWO_WAY: _scan_direct,
    FIRST_LAST: _scan_direct,
    TOTALS: _scan_totals,
    HANDICAP: _scan_handicaps,
}


def scan(
    book_a: OddsBook,
    book_b: OddsBook,
    total_stake: float = DEFAULT_TOTAL_STAKE,
    include_all: bool = False,
    teams_reversed: bool = False,
) -> List[ArbitrageOpportunity]:
    """
    Compare two books of one fixture and evaluate every shared market.

    For each outcome the better of the two prices is used. Markets missing
    from either book, and outcomes neither book prices, are skipped.

    Args:
        book_a: Odds from the first bookmaker
        book_b: Odds from the second bookmaker
        total_stake: Stake to distribute in each opportunity
        include_all: Also return evaluated markets that are not arbitrage
        teams_reversed: ``book_b`` lists the match with home and away swapped

    Returns:
        Opportunities, highest profit first
    """
    if teams_reversed:
        book_b = book_b.swapped()

    opportunities = []
    for market_key in book_a.markets:
        if market_key not in book_b.markets:
            continue
        market = get_market(market_key)
        if market is None:
            logger.debug(f"Unknown market {market_key}, skipping")
            continue

        try:
            found = SCANNERS[market.family](market, book_a, book_b, total_stake)
        except DegenerateOddsError as e:
            logger.warning(f"{market_key}: {e}")
            continue
        opportunities.extend(o for o in found if include_all or o.is_arbitrage)

    opportunities.sort(key=lambda o: o.profit_percent, reverse=True)
    return opportunities
