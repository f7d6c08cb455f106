"""Arbitrage calculator for sets of mutually exclusive outcomes."""
import math
from typing import Sequence

from .config import DEFAULT_TOTAL_STAKE
from .models import ArbitrageResult


class DegenerateOddsError(ValueError):
    """Raised when odds cannot be turned into implied probabilities."""


def implied_probability(odds: float) -> float:
    """Bookmaker-implied chance of an outcome quoted at decimal ``odds``."""
    return 1 / odds


def round2(value: float) -> float:
    """Round half up to 2 decimal places."""
    return math.floor(value * 100 + 0.5) / 100


def _check_odds(odds: Sequence[float]):
    if not odds:
        raise DegenerateOddsError("At least one odds value is required")
    for value in odds:
        if not math.isfinite(value) or value <= 0:
            raise DegenerateOddsError(f"Odds must be finite and positive, got {value!r}")


def evaluate(odds: Sequence[float], total_stake: float = DEFAULT_TOTAL_STAKE) -> ArbitrageResult:
    """
    Check whether a set of odds covering every outcome guarantees a profit.

    The stake is split in proportion to each outcome's implied probability,
    so every outcome returns the same amount. Profit figures come from the
    rounded stakes, which can differ slightly from ``1 - total_implied``.

    Args:
        odds: Decimal odds, one per mutually exclusive outcome
        total_stake: Amount to spread across the outcomes

    Returns:
        ArbitrageResult; numeric fields are zero and the distribution is
        empty when the odds do not form an arbitrage

    Raises:
        DegenerateOddsError: If ``odds`` is empty or holds a non-positive value
    """
    odds = [float(o) for o in odds]
    _check_odds(odds)

    implied = [implied_probability(o) for o in odds]
    total_implied = sum(implied)

    if total_implied >= 1:
        return ArbitrageResult(
            is_arbitrage=False,
            profit_percent=0.0,
            total_stake=total_stake,
            stake_distribution=(),
            expected_return=0.0,
            expected_profit=0.0,
            total_implied=total_implied,
        )

    stakes = tuple(round2(p / total_implied * total_stake) for p in implied)

    # Returns are equal across outcomes up to rounding, the first one stands in
    calculated_return = stakes[0] * odds[0]
    roi = (calculated_return - total_stake) / total_stake * 100

    return ArbitrageResult(
        is_arbitrage=True,
        profit_percent=round2(roi),
        total_stake=total_stake,
        stake_distribution=stakes,
        expected_return=round2(calculated_return),
        expected_profit=round2(calculated_return - total_stake),
        total_implied=total_implied,
    )


def format_condition(odds: Sequence[float]) -> str:
    """Audit string, e.g. ``Sum of implied probabilities: 0.4762 + 0.5000 = 0.9762 < 1``."""
    implied = [implied_probability(o) for o in odds]
    total = sum(implied)
    terms = " + ".join(f"{p:.4f}" for p in implied)
    comparison = "<" if total < 1 else ">="
    return f"Sum of implied probabilities: {terms} = {total:.4f} {comparison} 1"


# Market-specific entry points. They only fix the number and order of odds.

def match_result(home: float, draw: float, away: float, total_stake: float = DEFAULT_TOTAL_STAKE) -> ArbitrageResult:
    return evaluate([home, draw, away], total_stake)


def double_chance(home_or_draw: float, draw_or_away: float, home_or_away: float,
                  total_stake: float = DEFAULT_TOTAL_STAKE) -> ArbitrageResult:
    return evaluate([home_or_draw, draw_or_away, home_or_away], total_stake)


def draw_no_bet(home: float, away: float, total_stake: float = DEFAULT_TOTAL_STAKE) -> ArbitrageResult:
    return evaluate([home, away], total_stake)


def over_under(over: float, under: float, total_stake: float = DEFAULT_TOTAL_STAKE) -> ArbitrageResult:
    """Goals, corners, fouls, cards... any Over/Under line."""
    return evaluate([over, under], total_stake)


def both_teams_to_score(yes: float, no: float, total_stake: float = DEFAULT_TOTAL_STAKE) -> ArbitrageResult:
    return evaluate([yes, no], total_stake)


def which_team(team_a: float, team_b: float, total_stake: float = DEFAULT_TOTAL_STAKE) -> ArbitrageResult:
    """Which team will have more corners, fouls, cards."""
    return evaluate([team_a, team_b], total_stake)


def exact_number(*odds: float, total_stake: float = DEFAULT_TOTAL_STAKE) -> ArbitrageResult:
    """Exact number of goals, corners... with one odds value per count."""
    return evaluate(list(odds), total_stake)


def first_last(team_a: float, team_b: float, no_event: float,
               total_stake: float = DEFAULT_TOTAL_STAKE) -> ArbitrageResult:
    """First/last corner, card or goal."""
    return evaluate([team_a, team_b, no_event], total_stake)
