import pytest

from surebet.models import OddsBook
from surebet.scanner import best_quote, scan


def book(source_id, markets, home="Real Madrid", away="Barcelona"):
    return OddsBook(
        source_id=source_id,
        fixture_ref="1",
        markets=markets,
        home_team=home,
        away_team=away,
    )


def test_best_quote_prefers_higher_price():
    quote = best_quote("W1", 2.0, 2.2, "mostbet", "melbet")
    assert (quote.odds, quote.source_id) == (2.2, "melbet")


def test_best_quote_tie_goes_to_first_book():
    assert best_quote("W1", 2.0, 2.0, "mostbet", "melbet").source_id == "mostbet"


def test_best_quote_ignores_unusable_prices():
    quote = best_quote("W1", None, "2.5", "mostbet", "melbet")
    assert (quote.odds, quote.source_id) == (2.5, "melbet")
    assert best_quote("W1", 0.5, None, "mostbet", "melbet") is None


def test_three_way_uses_best_price_per_outcome():
    a = book("mostbet", {"1X2": {"W1": 2.10, "X": 3.2, "W2": 4.2}})
    b = book("melbet", {"1X2": {"W1": 1.9, "X": 3.8, "W2": 3.9}})

    [opportunity] = scan(a, b)

    assert opportunity.market == "1X2"
    assert opportunity.title == "1X2"
    assert [(q.label, q.odds, q.source_id) for q in opportunity.outcome_odds] == [
        ("W1", 2.10, "mostbet"),
        ("X", 3.8, "melbet"),
        ("W2", 4.2, "mostbet"),
    ]
    assert opportunity.profit_percent == 2.31
    assert opportunity.stake_distribution == (487.18, 269.23, 243.59)
    assert opportunity.condition == "Sum of implied probabilities: 0.4762 + 0.2632 + 0.2381 = 0.9774 < 1"


def test_outcome_missing_from_both_books_skips_market():
    a = book("mostbet", {"1X2": {"W1": 5.0, "W2": 5.0}})
    b = book("melbet", {"1X2": {"W1": 5.0, "W2": 5.0}})

    assert scan(a, b, include_all=True) == []


def test_outcome_missing_from_one_book_uses_the_other():
    a = book("mostbet", {"1X2": {"W1": 2.10, "W2": 4.2}})
    b = book("melbet", {"1X2": {"X": 3.8}})

    [opportunity] = scan(a, b)

    assert [q.source_id for q in opportunity.outcome_odds] == ["mostbet", "melbet", "mostbet"]


def test_totals_accept_both_spellings():
    a = book("mostbet", {"Total": {"Total Over (2.5)": 2.10, "Total Under (2.5)": 1.70}})
    b = book("melbet", {"Total": {"Over (2.5)": 1.80, "Under (2.5)": 2.10}})

    [opportunity] = scan(a, b)

    assert opportunity.title == "Total (2.5)"
    assert [(q.label, q.source_id) for q in opportunity.outcome_odds] == [
        ("Total Over (2.5)", "mostbet"),
        ("Total Under (2.5)", "melbet"),
    ]
    assert opportunity.stake_distribution == (500.0, 500.0)
    assert opportunity.profit_percent == 5.0


def test_totals_line_needs_one_complete_book():
    a = book("mostbet", {"Total": {
        "Total Over (2.5)": 1.9,
        "Total Under (2.5)": 1.9,
        "Total Over (3.5)": 3.0,
    }})
    b = book("melbet", {"Total": {"Total Under (3.5)": 1.1}})

    opportunities = scan(a, b, include_all=True)

    assert [o.title for o in opportunities] == ["Total (2.5)"]
    assert opportunities[0].is_arbitrage is False


def test_handicap_pairs_opposite_lines_across_team_spellings():
    a = book("mostbet", {"Handicap": {"Real Madrid (-1.5)": 3.3, "Barcelona (+1.5)": 1.36}})
    b = book(
        "melbet",
        {"Handicap": {"Real Madrid CF (-1.5)": 2.9, "FC Barcelona (+1.5)": 1.55}},
        home="Real Madrid CF",
        away="FC Barcelona",
    )

    [opportunity] = scan(a, b)

    assert opportunity.title == "Handicap: Real Madrid (-1.5) / Barcelona (+1.5)"
    assert [(q.odds, q.source_id) for q in opportunity.outcome_odds] == [(3.3, "mostbet"), (1.55, "melbet")]
    assert opportunity.stake_distribution[0] == 319.59
    assert opportunity.profit_percent == 5.46


def test_handicap_lines_match_within_tolerance():
    a = book("mostbet", {"Handicap": {"Real Madrid (-1.5)": 3.3}})
    b = book("melbet", {"Handicap": {"Barcelona (+1.505)": 1.55}})

    [opportunity] = scan(a, b)

    assert [q.label for q in opportunity.outcome_odds] == ["Real Madrid (-1.5)", "Barcelona (+1.505)"]


def test_handicap_lines_outside_tolerance_are_not_paired():
    a = book("mostbet", {"Handicap": {"Real Madrid (-1.5)": 3.3}})
    b = book("melbet", {"Handicap": {"Barcelona (+1.52)": 1.55}})

    assert scan(a, b, include_all=True) == []


def test_reversed_listing_is_aligned_before_comparing():
    a = book("mostbet", {"1X2": {"W1": 2.10, "X": 3.2, "W2": 3.9}})
    b = book("melbet", {"1X2": {"W1": 4.2, "X": 3.8, "W2": 2.05}}, home="Barcelona", away="Real Madrid")

    [opportunity] = scan(a, b, teams_reversed=True)

    assert [(q.label, q.odds, q.source_id) for q in opportunity.outcome_odds] == [
        ("W1", 2.10, "mostbet"),
        ("X", 3.8, "melbet"),
        ("W2", 4.2, "melbet"),
    ]
    assert opportunity.profit_percent == 2.31


def test_first_last_accepts_no_goal_alias():
    a = book("mostbet", {"First Goal": {"Team 1": 2.2, "Team 2": 3.4, "No Goal": 12.0}})
    b = book("melbet", {"First Goal": {"Team 1": 2.0, "Team 2": 3.5, "No Event": 10.0}})

    [opportunity] = scan(a, b)

    assert [(q.label, q.odds) for q in opportunity.outcome_odds] == [
        ("Team 1", 2.2),
        ("Team 2", 3.5),
        ("No Event", 12.0),
    ]


@pytest.fixture
def books():
    a = book("mostbet", {
        "1X2": {"W1": 2.10, "X": 3.2, "W2": 4.2},
        "Total": {"Total Over (2.5)": 2.10, "Total Under (2.5)": 1.70},
        "Both Teams To Score": {"Yes": 1.8, "No": 1.9},
        "Draw No Bet": {"W1": 1.5, "W2": 2.5},
        "Exotic": {"A": 3.0, "B": 3.0},
    })
    b = book("melbet", {
        "1X2": {"W1": 1.9, "X": 3.8, "W2": 3.9},
        "Total": {"Over (2.5)": 1.80, "Under (2.5)": 2.10},
        "Both Teams To Score": {"Yes": 1.75, "No": 1.95},
        "Exotic": {"A": 3.0, "B": 3.0},
    })
    return a, b


def test_results_are_sorted_by_profit(books):
    opportunities = scan(*books)

    assert [o.title for o in opportunities] == ["Total (2.5)", "1X2"]


def test_include_all_keeps_non_arbitrage_markets(books):
    opportunities = scan(*books, include_all=True)

    assert [o.market for o in opportunities] == ["Total", "1X2", "Both Teams To Score"]
    assert opportunities[-1].is_arbitrage is False
    assert opportunities[-1].profit_percent == 0
    assert opportunities[-1].condition.endswith(">= 1")


def test_custom_stake_is_distributed(books):
    opportunities = scan(*books, total_stake=100)

    assert opportunities[0].total_stake == 100
    assert sum(opportunities[0].stake_distribution) == pytest.approx(100, abs=0.02)


def test_reversed_handicap_with_unmatched_names_keeps_sides():
    a = book("mostbet", {"Handicap": {"Real Madrid (-1.5)": 3.3, "Barcelona (+1.5)": 1.36}})
    b = book(
        "melbet",
        {"Handicap": {"FC Barcelona (+1.5)": 1.55, "Real Madrid CF (-1.5)": 2.9}},
        home="Barcelona FC",
        away="Real Madrid C.F.",
    )

    [opportunity] = scan(a, b, teams_reversed=True)

    assert opportunity.title == "Handicap: Real Madrid (-1.5) / Barcelona (+1.5)"
    assert [(q.odds, q.source_id) for q in opportunity.outcome_odds] == [(3.3, "mostbet"), (1.55, "melbet")]
