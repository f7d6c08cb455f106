"""CLI entry point for the arbitrage scanner."""
import json
import logging
import sys
from pathlib import Path
from typing import List

import click
from rich.console import Console
from rich.table import Table
from rich.logging import RichHandler

from .arbitrage import DegenerateOddsError, evaluate, format_condition
from .config import BOOKMAKERS, DEFAULT_TOTAL_STAKE
from .markets import MARKETS
from .melbet_api import MelbetClient
from .models import RawFixture
from .mostbet_api import MostbetClient
from .pipeline import collect_fixtures, find_pairs, rank_opportunities, run_scan, scan_to_record
from .similarity import string_similarity

console = Console()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    handlers=[RichHandler(console=console, rich_tracebacks=True)]
)
logger = logging.getLogger(__name__)

CLIENTS = {
    "mostbet": MostbetClient,
    "melbet": MelbetClient,
}


def _load_fixtures(path: str) -> List[RawFixture]:
    """Load a fixture snapshot, skipping records that are missing fields."""
    with open(path, encoding="utf-8") as f:
        records = json.load(f)

    fixtures = []
    for record in records:
        try:
            fixtures.append(RawFixture.from_record(record))
        except (ValueError, TypeError, OverflowError) as e:
            logger.warning(f"Skipping fixture in {path}: {e}")
    return fixtures


def _write_json(path: str, data):
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug):
    """Cross-bookmaker football arbitrage scanner."""
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command("fetch-fixtures")
@click.option("--source", "-s", type=click.Choice(sorted(CLIENTS)), required=True, help="Bookmaker to list")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write fixtures to a JSON file")
def fetch_fixtures(source, output):
    """Fetch upcoming fixtures from a bookmaker."""
    console.print(f"[bold]Fetching fixtures from {BOOKMAKERS[source]}...[/bold]")

    client = CLIENTS[source]()
    fixtures = collect_fixtures(client)
    client.close()

    if output:
        _write_json(output, [f.to_record() for f in fixtures])
        console.print(f"[green]Saved {len(fixtures)} fixtures to {output}[/green]")
        return

    table = Table(title=f"{BOOKMAKERS[source]} Fixtures")
    table.add_column("ID", justify="right")
    table.add_column("Home Team", style="cyan")
    table.add_column("Away Team", style="cyan")
    table.add_column("League")
    table.add_column("Kick-off (UTC)")

    for fixture in fixtures:
        table.add_row(
            fixture.source_id,
            fixture.home_team[:25],
            fixture.away_team[:25],
            fixture.league_name[:30],
            fixture.start_time.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@cli.command("match")
@click.argument("file_a", type=click.Path(exists=True, dir_okay=False))
@click.argument("file_b", type=click.Path(exists=True, dir_okay=False))
@click.option("--best-only", is_flag=True, help="Keep at most one pair per fixture")
def match(file_a, file_b, best_only):
    """Match fixtures from two saved fixture lists."""
    fixtures_a = _load_fixtures(file_a)
    fixtures_b = _load_fixtures(file_b)
    pairs = find_pairs(fixtures_a, fixtures_b, best_only)

    if not pairs:
        console.print("[yellow]No matching fixtures found.[/yellow]")
        return

    table = Table(title=f"Matched Fixtures ({len(pairs)})")
    table.add_column("Fixture A", style="cyan")
    table.add_column("Fixture B", style="cyan")
    table.add_column("Similarity", justify="right", style="green")
    table.add_column("Δ min", justify="right")
    table.add_column("Reversed", justify="center")

    for pair in pairs:
        a, b = pair.fixture_a, pair.fixture_b
        table.add_row(
            f"{a.home_team} vs {a.away_team}",
            f"{b.home_team} vs {b.away_team}",
            f"{pair.similarity_score:.3f}",
            f"{pair.time_delta_minutes:.0f}",
            "yes" if pair.is_teams_reversed else "",
        )

    console.print(table)


@cli.command("scan")
@click.option("--limit", "-n", type=int, default=None, help="Scan at most this many pairs")
@click.option("--stake", default=DEFAULT_TOTAL_STAKE, type=float, help="Total stake per opportunity")
@click.option("--best-only", is_flag=True, help="Keep at most one pair per fixture")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write results to a JSON file")
def scan_cmd(limit, stake, best_only, output):
    """Scan Mostbet and MelBet for arbitrage opportunities."""
    console.print("[bold]Scanning Mostbet vs MelBet...[/bold]")

    stats, results = run_scan(limit=limit, best_only=best_only, total_stake=stake)

    console.print("\n[bold green]Scan complete![/bold green]")
    console.print(f"  Mostbet fixtures: {stats['fixtures_a']}")
    console.print(f"  MelBet fixtures: {stats['fixtures_b']}")
    console.print(f"  Matched pairs: {stats['pairs']}")
    console.print(f"  Pairs scanned: {stats['scanned']}")
    console.print(f"  Opportunities: {stats['opportunities']}")
    console.print(f"  Errors: {stats['errors']}")

    if output:
        _write_json(output, {"stats": stats, "results": [scan_to_record(r) for r in results]})
        console.print(f"\n[dim]Results saved to {output}[/dim]")

    ranked = rank_opportunities(results)
    if not ranked:
        console.print("\n[yellow]No arbitrage opportunities found.[/yellow]")
        return

    table = Table(title="Arbitrage Opportunities")
    table.add_column("Match", style="cyan")
    table.add_column("Market")
    table.add_column("Odds")
    table.add_column("Stakes", justify="right")
    table.add_column("Profit %", justify="right", style="green")

    for pair, opportunity in ranked:
        table.add_row(
            f"{pair.fixture_a.home_team} vs {pair.fixture_a.away_team}",
            opportunity.title,
            "\n".join(f"{q.label} @ {q.odds:.2f} ({BOOKMAKERS.get(q.source_id, q.source_id)})"
                      for q in opportunity.outcome_odds),
            "\n".join(f"{s:.2f}" for s in opportunity.stake_distribution),
            f"{opportunity.profit_percent:.2f}",
        )

    console.print(table)


@cli.command("evaluate")
@click.argument("odds", nargs=-1, required=True, type=float)
@click.option("--stake", default=DEFAULT_TOTAL_STAKE, type=float, help="Total stake to distribute")
def evaluate_cmd(odds, stake):
    """Check a set of odds covering every outcome for arbitrage."""
    try:
        result = evaluate(odds, stake)
    except DegenerateOddsError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    console.print(format_condition(odds))
    if not result.is_arbitrage:
        console.print("[yellow]No arbitrage.[/yellow]")
        return

    table = Table(title=f"Arbitrage: {result.profit_percent:.2f}% profit")
    table.add_column("Odds", justify="right")
    table.add_column("Stake", justify="right", style="green")
    table.add_column("Return", justify="right")

    for price, stake_i in zip(odds, result.stake_distribution):
        table.add_row(f"{price:.2f}", f"{stake_i:.2f}", f"{price * stake_i:.2f}")

    console.print(table)
    console.print(f"  Expected return: {result.expected_return:.2f}")
    console.print(f"  Expected profit: {result.expected_profit:.2f}")


@cli.command("similarity")
@click.argument("name_a")
@click.argument("name_b")
def similarity_cmd(name_a, name_b):
    """Show how similar two team names are."""
    console.print(f"{string_similarity(name_a, name_b):.4f}")


@cli.command("list-markets")
def list_markets():
    """List the markets compared between bookmakers."""
    table = Table(title="Markets")
    table.add_column("Market", style="cyan")
    table.add_column("Family")
    table.add_column("Outcomes")

    for market in MARKETS.values():
        table.add_row(market.key, market.family, ", ".join(market.outcomes) or "by line")

    console.print(table)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
