"""Client for the MelBet fixture list and the 1xBet line feed behind it."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

import requests

from .config import MELBET_BASE_URL, ONEXBET_BASE_URL, ONEXBET_FEED_PARAMS, ONEXBET_GAME_PARAMS
from .feed_client import FeedClient
from .markets import SEGMENTS
from .models import RawFixture

logger = logging.getLogger(__name__)

SOURCE = "melbet"

# Team names the feed uses for placeholder events
GENERIC_TEAM_NAMES = {"Home", "Away"}


def default_window(now: Optional[datetime] = None) -> Tuple[int, int]:
    """
    Listing window from 18:30 UTC today to 18:30 UTC tomorrow.

    Returns:
        Tuple of (ts_from, ts_to) as epoch seconds
    """
    now = now or datetime.now(timezone.utc)
    start = datetime(now.year, now.month, now.day, 18, 30, tzinfo=timezone.utc)
    end = start + timedelta(days=1)
    return int(start.timestamp()), int(end.timestamp())


def parse_league_ids(data: Optional[Dict[str, Any]]) -> List[int]:
    """Collect league and sub-league ids from a ``GetSportsShortZip`` answer."""
    league_ids = []
    value = (data or {}).get("Value")
    if not isinstance(value, list):
        return league_ids

    for sport in value:
        for league in sport.get("L") or []:
            if league.get("LI"):
                league_ids.append(league["LI"])
            for sub_league in league.get("SC") or []:
                if sub_league.get("LI"):
                    league_ids.append(sub_league["LI"])
    return league_ids


def parse_fixtures(value: Any, seen: Set[str]) -> List[RawFixture]:
    """
    Turn a ``Get1x2_VZip`` event list into fixtures.

    Args:
        value: The ``Value`` list of the answer
        seen: Ids already collected; updated in place

    Returns:
        New fixtures; events without an id, already seen, or with placeholder
        team names are skipped
    """
    fixtures = []
    if not isinstance(value, list):
        return fixtures

    for event in value:
        event_id = event.get("CI")
        home_team = event.get("O1E")
        away_team = event.get("O2E")
        if not event_id or str(event_id) in seen:
            continue
        if not home_team or not away_team or home_team in GENERIC_TEAM_NAMES or away_team in GENERIC_TEAM_NAMES:
            continue
        if not event.get("S"):
            logger.debug(f"Skipping MelBet event {event_id}: no start time")
            continue

        seen.add(str(event_id))
        fixtures.append(RawFixture(
            source_id=str(event_id),
            home_team=home_team,
            away_team=away_team,
            league_name=event.get("LE") or "",
            start_time=datetime.fromtimestamp(float(event["S"]), tz=timezone.utc),
            sport=event.get("SN") or "Football",
            source=SOURCE,
        ))
    return fixtures


class MelbetClient(FeedClient):
    """
    Client for MelBet fixtures.

    MelBet lists its leagues on its own host but serves events and markets
    from the 1xBet line feed, so league pages and games go to ``feed_url``.
    """

    def __init__(self, base_url: str = MELBET_BASE_URL, feed_url: str = ONEXBET_BASE_URL, **kwargs):
        super().__init__(base_url, **kwargs)
        self.feed_url = feed_url.rstrip("/")
        self.source_id = SOURCE

    def get_league_ids(self, ts_from: int = None, ts_to: int = None) -> List[int]:
        """
        Get the ids of football leagues with events in a time window.

        Args:
            ts_from: Window start, epoch seconds (18:30 UTC today if None)
            ts_to: Window end, epoch seconds (18:30 UTC tomorrow if None)
        """
        if ts_from is None or ts_to is None:
            ts_from, ts_to = default_window()

        params = {
            "sports": 1,
            "lng": "en",
            "country": 71,
            "partner": 8,
            "virtualSports": "true",
            "gr": 1182,
            "groupChamps": "true",
            "tsFrom": ts_from,
            "tsTo": ts_to,
        }
        return parse_league_ids(self._make_request("service-api/LineFeed/GetSportsShortZip", params))

    def get_league_fixtures(self, league_id: int) -> List[Dict[str, Any]]:
        """Get the raw event list of one league."""
        params = {
            **ONEXBET_FEED_PARAMS,
            "sports": 1,
            "champs": league_id,
            "count": 50,
            "tf": 2200000,
            "tz": 5,
            "mode": 4,
            "getEmpty": "true",
        }
        data = self._make_request("LineFeed/Get1x2_VZip", params, base_url=self.feed_url)
        if not data or not data.get("Success"):
            logger.warning(f"No valid data for league {league_id}")
            return []
        return data.get("Value") or []

    def iter_fixtures(self, ts_from: int = None, ts_to: int = None) -> Iterator[RawFixture]:
        """
        Iterate over fixtures of every league in the window.

        A league that fails to load is logged and skipped.

        Yields:
            RawFixture per unique event
        """
        seen: Set[str] = set()
        for league_id in self.get_league_ids(ts_from, ts_to):
            try:
                events = self.get_league_fixtures(league_id)
            except requests.RequestException as e:
                logger.error(f"Error fetching MelBet league {league_id}: {e}")
                continue
            yield from parse_fixtures(events, seen)

    def _get_game_zip(self, game_id) -> Dict[str, Any]:
        params = {**ONEXBET_GAME_PARAMS, "id": game_id}
        return self._make_request("LineFeed/GetGameZip", params, base_url=self.feed_url)

    def get_game(self, match_id: str) -> Dict[str, Any]:
        """
        Get all markets of one match, segment sub-games included.

        Sub-games listed under ``Value.SG`` (corners, offsides...) are
        fetched too and attached as ``SubGames`` keyed by their name. A
        sub-game that fails to load is logged and left out.
        """
        data = self._get_game_zip(match_id)
        value = (data or {}).get("Value") or {}

        sub_games = {}
        for sub_game in value.get("SG") or []:
            name = sub_game.get("TG")
            if name not in SEGMENTS or name in sub_games or not sub_game.get("CI"):
                continue
            try:
                sub_games[name] = self._get_game_zip(sub_game["CI"])
            except requests.RequestException as e:
                logger.warning(f"Error fetching {name} for game {match_id}: {e}")

        if sub_games:
            data["SubGames"] = sub_games
        return data
