"""Client for the Mostbet line feed."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from .config import MOSTBET_BASE_URL, MOSTBET_PAGE_SIZE
from .feed_client import FeedClient
from .models import RawFixture

logger = logging.getLogger(__name__)

SOURCE = "mostbet"


def parse_fixtures(data: Optional[Dict[str, Any]]) -> List[RawFixture]:
    """
    Extract fixtures from a ``line/list`` page.

    The listing nests sport categories, super categories and leagues
    (``line_subcategory_dto_collection``) down to the lines themselves. Match
    titles are ``"<home> - <away>"``.

    Args:
        data: Decoded JSON page

    Returns:
        Fixtures on the page; records without an id, both teams or a start
        time are skipped
    """
    fixtures = []
    for category in (data or {}).get("lines_hierarchy") or []:
        for sport in category.get("line_category_dto_collection") or []:
            sport_name = sport.get("title") or "Football"
            for super_category in sport.get("line_supercategory_dto_collection") or []:
                for league in super_category.get("line_subcategory_dto_collection") or []:
                    league_name = league.get("title_old") or league.get("title") or ""
                    for line in league.get("line_dto_collection") or []:
                        fixture = _parse_line(line, league_name, sport_name)
                        if fixture is not None:
                            fixtures.append(fixture)
    return fixtures


def _parse_line(line: Dict[str, Any], league_name: str, sport_name: str) -> Optional[RawFixture]:
    match = line.get("match") or {}
    teams = str(match.get("title") or "").split(" - ", 1)
    if not line.get("id") or len(teams) != 2 or not teams[0].strip() or not teams[1].strip():
        logger.debug(f"Skipping Mostbet line {line.get('id')}: no teams")
        return None
    if not match.get("begin_at"):
        logger.debug(f"Skipping Mostbet line {line.get('id')}: no start time")
        return None

    return RawFixture(
        source_id=str(line["id"]),
        home_team=teams[0].strip(),
        away_team=teams[1].strip(),
        league_name=league_name,
        start_time=datetime.fromtimestamp(float(match["begin_at"]), tz=timezone.utc),
        sport=sport_name,
        source=SOURCE,
    )


class MostbetClient(FeedClient):
    """Client for Mostbet fixture lists and match lines."""

    def __init__(self, base_url: str = MOSTBET_BASE_URL, **kwargs):
        super().__init__(base_url, **kwargs)
        self.source_id = SOURCE

    def get_fixtures_page(self, offset: int = 0) -> Dict[str, Any]:
        """Get one page of upcoming football lines."""
        params = {
            "t[]": 1,
            "lc[]": 1,
            "um": 12,
            "ss": "all",
            "l": MOSTBET_PAGE_SIZE,
            "of": offset,
            "ltr": 0,
        }
        return self._make_request("api/v3/user/line/list", params)

    def iter_fixtures(self, max_pages: Optional[int] = None) -> Iterator[RawFixture]:
        """
        Iterate over all upcoming fixtures, page by page.

        Args:
            max_pages: Stop after this many pages (all pages if None)

        Yields:
            RawFixture per listed match
        """
        offset = 0
        pages = 0
        while max_pages is None or pages < max_pages:
            logger.debug(f"Fetching Mostbet fixtures at offset {offset}")
            fixtures = parse_fixtures(self.get_fixtures_page(offset))
            if not fixtures:
                break
            yield from fixtures
            offset += MOSTBET_PAGE_SIZE
            pages += 1

    def get_line(self, match_id: str) -> Dict[str, Any]:
        """Get all markets of one match."""
        return self._make_request(f"api/v1/lines/{match_id}.json")
