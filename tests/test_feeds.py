from datetime import datetime, timezone

import pytest
import requests

from surebet.feed_client import FeedClient, RateLimiter
from surebet.melbet_api import MelbetClient, default_window, parse_league_ids
from surebet.mostbet_api import MostbetClient


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        return self._payload


def build_sequence(monkeypatch, items):
    """Patch Session.get to answer with ``items`` in order; exceptions are raised."""
    calls = []
    answers = iter(items)

    def _get(self, url, params=None, timeout=None):
        calls.append({"url": url, "params": params})
        item = next(answers)
        if isinstance(item, Exception):
            raise item
        return item

    monkeypatch.setattr("surebet.feed_client.requests.Session.get", _get)
    return calls


def mostbet_page(*lines):
    return {"lines_hierarchy": [{
        "line_category_dto_collection": [{
            "title": "Football",
            "line_supercategory_dto_collection": [{
                "line_subcategory_dto_collection": [{
                    "title": "La Liga",
                    "title_old": "Spain. La Liga",
                    "line_dto_collection": list(lines),
                }],
            }],
        }],
    }]}


def mostbet_line(line_id, title, begin_at=1714586400):
    return {"id": line_id, "match": {"title": title, "begin_at": begin_at}}


def event(event_id, home, away, start=1714586400):
    return {"CI": event_id, "O1E": home, "O2E": away, "LE": "Spain. La Liga", "S": start, "SN": "Football"}


@pytest.fixture
def mostbet():
    return MostbetClient(base_url="https://mostbet.test/", requests_per_minute=0)


@pytest.fixture
def melbet():
    return MelbetClient(base_url="https://melbet.test", feed_url="https://feed.test/", requests_per_minute=0)


def test_rate_limiter_interval():
    assert RateLimiter(60).interval == 1.0
    assert RateLimiter(0).interval == 0.0


def test_feed_client_counts_requests(monkeypatch):
    build_sequence(monkeypatch, [FakeResponse({"ok": True})])
    client = FeedClient("https://host.test", requests_per_minute=0)

    assert client._make_request("/ping") == {"ok": True}
    assert client.request_count == 1


def test_mostbet_pages_until_empty(monkeypatch, mostbet):
    calls = build_sequence(monkeypatch, [
        FakeResponse(mostbet_page(
            mostbet_line(11, "Real Madrid - Barcelona"),
            mostbet_line(12, "Outright winner"),
            mostbet_line(13, "Arsenal - Chelsea", begin_at=None),
        )),
        FakeResponse(mostbet_page(mostbet_line(21, "Milan - Inter"))),
        FakeResponse(mostbet_page()),
    ])

    fixtures = list(mostbet.iter_fixtures())

    assert [f.source_id for f in fixtures] == ["11", "21"]
    assert fixtures[0].home_team == "Real Madrid"
    assert fixtures[0].away_team == "Barcelona"
    assert fixtures[0].league_name == "Spain. La Liga"
    assert fixtures[0].start_time == datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)
    assert fixtures[0].source == "mostbet"
    assert [c["params"]["of"] for c in calls] == [0, 20, 40]
    assert calls[0]["url"] == "https://mostbet.test/api/v3/user/line/list"


def test_mostbet_max_pages(monkeypatch, mostbet):
    calls = build_sequence(monkeypatch, [FakeResponse(mostbet_page(mostbet_line(11, "A - B")))])

    assert len(list(mostbet.iter_fixtures(max_pages=1))) == 1
    assert len(calls) == 1


def test_mostbet_line_url(monkeypatch, mostbet):
    calls = build_sequence(monkeypatch, [FakeResponse({"line": {}})])

    assert mostbet.get_line("11") == {"line": {}}
    assert calls[0]["url"] == "https://mostbet.test/api/v1/lines/11.json"


def test_mostbet_error_status_raises(monkeypatch, mostbet):
    build_sequence(monkeypatch, [FakeResponse(status_code=500)])

    with pytest.raises(requests.HTTPError):
        mostbet.get_line("11")


def test_melbet_league_ids(monkeypatch, melbet):
    calls = build_sequence(monkeypatch, [FakeResponse({"Value": [
        {"L": [{"LI": 100, "SC": [{"LI": 101}, {"LI": None}]}, {"LI": 200}]},
    ]})])

    assert melbet.get_league_ids(1, 2) == [100, 101, 200]
    assert calls[0]["url"] == "https://melbet.test/service-api/LineFeed/GetSportsShortZip"
    assert (calls[0]["params"]["tsFrom"], calls[0]["params"]["tsTo"]) == (1, 2)


def test_parse_league_ids_tolerates_missing_value():
    assert parse_league_ids(None) == []
    assert parse_league_ids({"Value": None}) == []


def test_melbet_fixtures_skip_failed_leagues_and_duplicates(monkeypatch, melbet):
    calls = build_sequence(monkeypatch, [
        FakeResponse({"Value": [{"L": [{"LI": 100}, {"LI": 200}, {"LI": 300}, {"LI": 400}]}]}),
        FakeResponse({"Success": True, "Value": [
            event(1, "Real Madrid", "Barcelona"),
            event(2, "Home", "Away"),
        ]}),
        requests.ConnectionError("connection reset"),
        FakeResponse({"Success": True, "Value": [
            event(1, "Real Madrid", "Barcelona"),
            event(3, "Milan", "Inter"),
            event(4, "Roma", "Lazio", start=None),
        ]}),
        FakeResponse({"Success": False}),
    ])

    fixtures = list(melbet.iter_fixtures(1, 2))

    assert [f.source_id for f in fixtures] == ["1", "3"]
    assert fixtures[1].league_name == "Spain. La Liga"
    assert fixtures[1].source == "melbet"
    assert calls[1]["url"] == "https://feed.test/LineFeed/Get1x2_VZip"
    assert calls[1]["params"]["champs"] == 100
    assert len(calls) == 5


def test_melbet_game_fetches_segment_sub_games(monkeypatch, melbet):
    calls = build_sequence(monkeypatch, [
        FakeResponse({"Value": {"I": 777, "SG": [
            {"TG": "Corners", "CI": 7771},
            {"TG": "Penalties", "CI": 7772},
            {"TG": "Offsides", "CI": 7773},
        ]}}),
        FakeResponse({"Value": {"GE": []}}),
        FakeResponse(status_code=500),
    ])

    data = melbet.get_game("777")

    assert data["SubGames"] == {"Corners": {"Value": {"GE": []}}}
    assert [c["params"]["id"] for c in calls] == ["777", 7771, 7773]
    assert calls[0]["url"] == "https://feed.test/LineFeed/GetGameZip"


def test_melbet_game_without_sub_games(monkeypatch, melbet):
    build_sequence(monkeypatch, [FakeResponse({"Value": {"I": 777}})])

    assert "SubGames" not in melbet.get_game("777")


def test_default_window():
    now = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    assert default_window(now) == (1714588200, 1714674600)
