"""
Testing hosted storage without a network
- Trick: hand HostedStorage a fake HTTP object that records requests and
  answers from a dict, the way the real PostgREST endpoint would.
"""

import json
from datetime import date

import pytest
import requests

from bookle.domain import Stats
from bookle.engine import new_session
from bookle.errors import StorageError
from bookle.hosted_client import HostedStorage
from bookle.storage import FallbackStorage, MemoryStorage


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeHTTP:
    """Keeps one row per table keyed by the conflict column."""

    def __init__(self):
        self.tables = {"game_states": {}, "game_stats": {}}
        self.requests = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append(("GET", url, params, headers))
        table = url.rsplit("/", 1)[-1]
        column = next(k for k in params if k not in ("select", "limit"))
        wanted = params[column][len("eq."):]
        rows = [r for r in self.tables[table].values() if str(r[column]) == wanted]
        return FakeResponse(rows)

    def post(self, url, params=None, data=None, headers=None, timeout=None):
        self.requests.append(("POST", url, params, headers))
        table = url.rsplit("/", 1)[-1]
        row = json.loads(data)
        self.tables[table][row[params["on_conflict"]]] = row
        return FakeResponse(status_code=201)


@pytest.fixture
def http():
    return FakeHTTP()

@pytest.fixture
def hosted(http):
    return HostedStorage("https://example.test/", api_key="secret", timeout=1.0, http=http)

def test_session_roundtrip(hosted, http, books):
    session = new_session("2024-03-05", books[2])
    hosted.save_session(session)

    method, url, params, headers = http.requests[-1]
    assert method == "POST"
    assert url == "https://example.test/rest/v1/game_states"
    assert params == {"on_conflict": "id"}
    assert headers["apikey"] == "secret"
    assert "merge-duplicates" in headers["Prefer"]

    loaded = hosted.load_session("2024-03-05")
    assert loaded.to_dict() == session.to_dict()
    assert hosted.load_session("2024-03-06") is None

def test_session_with_json_text_columns(hosted, http, books):
    # Rows written by older clients hold the lists as JSON strings
    session = new_session("2024-03-05", books[0])
    row = {
        "id": session.id,
        "date": session.date,
        "daily_book_id": 1,
        "remaining_attempts": 8,
        "guesses": "[]",
        "revealed_attributes": json.dumps([a.to_dict() for a in session.revealed_attributes]),
        "game_status": "active",
    }
    http.tables["game_states"][session.id] = row

    loaded = hosted.load_session("2024-03-05")
    assert loaded.guesses == []
    assert len(loaded.revealed_attributes) == 7
    assert loaded.stats_recorded is False

def test_stats_roundtrip(hosted):
    assert hosted.load_stats(1) is None
    hosted.save_stats(Stats(player_id=1, games_played=3, games_won=2, current_streak=2,
                            max_streak=2, guess_distribution=[1, 1], last_played=date(2024, 3, 5)))

    loaded = hosted.load_stats(1)
    assert loaded.games_won == 2
    assert loaded.guess_distribution == [1, 1, 0, 0, 0, 0, 0, 0]
    assert loaded.last_played == date(2024, 3, 5)

def test_malformed_row_raises_storage_error(hosted, http):
    http.tables["game_states"]["game-2024-03-05"] = {"date": "2024-03-05"}
    with pytest.raises(StorageError):
        hosted.load_session("2024-03-05")

def test_http_failure_falls_back_to_memory(http, books):
    class DownHTTP(FakeHTTP):
        def get(self, *args, **kwargs):
            return FakeResponse(status_code=503)

    memory = MemoryStorage()
    storage = FallbackStorage(HostedStorage("https://example.test", http=DownHTTP()), memory)

    assert storage.load_session("2024-03-05") is None
    assert storage.using_fallback is True
    storage.save_session(new_session("2024-03-05", books[0]))
    assert memory.load_session("2024-03-05") is not None
