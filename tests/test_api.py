"""
Testing API via TestClient
- Trick: a session key like "2024-01-01_3" pins the daily book (id 3,
  "Pride and Prejudice") so every test knows the answer up front.
"""

import dataclasses

import bookle.main as app_main
from bookle.errors import StorageError
from bookle.storage import FallbackSwitch, MemoryStorage

DAY = "2024-01-01_3"
ANSWER = "Pride and Prejudice"
WRONG = [
    "To Kill a Mockingbird", "1984", "The Great Gatsby", "One Hundred Years of Solitude",
    "Crime and Punishment", "The Hobbit", "The Catcher in the Rye", "Brave New World",
]

def guess(client, title, day=DAY):
    return client.post("/api/game/guess", json={"bookTitle": title, "date": day})


def test_list_and_search_books(client):
    response = client.get("/api/books")
    assert response.status_code == 200
    books = response.json()
    assert len(books) == 15
    assert set(books[0].keys()) == {"id", "title", "author"}

    response = client.get("/api/books/search", params={"q": "the"})
    assert response.status_code == 200
    titles = [b["title"] for b in response.json()]
    assert "The Hobbit" in titles
    assert len(titles) <= 10

    # Fewer than 2 characters -> nothing
    assert client.get("/api/books/search", params={"q": "t"}).json() == []


def test_add_book_validation(client):
    book = {
        "title": "Invisible Cities", "author": "Italo Calvino", "publicationYear": 1972,
        "genre": "Fantasy", "authorsCountry": "Italy", "pages": 165,
        "originalLanguage": "Italian", "historicalPeriod": "Cold War",
    }
    response = client.post("/api/books", json=book)
    assert response.status_code == 201
    assert response.json()["title"] == "Invisible Cities"

    # Same title again (any case)
    response = client.post("/api/books", json={**book, "title": "INVISIBLE CITIES"})
    assert response.status_code == 409

    response = client.post("/api/books", json={**book, "title": "Zero Pages", "pages": 0})
    assert response.status_code == 422


def test_new_game_hides_the_answer(client):
    response = client.get("/api/game", params={"date": DAY})
    assert response.status_code == 200
    state = response.json()
    assert state["id"] == f"game-{DAY}"
    assert state["gameStatus"] == "active"
    assert state["remainingAttempts"] == 8
    assert state["dailyBookId"] is None
    assert state["dailyBook"] is None
    assert len(state["revealedAttributes"]) == 7
    assert all(a["value"] is None and not a["revealed"] for a in state["revealedAttributes"])


def test_guess_then_win_then_rejected(client):
    """
    Flow:
    1) Wrong guess -> 200, one attribute revealed, answer still hidden.
    2) Correct guess (any case) -> 'won' and the book is disclosed.
    3) Guess again -> 409, state unchanged.
    """
    response = guess(client, "1984")
    assert response.status_code == 200
    body = response.json()
    assert body["guessResult"]["isCorrect"] is False
    assert body["guessResult"]["attributes"]["publicationYear"] == {"value": 1949, "status": "incorrect"}
    assert body["guessResult"]["attributes"]["authorsCountry"]["status"] == "correct"
    assert body["gameState"]["remainingAttempts"] == 7
    assert body["dailyBook"] is None
    year = next(a for a in body["gameState"]["revealedAttributes"] if a["name"] == "Publication Year")
    assert year == {"name": "Publication Year", "value": 1813, "icon": "calendar_today",
                    "revealed": True, "type": "date"}
    genre = next(a for a in body["gameState"]["revealedAttributes"] if a["name"] == "Genre")
    assert genre["revealed"] is False and genre["value"] is None

    response = guess(client, ANSWER.lower())
    assert response.status_code == 200
    final = response.json()
    assert final["gameState"]["gameStatus"] == "won"
    assert final["gameState"]["dailyBookId"] == 3
    assert final["dailyBook"]["title"] == ANSWER
    assert "No more guesses" in final["note"]

    response = guess(client, "The Hobbit")
    assert response.status_code == 409
    state = client.get("/api/game", params={"date": DAY}).json()
    assert state["remainingAttempts"] == 6
    assert len(state["guesses"]) == 2

    stats = client.get("/api/stats").json()
    assert stats["gamesPlayed"] == 1
    assert stats["gamesWon"] == 1
    assert stats["guessDistribution"] == [0, 1, 0, 0, 0, 0, 0, 0]


def test_unknown_title_is_404_and_free(client):
    response = guess(client, "Not A Real Book")
    assert response.status_code == 404

    state = client.get("/api/game", params={"date": DAY}).json()
    assert state["remainingAttempts"] == 8
    assert state["guesses"] == []


def test_bad_requests(client):
    assert client.post("/api/game/guess", json={"bookTitle": ""}).status_code == 422
    assert guess(client, "1984", day="yesterday").status_code == 422
    assert guess(client, "1984", day="2024-13-45").status_code == 400
    assert guess(client, "   ").status_code == 400


def test_stats_after_a_loss(client):
    assert client.get("/api/stats").json()["gamesPlayed"] == 0

    for title in WRONG:
        response = guess(client, title)
        assert response.status_code == 200

    final = response.json()
    assert final["gameState"]["gameStatus"] == "lost"
    assert final["gameState"]["remainingAttempts"] == 0
    assert final["dailyBook"]["title"] == ANSWER
    # Once over, every attribute value is visible
    assert all(a["value"] is not None for a in final["gameState"]["revealedAttributes"])

    stats = client.get("/api/stats").json()
    assert stats["gamesPlayed"] == 1
    assert stats["gamesWon"] == 0
    assert stats["currentStreak"] == 0
    assert stats["lastPlayed"] is not None


def test_fallback_holds_across_requests(client, monkeypatch):
    """
    With fallback on and the database down, the first request switches to
    memory and later requests stay there instead of retrying the database.
    """
    primary_calls = []

    class DownDBStorage:
        def __init__(self, db):
            pass

        def _fail(self, *args):
            primary_calls.append(args)
            raise StorageError("database unreachable")

        load_session = save_session = load_stats = save_stats = _fail

    monkeypatch.setattr(app_main, "settings", dataclasses.replace(app_main.settings, storage_fallback=True))
    monkeypatch.setattr(app_main, "DBStorage", DownDBStorage)
    monkeypatch.setattr(app_main, "memory_storage", MemoryStorage())
    monkeypatch.setattr(app_main, "storage_switch", FallbackSwitch())

    first = app_main.get_storage(db=None)
    assert first.load_session(DAY) is None
    assert first.using_fallback is True
    assert len(primary_calls) == 1

    second = app_main.get_storage(db=None)
    assert second.using_fallback is True

    # The guess lands in memory and the next request reads it back from there
    assert guess(client, "1984").status_code == 200
    state = client.get("/api/game", params={"date": DAY}).json()
    assert state["remainingAttempts"] == 7
    assert [g["title"] for g in state["guesses"]] == ["1984"]
    assert len(primary_calls) == 1
