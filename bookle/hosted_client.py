"""
Storage on a hosted backend-as-a-service that speaks PostgREST
(tables game_states and game_stats under /rest/v1/).

HTTP errors and timeouts surface as requests exceptions, bad payloads as
StorageError; wrap this in FallbackStorage to keep the game playable
when the service is down.
"""

import json
import logging
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from .domain import Guess, RevealedAttribute, Session, Stats, pad_distribution
from .errors import StorageError

logger = logging.getLogger(__name__)

SESSIONS_TABLE = "game_states"
STATS_TABLE = "game_stats"


def _json_list(value: Any) -> List[Any]:
    # Older rows hold JSON text instead of a JSON column
    if value is None:
        return []
    if isinstance(value, str):
        return json.loads(value)
    return list(value)


class HostedStorage:
    def __init__(self, base_url: str, api_key: str = "", timeout: float = 5.0, http=None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _select_one(self, table: str, column: str, value: Any) -> Optional[Dict[str, Any]]:
        response = self.http.get(
            self._url(table),
            params={column: f"eq.{value}", "select": "*", "limit": 1},
            headers=self.headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        rows = response.json()
        if not isinstance(rows, list):
            raise StorageError("Unexpected response from hosted storage", {"table": table})
        return rows[0] if rows else None

    def _upsert(self, table: str, conflict_column: str, row: Dict[str, Any]) -> None:
        response = self.http.post(
            self._url(table),
            params={"on_conflict": conflict_column},
            data=json.dumps(row),
            headers={**self.headers, "Prefer": "resolution=merge-duplicates,return=minimal"},
            timeout=self.timeout,
        )
        response.raise_for_status()

    # --- Sessions ---

    def load_session(self, day: str) -> Optional[Session]:
        row = self._select_one(SESSIONS_TABLE, "date", day)
        if row is None:
            return None
        try:
            return Session(
                id=row["id"],
                date=row["date"],
                daily_book_id=row["daily_book_id"],
                remaining_attempts=row["remaining_attempts"],
                guesses=[Guess.from_dict(g) for g in _json_list(row.get("guesses"))],
                revealed_attributes=[RevealedAttribute.from_dict(a) for a in _json_list(row["revealed_attributes"])],
                game_status=row["game_status"],
                stats_recorded=bool(row.get("stats_recorded", False)),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError("Malformed session row", {"date": day, "error": exc})

    def save_session(self, session: Session) -> Session:
        self._upsert(SESSIONS_TABLE, "id", {
            "id": session.id,
            "date": session.date,
            "daily_book_id": session.daily_book_id,
            "remaining_attempts": session.remaining_attempts,
            "guesses": [g.to_dict() for g in session.guesses],
            "revealed_attributes": [a.to_dict() for a in session.revealed_attributes],
            "game_status": session.game_status,
            "stats_recorded": session.stats_recorded,
        })
        logger.debug("Saved session %s to hosted storage", session.id)
        return session

    # --- Stats ---

    def load_stats(self, player_id: int) -> Optional[Stats]:
        row = self._select_one(STATS_TABLE, "user_id", player_id)
        if row is None:
            return None
        try:
            last_played = row.get("last_played")
            return Stats(
                player_id=row["user_id"],
                games_played=row["games_played"],
                games_won=row["games_won"],
                current_streak=row["current_streak"],
                max_streak=row["max_streak"],
                guess_distribution=pad_distribution(_json_list(row.get("guess_distribution"))),
                last_played=date.fromisoformat(last_played) if last_played else None,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError("Malformed stats row", {"player_id": player_id, "error": exc})

    def save_stats(self, stats: Stats) -> Stats:
        self._upsert(STATS_TABLE, "user_id", {
            "user_id": stats.player_id,
            "games_played": stats.games_played,
            "games_won": stats.games_won,
            "current_streak": stats.current_streak,
            "max_streak": stats.max_streak,
            "guess_distribution": json.dumps(list(stats.guess_distribution)),
            "last_played": stats.last_played.isoformat() if stats.last_played else None,
        })
        return stats
