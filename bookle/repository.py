"""
DB-backed catalog and storage, same calls as MemoryCatalog / MemoryStorage.

DBCatalog:
- lookup_by_title(title) -> Book | None
- list_all() -> list[Book]
- get(book_id) -> Book | None
- add(fields) -> Book

DBStorage:
- load_session(day) / save_session(session)
- load_stats(player_id) / save_stats(stats)

Lets the service switch between memory, SQL and hosted storage without
changing the FastAPI routes.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session as DBSession

from .domain import Book, Guess, RevealedAttribute, Session, Stats, pad_distribution
from .models import Book as BookORM, GameSession as GameSessionORM, PlayerStats as PlayerStatsORM

logger = logging.getLogger(__name__)

# --- Small converters between ORM rows and game records ---

def _to_book(row: BookORM) -> Book:
    return Book(
        id=row.id,
        title=row.title,
        author=row.author,
        publication_year=row.publication_year,
        genre=row.genre,
        authors_country=row.authors_country,
        pages=row.pages,
        original_language=row.original_language,
        historical_period=row.historical_period,
        image_url=row.image_url,
    )


def _to_session(row: GameSessionORM) -> Session:
    return Session(
        id=row.id,
        date=row.date,
        daily_book_id=row.daily_book_id,
        remaining_attempts=row.remaining_attempts,
        guesses=[Guess.from_dict(g) for g in (row.guesses or [])],
        revealed_attributes=[RevealedAttribute.from_dict(a) for a in row.revealed_attributes],
        game_status=row.game_status,
        stats_recorded=row.stats_recorded,
    )


def _to_stats(row: PlayerStatsORM) -> Stats:
    return Stats(
        player_id=row.player_id,
        games_played=row.games_played,
        games_won=row.games_won,
        current_streak=row.current_streak,
        max_streak=row.max_streak,
        guess_distribution=pad_distribution(row.guess_distribution or []),
        last_played=row.last_played,
    )


class DBCatalog:
    def __init__(self, db: DBSession):
        self.db = db

    def lookup_by_title(self, title: str) -> Optional[Book]:
        row = self.db.execute(
            select(BookORM).where(func.lower(BookORM.title) == title.strip().lower())
        ).scalars().first()
        return _to_book(row) if row else None

    def list_all(self) -> List[Book]:
        rows = self.db.execute(select(BookORM).order_by(BookORM.id.asc())).scalars().all()
        return [_to_book(r) for r in rows]

    def get(self, book_id: int) -> Optional[Book]:
        row = self.db.get(BookORM, book_id)
        return _to_book(row) if row else None

    def add(self, fields: dict) -> Book:
        row = BookORM(**fields)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        logger.info("Added book %r with id %s", row.title, row.id)
        return _to_book(row)


class DBStorage:
    def __init__(self, db: DBSession):
        self.db = db

    def load_session(self, day: str) -> Optional[Session]:
        row = self.db.execute(
            select(GameSessionORM).where(GameSessionORM.date == day)
        ).scalars().first()
        return _to_session(row) if row else None

    def save_session(self, session: Session) -> Session:
        row = self.db.get(GameSessionORM, session.id)
        if row is None:
            row = GameSessionORM(id=session.id, date=session.date, created_at=datetime.utcnow())
            self.db.add(row)

        row.daily_book_id = session.daily_book_id
        row.remaining_attempts = session.remaining_attempts
        # Reassign whole lists so the JSON columns are flagged dirty
        row.guesses = [g.to_dict() for g in session.guesses]
        row.revealed_attributes = [a.to_dict() for a in session.revealed_attributes]
        row.game_status = session.game_status
        row.stats_recorded = session.stats_recorded
        row.updated_at = datetime.utcnow()

        self.db.commit()
        return session

    def load_stats(self, player_id: int) -> Optional[Stats]:
        row = self.db.get(PlayerStatsORM, player_id)
        return _to_stats(row) if row else None

    def save_stats(self, stats: Stats) -> Stats:
        row = self.db.get(PlayerStatsORM, stats.player_id)
        if row is None:
            row = PlayerStatsORM(player_id=stats.player_id)
            self.db.add(row)

        row.games_played = stats.games_played
        row.games_won = stats.games_won
        row.current_streak = stats.current_streak
        row.max_streak = stats.max_streak
        row.guess_distribution = list(stats.guess_distribution)
        row.last_played = stats.last_played

        self.db.commit()
        return stats
