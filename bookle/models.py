"""
SQLAlchemy ORM models.

Tables:
- books: the catalog, one row per book (title unique)
- game_sessions: one row per calendar day; guesses and revealed attributes
  are small lists of dicts, stored as JSON
- player_stats: one row per player (a single fixed player for now)
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    String, Integer, Date, DateTime, Enum, Boolean, ForeignKey, JSON,
)
from sqlalchemy.orm import Mapped, mapped_column
from .db import Base
from .types import GameStatus


class Book(Base):
    __tablename__ = "books"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    publication_year: Mapped[int] = mapped_column(Integer, nullable=False)
    genre: Mapped[str] = mapped_column(String(100), nullable=False)
    authors_country: Mapped[str] = mapped_column(String(100), nullable=False)
    pages: Mapped[int] = mapped_column(Integer, nullable=False)
    original_language: Mapped[str] = mapped_column(String(100), nullable=False)
    historical_period: Mapped[str] = mapped_column(String(100), nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class GameSession(Base):
    __tablename__ = "game_sessions"

    # "game-<date>"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Session key: ISO date, optionally "_<bookId>" pinned
    date: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    daily_book_id: Mapped[int] = mapped_column(Integer, ForeignKey("books.id"), nullable=False)

    remaining_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=8)
    guesses: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    revealed_attributes: Mapped[list[dict]] = mapped_column(JSON, nullable=False)

    game_status: Mapped[GameStatus] = mapped_column(
        Enum("active", "won", "lost", name="game_status"),
        nullable=False,
        default="active",
    )
    stats_recorded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class PlayerStats(Base):
    __tablename__ = "player_stats"

    player_id: Mapped[int] = mapped_column(Integer, primary_key=True)

    games_played: Mapped[int] = mapped_column(Integer, default=0)
    games_won: Mapped[int] = mapped_column(Integer, default=0)
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    max_streak: Mapped[int] = mapped_column(Integer, default=0)

    # list[int] of length 8
    guess_distribution: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    last_played: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
