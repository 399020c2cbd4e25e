"""
Game records held in memory and passed between layers.

Book and Guess are frozen once built. Session and its RevealedAttribute
entries are mutated only by the engine while the session is active.
Each record knows how to turn itself into the JSON-ready dict used by the
storage backends and back again.
"""

from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

from .types import (
    ATTRIBUTE_KEYS,
    MAX_ATTEMPTS,
    AttributeStatus,
    AttributeType,
    GameStatus,
)

AttributeValue = Union[int, str]


@dataclass(frozen=True)
class Book:
    id: int
    title: str
    author: str
    publication_year: int
    genre: str
    authors_country: str
    pages: int
    original_language: str
    historical_period: str
    # Display-only; not part of guess evaluation
    image_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "publicationYear": self.publication_year,
            "genre": self.genre,
            "authorsCountry": self.authors_country,
            "pages": self.pages,
            "originalLanguage": self.original_language,
            "historicalPeriod": self.historical_period,
            "imageUrl": self.image_url,
        }

    def attribute(self, key: str) -> AttributeValue:
        """Value of one tracked attribute by its Guess key (camelCase)."""
        return {
            "publicationYear": self.publication_year,
            "genre": self.genre,
            "authorsCountry": self.authors_country,
            "pages": self.pages,
            "author": self.author,
            "originalLanguage": self.original_language,
            "historicalPeriod": self.historical_period,
        }[key]


@dataclass(frozen=True)
class AttributeResult:
    value: AttributeValue
    status: AttributeStatus


@dataclass(frozen=True)
class Guess:
    title: str
    book_id: int
    is_correct: bool
    # Keyed by ATTRIBUTE_KEYS; values are the guessed book's values
    attributes: Mapping[str, AttributeResult]
    image_url: Optional[str] = None

    def __post_init__(self) -> None:
        # Read-only view over a private copy
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "bookId": self.book_id,
            "isCorrect": self.is_correct,
            "imageUrl": self.image_url,
            "attributes": {
                key: {"value": self.attributes[key].value, "status": self.attributes[key].status}
                for key in ATTRIBUTE_KEYS
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Guess":
        return cls(
            title=data["title"],
            book_id=data["bookId"],
            is_correct=data["isCorrect"],
            image_url=data.get("imageUrl"),
            attributes={
                key: AttributeResult(value=raw["value"], status=raw["status"])
                for key, raw in data["attributes"].items()
            },
        )


@dataclass
class RevealedAttribute:
    name: str
    value: AttributeValue
    icon: str
    type: AttributeType
    revealed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "icon": self.icon,
            "revealed": self.revealed,
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RevealedAttribute":
        return cls(
            name=data["name"],
            value=data["value"],
            icon=data["icon"],
            type=data["type"],
            revealed=bool(data["revealed"]),
        )


@dataclass
class Session:
    id: str
    date: str
    daily_book_id: int
    remaining_attempts: int = MAX_ATTEMPTS
    guesses: List[Guess] = field(default_factory=list)
    revealed_attributes: List[RevealedAttribute] = field(default_factory=list)
    game_status: GameStatus = "active"
    # Idempotency flag: stats have been credited for this session
    stats_recorded: bool = False

    @property
    def is_over(self) -> bool:
        return self.game_status != "active"

    @property
    def attempts_used(self) -> int:
        return MAX_ATTEMPTS - self.remaining_attempts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "dailyBookId": self.daily_book_id,
            "remainingAttempts": self.remaining_attempts,
            "guesses": [g.to_dict() for g in self.guesses],
            "revealedAttributes": [a.to_dict() for a in self.revealed_attributes],
            "gameStatus": self.game_status,
            "statsRecorded": self.stats_recorded,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        return cls(
            id=data["id"],
            date=data["date"],
            daily_book_id=data["dailyBookId"],
            remaining_attempts=data["remainingAttempts"],
            guesses=[Guess.from_dict(g) for g in data.get("guesses", [])],
            revealed_attributes=[RevealedAttribute.from_dict(a) for a in data["revealedAttributes"]],
            game_status=data["gameStatus"],
            stats_recorded=bool(data.get("statsRecorded", False)),
        )


@dataclass
class Stats:
    player_id: int
    games_played: int = 0
    games_won: int = 0
    current_streak: int = 0
    max_streak: int = 0
    # Index i = wins in exactly i + 1 attempts
    guess_distribution: List[int] = field(default_factory=lambda: [0] * MAX_ATTEMPTS)
    last_played: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "playerId": self.player_id,
            "gamesPlayed": self.games_played,
            "gamesWon": self.games_won,
            "currentStreak": self.current_streak,
            "maxStreak": self.max_streak,
            "guessDistribution": list(self.guess_distribution),
            "lastPlayed": self.last_played.isoformat() if self.last_played else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stats":
        last_played = data.get("lastPlayed")
        return cls(
            player_id=data["playerId"],
            games_played=data["gamesPlayed"],
            games_won=data["gamesWon"],
            current_streak=data["currentStreak"],
            max_streak=data["maxStreak"],
            guess_distribution=pad_distribution(data.get("guessDistribution") or []),
            last_played=date.fromisoformat(last_played) if last_played else None,
        )


def pad_distribution(values: List[int]) -> List[int]:
    """Older rows may carry a short (or empty) distribution; pad to 8 slots."""
    padded = list(values)[:MAX_ATTEMPTS]
    while len(padded) < MAX_ATTEMPTS:
        padded.append(0)
    return padded
