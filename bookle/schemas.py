"""
Pydantic models for the HTTP API.
- Validate requests and shape responses.
- JSON keys are camelCase (what the browser client reads); Python
  attributes stay snake_case.
- The builders at the bottom are the only place that decides what of a
  session the client may see.
"""

from datetime import date
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .domain import Book, Guess, Session, Stats

ISO_DAY_PATTERN = r"^\d{4}-\d{2}-\d{2}(_\d+)?$"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# 1. Books

class BookSummaryOut(CamelModel):
    id: int
    title: str
    author: str


class BookOut(CamelModel):
    id: int
    title: str
    author: str
    publication_year: int
    genre: str
    authors_country: str
    pages: int
    original_language: str
    historical_period: str
    image_url: Optional[str] = None


class BookIn(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    author: str = Field(..., min_length=1, max_length=255)
    publication_year: int
    genre: str = Field(..., min_length=1, max_length=100)
    authors_country: str = Field(..., min_length=1, max_length=100)
    pages: int = Field(..., description="Must be positive; page comparison divides by it")
    original_language: str = Field(..., min_length=1, max_length=100)
    historical_period: str = Field(..., min_length=1, max_length=100)
    image_url: Optional[str] = None

    @field_validator("pages")
    @classmethod
    def validate_pages(cls, pages: int) -> int:
        if pages <= 0:
            raise ValueError("pages must be greater than 0")
        return pages

    @field_validator("title")
    @classmethod
    def strip_title(cls, title: str) -> str:
        title = title.strip()
        if not title:
            raise ValueError("title must not be blank")
        return title

# 2. Game

class GuessRequest(CamelModel):
    book_title: str = Field(..., min_length=1, description="Title as typed; matched case-insensitively")
    date: Optional[str] = Field(
        None, pattern=ISO_DAY_PATTERN, description="Session day (YYYY-MM-DD); defaults to today"
    )

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"examples": [{"bookTitle": "The Hobbit"}]},
    )


class AttributeResultOut(CamelModel):
    value: Union[int, str]
    status: Literal["correct", "partial", "incorrect"]


class GuessOut(CamelModel):
    title: str
    is_correct: bool
    image_url: Optional[str] = None
    attributes: Dict[str, AttributeResultOut]


class RevealedAttributeOut(CamelModel):
    name: str
    value: Optional[Union[int, str]] = Field(None, description="Hidden (null) until revealed")
    icon: str
    revealed: bool
    type: Literal["date", "text", "number"]


class GameStateOut(CamelModel):
    id: str
    date: str
    daily_book_id: Optional[int] = Field(None, description="Only present once the game is over")
    remaining_attempts: int
    guesses: List[GuessOut]
    revealed_attributes: List[RevealedAttributeOut]
    game_status: Literal["active", "won", "lost"]
    daily_book: Optional[BookOut] = None


class GuessResponse(CamelModel):
    guess_result: GuessOut
    game_state: GameStateOut
    daily_book: Optional[BookOut] = Field(None, description="The answer, only once the game is over")
    note: Optional[str] = None

# 3. Stats

class StatsOut(CamelModel):
    games_played: int
    games_won: int
    current_streak: int
    max_streak: int
    guess_distribution: List[int] = Field(..., description="Index i = wins in i + 1 attempts")
    last_played: Optional[date] = None

# --- Builders ---

def book_out(book: Book) -> BookOut:
    return BookOut(
        id=book.id,
        title=book.title,
        author=book.author,
        publication_year=book.publication_year,
        genre=book.genre,
        authors_country=book.authors_country,
        pages=book.pages,
        original_language=book.original_language,
        historical_period=book.historical_period,
        image_url=book.image_url,
    )


def guess_out(guess: Guess) -> GuessOut:
    return GuessOut(
        title=guess.title,
        is_correct=guess.is_correct,
        image_url=guess.image_url,
        attributes={
            key: AttributeResultOut(value=result.value, status=result.status)
            for key, result in guess.attributes.items()
        },
    )


def game_state_out(session: Session, daily_book: Optional[Book] = None) -> GameStateOut:
    # While the game is active, neither the answer id nor hidden values leave the server
    over = session.is_over
    return GameStateOut(
        id=session.id,
        date=session.date,
        daily_book_id=session.daily_book_id if over else None,
        remaining_attempts=session.remaining_attempts,
        guesses=[guess_out(g) for g in session.guesses],
        revealed_attributes=[
            RevealedAttributeOut(
                name=attr.name,
                value=attr.value if (attr.revealed or over) else None,
                icon=attr.icon,
                revealed=attr.revealed,
                type=attr.type,
            )
            for attr in session.revealed_attributes
        ],
        game_status=session.game_status,
        daily_book=book_out(daily_book) if (over and daily_book) else None,
    )


def stats_out(stats: Stats) -> StatsOut:
    return StatsOut(
        games_played=stats.games_played,
        games_won=stats.games_won,
        current_streak=stats.current_streak,
        max_streak=stats.max_streak,
        guess_distribution=list(stats.guess_distribution),
        last_played=stats.last_played,
    )
