"""
Pure game logic (no HTTP, no storage).

A guess is scored attribute by attribute against the daily book:
- publication year: exact -> correct, within 10 years -> partial
- pages: exact -> correct, within 15% of the target -> partial
- every other attribute: exact match or nothing

After each accepted guess one more attribute of the daily book is revealed,
in a fixed priority order, whatever the guess looked like.
"""

import logging
from datetime import date
from typing import List, Optional

from .catalog import Catalog
from .domain import AttributeResult, Book, Guess, RevealedAttribute, Session, Stats, pad_distribution
from .errors import EmptyTitleError, GameAlreadyOverError, NotFoundError
from .types import MAX_ATTEMPTS, REVEAL_ORDER, AttributeStatus

logger = logging.getLogger(__name__)

YEAR_PARTIAL_WINDOW = 10
PAGES_PARTIAL_RATIO = 0.15

# (display name, Guess key, icon, type) in the order the board shows them
ATTRIBUTE_LAYOUT = (
    ("Publication Year", "publicationYear", "calendar_today", "date"),
    ("Genre", "genre", "category", "text"),
    ("Author's Country", "authorsCountry", "public", "text"),
    ("Pages", "pages", "menu_book", "number"),
    ("Author", "author", "person", "text"),
    ("Original Language", "originalLanguage", "translate", "text"),
    ("Historical Period", "historicalPeriod", "history_edu", "text"),
)

# ---------------- Attribute comparison ----------------

def compare_exact(guessed: str, target: str) -> AttributeStatus:
    """Case-sensitive equality; there is no partial tier."""
    return "correct" if guessed == target else "incorrect"


def compare_year(guessed: int, target: int) -> AttributeStatus:
    """
    Example:
      target 1960, guessed 1955 -> partial  (5 years off)
      target 1960, guessed 1940 -> incorrect (20 years off)
    """
    diff = abs(guessed - target)
    if diff == 0:
        return "correct"
    if diff <= YEAR_PARTIAL_WINDOW:
        return "partial"
    return "incorrect"


def compare_pages(guessed: int, target: int) -> AttributeStatus:
    """
    Example:
      target 300, guessed 340 -> partial   (13.3% off)
      target 300, guessed 400 -> incorrect (33.3% off)

    Catalog books always have pages > 0; a zero target only ever matches
    exactly instead of dividing by zero.
    """
    diff = abs(guessed - target)
    if diff == 0:
        return "correct"
    if target <= 0:
        return "incorrect"
    if diff / target <= PAGES_PARTIAL_RATIO:
        return "partial"
    return "incorrect"


COMPARATORS = {
    "publicationYear": compare_year,
    "genre": compare_exact,
    "authorsCountry": compare_exact,
    "pages": compare_pages,
    "author": compare_exact,
    "originalLanguage": compare_exact,
    "historicalPeriod": compare_exact,
}

# ---------------- Guess evaluation ----------------

def score_book(guessed: Book, target: Book) -> Guess:
    """Build the Guess record for an already resolved book."""
    attributes = {}
    for key, compare in COMPARATORS.items():
        guessed_value = guessed.attribute(key)
        attributes[key] = AttributeResult(
            value=guessed_value,
            status=compare(guessed_value, target.attribute(key)),
        )

    return Guess(
        title=guessed.title,
        book_id=guessed.id,
        # Compare catalog ids; titles may collide
        is_correct=guessed.id == target.id,
        attributes=attributes,
        image_url=guessed.image_url,
    )


def evaluate_guess(raw_title: str, target: Book, catalog: Catalog) -> Guess:
    title = (raw_title or "").strip()
    if not title:
        raise EmptyTitleError()

    guessed = catalog.lookup_by_title(title)
    if guessed is None:
        raise NotFoundError(title)

    return score_book(guessed, target)

# ---------------- Reveal policy ----------------

def reveal_next(attributes: List[RevealedAttribute], guess: Optional[Guess] = None) -> Optional[RevealedAttribute]:
    """
    Flip the highest-priority hidden attribute and return it.
    Returns None when everything is already revealed.

    The guess is accepted for symmetry with the rest of the pipeline but does
    not influence the choice: one attribute is revealed per guess, close or not.
    """
    by_name = {attr.name: attr for attr in attributes}
    for name in REVEAL_ORDER:
        attr = by_name.get(name)
        if attr is not None and not attr.revealed:
            attr.revealed = True
            return attr

    # Anything outside the priority list still gets revealed eventually
    for attr in attributes:
        if not attr.revealed:
            attr.revealed = True
            return attr
    return None

# ---------------- Session state machine ----------------

def session_id_for(day: str) -> str:
    return f"game-{day}"


def new_session(day: str, book: Book) -> Session:
    """Fresh active session for a calendar day with every attribute hidden."""
    attributes = [
        RevealedAttribute(name=name, value=book.attribute(key), icon=icon, type=attr_type)
        for name, key, icon, attr_type in ATTRIBUTE_LAYOUT
    ]
    return Session(
        id=session_id_for(day),
        date=day,
        daily_book_id=book.id,
        remaining_attempts=MAX_ATTEMPTS,
        guesses=[],
        revealed_attributes=attributes,
        game_status="active",
    )


def apply_guess(session: Session, raw_title: str, target: Book, catalog: Catalog) -> Guess:
    """
    Apply one guess to an active session in place.

    Everything that can fail (game over, empty or unknown title) is checked
    before the session is touched, so a rejected guess leaves it unchanged.
    """
    if session.is_over:
        raise GameAlreadyOverError(session.date, session.game_status)

    guess = evaluate_guess(raw_title, target, catalog)

    session.remaining_attempts = max(session.remaining_attempts - 1, 0)
    session.guesses.append(guess)

    revealed = reveal_next(session.revealed_attributes, guess)
    if revealed is not None:
        logger.debug("Session %s revealed %s", session.id, revealed.name)

    if guess.is_correct:
        session.game_status = "won"
    elif session.remaining_attempts <= 0:
        session.game_status = "lost"

    return guess

# ---------------- Stats ----------------

def accumulate_stats(session: Session, stats: Optional[Stats], player_id: int, today: date) -> Stats:
    """
    Fold one finished session into the player's stats and return the result.
    The input stats object is left as it was.

    Calling this twice for the same session counts it twice; the caller owns
    the once-per-session guard (Session.stats_recorded).
    """
    if not session.is_over:
        raise ValueError(f"Session {session.id} is still active; stats are only updated for finished games.")

    if stats is None:
        updated = Stats(player_id=player_id)
    else:
        updated = Stats(
            player_id=stats.player_id,
            games_played=stats.games_played,
            games_won=stats.games_won,
            current_streak=stats.current_streak,
            max_streak=stats.max_streak,
            guess_distribution=pad_distribution(stats.guess_distribution),
            last_played=stats.last_played,
        )

    updated.games_played += 1
    if session.game_status == "won":
        updated.games_won += 1
        updated.current_streak += 1
        updated.max_streak = max(updated.max_streak, updated.current_streak)
        attempts = MAX_ATTEMPTS - session.remaining_attempts
        updated.guess_distribution[attempts - 1] += 1
    else:
        updated.current_streak = 0

    updated.last_played = today
    return updated
