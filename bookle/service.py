"""
Game service: ties the engine to a catalog and a storage backend.

Each guess is one load-mutate-save unit under a per-day lock so two tabs
guessing at once cannot lose an update. Stats are credited at most once
per finished session: Session.stats_recorded is persisted before the
stats themselves.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from threading import Lock, RLock
from typing import Callable, Dict, Iterator, List, Optional

from .catalog import Catalog, book_for_date
from .domain import Book, Guess, Session, Stats
from .engine import accumulate_stats, apply_guess, new_session
from .errors import NoBooksAvailableError
from .storage import RECOVERABLE_ERRORS, Storage

logger = logging.getLogger(__name__)


class SessionLocks:
    """
    One lock per session key, shared by every service in the process.
    An entry lives only while some caller holds or waits on it.
    """

    def __init__(self) -> None:
        self._guard = Lock()
        # key -> [lock, callers holding or waiting]
        self._locks: Dict[str, List] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def __call__(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


session_locks = SessionLocks()
# Stats are per player, not per day
stats_lock = RLock()


@dataclass
class GuessOutcome:
    guess: Guess
    session: Session
    # Only set once the session is won or lost
    revealed_book: Optional[Book] = None


@dataclass
class GameView:
    session: Session
    revealed_book: Optional[Book] = None


class GameService:
    def __init__(
        self,
        catalog: Catalog,
        storage: Storage,
        player_id: int = 1,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.catalog = catalog
        self.storage = storage
        self.player_id = player_id
        self.today = today

    def today_key(self) -> str:
        return self.today().isoformat()

    # --- Sessions ---

    def _load_or_create(self, day: str) -> Session:
        session = self.storage.load_session(day)
        if session is None:
            book = book_for_date(day, self.catalog)
            session = self.storage.save_session(new_session(day, book))
            logger.info("Created session %s", session.id)
        return session

    def _daily_book(self, session: Session) -> Book:
        book = self.catalog.get(session.daily_book_id)
        if book is None:
            # Catalog reloaded without the book this session was built on
            raise NoBooksAvailableError(f"Daily book {session.daily_book_id} is missing from the catalog")
        return book

    def get_game(self, day: Optional[str] = None) -> GameView:
        day = day or self.today_key()
        with session_locks(day):
            session = self._load_or_create(day)
            if session.is_over and not session.stats_recorded:
                self._record_stats_once(session)
        revealed = self._daily_book(session) if session.is_over else None
        return GameView(session=session, revealed_book=revealed)

    def submit_guess(self, raw_title: str, day: Optional[str] = None) -> GuessOutcome:
        """
        Apply one guess to the day's session and persist it.
        NotFoundError / EmptyTitleError / GameAlreadyOverError leave the
        stored session exactly as it was.

        Once the guess is saved it stands. If crediting the stats then fails
        the outcome is still returned and the next get_game retries.
        """
        day = day or self.today_key()
        with session_locks(day):
            session = self._load_or_create(day)
            target = self._daily_book(session)

            guess = apply_guess(session, raw_title, target, self.catalog)
            self.storage.save_session(session)
            logger.info(
                "Session %s: guessed %r (%s), %d attempts left, status %s",
                session.id, guess.title, "correct" if guess.is_correct else "wrong",
                session.remaining_attempts, session.game_status,
            )

            if not session.is_over:
                return GuessOutcome(guess=guess, session=session)

            try:
                self._record_stats_once(session)
            except RECOVERABLE_ERRORS as exc:
                logger.warning("Stats for session %s not recorded: %s", session.id, exc)
            return GuessOutcome(guess=guess, session=session, revealed_book=target)

    # --- Stats ---

    def _record_stats_once(self, session: Session) -> None:
        """
        Credit a finished session to the player's stats.

        The flag is saved first. A failed flag write leaves both records
        untouched (get_game retries later); a failed stats write after it
        loses this one credit but can never count the session twice.
        """
        # Caller holds the session lock
        if session.stats_recorded:
            return
        with stats_lock:
            current = self.storage.load_stats(self.player_id)
            updated = accumulate_stats(session, current, self.player_id, self.today())

            session.stats_recorded = True
            try:
                self.storage.save_session(session)
            except Exception:
                session.stats_recorded = False
                raise
            self.storage.save_stats(updated)
        logger.info(
            "Recorded %s for player %s (streak %d)",
            session.game_status, self.player_id, updated.current_streak,
        )

    def get_stats(self) -> Stats:
        stats = self.storage.load_stats(self.player_id)
        return stats if stats is not None else Stats(player_id=self.player_id)
