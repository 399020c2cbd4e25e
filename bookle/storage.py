"""
Session and stats persistence.

Every backend (memory here, SQL in repository.py, hosted REST in
hosted_client.py) exposes the same four calls, so the service never
needs to know which one it is talking to.
"""

import logging
from threading import Lock, RLock
from typing import Callable, Dict, Optional, Protocol, Tuple, Type

import requests
from sqlalchemy.exc import SQLAlchemyError

from .domain import Session, Stats
from .errors import StorageError

logger = logging.getLogger(__name__)


class Storage(Protocol):
    def load_session(self, day: str) -> Optional[Session]: ...
    def save_session(self, session: Session) -> Session: ...
    def load_stats(self, player_id: int) -> Optional[Stats]: ...
    def save_stats(self, stats: Stats) -> Stats: ...


class MemoryStorage:
    """
    In-memory store.
    Holds serialized copies so callers can never mutate stored state
    without going through save_*.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, dict] = {}
        self._stats: Dict[int, dict] = {}
        self._lock = RLock()

    def load_session(self, day: str) -> Optional[Session]:
        with self._lock:
            raw = self._sessions.get(day)
        return Session.from_dict(raw) if raw is not None else None

    def save_session(self, session: Session) -> Session:
        with self._lock:
            self._sessions[session.date] = session.to_dict()
        return session

    def load_stats(self, player_id: int) -> Optional[Stats]:
        with self._lock:
            raw = self._stats.get(player_id)
        return Stats.from_dict(raw) if raw is not None else None

    def save_stats(self, stats: Stats) -> Stats:
        with self._lock:
            self._stats[stats.player_id] = stats.to_dict()
        return stats

    def reset(self) -> None:
        with self._lock:
            self._sessions.clear()
            self._stats.clear()


RECOVERABLE_ERRORS: Tuple[Type[BaseException], ...] = (
    StorageError,
    SQLAlchemyError,
    requests.RequestException,
)


class FallbackSwitch:
    """
    Remembers that the primary backend has failed.
    Share one instance between wrappers built per request so the switch
    survives the request that tripped it.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._tripped = False

    @property
    def tripped(self) -> bool:
        with self._lock:
            return self._tripped

    def trip(self) -> bool:
        """Returns True only for the caller that actually flipped it."""
        with self._lock:
            if self._tripped:
                return False
            self._tripped = True
            return True

    def reset(self) -> None:
        with self._lock:
            self._tripped = False


class FallbackStorage:
    """
    Wraps a primary backend. The first time a call on the primary fails
    with a storage error, switch to the secondary for good and retry the
    call there.
    """

    def __init__(
        self,
        primary: Storage,
        secondary: Storage,
        recoverable=RECOVERABLE_ERRORS,
        switch: Optional[FallbackSwitch] = None,
    ) -> None:
        self.primary = primary
        self.secondary = secondary
        self.recoverable = recoverable
        self.switch = switch if switch is not None else FallbackSwitch()

    @property
    def using_fallback(self) -> bool:
        return self.switch.tripped

    def _call(self, operation: str, invoke: Callable[[Storage], object]):
        if self.switch.tripped:
            return invoke(self.secondary)
        try:
            return invoke(self.primary)
        except self.recoverable as exc:
            if self.switch.trip():
                logger.warning(
                    "Storage %s failed on %s (%s); switching to %s",
                    type(self.primary).__name__, operation, exc, type(self.secondary).__name__,
                )
            return invoke(self.secondary)

    def load_session(self, day: str) -> Optional[Session]:
        return self._call("load_session", lambda s: s.load_session(day))

    def save_session(self, session: Session) -> Session:
        return self._call("save_session", lambda s: s.save_session(session))

    def load_stats(self, player_id: int) -> Optional[Stats]:
        return self._call("load_stats", lambda s: s.load_stats(player_id))

    def save_stats(self, stats: Stats) -> Stats:
        return self._call("save_stats", lambda s: s.save_stats(stats))
