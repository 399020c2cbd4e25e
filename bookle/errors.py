"""Exception hierarchy for the game core and its collaborators."""

from typing import Optional


class BookleError(Exception):
    """Base exception for all game errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# ---- User input errors (recoverable, session untouched) ----

class NotFoundError(BookleError):
    """The guessed title is not in the catalog."""

    def __init__(self, title: str):
        super().__init__("Book not found in database", {"title": title})
        self.title = title


class EmptyTitleError(BookleError):
    """A guess was submitted without a title."""

    def __init__(self, message: str = "Book title must not be empty"):
        super().__init__(message)


class GameAlreadyOverError(BookleError):
    """A guess was submitted to a session that is already won or lost."""

    def __init__(self, date: str, status: str):
        super().__init__("Game is already over", {"date": date, "status": status})
        self.date = date
        self.status = status


# ---- Configuration / data errors (fatal where detected) ----

class NoBooksAvailableError(BookleError):
    """The catalog is empty so no daily book can be chosen."""

    def __init__(self, message: str = "No books available"):
        super().__init__(message)


class ConfigurationError(BookleError):
    """An environment setting has an invalid value."""


# ---- Persistence errors ----

class StorageError(BookleError):
    """A storage backend failed to load or save."""
