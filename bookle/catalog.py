"""
Book catalog: lookup by title, listing, and the daily book selector.

MemoryCatalog holds books loaded from the bundled CSV; the SQL-backed
catalog lives in repository.py and follows the same protocol.
"""

import csv
import logging
from datetime import date
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional, Protocol

from .domain import Book
from .errors import NoBooksAvailableError

logger = logging.getLogger(__name__)

DEFAULT_BOOKS_CSV = Path(__file__).resolve().parent / "data" / "books.csv"

SEARCH_MIN_CHARS = 2
SEARCH_LIMIT = 10


class Catalog(Protocol):
    def lookup_by_title(self, title: str) -> Optional[Book]: ...
    def list_all(self) -> List[Book]: ...
    def get(self, book_id: int) -> Optional[Book]: ...
    def add(self, fields: dict) -> Book: ...


class MemoryCatalog:
    """Books kept in a dict keyed by id. Titles compare case-insensitively."""

    def __init__(self, books: Optional[List[Book]] = None) -> None:
        self._books: Dict[int, Book] = {}
        self._lock = RLock()
        self._next_id = 1
        for book in books or []:
            self._books[book.id] = book
            self._next_id = max(self._next_id, book.id + 1)

    def lookup_by_title(self, title: str) -> Optional[Book]:
        wanted = title.strip().lower()
        with self._lock:
            for book in self._books.values():
                if book.title.lower() == wanted:
                    return book
        return None

    def list_all(self) -> List[Book]:
        with self._lock:
            return sorted(self._books.values(), key=lambda b: b.id)

    def get(self, book_id: int) -> Optional[Book]:
        with self._lock:
            return self._books.get(book_id)

    def add(self, fields: dict) -> Book:
        with self._lock:
            book = Book(id=self._next_id, **fields)
            self._books[book.id] = book
            self._next_id += 1
        logger.info("Added book %r with id %s", book.title, book.id)
        return book


def load_books_csv(path: Optional[Path] = None) -> List[Book]:
    """
    Read the catalog CSV. Expected header:
      id,title,author,publication_year,genre,authors_country,pages,
      original_language,historical_period[,image_url]
    """
    csv_path = Path(path) if path else DEFAULT_BOOKS_CSV
    books = []
    with csv_path.open(newline="", encoding="utf-8") as handle:
        for row in csv.DictReader(handle):
            pages = int(row["pages"])
            if pages <= 0:
                raise ValueError(f"Book {row['title']!r} has {pages} pages; pages must be positive.")
            books.append(
                Book(
                    id=int(row["id"]),
                    title=row["title"],
                    author=row["author"],
                    publication_year=int(row["publication_year"]),
                    genre=row["genre"],
                    authors_country=row["authors_country"],
                    pages=pages,
                    original_language=row["original_language"],
                    historical_period=row["historical_period"],
                    image_url=row.get("image_url") or None,
                )
            )
    logger.info("Loaded %d books from %s", len(books), csv_path)
    return books


def search_books(catalog: Catalog, query: str, limit: int = SEARCH_LIMIT) -> List[Book]:
    """Case-insensitive substring match on titles, for the search box."""
    needle = (query or "").strip().lower()
    if len(needle) < SEARCH_MIN_CHARS:
        return []
    matches = [book for book in catalog.list_all() if needle in book.title.lower()]
    return matches[:limit]

# ---------------- Daily selection ----------------

def parse_session_key(key: str):
    """
    A session key is an ISO date, optionally pinned to a book:
      "2024-03-05"     -> (date(2024, 3, 5), None)
      "2024-03-05_17"  -> (date(2024, 3, 5), 17)
    Raises ValueError for a malformed date.
    """
    day_part, _, book_part = key.partition("_")
    day = date.fromisoformat(day_part)
    pinned = int(book_part) if book_part.isdigit() else None
    return day, pinned


def book_for_date(key: str, catalog: Catalog) -> Book:
    """Same key, same catalog -> same book."""
    day, pinned = parse_session_key(key)

    if pinned is not None:
        book = catalog.get(pinned)
        if book is not None:
            logger.info("Using pinned book %r for %s", book.title, key)
            return book

    books = catalog.list_all()
    if not books:
        raise NoBooksAvailableError()

    date_num = day.year * 10000 + day.month * 100 + day.day
    return books[date_num % len(books)]
