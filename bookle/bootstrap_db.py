"""
Dev convenience: create tables if they don't exist and seed the catalog.
Call this at startup in local/dev only
"""

import logging
from typing import List

from sqlalchemy import func, select
from sqlalchemy.orm import Session as DBSession

from .db import engine, Base
from .domain import Book
from .models import Book as BookORM

logger = logging.getLogger(__name__)


def create_all():
    Base.metadata.create_all(bind=engine)


def seed_books(db: DBSession, books: List[Book]) -> int:
    """Fill an empty books table. Returns how many rows were inserted."""
    existing = db.execute(select(func.count()).select_from(BookORM)).scalar_one()
    if existing:
        return 0

    for book in books:
        db.add(BookORM(
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
        ))
    db.commit()
    logger.info("Seeded %d books", len(books))
    return len(books)
