"""
- Spins up temp test DB (SQLite in-memory) and seeds the bundled catalog
- Provide a db_session fixture and override FastAPI's get_db so routes use the test session.
- Provide a client fixture (TestClient(app)) that already has the DB override applied.
- Provide small in-memory books/catalog fixtures for the pure engine tests.
"""
import os
import pytest
from datetime import date
from typing import Generator

# Must be set before bookle.config is imported
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("BOOKLE_STORAGE", "database")
os.environ.setdefault("BOOKLE_STORAGE_FALLBACK", "false")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bookle.bootstrap_db import seed_books
from bookle.catalog import MemoryCatalog, load_books_csv
from bookle.db import Base, get_db
from bookle.domain import Book
from bookle.main import app
from bookle import models

TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"

@pytest.fixture(scope="session")
def engine():
    # StaticPool + check_same_thread=False lets Starlette's TestClient and SQLAlchemy
    # share ONE in-memory SQLite database across threads.
    engine = create_engine(
        TEST_DATABASE_URL,
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    db = TestingSessionLocal()
    try:
        seed_books(db, load_books_csv())
    finally:
        db.close()
    yield engine
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db_session(engine) -> Generator:
    """Provide a clean session per test with rollback."""
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    db = TestingSessionLocal()
    try:
        yield db
        db.rollback()
    finally:
        db.close()

@pytest.fixture(autouse=True)
def _clean_db(engine):
    """
    The service commits inside requests, so data would leak between tests.
    Delete game rows (and any books a test added) before each test.
    """
    with engine.begin() as conn:
        conn.execute(text("DELETE FROM game_sessions"))
        conn.execute(text("DELETE FROM player_stats"))
        conn.execute(text("DELETE FROM books WHERE id > 15"))
    yield

@pytest.fixture(autouse=True)
def override_dep(db_session):
    """Force the app to use our test session for every request."""
    def _get_db_for_tests():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db_for_tests
    yield
    app.dependency_overrides.clear()

@pytest.fixture
def client():
    return TestClient(app)

# ---------------- In-memory fixtures ----------------

def make_book(book_id: int, **overrides) -> Book:
    fields = dict(
        id=book_id,
        title=f"Book {book_id}",
        author=f"Author {book_id}",
        publication_year=1900 + book_id * 20,
        genre=f"Genre {book_id}",
        authors_country=f"Country {book_id}",
        pages=100 * book_id,
        original_language=f"Language {book_id}",
        historical_period=f"Period {book_id}",
    )
    fields.update(overrides)
    return Book(**fields)

@pytest.fixture
def books():
    """Ten books with no attribute values in common."""
    return [make_book(i) for i in range(1, 11)]

@pytest.fixture
def catalog(books):
    return MemoryCatalog(books)

@pytest.fixture
def fixed_today():
    return date(2024, 3, 5)

@pytest.fixture
def book_factory():
    return make_book
