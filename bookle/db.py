"""
Single place to:
- Create a SQLAlchemy Engine from DATABASE_URL (see config.py)
- Create a Session factory (SessionLocal) for per-request DB sessions
- Provide get_db() dependency for FastAPI routes
"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from .config import settings

# SQLite refuses cross-thread use by default; FastAPI runs sync routes in a threadpool
connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

# pool_pre_ping=True = auto-detect dead connections (helps with long-lived processes).
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    echo=False,
    future=True,
    connect_args=connect_args,
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


class Base(DeclarativeBase):
    pass


# Opens a session per request and closes it even if the route raises
def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
