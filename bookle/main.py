'''
Bookle API: guess the book of the day

Endpoints:
GET  /api/books            -> catalog titles (for the search box)
GET  /api/books/search?q=  -> up to 10 titles containing q
POST /api/books            -> add a book to the catalog
GET  /api/game             -> today's game (created on first access)
POST /api/game/guess       -> submit a guess
GET  /api/stats            -> the player's stats

Storage is chosen by BOOKLE_STORAGE (database | memory | hosted); with
BOOKLE_STORAGE_FALLBACK on, a failing backend is swapped for the
in-memory one instead of failing the request.
'''

import logging
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .bootstrap_db import create_all, seed_books
from .catalog import Catalog, MemoryCatalog, load_books_csv, search_books
from .config import settings
from .db import SessionLocal, get_db    # SQLAlchemy Session dependency
from .errors import (
    EmptyTitleError,
    GameAlreadyOverError,
    NoBooksAvailableError,
    NotFoundError,
)
from .hosted_client import HostedStorage
from .logging_config import setup_logging
from .repository import DBCatalog, DBStorage
from .schemas import (
    ISO_DAY_PATTERN,
    BookIn,
    BookOut,
    BookSummaryOut,
    GameStateOut,
    GuessRequest,
    GuessResponse,
    StatsOut,
    book_out,
    game_state_out,
    guess_out,
    stats_out,
)
from .service import GameService
from .storage import FallbackStorage, FallbackSwitch, MemoryStorage, Storage

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Bookle API", version="1.0.0")

# Allow everything in dev so the docs and front-end work easily
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

# Process-wide: the memory backend and the fallback target must outlive a request
memory_storage = MemoryStorage()
# Once the primary backend fails, every later request goes to memory_storage
storage_switch = FallbackSwitch()
_memory_catalog: Optional[MemoryCatalog] = None


def get_memory_catalog() -> MemoryCatalog:
    global _memory_catalog
    if _memory_catalog is None:
        _memory_catalog = MemoryCatalog(load_books_csv(settings.books_csv))
    return _memory_catalog


# --- Dev convenience: auto-create tables and seed the catalog locally ---
if settings.app_env == "local" and settings.storage_backend == "database":
    @app.on_event("startup")
    def _dev_create_tables():
        create_all()
        db = SessionLocal()
        try:
            seed_books(db, load_books_csv(settings.books_csv))
        finally:
            db.close()

# Per-request collaborators (bound to the current DB session when needed)

def get_catalog(db = Depends(get_db)) -> Catalog:
    if settings.storage_backend == "database":
        return DBCatalog(db)
    return get_memory_catalog()


def get_storage(db = Depends(get_db)) -> Storage:
    if settings.storage_backend == "memory":
        return memory_storage

    if settings.storage_backend == "hosted":
        primary = HostedStorage(settings.hosted_url, settings.hosted_key, settings.hosted_timeout)
    else:
        primary = DBStorage(db)

    if settings.storage_fallback:
        return FallbackStorage(primary, memory_storage, switch=storage_switch)
    return primary


def get_service(
    catalog: Catalog = Depends(get_catalog),
    storage: Storage = Depends(get_storage),
) -> GameService:
    return GameService(catalog, storage, player_id=settings.player_id)

# ---------------- Routes ----------------

@app.get("/api/books", response_model=List[BookSummaryOut], summary="List catalog titles")
def list_books(catalog: Catalog = Depends(get_catalog)) -> List[BookSummaryOut]:
    return [BookSummaryOut(id=b.id, title=b.title, author=b.author) for b in catalog.list_all()]


@app.get("/api/books/search", response_model=List[BookSummaryOut], summary="Search titles")
def search(q: str = "", catalog: Catalog = Depends(get_catalog)) -> List[BookSummaryOut]:
    return [BookSummaryOut(id=b.id, title=b.title, author=b.author) for b in search_books(catalog, q)]


@app.post("/api/books", response_model=BookOut, status_code=201, summary="Add a book")
def add_book(payload: BookIn, catalog: Catalog = Depends(get_catalog)) -> BookOut:
    if catalog.lookup_by_title(payload.title) is not None:
        raise HTTPException(status_code=409, detail="A book with this title already exists")
    return book_out(catalog.add(payload.model_dump()))


@app.get("/api/game", response_model=GameStateOut, summary="Get the day's game")
def get_game(
    date: Optional[str] = Query(None, pattern=ISO_DAY_PATTERN),
    service: GameService = Depends(get_service),
) -> GameStateOut:
    try:
        view = service.get_game(date)
    except NoBooksAvailableError as exc:
        logger.error("Cannot start a game: %s", exc)
        raise HTTPException(status_code=503, detail=exc.message)
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve))
    return game_state_out(view.session, view.revealed_book)


@app.post("/api/game/guess", response_model=GuessResponse, summary="Submit a guess")
def submit_guess(
    payload: GuessRequest,
    service: GameService = Depends(get_service),
) -> GuessResponse:
    try:
        outcome = service.submit_guess(payload.book_title, payload.date)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    except EmptyTitleError as exc:
        raise HTTPException(status_code=400, detail=exc.message)
    except GameAlreadyOverError as exc:
        raise HTTPException(status_code=409, detail=exc.message)
    except NoBooksAvailableError as exc:
        logger.error("Cannot start a game: %s", exc)
        raise HTTPException(status_code=503, detail=exc.message)
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve))

    session = outcome.session
    return GuessResponse(
        guess_result=guess_out(outcome.guess),
        game_state=game_state_out(session, outcome.revealed_book),
        daily_book=book_out(outcome.revealed_book) if outcome.revealed_book else None,
        note=(f"Game {session.game_status}. No more guesses allowed."
              if session.is_over else None),
    )


@app.get("/api/stats", response_model=StatsOut, summary="Get the player's stats")
def get_stats(service: GameService = Depends(get_service)) -> StatsOut:
    return stats_out(service.get_stats())

# ---- Static hosting for the frontend (when a build is present) ----
STATIC_DIR = Path(__file__).resolve().parent / "static"
if STATIC_DIR.exists():
    app.mount("/", StaticFiles(directory=str(STATIC_DIR), html=True), name="static")
