"""
Single place to read settings from the environment.

Values come from real env vars first and a local .env second
(dev convenience; in prod the platform injects env vars).
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .types import StorageBackend

load_dotenv()

STORAGE_BACKENDS = ("database", "memory", "hosted")
TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    app_env: str = "local"
    database_url: str = "sqlite:///./bookle.db"
    storage_backend: StorageBackend = "database"
    storage_fallback: bool = True
    hosted_url: Optional[str] = None
    hosted_key: str = ""
    hosted_timeout: float = 5.0
    books_csv: Optional[str] = None
    player_id: int = 1
    log_level: str = "INFO"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer", {"value": raw})


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number", {"value": raw})


def load_settings() -> Settings:
    storage = os.getenv("BOOKLE_STORAGE", "database").lower()
    if storage not in STORAGE_BACKENDS:
        raise ConfigurationError(
            "BOOKLE_STORAGE must be one of database, memory, hosted", {"value": storage}
        )

    hosted_url = os.getenv("HOSTED_URL") or None
    if storage == "hosted" and not hosted_url:
        raise ConfigurationError("HOSTED_URL is required when BOOKLE_STORAGE=hosted")

    return Settings(
        app_env=os.getenv("APP_ENV", "local"),
        database_url=os.getenv("DATABASE_URL") or "sqlite:///./bookle.db",
        storage_backend=storage,
        storage_fallback=os.getenv("BOOKLE_STORAGE_FALLBACK", "true").lower() in TRUE_VALUES,
        hosted_url=hosted_url,
        hosted_key=os.getenv("HOSTED_KEY", ""),
        hosted_timeout=_float_env("HOSTED_TIMEOUT", 5.0),
        books_csv=os.getenv("BOOKS_CSV") or None,
        player_id=_int_env("PLAYER_ID", 1),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


settings = load_settings()
