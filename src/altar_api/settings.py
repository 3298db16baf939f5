# src/altar_api/settings.py

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    db_backend: str
    database_url: str
    sqlite_path: str
    dev_mode: bool
    cors_origins: list
    session_ttl_minutes: int


@lru_cache
def get_settings() -> Settings:
    """
    Лёгкая обёртка настроек Altar API, всё читается из ENV один раз.

    ALTAR_DB_BACKEND  - memory | sqlite | postgres (по умолчанию memory)
    DATABASE_URL      - нужен только для postgres
    ALTAR_DEV_MODE=1  - dev-авторизация без настоящего логина
    """
    origins = os.getenv("ALTAR_CORS_ORIGINS", "*").strip() or "*"

    try:
        ttl = int(os.getenv("ALTAR_SESSION_TTL_MINUTES", "240"))
    except ValueError:
        ttl = 240

    return Settings(
        db_backend=os.getenv("ALTAR_DB_BACKEND", "memory").strip().lower(),
        database_url=os.getenv("DATABASE_URL", "").strip(),
        sqlite_path=os.getenv("ALTAR_SQLITE_PATH", "altar.sqlite3").strip(),
        dev_mode=os.getenv("ALTAR_DEV_MODE") == "1",
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        session_ttl_minutes=ttl,
    )
