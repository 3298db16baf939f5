# src/altar_api/db/postgres.py

import logging
from urllib.parse import urlparse

import psycopg
from psycopg.rows import dict_row

from ..settings import get_settings

logger = logging.getLogger(__name__)

# Флаг, чтобы не спамить логами
_LOGGED_DB_URL: bool = False


def mask_db_url(url: str) -> str:
    """
    Возвращает вариант DATABASE_URL без пароля и query:
    scheme://user@host:port/dbname

    Если распарсить не удалось - "<invalid DATABASE_URL>".
    """
    try:
        parsed = urlparse(url)
        port = f":{parsed.port}" if parsed.port else ""
    except ValueError:
        return "<invalid DATABASE_URL>"

    scheme = parsed.scheme or "postgresql"
    user = parsed.username or ""
    host = parsed.hostname or ""
    path = parsed.path or ""

    if not host:
        return "<invalid DATABASE_URL>"

    return f"{scheme}://{user}@{host}{port}{path}"


def _log_db_url_once(database_url: str) -> None:
    global _LOGGED_DB_URL

    if _LOGGED_DB_URL:
        return

    if not database_url:
        logger.warning("DATABASE_URL is empty; Postgres backend for altar_api is disabled.")
    else:
        logger.info("Using Postgres DATABASE_URL: %s", mask_db_url(database_url))
    _LOGGED_DB_URL = True


def get_pg_connection() -> psycopg.Connection:
    """
    Sync-подключение к Postgres с row_factory=dict_row.
    Если DATABASE_URL не задан - RuntimeError.
    """
    database_url = get_settings().database_url
    _log_db_url_once(database_url)

    if not database_url:
        raise RuntimeError("DATABASE_URL is not set for Postgres")

    return psycopg.connect(database_url, row_factory=dict_row)
