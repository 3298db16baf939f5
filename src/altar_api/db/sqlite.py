# src/altar_api/db/sqlite.py

import logging
import sqlite3
from typing import Callable

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[], sqlite3.Connection]


def make_connection_factory(db_path: str) -> ConnectionFactory:
    """
    Фабрика соединений для SQLite-репозиториев.

    Каждое обращение открывает своё соединение; foreign_keys включаем
    явно, иначе ON DELETE CASCADE в SQLite не работает.
    """
    logger.info("Using SQLite database: %s", db_path)

    def _connect() -> sqlite3.Connection:
        conn = sqlite3.connect(db_path)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    return _connect
