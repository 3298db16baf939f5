# src/altar_api/decks/sqlite_repository.py

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Iterator

from .repository import DeckRepository, new_id

_DECK_COLUMNS = (
    "id",
    "user_id",
    "name",
    "description",
    "card_back_image_url",
    "thumbnail_url",
    "is_published",
    "publish_type",
    "created_at",
    "updated_at",
)

_CARD_COLUMNS = (
    "id",
    "deck_id",
    "card_number",
    "name",
    "front_image_url",
    "overall_meaning",
    "upright_interpretation",
    "reversed_interpretation",
    "history_lore",
    "symbolism",
    "notes",
    "created_at",
    "updated_at",
)

_SPREAD_COLUMNS = (
    "id",
    "deck_id",
    "name",
    "description",
    "card_count",
    "positions_json",
    "created_at",
)


class SQLiteDeckRepository(DeckRepository):
    """
    SQLite-репозиторий колод, карт и раскладов.

    Ожидает фабрику соединений, чтобы можно было подсовывать разные варианты
    (файл, временная БД в тестах и т.п.):

        conn_factory: Callable[[], sqlite3.Connection]
    """

    def __init__(self, conn_factory):
        self._conn_factory = conn_factory
        self._init_schema()

    # -------------------------------------------------------------------------
    # ИНИЦИАЛИЗАЦИЯ СХЕМЫ
    # -------------------------------------------------------------------------

    def _init_schema(self) -> None:
        with self._connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS altar_decks (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT NULL,
                    card_back_image_url TEXT NULL,
                    thumbnail_url TEXT NULL,
                    is_published INTEGER NOT NULL DEFAULT 0,
                    publish_type TEXT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS altar_cards (
                    id TEXT PRIMARY KEY,
                    deck_id TEXT NOT NULL REFERENCES altar_decks(id) ON DELETE CASCADE,
                    card_number INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    front_image_url TEXT NULL,
                    overall_meaning TEXT NULL,
                    upright_interpretation TEXT NULL,
                    reversed_interpretation TEXT NULL,
                    history_lore TEXT NULL,
                    symbolism TEXT NULL,
                    notes TEXT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (deck_id, card_number)
                );
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS altar_spreads (
                    id TEXT PRIMARY KEY,
                    deck_id TEXT NOT NULL REFERENCES altar_decks(id) ON DELETE CASCADE,
                    name TEXT NOT NULL,
                    description TEXT NULL,
                    card_count INTEGER NOT NULL,
                    positions_json TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
                """
            )

    # -------------------------------------------------------------------------
    # ВСПОМОГАТЕЛЬНЫЕ МЕТОДЫ
    # -------------------------------------------------------------------------

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Соединение с row_factory=Row; commit при успехе, close всегда."""
        conn = self._conn_factory()
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    @staticmethod
    def _upsert(
        conn: sqlite3.Connection,
        table: str,
        columns: tuple,
        row: Dict[str, Any],
    ) -> None:
        cols_sql = ", ".join(columns)
        placeholders = ", ".join(f":{c}" for c in columns)
        updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c != "id")
        conn.execute(
            f"INSERT INTO {table} ({cols_sql}) VALUES ({placeholders}) "
            f"ON CONFLICT(id) DO UPDATE SET {updates}",
            row,
        )

    def _delete(self, table: str, item_id: str) -> bool:
        with self._connection() as conn:
            cur = conn.execute(f"DELETE FROM {table} WHERE id = ?", (item_id,))
            return cur.rowcount > 0

    def _fetch_one(self, sql: str, params: tuple) -> sqlite3.Row | None:
        with self._connection() as conn:
            return conn.execute(sql, params).fetchone()

    def _fetch_all(self, sql: str, params: tuple) -> list:
        with self._connection() as conn:
            return conn.execute(sql, params).fetchall()

    @staticmethod
    def _row_to_deck(row) -> dict[str, Any]:
        deck = dict(row)
        deck["is_published"] = bool(deck.get("is_published"))
        return deck

    @staticmethod
    def _row_to_spread(row) -> dict[str, Any]:
        spread = dict(row)
        spread["positions"] = json.loads(spread.pop("positions_json") or "[]")
        return spread

    # -------------------------------------------------------------------------
    # DECKS
    # -------------------------------------------------------------------------

    def save_deck(self, data: dict[str, Any]) -> str:
        deck_id = data.get("id") or new_id()
        row = {c: data.get(c) for c in _DECK_COLUMNS}
        row["id"] = deck_id
        row["is_published"] = 1 if data.get("is_published") else 0

        with self._connection() as conn:
            self._upsert(conn, "altar_decks", _DECK_COLUMNS, row)
        return deck_id

    def get_deck(self, deck_id: str) -> dict[str, Any] | None:
        row = self._fetch_one("SELECT * FROM altar_decks WHERE id = ? LIMIT 1", (deck_id,))
        return self._row_to_deck(row) if row is not None else None

    def list_decks(self, user_id: str) -> list[dict[str, Any]]:
        rows = self._fetch_all(
            "SELECT * FROM altar_decks WHERE user_id = ? ORDER BY created_at ASC, rowid ASC",
            (user_id,),
        )
        return [self._row_to_deck(r) for r in rows]

    def delete_deck(self, deck_id: str) -> bool:
        return self._delete("altar_decks", deck_id)

    # -------------------------------------------------------------------------
    # CARDS
    # -------------------------------------------------------------------------

    def save_card(self, data: dict[str, Any]) -> str:
        card_id = data.get("id") or new_id()
        row = {c: data.get(c) for c in _CARD_COLUMNS}
        row["id"] = card_id

        with self._connection() as conn:
            self._upsert(conn, "altar_cards", _CARD_COLUMNS, row)
        return card_id

    def get_card(self, card_id: str) -> dict[str, Any] | None:
        row = self._fetch_one("SELECT * FROM altar_cards WHERE id = ? LIMIT 1", (card_id,))
        return dict(row) if row is not None else None

    def list_cards(self, deck_id: str) -> list[dict[str, Any]]:
        rows = self._fetch_all(
            "SELECT * FROM altar_cards WHERE deck_id = ? ORDER BY card_number ASC",
            (deck_id,),
        )
        return [dict(r) for r in rows]

    def delete_card(self, card_id: str) -> bool:
        return self._delete("altar_cards", card_id)

    # -------------------------------------------------------------------------
    # SPREADS
    # -------------------------------------------------------------------------

    def save_spread(self, data: dict[str, Any]) -> str:
        spread_id = data.get("id") or new_id()
        row = {c: data.get(c) for c in _SPREAD_COLUMNS}
        row["id"] = spread_id
        row["positions_json"] = json.dumps(data.get("positions") or [], ensure_ascii=False)

        with self._connection() as conn:
            self._upsert(conn, "altar_spreads", _SPREAD_COLUMNS, row)
        return spread_id

    def get_spread(self, spread_id: str) -> dict[str, Any] | None:
        row = self._fetch_one("SELECT * FROM altar_spreads WHERE id = ? LIMIT 1", (spread_id,))
        return self._row_to_spread(row) if row is not None else None

    def list_spreads(self, deck_id: str) -> list[dict[str, Any]]:
        rows = self._fetch_all(
            "SELECT * FROM altar_spreads WHERE deck_id = ? ORDER BY created_at ASC, rowid ASC",
            (deck_id,),
        )
        return [self._row_to_spread(r) for r in rows]

    def delete_spread(self, spread_id: str) -> bool:
        return self._delete("altar_spreads", spread_id)


__all__ = ["SQLiteDeckRepository"]
