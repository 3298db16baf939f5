# src/altar_api/decks/postgres_repository.py

import json
import logging
from typing import Any, Dict

from psycopg.types.json import Jsonb

from .repository import DeckRepository, new_id
from ..db.postgres import get_pg_connection

logger = logging.getLogger(__name__)


def _to_iso(value: Any) -> Any:
    """TIMESTAMPTZ из psycopg приходит datetime, наружу отдаём ISO-строку."""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def _normalize(row: Dict[str, Any] | None) -> Dict[str, Any] | None:
    if row is None:
        return None
    item = dict(row)
    for key in ("created_at", "updated_at"):
        if key in item:
            item[key] = _to_iso(item[key])
    return item


class PostgresDeckRepository(DeckRepository):
    def __init__(self) -> None:
        # Пока без пула, на каждую операцию своё подключение.
        logger.info("PostgresDeckRepository initialized")
        self._init_schema()

    # -------------------------------------------------------------------------
    # Инициализация схемы
    # -------------------------------------------------------------------------
    def _init_schema(self) -> None:
        decks_sql = """
        CREATE TABLE IF NOT EXISTS altar_decks (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            name TEXT NOT NULL,
            description TEXT NULL,
            card_back_image_url TEXT NULL,
            thumbnail_url TEXT NULL,
            is_published BOOLEAN NOT NULL DEFAULT FALSE,
            publish_type TEXT NULL,
            created_at TIMESTAMPTZ NOT NULL,
            updated_at TIMESTAMPTZ NOT NULL
        );
        """

        cards_sql = """
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
            created_at TIMESTAMPTZ NOT NULL,
            updated_at TIMESTAMPTZ NOT NULL,
            UNIQUE (deck_id, card_number)
        );
        """

        spreads_sql = """
        CREATE TABLE IF NOT EXISTS altar_spreads (
            id TEXT PRIMARY KEY,
            deck_id TEXT NOT NULL REFERENCES altar_decks(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            description TEXT NULL,
            card_count INTEGER NOT NULL,
            positions JSONB NOT NULL,
            created_at TIMESTAMPTZ NOT NULL
        );
        """

        try:
            with get_pg_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(decks_sql)
                    cur.execute(cards_sql)
                    cur.execute(spreads_sql)
                conn.commit()
            logger.info("PostgresDeckRepository schema initialized/ensured")
        except Exception as exc:
            logger.exception("Failed to initialize PostgresDeckRepository schema: %s", exc)
            raise

    # -------------------------------------------------------------------------
    # Общие helpers
    # -------------------------------------------------------------------------
    def _fetch_one(self, sql: str, params: tuple) -> Dict[str, Any] | None:
        with get_pg_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return _normalize(cur.fetchone())

    def _fetch_all(self, sql: str, params: tuple) -> list[dict[str, Any]]:
        with get_pg_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return [_normalize(r) for r in cur.fetchall()]

    def _execute(self, sql: str, params: Dict[str, Any] | tuple) -> int:
        with get_pg_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                rowcount = cur.rowcount
            conn.commit()
        return rowcount

    # -------------------------------------------------------------------------
    # DECKS
    # -------------------------------------------------------------------------
    def save_deck(self, data: dict[str, Any]) -> str:
        sql = """
        INSERT INTO altar_decks (
            id, user_id, name, description, card_back_image_url, thumbnail_url,
            is_published, publish_type, created_at, updated_at
        )
        VALUES (
            %(id)s, %(user_id)s, %(name)s, %(description)s,
            %(card_back_image_url)s, %(thumbnail_url)s,
            %(is_published)s, %(publish_type)s, %(created_at)s, %(updated_at)s
        )
        ON CONFLICT (id) DO UPDATE SET
            name = EXCLUDED.name,
            description = EXCLUDED.description,
            card_back_image_url = EXCLUDED.card_back_image_url,
            thumbnail_url = EXCLUDED.thumbnail_url,
            is_published = EXCLUDED.is_published,
            publish_type = EXCLUDED.publish_type,
            updated_at = EXCLUDED.updated_at;
        """
        payload: Dict[str, Any] = {
            "id": data.get("id") or new_id(),
            "user_id": data["user_id"],
            "name": data["name"],
            "description": data.get("description"),
            "card_back_image_url": data.get("card_back_image_url"),
            "thumbnail_url": data.get("thumbnail_url"),
            "is_published": bool(data.get("is_published")),
            "publish_type": data.get("publish_type"),
            "created_at": data["created_at"],
            "updated_at": data["updated_at"],
        }
        self._execute(sql, payload)
        return payload["id"]

    def get_deck(self, deck_id: str) -> dict[str, Any] | None:
        return self._fetch_one("SELECT * FROM altar_decks WHERE id = %s", (deck_id,))

    def list_decks(self, user_id: str) -> list[dict[str, Any]]:
        return self._fetch_all(
            "SELECT * FROM altar_decks WHERE user_id = %s ORDER BY created_at ASC",
            (user_id,),
        )

    def delete_deck(self, deck_id: str) -> bool:
        return self._execute("DELETE FROM altar_decks WHERE id = %s", (deck_id,)) > 0

    # -------------------------------------------------------------------------
    # CARDS
    # -------------------------------------------------------------------------
    def save_card(self, data: dict[str, Any]) -> str:
        sql = """
        INSERT INTO altar_cards (
            id, deck_id, card_number, name, front_image_url,
            overall_meaning, upright_interpretation, reversed_interpretation,
            history_lore, symbolism, notes, created_at, updated_at
        )
        VALUES (
            %(id)s, %(deck_id)s, %(card_number)s, %(name)s, %(front_image_url)s,
            %(overall_meaning)s, %(upright_interpretation)s, %(reversed_interpretation)s,
            %(history_lore)s, %(symbolism)s, %(notes)s, %(created_at)s, %(updated_at)s
        )
        ON CONFLICT (id) DO UPDATE SET
            card_number = EXCLUDED.card_number,
            name = EXCLUDED.name,
            front_image_url = EXCLUDED.front_image_url,
            overall_meaning = EXCLUDED.overall_meaning,
            upright_interpretation = EXCLUDED.upright_interpretation,
            reversed_interpretation = EXCLUDED.reversed_interpretation,
            history_lore = EXCLUDED.history_lore,
            symbolism = EXCLUDED.symbolism,
            notes = EXCLUDED.notes,
            updated_at = EXCLUDED.updated_at;
        """
        payload: Dict[str, Any] = {
            "id": data.get("id") or new_id(),
            "deck_id": data["deck_id"],
            "card_number": data["card_number"],
            "name": data["name"],
            "front_image_url": data.get("front_image_url"),
            "overall_meaning": data.get("overall_meaning"),
            "upright_interpretation": data.get("upright_interpretation"),
            "reversed_interpretation": data.get("reversed_interpretation"),
            "history_lore": data.get("history_lore"),
            "symbolism": data.get("symbolism"),
            "notes": data.get("notes"),
            "created_at": data["created_at"],
            "updated_at": data["updated_at"],
        }
        self._execute(sql, payload)
        return payload["id"]

    def get_card(self, card_id: str) -> dict[str, Any] | None:
        return self._fetch_one("SELECT * FROM altar_cards WHERE id = %s", (card_id,))

    def list_cards(self, deck_id: str) -> list[dict[str, Any]]:
        return self._fetch_all(
            "SELECT * FROM altar_cards WHERE deck_id = %s ORDER BY card_number ASC",
            (deck_id,),
        )

    def delete_card(self, card_id: str) -> bool:
        return self._execute("DELETE FROM altar_cards WHERE id = %s", (card_id,)) > 0

    # -------------------------------------------------------------------------
    # SPREADS
    # -------------------------------------------------------------------------
    def save_spread(self, data: dict[str, Any]) -> str:
        sql = """
        INSERT INTO altar_spreads (
            id, deck_id, name, description, card_count, positions, created_at
        )
        VALUES (
            %(id)s, %(deck_id)s, %(name)s, %(description)s,
            %(card_count)s, %(positions)s, %(created_at)s
        )
        ON CONFLICT (id) DO UPDATE SET
            name = EXCLUDED.name,
            description = EXCLUDED.description,
            card_count = EXCLUDED.card_count,
            positions = EXCLUDED.positions;
        """
        payload: Dict[str, Any] = {
            "id": data.get("id") or new_id(),
            "deck_id": data["deck_id"],
            "name": data["name"],
            "description": data.get("description"),
            "card_count": data["card_count"],
            "positions": Jsonb(data.get("positions") or []),
            "created_at": data["created_at"],
        }
        self._execute(sql, payload)
        return payload["id"]

    def _spread_from_row(self, row: Dict[str, Any] | None) -> Dict[str, Any] | None:
        if row is None:
            return None
        positions = row.get("positions")
        # JSONB обычно приходит уже списком, но строку тоже переживём
        if isinstance(positions, str):
            row["positions"] = json.loads(positions)
        return row

    def get_spread(self, spread_id: str) -> dict[str, Any] | None:
        row = self._fetch_one("SELECT * FROM altar_spreads WHERE id = %s", (spread_id,))
        return self._spread_from_row(row)

    def list_spreads(self, deck_id: str) -> list[dict[str, Any]]:
        rows = self._fetch_all(
            "SELECT * FROM altar_spreads WHERE deck_id = %s ORDER BY created_at ASC",
            (deck_id,),
        )
        return [self._spread_from_row(r) for r in rows]

    def delete_spread(self, spread_id: str) -> bool:
        return self._execute("DELETE FROM altar_spreads WHERE id = %s", (spread_id,)) > 0


__all__ = ["PostgresDeckRepository"]
