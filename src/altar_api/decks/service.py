from __future__ import annotations  # должна быть первой строкой

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List

from .models import (
    CardCreateIn,
    CardModel,
    CardUpdateIn,
    DeckCreateIn,
    DeckModel,
    DeckUpdateIn,
    SpreadCreateIn,
    SpreadModel,
    SpreadUpdateIn,
)
from .repository import DeckRepository, InMemoryDeckRepository
from ..settings import get_settings

logger = logging.getLogger(__name__)


# ─────────────────────────────────────
# Utils
# ─────────────────────────────────────

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _apply_changes(
    record: Dict[str, Any],
    changes: Dict[str, Any],
    required: tuple = (),
) -> None:
    """PATCH-семантика: обязательные поля нельзя обнулить явным null."""
    for key, value in changes.items():
        if value is None and key in required:
            continue
        record[key] = value


def _build_repository() -> DeckRepository:
    """
    Переключатель postgres → sqlite → in-memory по ALTAR_DB_BACKEND.
    При ошибке инициализации откатываемся на следующий вариант.
    """
    settings = get_settings()
    backend = settings.db_backend

    if backend == "postgres" and settings.database_url:
        try:
            from .postgres_repository import PostgresDeckRepository

            repo = PostgresDeckRepository()
            logger.info("DeckService: using PostgresDeckRepository")
            return repo
        except Exception:
            logger.exception(
                "Failed to init PostgresDeckRepository, falling back to SQLite"
            )
            backend = "sqlite"

    if backend == "sqlite":
        try:
            from ..db.sqlite import make_connection_factory
            from .sqlite_repository import SQLiteDeckRepository

            repo = SQLiteDeckRepository(make_connection_factory(settings.sqlite_path))
            logger.info("DeckService: using SQLiteDeckRepository")
            return repo
        except Exception:
            logger.exception(
                "Failed to init SQLiteDeckRepository, falling back to InMemoryDeckRepository"
            )

    logger.info("DeckService: using InMemoryDeckRepository")
    return InMemoryDeckRepository()


# ─────────────────────────────────────
# SERVICE
# ─────────────────────────────────────

class DeckService:
    """
    Колоды, карты и расклады пользователя.

    Принадлежность проверяется по колоде: чужая колода (и её карты/расклады)
    для пользователя просто «не найдена» - ValueError("..._not_found").
    """

    def __init__(self, repo: DeckRepository | None = None):
        if repo is not None:
            self._repo = repo
            logger.info("DeckService: using injected repository %s", type(repo).__name__)
            return
        self._repo = _build_repository()

    # ---- internal helpers ----

    def _own_deck(self, user_id: str, deck_id: str) -> Dict[str, Any]:
        deck = self._repo.get_deck(deck_id)
        if not deck or deck.get("user_id") != user_id:
            raise ValueError("deck_not_found")
        return deck

    def _own_card(self, user_id: str, card_id: str) -> Dict[str, Any]:
        card = self._repo.get_card(card_id)
        if not card:
            raise ValueError("card_not_found")
        try:
            self._own_deck(user_id, card["deck_id"])
        except ValueError:
            raise ValueError("card_not_found") from None
        return card

    def _own_spread(self, user_id: str, spread_id: str) -> Dict[str, Any]:
        spread = self._repo.get_spread(spread_id)
        if not spread:
            raise ValueError("spread_not_found")
        try:
            self._own_deck(user_id, spread["deck_id"])
        except ValueError:
            raise ValueError("spread_not_found") from None
        return spread

    def _ensure_card_number_free(
        self,
        deck_id: str,
        card_number: int,
        exclude_card_id: str | None = None,
    ) -> None:
        for card in self._repo.list_cards(deck_id):
            if card["card_number"] == card_number and card["id"] != exclude_card_id:
                logger.warning(
                    "Duplicate card_number=%s in deck_id=%s", card_number, deck_id
                )
                raise ValueError("duplicate_card_number")

    # ---- decks ----

    def list_decks(self, user_id: str) -> List[DeckModel]:
        return [DeckModel(**d) for d in self._repo.list_decks(user_id)]

    def get_deck(self, user_id: str, deck_id: str) -> DeckModel:
        return DeckModel(**self._own_deck(user_id, deck_id))

    def create_deck(self, user_id: str, body: DeckCreateIn) -> DeckModel:
        now = _now_iso()
        record: Dict[str, Any] = {
            **body.model_dump(),
            "user_id": user_id,
            "created_at": now,
            "updated_at": now,
        }
        deck_id = self._repo.save_deck(record)
        logger.info("Created deck: user_id=%s deck_id=%s name=%s", user_id, deck_id, body.name)
        return self.get_deck(user_id, deck_id)

    def update_deck(self, user_id: str, deck_id: str, body: DeckUpdateIn) -> DeckModel:
        deck = self._own_deck(user_id, deck_id)
        _apply_changes(deck, body.model_dump(exclude_unset=True), required=("name", "is_published"))
        deck["updated_at"] = _now_iso()
        self._repo.save_deck(deck)
        return self.get_deck(user_id, deck_id)

    def delete_deck(self, user_id: str, deck_id: str) -> None:
        self._own_deck(user_id, deck_id)
        self._repo.delete_deck(deck_id)
        logger.info("Deleted deck: user_id=%s deck_id=%s", user_id, deck_id)

    # ---- cards ----

    def list_cards(self, user_id: str, deck_id: str) -> List[CardModel]:
        self._own_deck(user_id, deck_id)
        return [CardModel(**c) for c in self._repo.list_cards(deck_id)]

    def get_card(self, user_id: str, card_id: str) -> CardModel:
        return CardModel(**self._own_card(user_id, card_id))

    def create_card(self, user_id: str, deck_id: str, body: CardCreateIn) -> CardModel:
        self._own_deck(user_id, deck_id)
        self._ensure_card_number_free(deck_id, body.card_number)

        now = _now_iso()
        record: Dict[str, Any] = {
            **body.model_dump(),
            "deck_id": deck_id,
            "created_at": now,
            "updated_at": now,
        }
        card_id = self._repo.save_card(record)
        logger.info(
            "Created card: deck_id=%s card_id=%s card_number=%s",
            deck_id,
            card_id,
            body.card_number,
        )
        return self.get_card(user_id, card_id)

    def update_card(self, user_id: str, card_id: str, body: CardUpdateIn) -> CardModel:
        card = self._own_card(user_id, card_id)
        changes = body.model_dump(exclude_unset=True)

        if changes.get("card_number") is not None:
            self._ensure_card_number_free(card["deck_id"], changes["card_number"], card_id)

        _apply_changes(card, changes, required=("name", "card_number"))
        card["updated_at"] = _now_iso()
        self._repo.save_card(card)
        return self.get_card(user_id, card_id)

    def delete_card(self, user_id: str, card_id: str) -> None:
        self._own_card(user_id, card_id)
        self._repo.delete_card(card_id)

    # ---- spreads ----

    def list_spreads(self, user_id: str, deck_id: str) -> List[SpreadModel]:
        self._own_deck(user_id, deck_id)
        return [SpreadModel(**s) for s in self._repo.list_spreads(deck_id)]

    def get_spread(self, user_id: str, spread_id: str) -> SpreadModel:
        return SpreadModel(**self._own_spread(user_id, spread_id))

    def create_spread(self, user_id: str, deck_id: str, body: SpreadCreateIn) -> SpreadModel:
        self._own_deck(user_id, deck_id)

        record: Dict[str, Any] = {
            **body.model_dump(),
            "deck_id": deck_id,
            "created_at": _now_iso(),
        }
        spread_id = self._repo.save_spread(record)
        logger.info(
            "Created spread: deck_id=%s spread_id=%s card_count=%s",
            deck_id,
            spread_id,
            body.card_count,
        )
        return self.get_spread(user_id, spread_id)

    def update_spread(self, user_id: str, spread_id: str, body: SpreadUpdateIn) -> SpreadModel:
        spread = self._own_spread(user_id, spread_id)
        _apply_changes(spread, body.model_dump(exclude_unset=True), required=("name", "card_count", "positions"))
        self._repo.save_spread(spread)
        return self.get_spread(user_id, spread_id)

    def delete_spread(self, user_id: str, spread_id: str) -> None:
        self._own_spread(user_id, spread_id)
        self._repo.delete_spread(spread_id)


@lru_cache
def get_deck_service() -> DeckService:
    """Один инстанс сервиса на процесс - внутри он сам выбирает репозиторий."""
    return DeckService()
