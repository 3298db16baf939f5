# src/altar_api/decks/repository.py

from __future__ import annotations

from typing import Any, Dict, List, Protocol
from uuid import uuid4


class DeckRepository(Protocol):
    """
    Абстрактный интерфейс хранилища колод, карт и раскладов.

    Реализации: InMemoryDeckRepository, SQLiteDeckRepository,
    PostgresDeckRepository. Записи - обычные dict; проверка владельца
    колоды делается в сервисе.
    """

    # ---- decks ----

    def save_deck(self, data: dict[str, Any]) -> str:
        """Upsert колоды, вернуть её ID."""
        ...

    def get_deck(self, deck_id: str) -> dict[str, Any] | None:
        ...

    def list_decks(self, user_id: str) -> list[dict[str, Any]]:
        ...

    def delete_deck(self, deck_id: str) -> bool:
        """Удалить колоду вместе с её картами и раскладами."""
        ...

    # ---- cards ----

    def save_card(self, data: dict[str, Any]) -> str:
        ...

    def get_card(self, card_id: str) -> dict[str, Any] | None:
        ...

    def list_cards(self, deck_id: str) -> list[dict[str, Any]]:
        """Карты колоды, отсортированные по card_number."""
        ...

    def delete_card(self, card_id: str) -> bool:
        ...

    # ---- spreads ----

    def save_spread(self, data: dict[str, Any]) -> str:
        ...

    def get_spread(self, spread_id: str) -> dict[str, Any] | None:
        ...

    def list_spreads(self, deck_id: str) -> list[dict[str, Any]]:
        """Расклады колоды в порядке создания (первый - расклад по умолчанию)."""
        ...

    def delete_spread(self, spread_id: str) -> bool:
        ...


def new_id() -> str:
    return str(uuid4())


class InMemoryDeckRepository(DeckRepository):
    """
    Простая in-memory реализация репозитория.

    Нужна как дефолт для локальной разработки без БД и для тестов.
    """

    def __init__(self) -> None:
        self._decks: Dict[str, Dict[str, Any]] = {}
        self._cards: Dict[str, Dict[str, Any]] = {}
        self._spreads: Dict[str, Dict[str, Any]] = {}

    # ---- helpers ----

    @staticmethod
    def _upsert(store: Dict[str, Dict[str, Any]], data: dict[str, Any]) -> str:
        item_id = data.get("id") or new_id()
        store[item_id] = {**data, "id": item_id}
        return item_id

    # ---- decks ----

    def save_deck(self, data: dict[str, Any]) -> str:
        return self._upsert(self._decks, data)

    def get_deck(self, deck_id: str) -> dict[str, Any] | None:
        deck = self._decks.get(deck_id)
        return dict(deck) if deck else None

    def list_decks(self, user_id: str) -> list[dict[str, Any]]:
        items: List[Dict[str, Any]] = [
            dict(d) for d in self._decks.values() if d.get("user_id") == user_id
        ]
        items.sort(key=lambda d: d.get("created_at") or "")
        return items

    def delete_deck(self, deck_id: str) -> bool:
        if self._decks.pop(deck_id, None) is None:
            return False

        # каскад, как ON DELETE CASCADE в SQL-реализациях
        for card_id in [k for k, c in self._cards.items() if c.get("deck_id") == deck_id]:
            del self._cards[card_id]
        for spread_id in [k for k, s in self._spreads.items() if s.get("deck_id") == deck_id]:
            del self._spreads[spread_id]
        return True

    # ---- cards ----

    def save_card(self, data: dict[str, Any]) -> str:
        return self._upsert(self._cards, data)

    def get_card(self, card_id: str) -> dict[str, Any] | None:
        card = self._cards.get(card_id)
        return dict(card) if card else None

    def list_cards(self, deck_id: str) -> list[dict[str, Any]]:
        items = [dict(c) for c in self._cards.values() if c.get("deck_id") == deck_id]
        items.sort(key=lambda c: c.get("card_number") or 0)
        return items

    def delete_card(self, card_id: str) -> bool:
        return self._cards.pop(card_id, None) is not None

    # ---- spreads ----

    def save_spread(self, data: dict[str, Any]) -> str:
        positions = [dict(p) for p in (data.get("positions") or [])]
        return self._upsert(self._spreads, {**data, "positions": positions})

    def get_spread(self, spread_id: str) -> dict[str, Any] | None:
        spread = self._spreads.get(spread_id)
        return dict(spread) if spread else None

    def list_spreads(self, deck_id: str) -> list[dict[str, Any]]:
        items = [dict(s) for s in self._spreads.values() if s.get("deck_id") == deck_id]
        # sort стабильный: при равном created_at остаётся порядок вставки
        items.sort(key=lambda s: s.get("created_at") or "")
        return items

    def delete_spread(self, spread_id: str) -> bool:
        return self._spreads.pop(spread_id, None) is not None


__all__ = [
    "DeckRepository",
    "InMemoryDeckRepository",
    "new_id",
]
