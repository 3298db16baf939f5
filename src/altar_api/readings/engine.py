# src/altar_api/readings/engine.py

"""
Reading Engine - ядро виртуального гадания.

Отвечает за перемешивание колоды, раскладку карт по позициям расклада,
ориентацию (прямая/перевёрнутая) и постепенное открытие карт в сессии.
Ничего не знает ни про HTTP, ни про БД: на вход получает готовые карты
и расклад из репозитория колод.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set

logger = logging.getLogger(__name__)

# Вероятность, что карта выпадет перевёрнутой
REVERSAL_PROBABILITY = 0.30

STATE_NO_SPREAD = "no_spread"
STATE_SPREAD_SELECTED = "spread_selected"
STATE_DRAWN = "drawn"
STATE_REVEALED = "revealed"


# ─────────────────────────────────────
# Ошибки
# ─────────────────────────────────────

class ReadingError(Exception):
    """Базовая ошибка движка гадания. Всегда локальная и восстановимая."""


class InvalidDrawState(ReadingError):
    """
    Расклад невозможен: пустая колода, нет выбранного расклада
    или расклад без позиций (card_count < 1).
    """

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class UnknownDrawnCardId(ReadingError):
    """drawn_id не относится к текущему раскладу."""

    def __init__(self, drawn_id: str) -> None:
        super().__init__(f"Unknown drawn card id: {drawn_id}")
        self.drawn_id = drawn_id


# ─────────────────────────────────────
# Модель данных
# ─────────────────────────────────────

@dataclass(frozen=True)
class Card:
    """Карта колоды. Для движка это неизменяемый вход."""
    id: str
    deck_id: str
    card_number: int
    name: str
    front_image_url: Optional[str] = None
    overall_meaning: Optional[str] = None
    upright_interpretation: Optional[str] = None
    reversed_interpretation: Optional[str] = None
    history_lore: Optional[str] = None
    symbolism: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Card":
        return cls(
            id=str(data["id"]),
            deck_id=str(data.get("deck_id") or ""),
            card_number=int(data.get("card_number") or 0),
            name=data.get("name") or "",
            front_image_url=data.get("front_image_url"),
            overall_meaning=data.get("overall_meaning"),
            upright_interpretation=data.get("upright_interpretation"),
            reversed_interpretation=data.get("reversed_interpretation"),
            history_lore=data.get("history_lore"),
            symbolism=data.get("symbolism"),
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class Position:
    name: str
    meaning: str = ""
    # координаты на схеме расклада, для движка не важны
    x: Optional[int] = None
    y: Optional[int] = None


@dataclass(frozen=True)
class Spread:
    """
    Расклад: объявленное число карт и упорядоченные позиции.

    Корректный расклад имеет len(positions) == card_count, но движок
    переживает и несовпадение (см. ReadingSession.draw).
    """
    id: str
    name: str
    card_count: int
    positions: tuple = ()
    deck_id: str = ""
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Spread":
        positions = tuple(
            Position(
                name=p.get("name") or "",
                meaning=p.get("meaning") or "",
                x=p.get("x"),
                y=p.get("y"),
            )
            for p in (data.get("positions") or [])
        )
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            card_count=int(data.get("card_count") or 0),
            positions=positions,
            deck_id=str(data.get("deck_id") or ""),
            description=data.get("description"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "deck_id": self.deck_id,
            "name": self.name,
            "description": self.description,
            "card_count": self.card_count,
            "positions": [
                {"name": p.name, "meaning": p.meaning, "x": p.x, "y": p.y}
                for p in self.positions
            ],
        }


@dataclass(frozen=True)
class DrawnCard:
    """
    Карта в текущем раскладе.

    Позиция копируется в момент раскладки (имя и значение), а не ссылается
    на расклад. drawn_id строится из номера слота и id карты, поэтому
    остаётся уникальным даже если одна карта попадёт в расклад дважды.
    """
    drawn_id: str
    slot: int
    card: Card
    position_name: str
    position_meaning: str
    is_reversed: bool

    def render(self, revealed: bool) -> Dict[str, Any]:
        """
        Представление карты для UI.

        Закрытая карта отдаёт только позицию - ни имени, ни картинки,
        ни толкований. Открытая отдаёт общее значение карты и ровно одно
        толкование: прямое или перевёрнутое, в зависимости от is_reversed.
        """
        view: Dict[str, Any] = {
            "drawn_id": self.drawn_id,
            "slot": self.slot,
            "position": self.position_name,
            "position_meaning": self.position_meaning,
            "revealed": revealed,
        }
        if not revealed:
            return view

        if self.is_reversed:
            interpretation = self.card.reversed_interpretation
        else:
            interpretation = self.card.upright_interpretation

        view.update(
            {
                "card_id": self.card.id,
                "card_number": self.card.card_number,
                "name": self.card.name,
                "front_image_url": self.card.front_image_url,
                "overall_meaning": self.card.overall_meaning,
                "is_reversed": self.is_reversed,
                "orientation": "reversed" if self.is_reversed else "upright",
                "interpretation": interpretation,
            }
        )
        return view


# ─────────────────────────────────────
# Сессия гадания
# ─────────────────────────────────────

@dataclass
class ReadingSession:
    """
    Живое состояние одного гадания: выбранный расклад, выложенные карты
    и множество уже открытых карт.

    Состояния: no_spread → spread_selected → drawn ⇄ revealed;
    reset_reading() возвращает в spread_selected.
    Ничего не сохраняется - сессия живёт, пока открыт экран гадания.
    """
    spread: Optional[Spread] = None
    drawn: List[DrawnCard] = field(default_factory=list)
    revealed: Set[str] = field(default_factory=set)
    draw_count: int = 0
    # Любой объект с shuffle()/random(); по умолчанию - модуль random
    rng: Any = field(default=random, repr=False)

    @property
    def state(self) -> str:
        if self.drawn:
            return STATE_REVEALED if self.revealed else STATE_DRAWN
        if self.spread is not None:
            return STATE_SPREAD_SELECTED
        return STATE_NO_SPREAD

    # ---- операции ----

    def select_spread(self, spread: Spread) -> None:
        """Выбрать активный расклад. Уже выложенные карты не трогаем."""
        self.spread = spread

    def draw(
        self,
        cards: Sequence[Card],
        spread: Optional[Spread] = None,
    ) -> List[DrawnCard]:
        """
        Перемешать колоду и выложить карты по позициям расклада.

        Если передан spread - он же становится активным.
        Новый расклад полностью заменяет предыдущий и закрывает все карты.
        """
        active = spread if spread is not None else self.spread

        if active is None:
            raise InvalidDrawState("no_spread", "No spread selected for the reading")
        if not cards:
            raise InvalidDrawState("no_cards", "Deck has no cards to draw from")
        if active.card_count < 1:
            raise InvalidDrawState(
                "empty_spread",
                f"Spread {active.id} declares card_count={active.card_count}",
            )

        self.spread = active

        pool = list(cards)
        # random.shuffle - Fisher-Yates, равномерная перестановка
        self.rng.shuffle(pool)

        count = min(self.spread.card_count, len(pool))
        positions = self.spread.positions

        drawn: List[DrawnCard] = []
        for i, card in enumerate(pool[:count]):
            if i < len(positions):
                position_name = positions[i].name or f"Position {i + 1}"
                position_meaning = positions[i].meaning or ""
            else:
                position_name = f"Position {i + 1}"
                position_meaning = ""

            drawn.append(
                DrawnCard(
                    drawn_id=f"{i}:{card.id}",
                    slot=i,
                    card=card,
                    position_name=position_name,
                    position_meaning=position_meaning,
                    is_reversed=self.rng.random() < REVERSAL_PROBABILITY,
                )
            )

        if count < self.spread.card_count:
            logger.info(
                "Spread %s wants %d cards, deck has only %d; %d positions left unfilled",
                self.spread.id,
                self.spread.card_count,
                len(pool),
                self.spread.card_count - count,
            )

        self.drawn = drawn
        self.revealed = set()
        self.draw_count += 1
        return list(drawn)

    def drawn_card(self, drawn_id: str) -> DrawnCard:
        for drawn in self.drawn:
            if drawn.drawn_id == drawn_id:
                return drawn
        raise UnknownDrawnCardId(drawn_id)

    def toggle_reveal(self, drawn_id: str) -> bool:
        """
        Открыть/закрыть карту. Возвращает True, если карта теперь открыта.

        Неизвестный drawn_id - no-op (карта считается закрытой).
        """
        try:
            self.drawn_card(drawn_id)
        except UnknownDrawnCardId:
            logger.debug("toggle_reveal ignored for unknown drawn_id=%s", drawn_id)
            return False

        if drawn_id in self.revealed:
            self.revealed.discard(drawn_id)
            return False

        self.revealed.add(drawn_id)
        return True

    def reveal_all(self) -> None:
        self.revealed = {d.drawn_id for d in self.drawn}

    def reset_reading(self) -> None:
        """Убрать карты со стола. Выбор расклада сохраняется."""
        self.drawn = []
        self.revealed = set()

    # ---- чтение ----

    def is_revealed(self, drawn_id: str) -> bool:
        return drawn_id in self.revealed

    def render(self) -> List[Dict[str, Any]]:
        return [d.render(d.drawn_id in self.revealed) for d in self.drawn]


__all__ = [
    "REVERSAL_PROBABILITY",
    "ReadingError",
    "InvalidDrawState",
    "UnknownDrawnCardId",
    "Card",
    "Position",
    "Spread",
    "DrawnCard",
    "ReadingSession",
]
