# src/altar_api/readings/models.py

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


ReadingStateName = Literal["no_spread", "spread_selected", "drawn", "revealed"]


class ReadingStartIn(BaseModel):
    """
    POST /readings - открыть экран гадания для колоды.

    spread_id необязателен: если не передан, выбирается первый расклад колоды.
    """
    deck_id: str = Field(..., min_length=1)
    spread_id: str | None = None


class ReadingSelectSpreadIn(BaseModel):
    spread_id: str = Field(..., min_length=1)


class ReadingStateModel(BaseModel):
    """
    Текущее состояние гадания.

    cards - уже «отрендеренные» карты: у закрытых только позиция,
    у открытых имя, картинка, ориентация и одно толкование.
    """
    session_id: str
    deck_id: str
    state: ReadingStateName
    spread: dict[str, Any] | None = None
    cards: list[dict[str, Any]] = Field(default_factory=list)
    revealed: list[str] = Field(default_factory=list)
    draw_count: int = 0
    created_at: str
    last_active_at: str


class RevealToggleResult(BaseModel):
    drawn_id: str
    revealed: bool
    reading: ReadingStateModel
