# src/altar_api/decks/models.py

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator


# 1. Колоды

class DeckModel(BaseModel):
    id: str
    user_id: str
    name: str
    description: str | None = None
    card_back_image_url: str | None = None
    thumbnail_url: str | None = None
    is_published: bool = False
    publish_type: Literal["virtual", "physical"] | None = None
    created_at: str
    updated_at: str


class DeckCreateIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    card_back_image_url: str | None = None
    thumbnail_url: str | None = None
    is_published: bool = False
    publish_type: Literal["virtual", "physical"] | None = None


class DeckUpdateIn(BaseModel):
    """PATCH: передаются только изменяемые поля."""
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    card_back_image_url: str | None = None
    thumbnail_url: str | None = None
    is_published: bool | None = None
    publish_type: Literal["virtual", "physical"] | None = None


# 2. Карты

class CardModel(BaseModel):
    """
    Карта колоды.

    Толкования (overall/upright/reversed) и «лор» (history_lore, symbolism,
    notes) - просто текст, движок гадания их не разбирает.
    """
    id: str
    deck_id: str
    card_number: int
    name: str
    front_image_url: str | None = None
    overall_meaning: str | None = None
    upright_interpretation: str | None = None
    reversed_interpretation: str | None = None
    history_lore: str | None = None
    symbolism: str | None = None
    notes: str | None = None
    created_at: str
    updated_at: str


class CardCreateIn(BaseModel):
    card_number: int = Field(..., ge=0)
    name: str = Field(..., min_length=1)
    front_image_url: str | None = None
    overall_meaning: str | None = None
    upright_interpretation: str | None = None
    reversed_interpretation: str | None = None
    history_lore: str | None = None
    symbolism: str | None = None
    notes: str | None = None


class CardUpdateIn(BaseModel):
    card_number: int | None = Field(default=None, ge=0)
    name: str | None = Field(default=None, min_length=1)
    front_image_url: str | None = None
    overall_meaning: str | None = None
    upright_interpretation: str | None = None
    reversed_interpretation: str | None = None
    history_lore: str | None = None
    symbolism: str | None = None
    notes: str | None = None


# 3. Расклады

class PositionModel(BaseModel):
    name: str = Field(..., min_length=1)
    meaning: str | None = None
    # место карты на схеме расклада (сетка редактора)
    x: int | None = None
    y: int | None = None


class SpreadModel(BaseModel):
    id: str
    deck_id: str
    name: str
    description: str | None = None
    card_count: int
    positions: list[PositionModel]
    created_at: str


class SpreadCreateIn(BaseModel):
    """
    Входная модель для POST /decks/{deck_id}/spreads.

    card_count - сколько карт выкладывается;
    positions  - ровно card_count позиций, порядок важен:
                 первая вытянутая карта ложится в positions[0] и т.д.
    """
    name: str = Field(..., min_length=1)
    description: str | None = None
    card_count: int = Field(..., ge=1)
    positions: list[PositionModel]

    @model_validator(mode="after")
    def _positions_match_count(self) -> "SpreadCreateIn":
        if len(self.positions) != self.card_count:
            raise ValueError(
                f"positions must contain exactly card_count={self.card_count} items, "
                f"got {len(self.positions)}"
            )
        return self


class SpreadUpdateIn(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    card_count: int | None = Field(default=None, ge=1)
    positions: list[PositionModel] | None = None

    @model_validator(mode="after")
    def _positions_match_count(self) -> "SpreadUpdateIn":
        # card_count и positions меняются только вместе
        if (self.card_count is None) != (self.positions is None):
            raise ValueError("card_count and positions must be updated together")
        if self.positions is not None and len(self.positions) != self.card_count:
            raise ValueError(
                f"positions must contain exactly card_count={self.card_count} items, "
                f"got {len(self.positions)}"
            )
        return self
