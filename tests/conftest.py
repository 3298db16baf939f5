"""Shared fixtures for Altar API tests."""
import random

import pytest
from fastapi.testclient import TestClient

from altar_api.app import app
from altar_api.decks.repository import InMemoryDeckRepository
from altar_api.decks.service import DeckService, get_deck_service
from altar_api.readings.engine import Card, Position, Spread
from altar_api.readings.service import ReadingService, get_reading_service
from altar_api.settings import Settings, get_settings


def make_settings(**overrides) -> Settings:
    values = dict(
        db_backend="memory",
        database_url="",
        sqlite_path=":memory:",
        dev_mode=True,
        cors_origins=["*"],
        session_ttl_minutes=60,
    )
    values.update(overrides)
    return Settings(**values)


def make_card(card_id: str, number: int, **fields) -> Card:
    return Card(
        id=card_id,
        deck_id="deck-1",
        card_number=number,
        name=fields.pop("name", f"Card {card_id}"),
        front_image_url=fields.pop("front_image_url", f"/uploads/{card_id}.png"),
        overall_meaning=fields.pop("overall_meaning", f"{card_id} overall"),
        upright_interpretation=fields.pop("upright_interpretation", f"{card_id} upright"),
        reversed_interpretation=fields.pop("reversed_interpretation", f"{card_id} reversed"),
        **fields,
    )


class FixedRng:
    """Deterministic stand-in for the random module: no shuffle, scripted random()."""

    def __init__(self, values):
        self._values = list(values)

    def shuffle(self, items):
        pass

    def random(self):
        return self._values.pop(0)


@pytest.fixture
def trinity_cards():
    return [make_card("A", 1), make_card("B", 2), make_card("C", 3)]


@pytest.fixture
def trinity_spread():
    return Spread(
        id="trinity",
        name="Trinity",
        card_count=3,
        positions=(
            Position("Past", "What led here"),
            Position("Present", "Where you stand"),
            Position("Future", ""),
        ),
    )


@pytest.fixture
def seeded_rng():
    return random.Random(20240517)


@pytest.fixture
def deck_service():
    return DeckService(InMemoryDeckRepository())


@pytest.fixture
def reading_sessions():
    return {}


@pytest.fixture
def client(deck_service, reading_sessions):
    app.dependency_overrides[get_settings] = lambda: make_settings()
    app.dependency_overrides[get_deck_service] = lambda: deck_service
    app.dependency_overrides[get_reading_service] = lambda: ReadingService(
        deck_service,
        sessions=reading_sessions,
        rng=random.Random(7),
        ttl_minutes=60,
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
