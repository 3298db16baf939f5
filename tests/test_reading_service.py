"""Tests for ReadingService: live sessions, ownership and idle expiry."""
from datetime import timedelta

import pytest

from altar_api.decks.models import CardCreateIn, CardUpdateIn, DeckCreateIn, SpreadCreateIn
from altar_api.readings.service import ReadingService

from conftest import FixedRng

OWNER = "user-1"


@pytest.fixture
def deck(deck_service):
    deck = deck_service.create_deck(OWNER, DeckCreateIn(name="Moon Deck"))
    for number, name in enumerate(["Sun", "Moon", "Star"], start=1):
        deck_service.create_card(OWNER, deck.id, CardCreateIn(card_number=number, name=name))
    deck_service.create_spread(
        OWNER,
        deck.id,
        SpreadCreateIn(
            name="Pair",
            card_count=2,
            positions=[{"name": "Left", "x": 0, "y": 0}, {"name": "Right", "x": 1, "y": 0}],
        ),
    )
    return deck


def _age(sessions, session_id, minutes):
    live = sessions[session_id]
    live.last_active_at -= timedelta(minutes=minutes)


class TestSessionExpiry:

    def test_idle_session_is_purged_on_next_access(self, deck_service, reading_sessions, deck):
        service = ReadingService(deck_service, sessions=reading_sessions, ttl_minutes=1)
        stale = service.start_reading(OWNER, deck.id).session_id
        fresh = service.start_reading(OWNER, deck.id).session_id

        _age(reading_sessions, stale, minutes=5)
        service.get_reading(OWNER, fresh)

        assert stale not in reading_sessions
        assert fresh in reading_sessions
        with pytest.raises(ValueError, match="reading_not_found"):
            service.get_reading(OWNER, stale)

    def test_access_keeps_session_alive(self, deck_service, reading_sessions, deck):
        service = ReadingService(deck_service, sessions=reading_sessions, ttl_minutes=10)
        sid = service.start_reading(OWNER, deck.id).session_id

        _age(reading_sessions, sid, minutes=9)
        service.get_reading(OWNER, sid)
        _age(reading_sessions, sid, minutes=9)

        assert service.get_reading(OWNER, sid).session_id == sid

    def test_zero_ttl_disables_purging(self, deck_service, reading_sessions, deck):
        service = ReadingService(deck_service, sessions=reading_sessions, ttl_minutes=0)
        sid = service.start_reading(OWNER, deck.id).session_id

        _age(reading_sessions, sid, minutes=60 * 24 * 30)

        assert service.get_reading(OWNER, sid).session_id == sid


class TestReadingService:

    def test_start_selects_first_spread_with_layout(self, deck_service, reading_sessions, deck):
        service = ReadingService(deck_service, sessions=reading_sessions, ttl_minutes=60)
        reading = service.start_reading(OWNER, deck.id)

        assert reading.state == "spread_selected"
        assert [(p["name"], p["x"]) for p in reading.spread["positions"]] == [("Left", 0), ("Right", 1)]

    def test_revealed_card_carries_overall_meaning(self, deck_service, reading_sessions, deck):
        cards = deck_service.list_cards(OWNER, deck.id)
        deck_service.update_card(OWNER, cards[0].id, CardUpdateIn(overall_meaning="Light"))

        service = ReadingService(
            deck_service,
            sessions=reading_sessions,
            rng=FixedRng([0.9, 0.9]),
            ttl_minutes=60,
        )
        sid = service.start_reading(OWNER, deck.id).session_id
        drawn = service.draw(OWNER, sid).cards

        result = service.toggle_reveal(OWNER, sid, drawn[0]["drawn_id"])
        first, second = result.reading.cards

        assert first["name"] == "Sun"
        assert first["overall_meaning"] == "Light"
        assert "overall_meaning" not in second

    def test_close_removes_session(self, deck_service, reading_sessions, deck):
        service = ReadingService(deck_service, sessions=reading_sessions, ttl_minutes=60)
        sid = service.start_reading(OWNER, deck.id).session_id

        service.close_reading(OWNER, sid)

        assert reading_sessions == {}
