"""Tests for the reading engine: draw, reveal and reset."""
import random
from collections import Counter

import pytest

from altar_api.readings.engine import (
    REVERSAL_PROBABILITY,
    InvalidDrawState,
    Position,
    ReadingSession,
    Spread,
    UnknownDrawnCardId,
)

from conftest import FixedRng, make_card


# ── Draw ─────────────────────────────────────────────────────────────

class TestDraw:

    def test_trinity_draw_assigns_positions_in_slice_order(self, trinity_cards, trinity_spread):
        session = ReadingSession(rng=FixedRng([0.9, 0.1, 0.5]))
        drawn = session.draw(trinity_cards, trinity_spread)

        assert [d.card.id for d in drawn] == ["A", "B", "C"]
        assert [d.position_name for d in drawn] == ["Past", "Present", "Future"]
        assert [d.position_meaning for d in drawn] == ["What led here", "Where you stand", ""]
        assert [d.is_reversed for d in drawn] == [False, True, False]

    def test_trinity_draw_is_permutation(self, trinity_cards, trinity_spread, seeded_rng):
        session = ReadingSession(rng=seeded_rng)
        drawn = session.draw(trinity_cards, trinity_spread)

        assert len(drawn) == 3
        assert sorted(d.card.id for d in drawn) == ["A", "B", "C"]

    def test_fewer_cards_than_positions_leaves_positions_unfilled(self, trinity_spread):
        spread = Spread(
            id="big",
            name="Big",
            card_count=5,
            positions=tuple(Position(f"P{i}") for i in range(5)),
        )
        session = ReadingSession(rng=random.Random(1))
        drawn = session.draw([make_card("A", 1), make_card("B", 2)], spread)

        assert len(drawn) == 2
        assert [d.position_name for d in drawn] == ["P0", "P1"]

    def test_missing_positions_get_fallback_labels(self):
        spread = Spread(id="short", name="Short", card_count=3, positions=(Position("Only"),))
        cards = [make_card(c, i) for i, c in enumerate("ABCD", start=1)]
        session = ReadingSession(rng=FixedRng([0.9, 0.9, 0.9]))

        drawn = session.draw(cards, spread)

        assert [d.position_name for d in drawn] == ["Only", "Position 2", "Position 3"]
        assert [d.position_meaning for d in drawn] == ["", "", ""]

    def test_blank_position_name_gets_fallback_label(self):
        spread = Spread(
            id="blank",
            name="Blank",
            card_count=2,
            positions=(Position(""), Position("Outcome")),
        )
        session = ReadingSession(rng=FixedRng([0.9, 0.9]))

        drawn = session.draw([make_card("A", 1), make_card("B", 2)], spread)

        assert [d.position_name for d in drawn] == ["Position 1", "Outcome"]

    def test_draw_does_not_mutate_input(self, trinity_cards, trinity_spread, seeded_rng):
        original = list(trinity_cards)
        ReadingSession(rng=seeded_rng).draw(trinity_cards, trinity_spread)
        assert trinity_cards == original

    def test_draw_with_spread_selects_it(self, trinity_cards, trinity_spread, seeded_rng):
        session = ReadingSession(rng=seeded_rng)
        session.draw(trinity_cards, trinity_spread)
        assert session.spread is trinity_spread

    def test_draw_uses_selected_spread(self, trinity_cards, trinity_spread, seeded_rng):
        session = ReadingSession(rng=seeded_rng)
        session.select_spread(trinity_spread)
        assert len(session.draw(trinity_cards)) == 3

    def test_drawn_ids_are_slot_based(self, trinity_cards, trinity_spread):
        session = ReadingSession(rng=FixedRng([0.9] * 3))
        drawn = session.draw(trinity_cards, trinity_spread)
        assert [d.drawn_id for d in drawn] == ["0:A", "1:B", "2:C"]
        assert [d.slot for d in drawn] == [0, 1, 2]

    def test_new_draw_replaces_previous(self, trinity_cards, trinity_spread, seeded_rng):
        session = ReadingSession(rng=seeded_rng)
        session.draw(trinity_cards, trinity_spread)
        session.reveal_all()

        single = Spread(id="one", name="Card of the day", card_count=1, positions=(Position("Today"),))
        drawn = session.draw(trinity_cards, single)

        assert len(drawn) == 1
        assert len(session.drawn) == 1
        assert session.revealed == set()
        assert session.draw_count == 2

    def test_boundary_probability_is_upright(self, trinity_cards, trinity_spread):
        session = ReadingSession(rng=FixedRng([REVERSAL_PROBABILITY, 0.0, 0.2999]))
        drawn = session.draw(trinity_cards, trinity_spread)
        assert [d.is_reversed for d in drawn] == [False, True, True]


class TestDrawErrors:

    def test_empty_deck(self, trinity_spread):
        session = ReadingSession()
        with pytest.raises(InvalidDrawState) as exc_info:
            session.draw([], trinity_spread)
        assert exc_info.value.reason == "no_cards"

    def test_no_spread(self, trinity_cards):
        session = ReadingSession()
        with pytest.raises(InvalidDrawState) as exc_info:
            session.draw(trinity_cards)
        assert exc_info.value.reason == "no_spread"

    def test_zero_card_spread(self, trinity_cards):
        session = ReadingSession()
        with pytest.raises(InvalidDrawState) as exc_info:
            session.draw(trinity_cards, Spread(id="empty", name="Empty", card_count=0))
        assert exc_info.value.reason == "empty_spread"

    def test_failed_draw_keeps_previous_reading(self, trinity_cards, trinity_spread, seeded_rng):
        session = ReadingSession(rng=seeded_rng)
        first = session.draw(trinity_cards, trinity_spread)
        session.toggle_reveal(first[0].drawn_id)

        with pytest.raises(InvalidDrawState):
            session.draw([])

        assert session.drawn == first
        assert session.revealed == {first[0].drawn_id}

    def test_failed_draw_keeps_selected_spread(self, trinity_spread):
        session = ReadingSession()
        session.select_spread(trinity_spread)
        other = Spread(id="other", name="Other", card_count=1, positions=(Position("Now"),))

        with pytest.raises(InvalidDrawState):
            session.draw([], other)

        assert session.spread is trinity_spread


# ── Statistical properties ───────────────────────────────────────────

class TestDistribution:

    def test_uniform_card_coverage(self):
        cards = [make_card(str(i), i) for i in range(10)]
        spread = Spread(id="s", name="Three", card_count=3, positions=tuple(Position(p) for p in "XYZ"))
        session = ReadingSession(rng=random.Random(1234))

        counts = Counter()
        draws = 6000
        for _ in range(draws):
            for d in session.draw(cards, spread):
                counts[d.card.id] += 1

        expected = draws * 3 / len(cards)
        for card in cards:
            assert abs(counts[card.id] - expected) < expected * 0.1, counts

    def test_no_duplicate_cards(self):
        cards = [make_card(str(i), i) for i in range(7)]
        spread = Spread(id="s", name="Seven", card_count=7, positions=())
        session = ReadingSession(rng=random.Random(99))

        for _ in range(500):
            ids = [d.card.id for d in session.draw(cards, spread)]
            assert len(ids) == len(set(ids)) == 7

    def test_reversal_ratio(self, trinity_cards, trinity_spread):
        session = ReadingSession(rng=random.Random(42))

        total = reversed_count = 0
        for _ in range(5000):
            for d in session.draw(trinity_cards, trinity_spread):
                total += 1
                reversed_count += d.is_reversed

        assert abs(reversed_count / total - REVERSAL_PROBABILITY) < 0.02


# ── Reveal / reset ───────────────────────────────────────────────────

class TestReveal:

    def test_hidden_card_exposes_only_position(self, trinity_cards, trinity_spread, seeded_rng):
        session = ReadingSession(rng=seeded_rng)
        session.draw(trinity_cards, trinity_spread)

        for view in session.render():
            assert view["revealed"] is False
            assert set(view) == {"drawn_id", "slot", "position", "position_meaning", "revealed"}

    def test_revealed_card_exposes_one_interpretation(self, trinity_cards, trinity_spread):
        session = ReadingSession(rng=FixedRng([0.1, 0.9, 0.9]))
        drawn = session.draw(trinity_cards, trinity_spread)

        assert session.toggle_reveal(drawn[0].drawn_id) is True
        past, present, future = session.render()

        assert past["name"] == "Card A"
        assert past["front_image_url"] == "/uploads/A.png"
        assert past["is_reversed"] is True
        assert past["orientation"] == "reversed"
        assert past["interpretation"] == "A reversed"
        assert past["overall_meaning"] == "A overall"
        assert "A upright" not in past.values()

        assert "name" not in present and "interpretation" not in present
        assert "name" not in future and "interpretation" not in future
        assert "overall_meaning" not in present and "overall_meaning" not in future

    def test_upright_card_uses_upright_text(self, trinity_cards, trinity_spread):
        session = ReadingSession(rng=FixedRng([0.9, 0.9, 0.9]))
        drawn = session.draw(trinity_cards, trinity_spread)
        session.toggle_reveal(drawn[1].drawn_id)

        view = session.render()[1]
        assert view["orientation"] == "upright"
        assert view["interpretation"] == "B upright"

    def test_toggle_twice_hides_again(self, trinity_cards, trinity_spread, seeded_rng):
        session = ReadingSession(rng=seeded_rng)
        drawn = session.draw(trinity_cards, trinity_spread)

        session.toggle_reveal(drawn[2].drawn_id)
        assert session.toggle_reveal(drawn[2].drawn_id) is False
        assert session.revealed == set()

    def test_toggle_unknown_id_is_noop(self, trinity_cards, trinity_spread, seeded_rng):
        session = ReadingSession(rng=seeded_rng)
        session.draw(trinity_cards, trinity_spread)

        assert session.toggle_reveal("42:nope") is False
        assert session.revealed == set()

    def test_drawn_card_lookup_rejects_unknown_id(self, trinity_cards, trinity_spread, seeded_rng):
        session = ReadingSession(rng=seeded_rng)
        session.draw(trinity_cards, trinity_spread)
        with pytest.raises(UnknownDrawnCardId):
            session.drawn_card("42:nope")

    def test_reveal_all_is_idempotent(self, trinity_cards, trinity_spread, seeded_rng):
        session = ReadingSession(rng=seeded_rng)
        drawn = session.draw(trinity_cards, trinity_spread)

        session.reveal_all()
        session.reveal_all()
        assert session.revealed == {d.drawn_id for d in drawn}
        assert all(view["revealed"] for view in session.render())


class TestResetAndState:

    def test_state_machine(self, trinity_cards, trinity_spread, seeded_rng):
        session = ReadingSession(rng=seeded_rng)
        assert session.state == "no_spread"

        session.select_spread(trinity_spread)
        assert session.state == "spread_selected"

        drawn = session.draw(trinity_cards)
        assert session.state == "drawn"

        session.toggle_reveal(drawn[0].drawn_id)
        assert session.state == "revealed"

        session.toggle_reveal(drawn[0].drawn_id)
        assert session.state == "drawn"

        session.reset_reading()
        assert session.state == "spread_selected"

    def test_reset_is_idempotent_and_keeps_spread(self, trinity_cards, trinity_spread, seeded_rng):
        session = ReadingSession(rng=seeded_rng)
        session.draw(trinity_cards, trinity_spread)
        session.reveal_all()

        session.reset_reading()
        once = (list(session.drawn), set(session.revealed), session.spread)
        session.reset_reading()

        assert (session.drawn, session.revealed, session.spread) == once
        assert session.drawn == []
        assert session.spread is trinity_spread

    def test_select_spread_keeps_current_draw(self, trinity_cards, trinity_spread, seeded_rng):
        session = ReadingSession(rng=seeded_rng)
        drawn = session.draw(trinity_cards, trinity_spread)
        session.toggle_reveal(drawn[0].drawn_id)

        other = Spread(id="other", name="Other", card_count=1, positions=(Position("Now"),))
        session.select_spread(other)

        assert session.spread is other
        assert session.drawn == drawn
        assert session.revealed == {drawn[0].drawn_id}
