"""
Tests for the static deck, deck building and seeded dealing.
"""

import random

import pytest

from config import get_card, get_monologues, get_tarot_deck
from exceptions import DeckError
from tarot_core.deck import build_deck, deal
from tarot_core.rng import coin_flip, seeded_random
from tarot_core.types import Card, Position, SelectedCard


class TestStaticDeck:
    def test_full_deck_has_78_unique_cards(self):
        deck = get_tarot_deck()
        assert len(deck) == 78
        assert len({card.id for card in deck}) == 78

    def test_every_card_has_both_meanings(self):
        for card in get_tarot_deck():
            assert card.name
            assert card.upright_meaning
            assert card.reversed_meaning

    def test_deck_is_cached(self):
        assert get_tarot_deck() is get_tarot_deck()

    def test_get_card(self):
        card = get_card("major-00")
        assert card.name == "The Fool"

    def test_get_unknown_card_raises(self):
        with pytest.raises(DeckError):
            get_card("no-such-card")

    def test_monologues_loaded(self):
        lines = get_monologues()
        assert len(lines) >= 2
        assert all(line.strip() for line in lines)


class TestBuildDeck:
    def _raw(self, count):
        return [
            {"id": f"c{i}", "name": f"Card {i}", "upright_meaning": "up", "reversed_meaning": "down"}
            for i in range(count)
        ]

    def test_builds_cards_in_order(self):
        deck = build_deck(self._raw(5), expected_size=5)
        assert [card.id for card in deck] == ["c0", "c1", "c2", "c3", "c4"]
        assert isinstance(deck, tuple)

    def test_missing_field_rejected(self):
        raw = self._raw(3)
        del raw[1]["reversed_meaning"]
        with pytest.raises(DeckError, match="reversed_meaning"):
            build_deck(raw, expected_size=None)

    def test_duplicate_id_rejected(self):
        raw = self._raw(3)
        raw[2]["id"] = "c0"
        with pytest.raises(DeckError, match="Duplicate"):
            build_deck(raw, expected_size=None)

    def test_wrong_size_rejected(self):
        with pytest.raises(DeckError, match="exactly 78"):
            build_deck(self._raw(10))


class TestDeal:
    @pytest.mark.parametrize("seed", [0, 1, 7, 42, 2024])
    def test_deal_nine_unique_cards(self, seed):
        deck = get_tarot_deck()
        dealt = deal(deck, 9, random.Random(seed))
        assert len(dealt) == 9
        assert len({card.id for card in dealt}) == 9
        assert all(card in deck for card in dealt)

    def test_deal_does_not_mutate_source(self):
        deck = list(get_tarot_deck())
        before = list(deck)
        deal(deck, 9, random.Random(3))
        assert deck == before

    def test_same_seed_same_deal(self):
        deck = get_tarot_deck()
        first = deal(deck, 9, seeded_random("user-1", salt="2026-10-18"))
        second = deal(deck, 9, seeded_random("user-1", salt="2026-10-18"))
        assert [c.id for c in first] == [c.id for c in second]

    def test_deal_more_than_deck_raises(self):
        with pytest.raises(DeckError):
            deal(get_tarot_deck()[:5], 9, random.Random(0))


class TestRng:
    def test_int_seed_used_directly(self):
        assert seeded_random(5).random() == random.Random(5).random()

    def test_string_seed_is_deterministic(self):
        assert seeded_random("abc").random() == seeded_random("abc").random()
        assert seeded_random("abc").random() != seeded_random("abd").random()

    def test_coin_flip_extremes(self):
        rng = random.Random(0)
        assert not any(coin_flip(rng, 0.0) for _ in range(50))
        assert all(coin_flip(rng, 1.0) for _ in range(50))


class TestSelectedCard:
    def test_meaning_follows_orientation(self):
        card = Card(id="x", name="X", upright_meaning="up", reversed_meaning="down")
        assert SelectedCard(card, is_reversed=False).meaning == "up"
        assert SelectedCard(card, is_reversed=True).meaning == "down"

    def test_at_position_returns_copy(self):
        card = SelectedCard(Card(id="x", name="X"), is_reversed=False)
        placed = card.at_position(Position.PRESENT)
        assert card.position is None
        assert placed.position == Position.PRESENT
        assert placed.to_summary_dict()["position"] == "present"
