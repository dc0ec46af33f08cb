"""
Deck building and dealing.

Turns raw deck definitions into immutable Card tuples and deals sub-decks
without touching the source deck.
"""

from __future__ import annotations

import random
from typing import Any, Iterable, List, Mapping, Sequence, Tuple

from constants import FULL_DECK_SIZE
from exceptions import DeckError
from tarot_core.types import Card

REQUIRED_CARD_FIELDS = ("id", "name", "upright_meaning", "reversed_meaning")


def build_deck(raw_cards: Iterable[Mapping[str, Any]], expected_size: int | None = FULL_DECK_SIZE) -> Tuple[Card, ...]:
    """
    Validate raw card definitions and build the immutable deck.

    Args:
        raw_cards: Card definitions as loaded from JSON
        expected_size: Required number of cards, or None to accept any size

    Returns:
        Tuple of Card objects in source order

    Raises:
        DeckError: If a card lacks a required field, ids repeat, or the size is wrong
    """
    cards: List[Card] = []
    seen: set[str] = set()

    for index, raw in enumerate(raw_cards):
        missing = [name for name in REQUIRED_CARD_FIELDS if not raw.get(name)]
        if missing:
            raise DeckError(f"Card #{index} is missing fields: {', '.join(missing)}")
        card = Card.from_dict(raw)
        if card.id in seen:
            raise DeckError(f"Duplicate card id: {card.id}")
        seen.add(card.id)
        cards.append(card)

    if expected_size is not None and len(cards) != expected_size:
        raise DeckError(f"Deck must contain exactly {expected_size} cards, got {len(cards)}")

    return tuple(cards)


def deal(full_deck: Sequence[Card], count: int, rng: random.Random) -> List[Card]:
    """
    Shuffle a copy of the deck and take the first ``count`` cards.

    ``random.Random.shuffle`` is a Fisher-Yates shuffle, so every permutation
    of the copy is equally likely. The source sequence is never mutated.
    """
    if count > len(full_deck):
        raise DeckError(f"Cannot deal {count} cards from a deck of {len(full_deck)}")

    shuffled = list(full_deck)
    rng.shuffle(shuffled)
    return shuffled[:count]
