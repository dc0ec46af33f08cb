"""
Configuration loader module.

Provides centralized, cached access to the static session data:
the tarot deck and the monologue lines shown before the conversation starts.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from exceptions import DeckError
from tarot_core.deck import build_deck
from tarot_core.types import Card

_CONFIG_DIR = Path(__file__).parent
_DECK_PATH = _CONFIG_DIR / "tarot_cards.json"
_MONOLOGUES_PATH = _CONFIG_DIR / "monologues.json"

# Cache for loaded config
_deck: tuple[Card, ...] | None = None
_monologues: tuple[str, ...] | None = None


def _load_json(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def get_tarot_deck() -> tuple[Card, ...]:
    """
    Load and return the full 78-card deck.

    Returns cached version after first load.

    Raises:
        DeckError: If the deck file is malformed
    """
    global _deck

    if _deck is None:
        raw = _load_json(_DECK_PATH)
        if not isinstance(raw, list):
            raise DeckError(f"Deck file must contain a list of cards: {_DECK_PATH}")
        _deck = build_deck(raw)

    return _deck


def get_monologues() -> tuple[str, ...]:
    """Load and return the monologue lines (cached after first load)."""
    global _monologues

    if _monologues is None:
        raw = _load_json(_MONOLOGUES_PATH)
        _monologues = tuple(str(line) for line in raw if str(line).strip())

    return _monologues


def get_card(card_id: str) -> Card:
    """Look up one card of the full deck by id."""
    for card in get_tarot_deck():
        if card.id == card_id:
            return card
    raise DeckError(f"Unknown card id: {card_id}")


__all__ = [
    "get_card",
    "get_monologues",
    "get_tarot_deck",
]
