"""
Tarot Core - immutable domain types, deck building and seedable randomness
shared by every session component.
"""

from tarot_core.deck import build_deck, deal
from tarot_core.rng import seeded_random
from tarot_core.types import (
    SPREAD_POSITIONS,
    Card,
    CardMeaning,
    Interpretation,
    Judgment,
    Message,
    Position,
    Role,
    SelectedCard,
)

__all__ = [
    "SPREAD_POSITIONS",
    "Card",
    "CardMeaning",
    "Interpretation",
    "Judgment",
    "Message",
    "Position",
    "Role",
    "SelectedCard",
    "build_deck",
    "deal",
    "seeded_random",
]

__version__ = "0.1.0"
