"""
Card Deck Manager Module

Deals the 9-card sub-deck and manages the 0-3 card selection:
- Unbiased shuffle of a copy of the full deck
- Fresh orientation draw every time a card enters the selection
- Position assignment (past, present, future) on confirmation
"""

from __future__ import annotations

import logging
import random
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from constants import DEAL_SIZE, REVERSED_PROBABILITY, SPREAD_SIZE
from tarot_core.deck import deal
from tarot_core.rng import coin_flip, ensure_rng
from tarot_core.types import SPREAD_POSITIONS, Card, SelectedCard

logger = logging.getLogger(__name__)


class SelectionResult(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    FULL = "full"
    LOCKED = "locked"
    NOT_DEALT = "not_dealt"


class CardDeckManager:
    """Owns the dealt cards and the user's selection for one session."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        deal_size: int = DEAL_SIZE,
        selection_size: int = SPREAD_SIZE,
        reversed_probability: float = REVERSED_PROBABILITY,
        logger_adapter: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ) -> None:
        self.rng = ensure_rng(rng)
        self.deal_size = deal_size
        self.selection_size = selection_size
        self.reversed_probability = reversed_probability
        self.logger = logger_adapter or logger

        self.available_cards: List[Card] = []
        self._selection: List[SelectedCard] = []
        self._confirmed: Optional[Tuple[SelectedCard, ...]] = None

    @property
    def selection(self) -> Tuple[SelectedCard, ...]:
        return tuple(self._selection)

    @property
    def confirmed(self) -> Optional[Tuple[SelectedCard, ...]]:
        return self._confirmed

    @property
    def is_locked(self) -> bool:
        return self._confirmed is not None

    @property
    def is_complete(self) -> bool:
        return len(self._selection) == self.selection_size

    def initialize_deck(self, full_deck: Sequence[Card]) -> List[Card]:
        """
        Deal a fresh sub-deck from ``full_deck`` and clear the selection.

        Raises:
            DeckError: If the deck holds fewer cards than the deal size
        """
        self.available_cards = deal(full_deck, self.deal_size, self.rng)
        self._selection = []
        self._confirmed = None
        self.logger.debug(f"Dealt {len(self.available_cards)} cards from a deck of {len(full_deck)}")
        return list(self.available_cards)

    def is_selected(self, card_id: str) -> bool:
        return any(selected.id == card_id for selected in self._selection)

    def toggle_card(self, card: Union[Card, str]) -> SelectionResult:
        """
        Add ``card`` to the selection, or remove it if already selected.

        A card entering the selection gets a new orientation draw, even if it
        was selected and removed before.
        """
        card_id = card if isinstance(card, str) else card.id

        if self.is_locked:
            return SelectionResult.LOCKED

        for index, selected in enumerate(self._selection):
            if selected.id == card_id:
                del self._selection[index]
                self.logger.debug(f"Deselected {card_id} ({len(self._selection)}/{self.selection_size})")
                return SelectionResult.REMOVED

        dealt = next((c for c in self.available_cards if c.id == card_id), None)
        if dealt is None:
            self.logger.warning(f"Card {card_id} is not among the dealt cards")
            return SelectionResult.NOT_DEALT

        if len(self._selection) >= self.selection_size:
            return SelectionResult.FULL

        is_reversed = coin_flip(self.rng, self.reversed_probability)
        self._selection.append(SelectedCard(card=dealt, is_reversed=is_reversed))
        self.logger.debug(
            f"Selected {card_id} reversed={is_reversed} ({len(self._selection)}/{self.selection_size})"
        )
        return SelectionResult.ADDED

    def confirm_selection(self) -> Optional[Tuple[SelectedCard, ...]]:
        """
        Fix positions in selection order and lock the selection.

        Returns:
            The positioned cards, or None (no change) unless exactly three are
            selected and the selection is not yet locked
        """
        if self.is_locked or not self.is_complete:
            return None

        self._confirmed = tuple(
            selected.at_position(position)
            for selected, position in zip(self._selection, SPREAD_POSITIONS)
        )
        self._selection = list(self._confirmed)
        return self._confirmed

    def reset(self) -> None:
        self.available_cards = []
        self._selection = []
        self._confirmed = None
