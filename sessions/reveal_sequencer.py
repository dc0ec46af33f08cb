"""
Reveal Sequencer Module

Turns the selected cards face up one at a time, in selection order, then
hands over to the interpretation exactly once.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from logging_config import StructuredLoggerAdapter
from sessions.scheduler import TaskScheduler
from sessions.session_state import Session, SessionTimings
from tarot_core.types import SelectedCard

logger = logging.getLogger(__name__)


class RevealSequencer:
    """
    Paces the face-up reveal of the selection.

    Card ``i`` is revealed ``i * reveal_card_delay`` seconds after
    reveal_all() is called. After the last card and a settle delay, the
    session's interpretation latch is fired and ``on_complete`` runs.
    """

    def __init__(
        self,
        session: Session,
        scheduler: TaskScheduler,
        timings: SessionTimings,
        on_complete: Callable[[], None],
        on_card_revealed: Optional[Callable[[int, SelectedCard], None]] = None,
        logger_adapter: Optional[StructuredLoggerAdapter] = None,
    ) -> None:
        self.session = session
        self.scheduler = scheduler
        self.timings = timings
        self.on_complete = on_complete
        self.on_card_revealed = on_card_revealed
        self.logger = logger_adapter or StructuredLoggerAdapter(logger, {})
        self._cards: tuple[SelectedCard, ...] = ()
        self._settled = False

    @property
    def is_complete(self) -> bool:
        return bool(self._cards) and len(self.session.revealed_cards) == len(self._cards)

    def reveal_all(self, selected: Sequence[SelectedCard]) -> bool:
        """
        Start the reveal chain.

        Returns:
            False (and does nothing) if a reveal already ran for this session
        """
        if not selected or not self.session.reveal_latch.try_fire():
            return False

        self._cards = tuple(selected)
        self.logger.info_event(
            "reveal_started",
            "Revealing selected cards",
            card_ids=[card.id for card in self._cards],
        )
        for index in range(len(self._cards)):
            self.scheduler.schedule(
                index * self.timings.reveal_card_delay,
                lambda i=index: self._reveal(i),
                name=f"reveal_card_{index}",
            )
        return True

    def _reveal(self, index: int) -> None:
        revealed = self.session.revealed_cards
        if len(revealed) != index:
            return

        card = self._cards[index]
        revealed.append(card.id)
        self.logger.debug_event("card_revealed", f"Revealed {card.name}", index=index, card_id=card.id)
        if self.on_card_revealed is not None:
            self.on_card_revealed(index, card)

        if self.is_complete:
            self.scheduler.schedule(self.timings.reveal_settle, self._settle, name="reveal_settle")

    def _settle(self) -> None:
        self._settled = True
        self.check_complete()

    def check_complete(self) -> bool:
        """
        Hand over to the interpretation once every card is face up and settled.

        Safe to call any number of times; the handover happens once.
        """
        if not (self.is_complete and self._settled):
            return False
        if not self.session.interpretation_latch.try_fire():
            return False
        self.logger.info_event("reveal_completed", "All cards revealed")
        self.on_complete()
        return True

    def reset(self) -> None:
        self._cards = ()
        self._settled = False
