"""
Phase Controller Module

Top-level coordinator of a fortune-telling session. It owns the Session and
composes the other components:
- MonologueRotator: Ambient lines before the first message
- ConversationManager: Guided conversation and daily limit
- CardDeckManager: Dealing and selection
- RevealSequencer: Paced face-up reveal
- InterpretationOrchestrator: Reading request, display and gift

Phases only move forward: monologue -> conversation -> selection -> reveal
-> interpretation. close() is the only way back, and it resets everything.
"""

from __future__ import annotations

import logging
import random
import secrets
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from constants import DEFAULT_PERSONA_NAME
from exceptions import RateLimitExceeded
from logging_config import session_logger
from metrics import active_sessions_gauge, track_phase_transition
from rate_limiter import LimitData, RateLimiter
from services.base import FortuneBackend
from sessions.card_deck_manager import CardDeckManager, SelectionResult
from sessions.conversation_manager import ConversationManager, TurnStatus
from sessions.interpretation_orchestrator import InterpretationOrchestrator, Segment
from sessions.monologue import MonologueRotator
from sessions.reveal_sequencer import RevealSequencer
from sessions.scheduler import TaskScheduler
from sessions.session_state import Phase, Session, SessionTimings
from tarot_core.types import Card, Message, SelectedCard

logger = logging.getLogger(__name__)

PhaseListener = Callable[[Phase, Phase], None]

INTERPRETATION_GUARD = "interpretation_in_flight"


@dataclass(frozen=True)
class CloseGuard:
    """A named condition that blocks close() while it returns True."""

    name: str
    is_blocking: Callable[[], bool]
    on_blocked: Optional[Callable[[], None]] = None


@dataclass(frozen=True)
class CloseResult:
    """
    Outcome of a close request.

    A blocked close is still handled: the request is consumed and nothing
    changes. ``blocked_by`` names the guard that refused it.
    """

    closed: bool
    blocked_by: Optional[str] = None


class PhaseController:
    """Runs one fortune-telling session from open() to close()."""

    def __init__(
        self,
        backend: FortuneBackend,
        rate_limiter: RateLimiter,
        deck: Sequence[Card],
        rng: Optional[random.Random] = None,
        timings: Optional[SessionTimings] = None,
        monologues: Sequence[str] = (),
        session_id: Optional[str] = None,
        persona_name: str = DEFAULT_PERSONA_NAME,
        on_rate_limited: Optional[Callable[[Optional[LimitData]], None]] = None,
        on_segment: Optional[Callable[[Segment], None]] = None,
    ) -> None:
        self.session_id = session_id or secrets.token_urlsafe(16)
        self.logger = session_logger(__name__, self.session_id)
        self.deck = tuple(deck)
        self.timings = timings or SessionTimings()
        self.on_rate_limited = on_rate_limited

        self.session = Session()
        self.scheduler = TaskScheduler(self.logger)
        self.monologue = MonologueRotator(monologues, self.scheduler, self.timings.monologue_rotation)
        self.deck_manager = CardDeckManager(rng, logger_adapter=self.logger)
        self.conversation = ConversationManager(
            self.session,
            backend,
            rate_limiter,
            logger_adapter=self.logger,
            on_turn_started=self._on_turn_started,
        )
        self.reveal = RevealSequencer(
            self.session,
            self.scheduler,
            self.timings,
            on_complete=self._on_reveal_complete,
            logger_adapter=self.logger,
        )
        self.interpretation = InterpretationOrchestrator(
            self.session,
            backend,
            self.scheduler,
            self.timings,
            logger_adapter=self.logger,
            persona_name=persona_name,
            on_segment=on_segment,
        )

        self._close_guards: List[CloseGuard] = []
        self._phase_listeners: List[PhaseListener] = []
        self.is_open = False

    # ------------------------------------------------------------------
    # State exposed to the shell
    # ------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self.session.phase

    @property
    def busy(self) -> bool:
        return self.conversation.busy

    @property
    def monologue_line(self) -> Optional[str]:
        return self.monologue.current

    @property
    def conversation_history(self) -> Tuple[Message, ...]:
        return tuple(self.session.conversation_history)

    @property
    def available_cards(self) -> Tuple[Card, ...]:
        return tuple(self.deck_manager.available_cards)

    @property
    def selection(self) -> Tuple[SelectedCard, ...]:
        return self.deck_manager.selection

    @property
    def revealed_cards(self) -> Tuple[str, ...]:
        return tuple(self.session.revealed_cards)

    @property
    def display_queue(self) -> Tuple[Segment, ...]:
        return tuple(self.interpretation.display_queue)

    @property
    def is_thinking(self) -> bool:
        return self.interpretation.is_thinking

    @property
    def active_card_index(self) -> int:
        return self.interpretation.active_card_index

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_phase_listener(self, listener: PhaseListener) -> None:
        self._phase_listeners.append(listener)

    def register_close_guard(
        self,
        name: str,
        is_blocking: Callable[[], bool],
        on_blocked: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Add a close guard. Guards are checked in registration order, before
        the built-in in-flight interpretation guard; the first blocking one wins.
        """
        self.unregister_close_guard(name)
        self._close_guards.append(CloseGuard(name, is_blocking, on_blocked))

    def unregister_close_guard(self, name: str) -> None:
        self._close_guards = [guard for guard in self._close_guards if guard.name != name]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        if self.is_open:
            return
        self.is_open = True
        active_sessions_gauge.inc()
        self.session.reset()
        self.monologue.start()
        self.logger.info_event("session_opened", "Fortune session opened", deck_size=len(self.deck))

    def close(self) -> CloseResult:
        """
        Close the session and reset it to the monologue phase.

        Refused while an overlay guard blocks or the interpretation request is
        in flight. Otherwise starts gift generation in the background, cancels
        every scheduled task and clears the session.
        """
        for guard in self._close_guards:
            if guard.is_blocking():
                self.logger.info_event("close_blocked", f"Close blocked by {guard.name}", guard=guard.name)
                if guard.on_blocked is not None:
                    guard.on_blocked()
                return CloseResult(closed=False, blocked_by=guard.name)

        if self.interpretation.in_flight:
            self.logger.info_event(
                "close_blocked", "Cannot close while the interpretation is generating", guard=INTERPRETATION_GUARD
            )
            return CloseResult(closed=False, blocked_by=INTERPRETATION_GUARD)

        self.interpretation.generate_gift(self.session.conversation_summary)
        self.scheduler.cancel_all()
        self._reset_components()
        self.logger.info_event("session_closed", "Fortune session closed")
        return CloseResult(closed=True)

    async def shutdown(self) -> None:
        """Cancel and await every session task, then reset. Ignores close guards."""
        await self.scheduler.shutdown()
        self._reset_components()
        self.logger.info_event("session_shutdown", "Fortune session shut down")

    def _reset_components(self) -> None:
        previous = self.session.phase
        self.monologue.reset()
        self.conversation.reset()
        self.deck_manager.reset()
        self.reveal.reset()
        self.interpretation.reset()
        self.session.reset()

        if previous != Phase.MONOLOGUE:
            track_phase_transition(Phase.MONOLOGUE.value)
            self._notify(previous, Phase.MONOLOGUE)
        if self.is_open:
            self.is_open = False
            active_sessions_gauge.dec()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _transition(self, target: Phase) -> None:
        previous = self.session.phase
        self.session.advance_to(target)
        track_phase_transition(target.value)
        self.logger.info_event(
            "phase_changed",
            f"Phase {previous.value} -> {target.value}",
            from_phase=previous.value,
            to_phase=target.value,
        )
        self._notify(previous, target)

    def _notify(self, previous: Phase, current: Phase) -> None:
        for listener in list(self._phase_listeners):
            try:
                listener(previous, current)
            except Exception as e:
                self.logger.error(f"Phase listener failed: {e}", exc_info=True)

    def _on_turn_started(self) -> None:
        if self.session.phase == Phase.MONOLOGUE:
            self.monologue.stop()
            self._transition(Phase.CONVERSATION)

    async def send_message(self, text: str) -> TurnStatus:
        """Send a user message. Allowed in the monologue and conversation phases."""
        if self.session.phase not in (Phase.MONOLOGUE, Phase.CONVERSATION):
            return TurnStatus.INVALID_PHASE

        try:
            return await self.conversation.send_message(text)
        except RateLimitExceeded as e:
            self.logger.warning_event("rate_limited", str(e), turn_count=self.session.turn_count)
            if self.on_rate_limited is not None:
                self.on_rate_limited(e.limit_data)
            return TurnStatus.RATE_LIMITED

    def proceed_to_selection(self) -> bool:
        """
        Move from conversation to card selection.

        Requires the readiness signal and no send in flight. Clears the
        conversation history (summary, question and turn count are kept) and
        deals a fresh set of cards.
        """
        if self.session.phase != Phase.CONVERSATION or not self.session.is_ready or self.conversation.busy:
            return False

        self.deck_manager.initialize_deck(self.deck)
        self.session.conversation_history = []
        self._transition(Phase.SELECTION)
        return True

    def toggle_card(self, card: Union[Card, str]) -> SelectionResult:
        if self.session.phase != Phase.SELECTION:
            return SelectionResult.LOCKED

        result = self.deck_manager.toggle_card(card)
        if result == SelectionResult.FULL:
            self.logger.debug_event("selection_full", "Selection already holds three cards")
        return result

    def confirm_selection(self) -> bool:
        """Lock a complete selection and start the reveal. No-op unless three cards are selected."""
        if self.session.phase != Phase.SELECTION:
            return False

        confirmed = self.deck_manager.confirm_selection()
        if confirmed is None:
            return False

        self._transition(Phase.REVEAL)
        self.scheduler.schedule(
            self.timings.selection_transition,
            lambda: self.reveal.reveal_all(confirmed),
            name="selection_transition",
        )
        return True

    def _on_reveal_complete(self) -> None:
        self._transition(Phase.INTERPRETATION)
        selected = self.deck_manager.confirmed or ()
        self.scheduler.spawn(self._run_interpretation(selected), name="interpretation")

    async def _run_interpretation(self, selected: Sequence[SelectedCard]) -> None:
        interpretation = await self.interpretation.request_interpretation(
            selected,
            self.session.conversation_summary,
            self.session.question or "",
        )
        self.interpretation.sequence_display(interpretation)
