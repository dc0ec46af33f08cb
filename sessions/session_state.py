"""
Session state for one fortune-telling run.

Holds the phase, conversation and reveal bookkeeping. The phase only moves
forward one step at a time; reset() is the single way back to the start.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from constants import (
    INTERPRETATION_INITIAL_DELAY_SECONDS,
    INTERPRETATION_SEGMENT_GAP_SECONDS,
    INTERPRETATION_THINKING_SECONDS,
    MONOLOGUE_ROTATION_SECONDS,
    REVEAL_CARD_DELAY_SECONDS,
    REVEAL_SETTLE_SECONDS,
    SELECTION_TRANSITION_SECONDS,
)
from exceptions import InvalidPhaseTransitionError
from tarot_core.types import Message


class Phase(str, Enum):
    MONOLOGUE = "monologue"
    CONVERSATION = "conversation"
    SELECTION = "selection"
    REVEAL = "reveal"
    INTERPRETATION = "interpretation"


PHASE_ORDER: Tuple[Phase, ...] = (
    Phase.MONOLOGUE,
    Phase.CONVERSATION,
    Phase.SELECTION,
    Phase.REVEAL,
    Phase.INTERPRETATION,
)


@dataclass(frozen=True)
class SessionTimings:
    """Every delay used by a session, in seconds."""

    monologue_rotation: float = MONOLOGUE_ROTATION_SECONDS
    selection_transition: float = SELECTION_TRANSITION_SECONDS
    reveal_card_delay: float = REVEAL_CARD_DELAY_SECONDS
    reveal_settle: float = REVEAL_SETTLE_SECONDS
    interpretation_initial_delay: float = INTERPRETATION_INITIAL_DELAY_SECONDS
    interpretation_thinking: float = INTERPRETATION_THINKING_SECONDS
    interpretation_segment_gap: float = INTERPRETATION_SEGMENT_GAP_SECONDS

    @classmethod
    def instant(cls, step: float = 0.0) -> SessionTimings:
        """Uniform tiny delays, for tests and headless runs."""
        return cls(step, step, step, step, step, step, step)


class OneShotLatch:
    """
    Compare-and-set flag that lets one caller through until reset.

    try_fire() returns True exactly once; every later call returns False.
    """

    __slots__ = ("_fired",)

    def __init__(self) -> None:
        self._fired = False

    @property
    def fired(self) -> bool:
        return self._fired

    def try_fire(self) -> bool:
        if self._fired:
            return False
        self._fired = True
        return True

    def reset(self) -> None:
        self._fired = False


@dataclass
class Session:
    """
    Mutable state of one session.

    Attributes:
        phase: Current phase
        conversation_history: Messages of the current conversation
        conversation_summary: Latest summary from the chat service
        turn_count: User messages sent (kept when history is cleared)
        started_at: Wall-clock start time (epoch seconds)
        is_ready: Assistant signalled enough context for a reading
        question: First user message, used as the reading's question
        revealed_cards: Ids of face-up cards, in reveal order
        reveal_latch: Guards the single reveal run
        interpretation_latch: Guards the single interpretation request
        phase_history: Phases entered since the last reset
    """

    phase: Phase = Phase.MONOLOGUE
    conversation_history: List[Message] = field(default_factory=list)
    conversation_summary: str = ""
    turn_count: int = 0
    started_at: float = field(default_factory=time.time)
    is_ready: bool = False
    question: Optional[str] = None
    revealed_cards: List[str] = field(default_factory=list)
    reveal_latch: OneShotLatch = field(default_factory=OneShotLatch)
    interpretation_latch: OneShotLatch = field(default_factory=OneShotLatch)
    phase_history: List[Phase] = field(default_factory=lambda: [Phase.MONOLOGUE])

    @property
    def duration_seconds(self) -> int:
        return max(0, int(time.time() - self.started_at))

    def can_advance_to(self, target: Phase) -> bool:
        current = PHASE_ORDER.index(self.phase)
        return current + 1 < len(PHASE_ORDER) and PHASE_ORDER[current + 1] == target

    def advance_to(self, target: Phase) -> None:
        """
        Move to the next phase.

        Raises:
            InvalidPhaseTransitionError: If ``target`` is not the immediate successor
        """
        if not self.can_advance_to(target):
            raise InvalidPhaseTransitionError(self.phase.value, target.value)
        self.phase = target
        self.phase_history.append(target)

    def reset(self) -> None:
        """Clear every field and return to the monologue phase."""
        self.phase = Phase.MONOLOGUE
        self.conversation_history = []
        self.conversation_summary = ""
        self.turn_count = 0
        self.started_at = time.time()
        self.is_ready = False
        self.question = None
        self.revealed_cards = []
        self.reveal_latch.reset()
        self.interpretation_latch.reset()
        self.phase_history = [Phase.MONOLOGUE]
