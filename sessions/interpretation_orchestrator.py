"""
Interpretation Orchestrator Module

Requests the final reading and paces its display.

Responsibilities:
- One interpretation request per session, with a local fallback reading
- Best-effort persistence of the finished reading
- Paced display of the reading, one segment at a time
- Best-effort gift generation when the session closes
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence

from constants import (
    DEFAULT_PERSONA_NAME,
    FALLBACK_ADVICE,
    FALLBACK_CARD_MEANING,
    FALLBACK_OVERALL,
    FALLBACK_SUMMARY,
)
from exceptions import ServiceError
from logging_config import StructuredLoggerAdapter
from metrics import track_best_effort_failure, track_error, track_interpretation
from services.base import FortuneBackend
from services.schemas import GiftRequest, InterpretationRequest, ReadingRecord
from sessions.scheduler import TaskScheduler, fire_and_forget
from sessions.session_state import Session, SessionTimings
from tarot_core.types import SPREAD_POSITIONS, CardMeaning, Interpretation, SelectedCard

logger = logging.getLogger(__name__)


class SegmentKind(str, Enum):
    CARD = "card"
    OVERALL = "overall"
    ADVICE = "advice"
    JUDGMENT = "judgment"


@dataclass(frozen=True)
class Segment:
    """One unit of displayed interpretation text."""

    kind: SegmentKind
    title: str
    body: str
    card_index: int = -1

    @property
    def content(self) -> str:
        return f"{self.title}\n\n{self.body}"


def build_fallback_interpretation(selected: Sequence[SelectedCard]) -> Interpretation:
    """Deterministic reading built from each card's upright meaning."""
    meanings = tuple(
        CardMeaning(
            card_name=card.name,
            position=(card.position or SPREAD_POSITIONS[index]).value,
            meaning=card.card.upright_meaning or FALLBACK_CARD_MEANING,
        )
        for index, card in enumerate(selected)
    )
    return Interpretation(
        overall=FALLBACK_OVERALL,
        card_meanings=meanings,
        advice=FALLBACK_ADVICE,
        summary=FALLBACK_SUMMARY,
    )


def build_segments(interpretation: Interpretation, persona_name: str = DEFAULT_PERSONA_NAME) -> List[Segment]:
    """
    Segments in display order: each card meaning, overall, advice, then the
    judgment when there is one.
    """
    segments = [
        Segment(SegmentKind.CARD, f"{meaning.card_name} ({meaning.position})", meaning.meaning, index)
        for index, meaning in enumerate(interpretation.card_meanings)
    ]
    segments.append(Segment(SegmentKind.OVERALL, "The reading as a whole", interpretation.overall))
    segments.append(Segment(SegmentKind.ADVICE, f"Advice from {persona_name}", interpretation.advice))
    if interpretation.judgment is not None:
        segments.append(Segment(SegmentKind.JUDGMENT, "The cards' answer", interpretation.judgment.short_answer))
    return segments


class InterpretationOrchestrator:
    """Owns the reading of one session, from request to the last displayed segment."""

    def __init__(
        self,
        session: Session,
        backend: FortuneBackend,
        scheduler: TaskScheduler,
        timings: SessionTimings,
        logger_adapter: Optional[StructuredLoggerAdapter] = None,
        persona_name: str = DEFAULT_PERSONA_NAME,
        on_segment: Optional[Callable[[Segment], None]] = None,
        on_display_complete: Optional[Callable[[], None]] = None,
    ) -> None:
        self.session = session
        self.backend = backend
        self.scheduler = scheduler
        self.timings = timings
        self.logger = logger_adapter or StructuredLoggerAdapter(logger, {})
        self.persona_name = persona_name
        self.on_segment = on_segment
        self.on_display_complete = on_display_complete

        self.in_flight = False
        self.interpretation: Optional[Interpretation] = None
        self.source: Optional[str] = None
        self.display_queue: List[Segment] = []
        self.is_thinking = False
        self.active_card_index = -1
        self.display_complete = False
        self._segments: List[Segment] = []

    async def request_interpretation(
        self, selected: Sequence[SelectedCard], summary: str, question: str
    ) -> Interpretation:
        """
        Fetch the reading, falling back to a local one on any service failure.

        Never raises except on cancellation.
        """
        self.in_flight = True
        try:
            request = InterpretationRequest.build(list(selected), summary, question)
            payload = await self.backend.interpret_cards(request)
            interpretation = payload.to_interpretation()
            self.source = "service"
        except ServiceError as e:
            interpretation = self._fallback(selected, e)
        except Exception as e:
            self.logger.error(f"Unexpected interpretation failure: {e}", exc_info=True)
            interpretation = self._fallback(selected, e)
        finally:
            self.in_flight = False

        self.interpretation = interpretation
        track_interpretation(self.source)
        self.logger.info_event(
            "interpretation_ready",
            "Interpretation ready",
            source=self.source,
            has_judgment=interpretation.judgment is not None,
        )

        record = ReadingRecord(
            selected_cards=[card.to_summary_dict() for card in selected],
            conversation_summary=summary,
            interpretation_summary=interpretation.summary,
            conversation_turns=self.session.turn_count,
            duration_seconds=self.session.duration_seconds,
        )
        fire_and_forget(self._save_reading(record), name="save_reading")
        return interpretation

    def _fallback(self, selected: Sequence[SelectedCard], error: Exception) -> Interpretation:
        track_error(error.__class__.__name__)
        self.logger.warning_event(
            "interpretation_fallback",
            f"Interpretation service failed, using local reading: {error}",
            error_type=error.__class__.__name__,
        )
        self.source = "fallback"
        return build_fallback_interpretation(selected)

    async def _save_reading(self, record: ReadingRecord) -> None:
        try:
            await self.backend.save_reading(record)
            self.logger.debug_event("reading_saved", "Reading saved")
        except Exception as e:
            track_best_effort_failure("persistence")
            self.logger.warning_event(
                "persistence_failed", f"Failed to save reading: {e}", error_type=e.__class__.__name__
            )

    def sequence_display(self, interpretation: Optional[Interpretation] = None) -> None:
        """
        Show the reading one segment at a time.

        Every segment is preceded by a thinking pause; segments are separated
        by a short gap. All timers belong to the session scheduler.
        """
        interpretation = interpretation or self.interpretation
        if interpretation is None:
            return

        self._segments = build_segments(interpretation, self.persona_name)
        self.display_queue = []
        self.is_thinking = False
        self.active_card_index = -1
        self.display_complete = False
        self.scheduler.schedule(
            self.timings.interpretation_initial_delay,
            lambda: self._begin_segment(0),
            name="interpretation_segment_0",
        )

    def _begin_segment(self, index: int) -> None:
        self.is_thinking = True
        self.scheduler.schedule(
            self.timings.interpretation_thinking,
            lambda: self._show_segment(index),
            name=f"interpretation_show_{index}",
        )

    def _show_segment(self, index: int) -> None:
        segment = self._segments[index]
        self.is_thinking = False
        if segment.kind == SegmentKind.CARD:
            self.active_card_index = segment.card_index
        elif segment.kind == SegmentKind.OVERALL:
            self.active_card_index = -1
        self.display_queue.append(segment)
        generation = self.scheduler.generation
        if self.on_segment is not None:
            self.on_segment(segment)
        # the callback may have closed the session
        if not self.scheduler.is_current(generation) or not self._segments:
            return

        next_index = index + 1
        if next_index < len(self._segments):
            self.scheduler.schedule(
                self.timings.interpretation_segment_gap,
                lambda: self._begin_segment(next_index),
                name=f"interpretation_segment_{next_index}",
            )
            return

        self.display_complete = True
        self.logger.debug_event("interpretation_displayed", "Interpretation fully displayed")
        if self.on_display_complete is not None:
            self.on_display_complete()

    def generate_gift(self, summary: str) -> Optional[asyncio.Task]:
        """
        Start gift generation in the background if a reading exists.

        Returns immediately; the task is detached from the session.
        """
        if self.interpretation is None:
            return None
        request = GiftRequest(summary=summary, interpretation=self.interpretation.to_dict())
        return fire_and_forget(self._generate_gift(request), name="generate_gift")

    async def _generate_gift(self, request: GiftRequest) -> None:
        try:
            await self.backend.generate_gift(request)
            self.logger.debug_event("gift_generated", "Gift generated")
        except Exception as e:
            track_best_effort_failure("gift")
            self.logger.warning_event(
                "gift_failed", f"Gift generation failed: {e}", error_type=e.__class__.__name__
            )

    def reset(self) -> None:
        self.in_flight = False
        self.interpretation = None
        self.source = None
        self.display_queue = []
        self.is_thinking = False
        self.active_card_index = -1
        self.display_complete = False
        self._segments = []
