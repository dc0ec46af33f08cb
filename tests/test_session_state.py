"""
Tests for session state, the one-shot latch and the monologue rotator.
"""

import asyncio
from unittest.mock import Mock

import pytest

from exceptions import InvalidPhaseTransitionError
from sessions.monologue import MonologueRotator
from sessions.scheduler import TaskScheduler
from sessions.session_state import PHASE_ORDER, OneShotLatch, Phase, Session
from tarot_core.types import Message


class TestOneShotLatch:
    def test_fires_once(self):
        latch = OneShotLatch()
        assert latch.try_fire()
        assert not latch.try_fire()
        assert latch.fired

    def test_reset_rearms(self):
        latch = OneShotLatch()
        latch.try_fire()
        latch.reset()
        assert not latch.fired
        assert latch.try_fire()


class TestSessionPhases:
    def test_starts_in_monologue(self):
        session = Session()
        assert session.phase == Phase.MONOLOGUE
        assert session.phase_history == [Phase.MONOLOGUE]

    def test_walks_forward_in_order(self):
        session = Session()
        for phase in PHASE_ORDER[1:]:
            session.advance_to(phase)
        assert session.phase == Phase.INTERPRETATION
        assert session.phase_history == list(PHASE_ORDER)

    @pytest.mark.parametrize("target", [Phase.SELECTION, Phase.INTERPRETATION, Phase.MONOLOGUE])
    def test_rejects_skips_and_backwards(self, target):
        session = Session()
        with pytest.raises(InvalidPhaseTransitionError):
            session.advance_to(target)
        assert session.phase == Phase.MONOLOGUE

    def test_no_successor_after_interpretation(self):
        session = Session(phase=Phase.INTERPRETATION)
        assert not any(session.can_advance_to(p) for p in PHASE_ORDER)

    def test_reset_clears_everything(self):
        session = Session()
        session.advance_to(Phase.CONVERSATION)
        session.conversation_history.append(Message("user", "hi"))
        session.turn_count = 3
        session.is_ready = True
        session.question = "hi"
        session.revealed_cards = ["major-00"]
        session.reveal_latch.try_fire()
        session.interpretation_latch.try_fire()

        session.reset()

        assert session.phase == Phase.MONOLOGUE
        assert session.conversation_history == []
        assert session.turn_count == 0
        assert not session.is_ready
        assert session.question is None
        assert session.revealed_cards == []
        assert not session.reveal_latch.fired
        assert not session.interpretation_latch.fired
        assert session.phase_history == [Phase.MONOLOGUE]

    def test_duration_never_negative(self):
        session = Session(started_at=10**12)
        assert session.duration_seconds == 0


class TestMonologueRotator:
    @pytest.mark.asyncio
    async def test_rotates_and_wraps(self, wait_until):
        scheduler = TaskScheduler()
        seen = []
        rotator = MonologueRotator(["a", "b", "c"], scheduler, 0.01, on_change=lambda i, line: seen.append(line))

        rotator.start()
        await wait_until(lambda: len(seen) >= 4)
        rotator.stop()

        assert seen[:4] == ["b", "c", "a", "b"]

    @pytest.mark.asyncio
    async def test_single_line_never_rotates(self):
        scheduler = TaskScheduler()
        rotator = MonologueRotator(["only"], scheduler, 0.01)
        rotator.start()
        assert not rotator.running
        assert rotator.current == "only"

    @pytest.mark.asyncio
    async def test_cancel_all_stops_chain(self):
        scheduler = TaskScheduler()
        on_change = Mock()
        rotator = MonologueRotator(["a", "b"], scheduler, 0.05, on_change=on_change)

        rotator.start()
        scheduler.cancel_all()
        await asyncio.sleep(0.15)

        on_change.assert_not_called()

    @pytest.mark.asyncio
    async def test_reset_returns_to_first_line(self, wait_until):
        scheduler = TaskScheduler()
        rotator = MonologueRotator(["a", "b"], scheduler, 0.01)
        rotator.start()
        await wait_until(lambda: rotator.index == 1)

        rotator.reset()

        assert rotator.current == "a"
        assert not rotator.running
