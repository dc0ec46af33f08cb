"""Shared fixtures for the session tests."""

import asyncio
import random
from unittest.mock import AsyncMock, Mock

import pytest

from config import get_tarot_deck
from rate_limiter import RateLimitDecision, RateLimiter
from services.base import FortuneBackend
from services.schemas import ChatTurnResponse, InterpretationPayload
from sessions.session_state import SessionTimings

FAST = SessionTimings.instant(0.01)


def _interpretation_payload(judgment=None):
    data = {
        "overall": "A long road turns toward home.",
        "card_meanings": [
            {"card_name": "The Fool", "position": "past", "meaning": "You leapt without looking."},
            {"card_name": "The Star", "position": "present", "meaning": "Hope is returning."},
            {"card_name": "The Sun", "position": "future", "meaning": "Clarity is close."},
        ],
        "advice": "Trust the slow part of the journey.",
        "summary": "A hopeful turn.",
    }
    if judgment:
        data["judgment"] = {"short_answer": judgment}
    return InterpretationPayload.model_validate(data)


@pytest.fixture
def make_payload():
    """Factory for a valid three-card InterpretationPayload."""
    return _interpretation_payload


@pytest.fixture
def deck():
    return get_tarot_deck()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def timings():
    return FAST


@pytest.fixture
def backend():
    """FortuneBackend double whose calls all succeed."""
    mock = AsyncMock(spec=FortuneBackend)
    mock.send_chat_turn.return_value = ChatTurnResponse(reply_text="Tell me more.")
    mock.interpret_cards.return_value = _interpretation_payload()
    mock.save_reading.return_value = None
    mock.generate_gift.return_value = None
    return mock


@pytest.fixture
def limiter():
    """RateLimiter double that always allows."""
    mock = Mock(spec=RateLimiter)
    mock.check.return_value = RateLimitDecision(allowed=True)
    return mock


@pytest.fixture
def mock_logger():
    logger = Mock()
    logger.info_event = Mock()
    logger.debug_event = Mock()
    logger.warning_event = Mock()
    logger.error_event = Mock()
    return logger


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds or the timeout expires."""

    async def _wait(predicate, timeout=2.0, interval=0.005):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(interval)

    return _wait
