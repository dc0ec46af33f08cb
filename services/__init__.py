"""
External service boundary for fortune sessions.

- FortuneBackend: Abstract interface the session components call
- HttpFortuneBackend: aiohttp implementation against the game API
- schemas: Pydantic wire models
"""

from services.base import FortuneBackend
from services.http_backend import HttpFortuneBackend
from services.schemas import (
    ChatTurnRequest,
    ChatTurnResponse,
    GiftRequest,
    InterpretationPayload,
    InterpretationRequest,
    ReadingRecord,
)

__all__ = [
    "ChatTurnRequest",
    "ChatTurnResponse",
    "FortuneBackend",
    "GiftRequest",
    "HttpFortuneBackend",
    "InterpretationPayload",
    "InterpretationRequest",
    "ReadingRecord",
]
