"""
Custom exceptions for the fortune-telling session.

Provides specific exception types for better error handling and debugging.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rate_limiter import LimitData


class FortuneError(Exception):
    """Base exception for all fortune session errors."""

    pass


class RateLimitExceeded(FortuneError):
    """Raised when the daily chat limit blocks a conversational turn."""

    def __init__(self, limit_data: LimitData | None = None) -> None:
        self.limit_data = limit_data
        if limit_data is not None:
            detail = f"{limit_data.tier} tier allows {limit_data.limit} chats per day"
        else:
            detail = "daily chat limit reached"
        super().__init__(f"Rate limit exceeded: {detail}")


class ServiceError(FortuneError):
    """Base exception for external service failures."""

    pass


class ChatServiceUnavailable(ServiceError):
    """Raised when the chat turn service fails or returns an unusable reply."""

    pass


class InterpretationFailed(ServiceError):
    """Raised when the interpretation service fails or returns a malformed reading."""

    pass


class PersistenceFailed(ServiceError):
    """Raised when the reading could not be saved."""

    pass


class GiftGenerationFailed(ServiceError):
    """Raised when gift generation fails."""

    pass


class DeckError(FortuneError):
    """Raised when the card deck is missing, malformed, or too small to deal from."""

    pass


class InvalidPhaseTransitionError(FortuneError):
    """Raised when a session is asked to move to a phase out of order."""

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot transition from '{current}' to '{requested}'")
