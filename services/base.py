"""
Base class for fortune service backends.

This module defines the abstract interface every backend used by a session
must implement. Sessions never talk to transport code directly; they call
these four coroutines and handle the typed errors they raise.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from services.schemas import (
    ChatTurnRequest,
    ChatTurnResponse,
    GiftRequest,
    InterpretationPayload,
    InterpretationRequest,
    ReadingRecord,
)


class FortuneBackend(ABC):
    """
    Abstract base class for the external services behind a session.

    Subclasses must implement:
    - send_chat_turn(): One conversational exchange
    - interpret_cards(): The final reading for three oriented cards
    - save_reading(): Persist a finished reading
    - generate_gift(): Produce the end-of-session gift
    """

    @abstractmethod
    async def send_chat_turn(self, request: ChatTurnRequest) -> ChatTurnResponse:
        """
        Send one user message with the conversation so far.

        Returns:
            The assistant reply (may embed the readiness marker)

        Raises:
            ChatServiceUnavailable: If the service fails or the reply is unusable
        """

    @abstractmethod
    async def interpret_cards(self, request: InterpretationRequest) -> InterpretationPayload:
        """
        Request the reading for the selected cards.

        Raises:
            InterpretationFailed: If the service fails or the reading is malformed
        """

    @abstractmethod
    async def save_reading(self, record: ReadingRecord) -> None:
        """
        Raises:
            PersistenceFailed: If the reading could not be stored
        """

    @abstractmethod
    async def generate_gift(self, request: GiftRequest) -> None:
        """
        Raises:
            GiftGenerationFailed: If the gift could not be generated
        """

    async def close(self) -> None:
        """Release transport resources. Default is a no-op."""
        return None
