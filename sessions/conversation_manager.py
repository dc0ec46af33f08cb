"""
Conversation Manager Module

Runs the guided conversation that precedes card selection.

Responsibilities:
- Daily limit check before every send (check, then act, with no await between)
- Optimistic user message append and turn counting
- One chat service call per send, at most one in flight
- Readiness marker detection and summary capture
- Local fallback reply when the chat service fails
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional, Tuple

from constants import CHAT_ACTION_ID, CHAT_FALLBACK_REPLY, READY_MARKER
from exceptions import RateLimitExceeded, ServiceError
from logging_config import StructuredLoggerAdapter
from metrics import track_chat_turn, track_error
from rate_limiter import DenialReason, RateLimiter
from services.base import FortuneBackend
from services.schemas import ChatTurnRequest
from sessions.session_state import Session
from tarot_core.types import Message

logger = logging.getLogger(__name__)


class TurnStatus(str, Enum):
    EMPTY = "empty"
    BUSY = "busy"
    LOADING = "loading"
    RATE_LIMITED = "rate_limited"
    SENT = "sent"
    FALLBACK = "fallback"
    DISCARDED = "discarded"
    INVALID_PHASE = "invalid_phase"


def strip_ready_marker(text: str, marker: str = READY_MARKER) -> Tuple[str, bool]:
    """Remove every occurrence of the readiness marker from ``text``."""
    if marker not in text:
        return text.strip(), False
    return text.replace(marker, "").strip(), True


class ConversationManager:
    """
    Sends conversational turns for one session.

    Callers must not start a send while ``busy`` is True; a second call
    during a pending send returns TurnStatus.BUSY without side effects.
    """

    def __init__(
        self,
        session: Session,
        backend: FortuneBackend,
        rate_limiter: RateLimiter,
        logger_adapter: Optional[StructuredLoggerAdapter] = None,
        on_turn_started: Optional[Callable[[], None]] = None,
        action_id: str = CHAT_ACTION_ID,
        fallback_reply: str = CHAT_FALLBACK_REPLY,
    ) -> None:
        self.session = session
        self.backend = backend
        self.rate_limiter = rate_limiter
        self.logger = logger_adapter or StructuredLoggerAdapter(logger, {})
        self.on_turn_started = on_turn_started
        self.action_id = action_id
        self.fallback_reply = fallback_reply

        self.busy = False
        self._epoch = 0

    def reset(self) -> None:
        """Drop any reply still in flight for the previous session run."""
        self._epoch += 1
        self.busy = False

    async def send_message(self, text: str) -> TurnStatus:
        """
        Send one user message.

        Returns:
            TurnStatus describing what happened

        Raises:
            RateLimitExceeded: If the daily limit blocks the message. Nothing
                is appended and the chat service is not called.
        """
        message = (text or "").strip()
        if not message:
            return TurnStatus.EMPTY
        if self.busy:
            return TurnStatus.BUSY

        decision = self.rate_limiter.check(self.action_id)
        if not decision.allowed:
            if decision.reason == DenialReason.LIMIT_REACHED:
                track_chat_turn(TurnStatus.RATE_LIMITED.value)
                raise RateLimitExceeded(decision.limit_data)
            # Loading is reported by the limiter itself
            return TurnStatus.LOADING

        self.busy = True
        epoch = self._epoch
        history = list(self.session.conversation_history)

        self.session.conversation_history.append(Message.user(message))
        self.session.turn_count += 1
        if self.session.question is None:
            self.session.question = message
        if self.on_turn_started is not None:
            self.on_turn_started()

        try:
            request = ChatTurnRequest.build(
                history,
                message,
                turn_count=self.session.turn_count,
                phase=self.session.phase.value,
            )
            response = await self.backend.send_chat_turn(request)
        except ServiceError as e:
            return self._apply_fallback(epoch, e)
        except Exception as e:
            self.logger.error(f"Unexpected chat failure: {e}", exc_info=True)
            return self._apply_fallback(epoch, e)
        finally:
            if epoch == self._epoch:
                self.busy = False

        # Counted for every confirmed reply, including one that outlived its session
        self.rate_limiter.increment()

        if epoch != self._epoch:
            track_chat_turn(TurnStatus.DISCARDED.value)
            return TurnStatus.DISCARDED

        reply, marker_found = strip_ready_marker(response.reply_text)
        self.session.conversation_history.append(Message.assistant(reply))

        is_ready = marker_found or response.is_ready
        if response.summary:
            self.session.conversation_summary = response.summary
        elif is_ready:
            self.session.conversation_summary = message
        if is_ready and not self.session.is_ready:
            self.session.is_ready = True
            self.logger.info_event(
                "conversation_ready",
                "Assistant signalled readiness for a reading",
                turn_count=self.session.turn_count,
            )

        track_chat_turn(TurnStatus.SENT.value)
        return TurnStatus.SENT

    def _apply_fallback(self, epoch: int, error: Exception) -> TurnStatus:
        track_error(error.__class__.__name__)
        if epoch != self._epoch:
            return TurnStatus.DISCARDED

        self.logger.warning_event(
            "chat_fallback",
            f"Chat service failed, using fallback reply: {error}",
            error_type=error.__class__.__name__,
        )
        self.session.conversation_history.append(Message.assistant(self.fallback_reply))
        track_chat_turn(TurnStatus.FALLBACK.value)
        return TurnStatus.FALLBACK
