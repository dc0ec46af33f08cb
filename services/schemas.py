"""
Pydantic wire models for the fortune services.

These models define the exact contract between a session and the chat,
interpretation, persistence and gift endpoints. Field aliases accept the
names used on the wire; the Python attribute names are what sessions read.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from constants import SPREAD_SIZE
from tarot_core.types import (
    CardMeaning,
    Interpretation,
    Judgment,
    Message,
    SelectedCard,
    message_history_to_dicts,
)


# =============================================================================
# Chat
# =============================================================================

class ChatTurnRequest(BaseModel):
    """One user message plus the conversation so far."""
    history: list[dict[str, str]] = Field(default_factory=list)
    new_message: str
    session_context: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def build(
        cls, history: list[Message], new_message: str, **session_context: Any
    ) -> ChatTurnRequest:
        return cls(
            history=message_history_to_dicts(history),
            new_message=new_message,
            session_context=session_context,
        )


class ChatTurnResponse(BaseModel):
    """Assistant reply. ``reply_text`` may still carry the readiness marker."""
    model_config = ConfigDict(populate_by_name=True)

    reply_text: str = Field(alias="sage_response")
    summary: Optional[str] = Field(None, alias="conversation_summary")
    is_ready: bool = False

    @field_validator("reply_text")
    @classmethod
    def _reply_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reply text is empty")
        return value


# =============================================================================
# Interpretation
# =============================================================================

class SelectedCardInfo(BaseModel):
    id: str
    name: str
    is_reversed: bool
    position: Optional[str] = None
    meaning: str = ""

    @classmethod
    def from_selected(cls, selected: SelectedCard) -> SelectedCardInfo:
        return cls(
            id=selected.id,
            name=selected.name,
            is_reversed=selected.is_reversed,
            position=selected.position.value if selected.position else None,
            meaning=selected.meaning,
        )


class InterpretationRequest(BaseModel):
    selected_cards: list[SelectedCardInfo] = Field(min_length=SPREAD_SIZE, max_length=SPREAD_SIZE)
    summary: str = ""
    question: str = ""

    @classmethod
    def build(cls, selected: list[SelectedCard], summary: str, question: str) -> InterpretationRequest:
        return cls(
            selected_cards=[SelectedCardInfo.from_selected(card) for card in selected],
            summary=summary,
            question=question,
        )


class CardMeaningInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    card_name: str = Field(alias="cardName")
    position: str
    meaning: str


class JudgmentInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    short_answer: str = Field(alias="shortAnswer")


class InterpretationPayload(BaseModel):
    """Structured reading as returned by the interpretation service."""
    model_config = ConfigDict(populate_by_name=True)

    overall: str
    card_meanings: list[CardMeaningInfo] = Field(alias="cardMeanings")
    advice: str
    summary: str = ""
    judgment: Optional[JudgmentInfo] = None

    @field_validator("card_meanings")
    @classmethod
    def _one_meaning_per_card(cls, value: list[CardMeaningInfo]) -> list[CardMeaningInfo]:
        if len(value) != SPREAD_SIZE:
            raise ValueError(f"expected {SPREAD_SIZE} card meanings, got {len(value)}")
        return value

    @field_validator("advice")
    @classmethod
    def _advice_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("advice is empty")
        return value

    def to_interpretation(self) -> Interpretation:
        return Interpretation(
            overall=self.overall,
            card_meanings=tuple(
                CardMeaning(card_name=m.card_name, position=m.position, meaning=m.meaning)
                for m in self.card_meanings
            ),
            advice=self.advice,
            summary=self.summary,
            judgment=Judgment(self.judgment.short_answer) if self.judgment else None,
        )


# =============================================================================
# Best-effort calls
# =============================================================================

class ReadingRecord(BaseModel):
    """Reading persisted once the interpretation is known."""
    selected_cards: list[dict[str, Any]]
    conversation_summary: str
    interpretation_summary: str
    conversation_turns: int = Field(ge=0)
    duration_seconds: int = Field(ge=0)


class GiftRequest(BaseModel):
    summary: str
    interpretation: dict[str, Any]
