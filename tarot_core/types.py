"""
Data types for the tarot session.

This module defines the core data structures shared by every session component:
- Message: One line of the guided conversation
- Card: An immutable deck entry
- SelectedCard: A card picked by the user, with its orientation and spread position
- CardMeaning / Judgment / Interpretation: The structured reading
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Position(str, Enum):
    """Spread positions, assigned in selection order."""

    PAST = "past"
    PRESENT = "present"
    FUTURE = "future"


SPREAD_POSITIONS: Tuple[Position, ...] = (Position.PAST, Position.PRESENT, Position.FUTURE)


@dataclass(frozen=True)
class Message:
    """
    A single conversational message.

    Attributes:
        role: Who spoke ("user" or "assistant")
        content: Displayed text (readiness marker already removed)
    """

    role: Role
    content: str

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(Role.ASSISTANT, content)

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class Card:
    """
    One entry of the static deck.

    Attributes:
        id: Unique identifier within the deck
        name: Display name
        keywords: Short thematic keywords
        image: Image asset name
        upright_meaning: Meaning when drawn upright
        reversed_meaning: Meaning when drawn reversed
    """

    id: str
    name: str
    keywords: Tuple[str, ...] = ()
    image: str = ""
    upright_meaning: str = ""
    reversed_meaning: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Card:
        return cls(
            id=str(data["id"]),
            name=data["name"],
            keywords=tuple(data.get("keywords", ())),
            image=data.get("image", ""),
            upright_meaning=data.get("upright_meaning", ""),
            reversed_meaning=data.get("reversed_meaning", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "keywords": list(self.keywords),
            "image": self.image,
            "upright_meaning": self.upright_meaning,
            "reversed_meaning": self.reversed_meaning,
        }


@dataclass(frozen=True)
class SelectedCard:
    """
    A card in the user's selection.

    Orientation is drawn when the card is added; position is only known once
    the selection is confirmed.
    """

    card: Card
    is_reversed: bool
    position: Optional[Position] = None

    @property
    def id(self) -> str:
        return self.card.id

    @property
    def name(self) -> str:
        return self.card.name

    @property
    def meaning(self) -> str:
        """Meaning matching the drawn orientation."""
        return self.card.reversed_meaning if self.is_reversed else self.card.upright_meaning

    def at_position(self, position: Position) -> SelectedCard:
        return replace(self, position=position)

    def to_dict(self) -> Dict[str, Any]:
        data = self.card.to_dict()
        data["is_reversed"] = self.is_reversed
        data["position"] = self.position.value if self.position else None
        return data

    def to_summary_dict(self) -> Dict[str, Any]:
        """Minimal record kept when a reading is saved."""
        return {
            "id": self.id,
            "name": self.name,
            "is_reversed": self.is_reversed,
            "position": self.position.value if self.position else None,
        }


@dataclass(frozen=True)
class CardMeaning:
    card_name: str
    position: str
    meaning: str


@dataclass(frozen=True)
class Judgment:
    """Optional yes/no style verdict for direct questions."""

    short_answer: str


@dataclass(frozen=True)
class Interpretation:
    """
    A complete reading.

    Attributes:
        overall: The reading taken as a whole
        card_meanings: One meaning per selected card, in spread order
        advice: Closing advice
        summary: One-line summary used for persistence
        judgment: Optional verdict, shown last when present
    """

    overall: str
    card_meanings: Tuple[CardMeaning, ...]
    advice: str
    summary: str
    judgment: Optional[Judgment] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "card_meanings": [
                {"card_name": m.card_name, "position": m.position, "meaning": m.meaning}
                for m in self.card_meanings
            ],
            "advice": self.advice,
            "summary": self.summary,
            "judgment": {"short_answer": self.judgment.short_answer} if self.judgment else None,
        }


def message_history_to_dicts(history: List[Message]) -> List[Dict[str, str]]:
    return [m.to_dict() for m in history]
