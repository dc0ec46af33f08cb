"""
Project-wide constants.

Centralizes magic numbers and configuration values for maintainability.
"""

from __future__ import annotations

import os
from typing import Final

# =============================================================================
# Deck & Spread
# =============================================================================
FULL_DECK_SIZE: Final[int] = 78
DEAL_SIZE: Final[int] = 9  # Cards laid out face-down for selection
SPREAD_SIZE: Final[int] = 3  # Past / present / future
REVERSED_PROBABILITY: Final[float] = 0.5

# =============================================================================
# Conversation
# =============================================================================
READY_MARKER: Final[str] = "{{TAROT_READY}}"
CHAT_ACTION_ID: Final[str] = "tarot-user-message"
CHAT_FALLBACK_REPLY: Final[str] = (
    "Hmm... the cards have gone quiet for a moment. Could you tell me that once more?"
)
DEFAULT_PERSONA_NAME: Final[str] = "SAGE"

# =============================================================================
# Timing (seconds)
# =============================================================================
MONOLOGUE_ROTATION_SECONDS: Final[float] = 4.0
SELECTION_TRANSITION_SECONDS: Final[float] = 0.8  # Unselected cards fade before the first flip
REVEAL_CARD_DELAY_SECONDS: Final[float] = 0.8
REVEAL_SETTLE_SECONDS: Final[float] = 1.0
INTERPRETATION_INITIAL_DELAY_SECONDS: Final[float] = 0.5
INTERPRETATION_THINKING_SECONDS: Final[float] = 2.0
INTERPRETATION_SEGMENT_GAP_SECONDS: Final[float] = 1.0

# =============================================================================
# Interpretation Fallback
# =============================================================================
FALLBACK_OVERALL: Final[str] = (
    "The cards are telling an intricate story. It needs a little more time to unfold."
)
FALLBACK_ADVICE: Final[str] = "For now, listen closely to your inner voice."
FALLBACK_SUMMARY: Final[str] = "Take in the message of the cards slowly."
FALLBACK_CARD_MEANING: Final[str] = "This card carries an important meaning."

# =============================================================================
# Daily Chat Limits
# =============================================================================
TIER_FREE: Final[str] = "free"
TIER_BASIC: Final[str] = "basic"
TIER_PREMIUM: Final[str] = "premium"
TIER_ULTIMATE: Final[str] = "ultimate"

# None means unlimited
TIER_DAILY_LIMITS: Final[dict[str, int | None]] = {
    TIER_FREE: 20,
    TIER_BASIC: 50,
    TIER_PREMIUM: 200,
    TIER_ULTIMATE: None,
}
FALLBACK_DAILY_LIMIT: Final[int] = 20

# =============================================================================
# External Services
# =============================================================================
FORTUNE_API_BASE_URL: Final[str] = os.getenv("FORTUNE_API_BASE_URL", "http://localhost:8080")
FORTUNE_API_TIMEOUT_SECONDS: Final[float] = float(os.getenv("FORTUNE_API_TIMEOUT_SECONDS", "30"))
FORTUNE_API_KEY: Final[str | None] = os.getenv("FORTUNE_API_KEY")

CHAT_ENDPOINT: Final[str] = "/api/game/tarot/chat"
INTERPRET_ENDPOINT: Final[str] = "/api/game/tarot/interpret"
SAVE_READING_ENDPOINT: Final[str] = "/api/game/tarot/save"
GIFT_ENDPOINT: Final[str] = "/api/game/tarot/gift"

# =============================================================================
# Logging Configuration
# =============================================================================
LOG_LEVEL_PRODUCTION: Final[str] = "INFO"
LOG_LEVEL_DEVELOPMENT: Final[str] = "DEBUG"
LOG_FORMAT_JSON: Final[bool] = True  # Set to False for development readable format
