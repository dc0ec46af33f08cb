"""
Daily chat rate limiting.

Every conversational turn is checked against a per-day counter before it is
sent, and the counter is incremented only after the chat service confirms a
reply. The limit depends on the user's tier:

- free: 20 chats/day
- basic: 50 chats/day
- premium: 200 chats/day
- ultimate: unlimited

Until the tier configuration has been loaded, checks are denied with reason
``loading``. A failed load falls back to the free tier.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional

from constants import FALLBACK_DAILY_LIMIT, TIER_DAILY_LIMITS, TIER_FREE, TIER_ULTIMATE

logger = logging.getLogger(__name__)


class DenialReason(str, Enum):
    LOADING = "loading"
    LIMIT_REACHED = "limit_reached"


@dataclass(frozen=True)
class LimitData:
    """Details shown to the user when the daily limit blocks a message."""

    tier: str
    limit: int
    reset_at: datetime
    is_onboarding: bool = False
    onboarding_days_left: int = 0
    action_id: Optional[str] = None


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    reason: Optional[DenialReason] = None
    limit_data: Optional[LimitData] = None


@dataclass(frozen=True)
class RateLimitState:
    """
    Snapshot of the user's daily counter.

    Attributes:
        daily_count: Chats already used today
        daily_limit: Allowed chats per day (None means unlimited)
        tier: Subscription tier name
        is_onboarding: Whether the user is in the onboarding period
        onboarding_days_remaining: Days left in onboarding
        day: Calendar day the counter belongs to
    """

    daily_count: int
    daily_limit: Optional[int]
    tier: str
    is_onboarding: bool = False
    onboarding_days_remaining: int = 0
    day: Optional[date] = None

    @property
    def remaining(self) -> Optional[int]:
        if self.daily_limit is None:
            return None
        return max(0, self.daily_limit - self.daily_count)

    @property
    def reset_at(self) -> Optional[datetime]:
        """Midnight after the counter's day, when the count starts over."""
        if self.day is None:
            return None
        return datetime.combine(self.day + timedelta(days=1), time.min)

    @classmethod
    def from_config(cls, config: Mapping[str, Any], today: date) -> RateLimitState:
        """Build a state from a service config payload (snake_case or camelCase keys)."""
        tier = str(config.get("tier") or config.get("userTier") or TIER_FREE).lower()
        default_limit = TIER_DAILY_LIMITS.get(tier, FALLBACK_DAILY_LIMIT)
        limit = config.get("daily_limit", config.get("dailyChatLimit", default_limit))
        if tier == TIER_ULTIMATE:
            limit = None
        return cls(
            daily_count=int(config.get("daily_count", config.get("dailyChatCount", 0)) or 0),
            daily_limit=None if limit is None else int(limit),
            tier=tier,
            is_onboarding=bool(config.get("is_onboarding", config.get("isOnboarding", False))),
            onboarding_days_remaining=int(
                config.get("onboarding_days_remaining", config.get("onboardingDaysRemaining", 0)) or 0
            ),
            day=today,
        )

    @classmethod
    def free_tier(cls, today: date) -> RateLimitState:
        return cls(daily_count=0, daily_limit=FALLBACK_DAILY_LIMIT, tier=TIER_FREE, day=today)


class RateLimiter(ABC):
    """Interface consulted by the conversation before every chat send."""

    @abstractmethod
    def check(self, action_id: str) -> RateLimitDecision:
        """Decide whether ``action_id`` may be sent now. Must not suspend."""

    @abstractmethod
    def increment(self) -> None:
        """Record one successfully completed chat turn."""


ConfigLoader = Callable[[], Awaitable[Mapping[str, Any]]]


class DailyRateLimiter(RateLimiter):
    """In-process daily counter keyed to the local calendar day."""

    def __init__(
        self,
        state: Optional[RateLimitState] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._clock = clock
        self._state = state
        self._loading = state is None

    @property
    def state(self) -> Optional[RateLimitState]:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._loading

    async def load(self, loader: ConfigLoader) -> RateLimitState:
        """
        Load tier configuration from ``loader``.

        Falls back to the free tier if the loader raises or returns nothing.
        """
        self._loading = True
        today = self._clock().date()
        try:
            config = await loader()
            if not config:
                raise ValueError("empty rate limit config")
            self._state = RateLimitState.from_config(config, today)
            logger.info(
                "Loaded chat limits: tier=%s count=%d limit=%s",
                self._state.tier,
                self._state.daily_count,
                self._state.daily_limit,
            )
        except Exception as e:
            logger.warning("Chat limit config unavailable, applying free tier: %s", e)
            self._state = RateLimitState.free_tier(today)
        finally:
            self._loading = False
        return self._state

    def _roll_over(self) -> RateLimitState:
        today = self._clock().date()
        if self._state.day != today:
            logger.info("New day, resetting chat counter (was %d)", self._state.daily_count)
            self._state = replace(self._state, daily_count=0, day=today)
        return self._state

    def check(self, action_id: str) -> RateLimitDecision:
        if self._loading or self._state is None:
            logger.warning("Chat limit still loading, blocking '%s'", action_id)
            return RateLimitDecision(allowed=False, reason=DenialReason.LOADING)

        state = self._roll_over()
        if state.tier == TIER_ULTIMATE or state.daily_limit is None:
            return RateLimitDecision(allowed=True)

        if state.remaining <= 0:
            logger.warning(
                "Daily chat limit reached (%d/%d) for '%s'",
                state.daily_count,
                state.daily_limit,
                action_id,
            )
            return RateLimitDecision(
                allowed=False,
                reason=DenialReason.LIMIT_REACHED,
                limit_data=LimitData(
                    tier=state.tier,
                    limit=state.daily_limit,
                    reset_at=state.reset_at,
                    is_onboarding=state.is_onboarding,
                    onboarding_days_left=state.onboarding_days_remaining,
                    action_id=action_id,
                ),
            )

        return RateLimitDecision(allowed=True)

    def increment(self) -> None:
        if self._state is None:
            return
        state = self._roll_over()
        if state.tier == TIER_ULTIMATE or state.daily_limit is None:
            return
        self._state = replace(state, daily_count=state.daily_count + 1)
        logger.debug("Chat count updated: %d/%d", self._state.daily_count, self._state.daily_limit)
