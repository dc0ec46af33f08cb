"""Ambient monologue shown before the conversation starts."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Sequence

from sessions.scheduler import TaskScheduler

logger = logging.getLogger(__name__)


class MonologueRotator:
    """
    Cycles through monologue lines on a fixed interval.

    Each tick is its own scheduled task, so cancelling the session scheduler
    stops the chain.
    """

    def __init__(
        self,
        lines: Sequence[str],
        scheduler: TaskScheduler,
        interval: float,
        on_change: Optional[Callable[[int, str], None]] = None,
    ) -> None:
        self.lines = tuple(lines)
        self.scheduler = scheduler
        self.interval = interval
        self.on_change = on_change
        self.index = 0
        self._timer: Optional[asyncio.Task] = None

    @property
    def current(self) -> Optional[str]:
        if not self.lines:
            return None
        return self.lines[self.index]

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def start(self) -> None:
        if self.running or len(self.lines) < 2:
            return
        self._schedule_next()

    def stop(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    def reset(self) -> None:
        self.stop()
        self.index = 0

    def _schedule_next(self) -> None:
        self._timer = self.scheduler.schedule(self.interval, self._advance, name="monologue_rotation")

    def _advance(self) -> None:
        self.index = (self.index + 1) % len(self.lines)
        logger.debug("Monologue line %d", self.index)
        if self.on_change is not None:
            self.on_change(self.index, self.lines[self.index])
        self._schedule_next()
