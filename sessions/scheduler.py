"""
Cancellable timers and background tasks for a session.

Every delayed callback of a session (monologue rotation, reveal pacing,
interpretation pacing) is an asyncio task tracked here, so teardown can
cancel all of them at once. A generation counter is bumped on cancel, which
stops any callback that was already past its sleep from touching state
that has since been reset.

Detached tasks (persistence, gift generation) are kept in a module-level set
instead, so they outlive the session that started them.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Coroutine, Optional, Set, Union

logger = logging.getLogger(__name__)

Callback = Callable[[], Union[None, Awaitable[None]]]

_DETACHED_TASKS: Set[asyncio.Task] = set()


def _log_task_result(task: asyncio.Task, name: str, log: Union[logging.Logger, logging.LoggerAdapter]) -> None:
    try:
        task.result()
    except asyncio.CancelledError:
        log.debug(f"Task '{name}' was cancelled")
    except Exception as e:
        log.error(f"Task '{name}' failed: {e}", exc_info=True)


def fire_and_forget(coro: Coroutine[Any, Any, Any], name: str = "unknown") -> asyncio.Task:
    """
    Start a task nobody awaits and that no session teardown cancels.

    A strong reference is held until the task finishes; failures are logged.
    """
    task = asyncio.create_task(coro, name=name)
    _DETACHED_TASKS.add(task)

    def _done(t: asyncio.Task) -> None:
        _DETACHED_TASKS.discard(t)
        _log_task_result(t, name, logger)

    task.add_done_callback(_done)
    return task


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


def detached_tasks() -> Set[asyncio.Task]:
    return set(_DETACHED_TASKS)


async def drain_detached_tasks() -> None:
    """Wait for every detached task still running (process shutdown, tests)."""
    if _DETACHED_TASKS:
        await asyncio.gather(*list(_DETACHED_TASKS), return_exceptions=True)


class TaskScheduler:
    """Per-session set of cancellable tasks."""

    def __init__(self, logger_adapter: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None) -> None:
        self.logger = logger_adapter or logger
        self._background_tasks: Set[asyncio.Task] = set()
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> int:
        return sum(1 for task in self._background_tasks if not task.done())

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str = "unknown") -> asyncio.Task:
        """Create a tracked task that is cancelled with the session."""
        task = asyncio.create_task(coro, name=name)
        self._background_tasks.add(task)

        def _task_done_callback(t: asyncio.Task) -> None:
            self._background_tasks.discard(t)
            _log_task_result(t, name, self.logger)

        task.add_done_callback(_task_done_callback)
        return task

    def schedule(self, delay: float, callback: Callback, name: str = "timer") -> asyncio.Task:
        """
        Run ``callback`` after ``delay`` seconds unless cancelled first.

        The callback may be a plain function or return an awaitable.
        """
        generation = self._generation

        async def _run() -> None:
            await asyncio.sleep(delay)
            if not self.is_current(generation):
                return
            result = callback()
            if inspect.isawaitable(result):
                await result

        return self.spawn(_run(), name=name)

    def cancel_all(self) -> int:
        """Cancel every pending task without waiting. Returns how many were cancelled."""
        self._generation += 1
        current = _current_task()
        cancelled = 0
        for task in list(self._background_tasks):
            if not task.done() and task is not current:
                task.cancel()
                cancelled += 1
        if cancelled:
            self.logger.debug(f"Cancelled {cancelled} scheduled task(s)")
        return cancelled

    async def shutdown(self) -> None:
        """Cancel all tasks and wait until they have finished."""
        current = _current_task()
        tasks = [task for task in self._background_tasks if task is not current]
        self.cancel_all()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._background_tasks.clear()
