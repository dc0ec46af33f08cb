"""
Tests for per-session task tracking.

Verifies that:
1. Tasks are tracked until they finish
2. Failed tasks are logged
3. cancel_all() and shutdown() stop every pending timer
4. Detached tasks survive session cancellation
"""

import asyncio
import logging

import pytest

from sessions.scheduler import TaskScheduler, detached_tasks, drain_detached_tasks, fire_and_forget


class TestTaskScheduler:
    @pytest.mark.asyncio
    async def test_spawned_task_tracked_until_done(self):
        scheduler = TaskScheduler()

        async def work():
            await asyncio.sleep(0.01)

        task = scheduler.spawn(work(), name="work")
        assert scheduler.pending == 1

        await task
        await asyncio.sleep(0)
        assert scheduler.pending == 0

    @pytest.mark.asyncio
    async def test_failed_task_logged(self, caplog):
        scheduler = TaskScheduler()

        async def failing():
            raise ValueError("Intentional test error")

        with caplog.at_level(logging.ERROR):
            scheduler.spawn(failing(), name="failing_task")
            await asyncio.sleep(0.02)

        assert "failing_task" in caplog.text
        assert "Intentional test error" in caplog.text
        assert scheduler.pending == 0

    @pytest.mark.asyncio
    async def test_schedule_runs_sync_callback(self):
        scheduler = TaskScheduler()
        calls = []

        scheduler.schedule(0.01, lambda: calls.append("ran"))
        await asyncio.sleep(0.05)

        assert calls == ["ran"]

    @pytest.mark.asyncio
    async def test_schedule_awaits_async_callback(self):
        scheduler = TaskScheduler()
        calls = []

        async def callback():
            await asyncio.sleep(0)
            calls.append("async")

        scheduler.schedule(0.01, callback)
        await asyncio.sleep(0.05)

        assert calls == ["async"]

    @pytest.mark.asyncio
    async def test_cancel_all_stops_pending_timers(self):
        scheduler = TaskScheduler()
        calls = []

        for i in range(3):
            scheduler.schedule(0.02 * (i + 1), lambda i=i: calls.append(i))

        assert scheduler.cancel_all() == 3
        await asyncio.sleep(0.1)

        assert calls == []
        assert scheduler.pending == 0

    @pytest.mark.asyncio
    async def test_stale_generation_skips_callback(self):
        scheduler = TaskScheduler()
        generation = scheduler.generation
        scheduler.cancel_all()
        assert not scheduler.is_current(generation)

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_cancellation(self):
        scheduler = TaskScheduler()
        cleaned_up = []

        async def long_running():
            try:
                await asyncio.sleep(10)
            finally:
                cleaned_up.append(True)

        scheduler.spawn(long_running(), name="long")
        await asyncio.sleep(0)
        await scheduler.shutdown()

        assert cleaned_up == [True]
        assert scheduler.pending == 0

    @pytest.mark.asyncio
    async def test_cancel_from_inside_task_spares_caller(self):
        scheduler = TaskScheduler()
        finished = []

        async def cancels_siblings():
            scheduler.cancel_all()
            await asyncio.sleep(0)
            finished.append(True)

        scheduler.schedule(1.0, lambda: finished.append("sibling"))
        task = scheduler.spawn(cancels_siblings(), name="canceller")
        await task

        assert finished == [True]


class TestDetachedTasks:
    @pytest.mark.asyncio
    async def test_detached_task_survives_scheduler_shutdown(self):
        scheduler = TaskScheduler()
        done = []

        async def persist():
            await asyncio.sleep(0.02)
            done.append("saved")

        fire_and_forget(persist(), name="persist")
        await scheduler.shutdown()
        await drain_detached_tasks()

        assert done == ["saved"]

    @pytest.mark.asyncio
    async def test_detached_failure_logged_not_raised(self, caplog):
        async def boom():
            raise RuntimeError("gift backend down")

        with caplog.at_level(logging.ERROR):
            task = fire_and_forget(boom(), name="gift")
            await asyncio.sleep(0.01)

        assert task.done()
        assert "gift backend down" in caplog.text
        assert task not in detached_tasks()
