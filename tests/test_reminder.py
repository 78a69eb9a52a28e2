"""Tests for the periodic reminder scheduler."""

import asyncio

import pytest

from plantmon.lib.levels import Level
from plantmon.lib.reminder import ReminderScheduler

INTERVAL = 0.1


@pytest.fixture
def calls():
    return []


@pytest.fixture
def scheduler(calls):
    return ReminderScheduler(calls.append)


def reminder_tasks():
    return [
        task
        for task in asyncio.all_tasks()
        if task.get_name().startswith("reminder-") and not task.done()
    ]


class TestReminderScheduler:
    """Tests for ReminderScheduler."""

    @pytest.mark.asyncio
    async def test_reminds_periodically(self, scheduler, calls):
        level = Level("low", 0, 30, notification_interval_sec=INTERVAL)
        await scheduler.set(level)

        await asyncio.sleep(INTERVAL * 2.5)
        await scheduler.stop()

        assert calls == [level, level]

    @pytest.mark.asyncio
    async def test_no_reminder_before_first_interval(self, scheduler, calls):
        await scheduler.set(Level("low", 0, 30, notification_interval_sec=1))

        await asyncio.sleep(INTERVAL)
        await scheduler.stop()

        assert calls == []

    @pytest.mark.asyncio
    async def test_level_without_interval_does_not_start(self, scheduler):
        await scheduler.set(Level("normal", 31, 66))

        assert not scheduler.is_running
        assert scheduler.armed_level is None
        assert reminder_tasks() == []

    @pytest.mark.asyncio
    async def test_set_replaces_running_reminder(self, scheduler, calls):
        low = Level("low", 0, 30, notification_interval_sec=INTERVAL)
        high = Level("high", 67, 100, notification_interval_sec=INTERVAL)

        await scheduler.set(low)
        await scheduler.set(high)

        assert len(reminder_tasks()) == 1
        assert scheduler.armed_level == high

        await asyncio.sleep(INTERVAL * 1.5)
        await scheduler.stop()

        assert calls == [high]

    @pytest.mark.asyncio
    async def test_level_without_interval_stops_running_reminder(
        self, scheduler, calls
    ):
        await scheduler.set(
            Level("low", 0, 30, notification_interval_sec=INTERVAL)
        )
        await scheduler.set(Level("normal", 31, 66))

        await asyncio.sleep(INTERVAL * 1.5)

        assert not scheduler.is_running
        assert calls == []

    @pytest.mark.asyncio
    async def test_no_reminder_after_stop_returns(self, scheduler, calls):
        await scheduler.set(
            Level("low", 0, 30, notification_interval_sec=INTERVAL)
        )
        await asyncio.sleep(INTERVAL * 1.5)
        await scheduler.stop()
        count = len(calls)

        await asyncio.sleep(INTERVAL * 2)

        assert len(calls) == count
        assert reminder_tasks() == []

    @pytest.mark.asyncio
    async def test_stop_without_reminder_is_noop(self, scheduler):
        await scheduler.stop()
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_concurrent_sets_leave_single_task(self, scheduler):
        levels = [
            Level(f"level-{i}", 0, 100, notification_interval_sec=INTERVAL)
            for i in range(5)
        ]

        await asyncio.gather(*(scheduler.set(level) for level in levels))

        assert len(reminder_tasks()) == 1
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_failing_callback_keeps_reminding(self, caplog):
        attempts = []

        def notify(level):
            attempts.append(level)
            raise RuntimeError("boom")

        scheduler = ReminderScheduler(notify)
        await scheduler.set(
            Level("low", 0, 30, notification_interval_sec=INTERVAL)
        )

        await asyncio.sleep(INTERVAL * 2.5)
        await scheduler.stop()

        assert len(attempts) == 2
        assert "Reminder callback failed" in caplog.text
