"""Periodic reminders while the plant stays in an urgent level.

At most one reminder task runs at a time. Setting a new level always stops
the running task, and waits for it to exit, before a new one is started.
"""

import asyncio
from collections.abc import Callable
from contextlib import suppress

from plantmon.lib.levels import Level
from plantmon.logging import get_logger

logger = get_logger("lib.reminder")

type ReminderCallback = Callable[[Level], None]


class ReminderScheduler:
    """Runs a cancellable reminder task for the current level."""

    def __init__(self, notify: ReminderCallback) -> None:
        """Initialize the scheduler.

        Args:
            notify: Called with the armed level on every reminder tick.
        """
        self._notify = notify
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._armed_level: Level | None = None

    @property
    def armed_level(self) -> Level | None:
        """The level currently being reminded about, if any."""
        return self._armed_level

    @property
    def is_running(self) -> bool:
        return self._task is not None

    async def set(self, level: Level) -> None:
        """Restart reminders for level.

        Any running reminder is stopped first, even for the same level, so
        the period starts over. Levels without an interval only stop.
        """
        async with self._lock:
            await self._stop()
            if not level.reminds:
                return
            self._armed_level = level
            self._task = asyncio.create_task(
                self._run(level), name=f"reminder-{level.name}"
            )
            logger.info(
                "Reminder set for level %s every %gs",
                level.name,
                level.notification_interval_sec,
            )

    async def stop(self) -> None:
        """Stop the running reminder and wait until its task has exited."""
        async with self._lock:
            await self._stop()

    async def _stop(self) -> None:
        task = self._task
        if task is None:
            return
        self._task = None
        self._armed_level = None
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        logger.info("Reminder stopped")

    async def _run(self, level: Level) -> None:
        """Call notify every interval until cancelled."""
        loop = asyncio.get_running_loop()
        interval = level.notification_interval_sec
        next_tick = loop.time() + interval

        while True:
            # Sleep until the scheduled tick so slow callbacks do not drift
            await asyncio.sleep(max(0, next_tick - loop.time()))
            next_tick += interval
            logger.info("Reminding about level %s", level.name)
            try:
                self._notify(level)
            except Exception:
                logger.exception("Reminder callback failed for %s", level.name)
