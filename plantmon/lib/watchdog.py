"""Watchdog that warns when no sensor reading arrives in time."""

import asyncio
from collections.abc import Callable
from contextlib import suppress

from plantmon.lib.exceptions import ConfigurationError
from plantmon.logging import get_logger

logger = get_logger("lib.watchdog")

type StaleCallback = Callable[[float], None]


class StalenessWatchdog:
    """One-shot deadline timer, re-armed on every reading.

    When the deadline passes without a reset the callback fires once and the
    watchdog stays disarmed until the next reset.
    """

    def __init__(self, timeout_sec: float, on_stale: StaleCallback) -> None:
        if timeout_sec <= 0:
            raise ConfigurationError(
                f"Watchdog timeout must be positive, got {timeout_sec}"
            )
        self.timeout_sec = timeout_sec
        self._on_stale = on_stale
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._deadline: float | None = None

    @property
    def is_armed(self) -> bool:
        return self._task is not None

    @property
    def deadline(self) -> float | None:
        """Event loop time at which the watchdog fires, if armed."""
        return self._deadline

    async def reset(self) -> None:
        """Cancel any pending deadline and arm a new one."""
        async with self._lock:
            await self._cancel()
            loop = asyncio.get_running_loop()
            self._deadline = loop.time() + self.timeout_sec
            self._task = asyncio.create_task(self._expire(), name="watchdog")

    async def stop(self) -> None:
        """Disarm the watchdog and wait for its timer task to exit."""
        async with self._lock:
            await self._cancel()

    async def _cancel(self) -> None:
        task = self._task
        if task is None:
            return
        self._task = None
        self._deadline = None
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def _expire(self) -> None:
        await asyncio.sleep(self.timeout_sec)
        if self._task is asyncio.current_task():
            self._task = None
            self._deadline = None
        logger.warning(
            "No sensor reading received for %.0f seconds", self.timeout_sec
        )
        try:
            self._on_stale(self.timeout_sec)
        except Exception:
            logger.exception("Watchdog callback failed")
