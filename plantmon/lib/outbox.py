"""Single ordered channel for outbound notification events.

The reading loop, the reminder task and the watchdog task all produce
notifications. They hand them to the Outbox, which queues them in arrival
order; one drain task forwards them to the event bus.
"""

import asyncio
from datetime import UTC, datetime
from typing import Protocol

from plantmon.lib.config import Direction
from plantmon.lib.eventbus import (
    AnyEvent,
    LevelChangedEvent,
    ReminderEvent,
    SensorStaleEvent,
)
from plantmon.lib.levels import Level
from plantmon.logging import get_logger

logger = get_logger("lib.outbox")


class Notifier(Protocol):
    """The three notification effects the monitor can produce."""

    def level_changed(
        self, level: Level, direction: Direction, value: int
    ) -> None: ...

    def reminder(self, level: Level, value: int) -> None: ...

    def sensor_stale(self, timeout_sec: float) -> None: ...


class EventSink(Protocol):
    """Destination the outbox drains into (the event publisher)."""

    def publish(self, event: AnyEvent) -> None: ...


class Outbox:
    """Multi-producer, single-consumer queue of notification events.

    Producers never block: events are queued with put_nowait from the event
    loop thread. Order is preserved per producer and across producers in the
    order the calls were made.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[AnyEvent] = asyncio.Queue()

    def level_changed(
        self, level: Level, direction: Direction, value: int
    ) -> None:
        self._put(
            LevelChangedEvent(
                level=level.name,
                direction=direction,
                value=value,
                recording_time=datetime.now(UTC),
            )
        )

    def reminder(self, level: Level, value: int) -> None:
        self._put(
            ReminderEvent(
                level=level.name,
                value=value,
                recording_time=datetime.now(UTC),
            )
        )

    def sensor_stale(self, timeout_sec: float) -> None:
        self._put(
            SensorStaleEvent(
                timeout_sec=timeout_sec,
                recording_time=datetime.now(UTC),
            )
        )

    def _put(self, event: AnyEvent) -> None:
        logger.debug("Queued %s event", event.event_type)
        self._queue.put_nowait(event)

    def pending(self) -> int:
        """Number of events not yet handed to the sink."""
        return self._queue.qsize()

    async def get(self) -> AnyEvent:
        """Wait for the next event."""
        return await self._queue.get()

    async def drain(self, sink: EventSink) -> None:
        """Forward events to sink until cancelled.

        Publishing is blocking network I/O, so it runs in a worker thread to
        keep the event loop's timers on schedule.
        """
        while True:
            event = await self._queue.get()
            try:
                await asyncio.to_thread(sink.publish, event)
            except Exception:
                logger.exception("Failed to publish %s event", event.event_type)
            finally:
                self._queue.task_done()

    async def flush(self, timeout_sec: float = 5.0) -> None:
        """Wait until every queued event has been handed to the sink."""
        try:
            await asyncio.wait_for(self._queue.join(), timeout_sec)
        except TimeoutError:
            logger.warning(
                "Dropping %d undelivered events on shutdown", self.pending()
            )
