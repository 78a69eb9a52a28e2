"""Soil-moisture monitor service.

Reads raw sensor values as JSON lines from the sensor board's serial port,
turns them into moisture levels and queues level-change, reminder and
staleness notifications for the notification service.
"""

import asyncio
import json
from contextlib import suppress
from datetime import UTC, datetime
from typing import Protocol, override

from pydantic import ValidationError as SettingsValidationError

from plantmon.lib.config import Direction, get_settings, reload_settings
from plantmon.lib.eventbus import EventPublisher
from plantmon.lib.exceptions import LevelConfigurationError, QuantizationError
from plantmon.lib.levels import Level
from plantmon.lib.outbox import EventSink, Notifier, Outbox
from plantmon.lib.polling import PollingService
from plantmon.lib.quantizer import LevelQuantizer
from plantmon.lib.reminder import ReminderScheduler
from plantmon.lib.sensor import SensorState
from plantmon.lib.watchdog import StalenessWatchdog
from plantmon.logging import configure, get_logger
from plantmon.monitor.models import RawReading, ValidationError

logger = get_logger("monitor.reader")


class SensorDataSource(Protocol):
    """Protocol for sensor data sources."""

    async def readline(self) -> str: ...
    def close(self) -> None: ...


class PublisherSink(EventSink, Protocol):
    """Event sink with a connection lifecycle."""

    def connect(self) -> None: ...
    def close(self) -> None: ...


class SerialDataSource:
    """Real serial port data source wrapper."""

    def __init__(self) -> None:
        import aioserial

        source_cfg = get_settings().source
        self._serial = aioserial.AioSerial(
            port=source_cfg.serial_port,
            baudrate=source_cfg.serial_baud,
            timeout=source_cfg.serial_timeout_sec,
        )
        self._port = source_cfg.serial_port
        logger.info("Connected to sensor board on %s", self._port)

    async def readline(self) -> str:
        """Read a line from serial port."""
        data = await self._serial.readline_async()
        if not data:
            return ""
        return str(data.decode("utf-8"))

    def close(self) -> None:
        """Close the serial connection."""
        self._serial.close()
        logger.info("Serial port %s closed", self._port)


class MonitorService(PollingService[RawReading]):
    """Consumes raw readings one at a time and drives notifications.

    Each reading resets the staleness watchdog, updates the smoothed sensor
    value and is assigned a level. A level change (or the very first level)
    is announced and re-arms the reminder for the new level.
    """

    def __init__(
        self,
        source: SensorDataSource,
        publisher: PublisherSink | None = None,
    ) -> None:
        super().__init__(name="Monitor")
        settings = get_settings()
        sensor_cfg = settings.sensor

        self._source = source
        self._publisher = publisher or EventPublisher()
        self._drain_task: asyncio.Task[None] | None = None

        self.sensor = SensorState(
            raw_lower_bound=sensor_cfg.raw_lower_bound,
            raw_upper_bound=sensor_cfg.raw_upper_bound,
            raw_noise_margin=sensor_cfg.raw_noise_margin,
            moving_average_len=sensor_cfg.moving_average_len,
        )
        self.quantizer = LevelQuantizer(
            settings.level_set, noise_margin=self.sensor.noise_margin
        )
        self.outbox = Outbox()
        self.notifier: Notifier = self.outbox
        self.reminder = ReminderScheduler(self._remind)
        self.watchdog = StalenessWatchdog(
            settings.watchdog.timeout_sec, self.notifier.sensor_stale
        )

    def _remind(self, level: Level) -> None:
        """Queue a reminder carrying the latest smoothed value."""
        if self.sensor.current is None:
            return
        self.notifier.reminder(level, self.sensor.current.value)

    @override
    async def initialize(self) -> None:
        """Connect the event publisher and start draining the outbox."""
        self._publisher.connect()
        self._drain_task = asyncio.create_task(
            self.outbox.drain(self._publisher), name="outbox-drain"
        )

    @override
    async def cleanup(self) -> None:
        """Stop timers, flush pending events and close connections."""
        await self.reminder.stop()
        await self.watchdog.stop()
        await self.outbox.flush()
        if self._drain_task is not None:
            self._drain_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._drain_task
            self._drain_task = None
        self._source.close()
        self._publisher.close()

    @override
    async def poll(self) -> RawReading | None:
        """Read and parse a JSON line from the data source."""
        line = await self._source.readline()
        if not line:
            self._logger.debug("Read timeout, no data received")
            return None

        line = line.strip()
        if not line:
            return None

        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            self._logger.warning("Invalid JSON: %s", e)
            return None

        try:
            return RawReading.from_payload(data, datetime.now(UTC))
        except ValidationError as e:
            self._logger.warning("Validation failed: %s", e)
            return None

    @override
    async def handle(self, reading: RawReading) -> None:
        """Classify a reading and decide on notifications and reminders."""
        # A reading arrived, even if it turns out to be unusable
        await self.watchdog.reset()

        current = self.sensor.update(reading.raw)
        self._logger.info(
            "Raw sensor value: %d | normalized and filtered value: %d%%",
            reading.raw,
            current.value,
        )

        first_level = not self.quantizer.has_history
        try:
            direction, level = self.quantizer.evaluate(
                current.value, self.sensor.noise_margin
            )
        except QuantizationError as e:
            self._logger.error(
                "Cannot assign a level to %d%%, check LEVELS: %s",
                current.value,
                e,
            )
            return

        if direction == Direction.STEADY and not first_level:
            self._logger.debug("Level %s unchanged", level.name)
            return

        self._logger.info(
            "Level is now %s (%s) at %d%%", level.name, direction, current.value
        )
        self.notifier.level_changed(level, direction, current.value)
        await self.reminder.set(level)

    @override
    async def reload(self) -> None:
        """Re-read settings and swap in the new level set."""
        try:
            settings = reload_settings()
            self.quantizer.reload(settings.level_set)
        except (SettingsValidationError, LevelConfigurationError) as e:
            self._logger.error(
                "Configuration reload failed, keeping current levels: %s", e
            )


def _create_data_source() -> SensorDataSource:
    """Create data source based on configuration."""
    settings = get_settings()
    if settings.mock_sensors:
        from plantmon.lib.mock import MockSensorDataSource

        logger.info("Using mock sensor data source")
        return MockSensorDataSource(
            settings.sensor.raw_lower_bound,
            settings.sensor.raw_upper_bound,
            settings.source.mock_interval_sec,
        )
    return SerialDataSource()


def main() -> None:
    """Start the monitor service."""
    configure()
    source = _create_data_source()
    service = MonitorService(source)
    service.run()


if __name__ == "__main__":
    main()
