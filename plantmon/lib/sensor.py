"""Normalization and smoothing of raw soil-moisture sensor values.

The capacitive sensor reports "dryness" on the ADC: the raw value grows as
the soil dries out. Readings are rescaled to a 0-100 wetness percentage,
smoothed with a moving average and compared with the previous smoothed value
to derive a direction.
"""

from collections import deque
from dataclasses import dataclass

from plantmon.lib.config import Direction
from plantmon.lib.exceptions import ConfigurationError
from plantmon.lib.levels import PERCENT_MAX, PERCENT_MIN
from plantmon.logging import get_logger

logger = get_logger("lib.sensor")


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A smoothed wetness percentage and its trend."""

    value: int
    direction: Direction = Direction.STEADY


class SmoothingWindow:
    """Fixed-size FIFO of normalized values with a rounded mean."""

    def __init__(self, size: int) -> None:
        self._values: deque[int] = deque(maxlen=max(1, size))

    @property
    def size(self) -> int:
        return self._values.maxlen or 1

    def __len__(self) -> int:
        return len(self._values)

    def push(self, value: int) -> int:
        """Add a value, evicting the oldest when full, and return the average.

        The mean is rounded half up with integer arithmetic, so 50.5 gives 51.
        Values are never negative, so this matches rounding half away from
        zero.
        """
        self._values.append(value)
        count = len(self._values)
        return (2 * sum(self._values) + count) // (2 * count)


class SensorState:
    """Current and previous smoothed reading of a single moisture sensor."""

    def __init__(
        self,
        raw_lower_bound: int,
        raw_upper_bound: int,
        raw_noise_margin: int = 0,
        moving_average_len: int = 1,
    ) -> None:
        if raw_upper_bound <= raw_lower_bound:
            raise ConfigurationError(
                f"Raw upper bound ({raw_upper_bound}) must be greater than "
                f"raw lower bound ({raw_lower_bound})"
            )
        self.raw_lower_bound = raw_lower_bound
        self.raw_upper_bound = raw_upper_bound
        self.raw_noise_margin = raw_noise_margin
        self._raw_span = raw_upper_bound - raw_lower_bound

        # Noise band expressed in percent, used as hysteresis by the quantizer
        self.noise_margin = int(raw_noise_margin * 100 / self._raw_span)
        self._window = SmoothingWindow(moving_average_len)

        self.current: SensorReading | None = None
        self.history: SensorReading | None = None

        logger.info(
            "Sensor noise margin is %d%%, moving average length is %d",
            self.noise_margin,
            self._window.size,
        )

    @property
    def moving_average_len(self) -> int:
        return self._window.size

    @property
    def history_valid(self) -> bool:
        """Whether at least one update happened, making direction meaningful."""
        return self.current is not None

    def normalize(self, raw_value: int) -> int:
        """Convert a raw ADC value to a wetness percentage between 0 and 100."""
        percentage = (raw_value - self.raw_lower_bound) * 100 / self._raw_span
        percentage = min(max(percentage, PERCENT_MIN), PERCENT_MAX)
        # Raw value measures dryness, invert it to get wetness
        return int(PERCENT_MAX - percentage)

    def update(self, raw_value: int) -> SensorReading:
        """Feed a raw value through normalization and the moving average.

        Returns:
            The new current reading. Its direction is steady on the first
            update since there is nothing to compare against.
        """
        normalized = self.normalize(raw_value)
        average = self._window.push(normalized)

        previous = self.current
        if previous is None or average == previous.value:
            direction = Direction.STEADY
        elif average > previous.value:
            direction = Direction.UP
        else:
            direction = Direction.DOWN

        self.history = previous
        self.current = SensorReading(value=average, direction=direction)

        logger.debug(
            "Raw value %d normalized to %d%%, smoothed to %d%% (%s)",
            raw_value,
            normalized,
            average,
            direction,
        )
        return self.current
