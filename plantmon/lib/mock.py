"""Mock sensor data source for development.

Provides a mock implementation of the reading source that generates
realistic raw ADC values without requiring hardware. Used by the monitor
service when MOCK_SENSORS=1 is set.
"""

import asyncio
import json
import random


def _random_walk(
    current: float, drift: float, min_val: float, max_val: float
) -> float:
    """Generate next value using random walk with bounds."""
    change = random.gauss(0, drift)
    new_val = current + change
    return max(min_val, min(max_val, new_val))


class MockSensorDataSource:
    """Mock data source emitting raw moisture readings as JSON lines.

    The raw value wanders slowly between the calibration bounds, with a
    slight upward bias so the soil "dries out" over time like a real pot.
    """

    def __init__(
        self,
        raw_lower_bound: int,
        raw_upper_bound: int,
        interval_sec: float = 5.0,
    ) -> None:
        self._interval_sec = interval_sec
        self._min = float(raw_lower_bound)
        self._max = float(raw_upper_bound)
        span = self._max - self._min
        self._drift = span / 100
        self._raw = random.uniform(self._min + span * 0.3, self._min + span * 0.6)

    def _generate_raw(self) -> int:
        """Generate the next raw ADC value."""
        self._raw = _random_walk(
            self._raw + self._drift / 10,
            drift=self._drift,
            min_val=self._min,
            max_val=self._max,
        )
        return round(self._raw)

    async def readline(self) -> str:
        """Generate a line of mock sensor JSON data."""
        await asyncio.sleep(self._interval_sec)
        return json.dumps({"moisture_raw": self._generate_raw()})

    def close(self) -> None:
        """No-op for mock data source."""
