"""Tests for the mock sensor data source."""

import json
from unittest.mock import patch

import pytest

from plantmon.lib.mock import MockSensorDataSource


class TestMockSensorDataSource:
    """Tests for MockSensorDataSource."""

    @pytest.mark.asyncio
    async def test_readline_yields_raw_reading(self):
        source = MockSensorDataSource(1491, 3624, interval_sec=0)

        payload = json.loads(await source.readline())

        assert set(payload) == {"moisture_raw"}
        assert 1491 <= payload["moisture_raw"] <= 3624

    @pytest.mark.asyncio
    async def test_values_stay_within_bounds(self):
        source = MockSensorDataSource(1491, 3624, interval_sec=0)

        with patch("plantmon.lib.mock.random.gauss", return_value=10_000):
            payload = json.loads(await source.readline())

        assert payload["moisture_raw"] == 3624
