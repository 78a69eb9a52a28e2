"""Tests for the configuration module."""

import json
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from plantmon.lib.config import (
    LevelSettings,
    NotificationBackend,
    Settings,
    get_settings,
    reload_settings,
)
from plantmon.lib.config.testing import set_settings
from plantmon.lib.levels import Level


def load(**kwargs):
    return Settings(_env_file=None, **kwargs)


class TestSensorSettings:
    """Tests for sensor calibration settings."""

    @patch.dict("os.environ", {}, clear=True)
    def test_default_values(self):
        sensor = load().sensor

        assert sensor.raw_lower_bound == 1491
        assert sensor.raw_upper_bound == 3624
        assert sensor.raw_noise_margin == 100
        assert sensor.moving_average_len == 5

    @patch.dict(
        "os.environ",
        {
            "SENSOR_RAW_LOWER_BOUND": "1000",
            "SENSOR_RAW_UPPER_BOUND": "3000",
            "SENSOR_RAW_NOISE_MARGIN": "50",
            "SENSOR_MOVING_AVERAGE_LEN": "3",
        },
        clear=True,
    )
    def test_from_env(self):
        sensor = load().sensor

        assert sensor.raw_lower_bound == 1000
        assert sensor.raw_upper_bound == 3000
        assert sensor.raw_noise_margin == 50
        assert sensor.moving_average_len == 3

    @patch.dict("os.environ", {}, clear=True)
    def test_bounds_must_be_ordered(self):
        with pytest.raises(ValidationError, match="SENSOR_RAW_LOWER_BOUND"):
            load(sensor_raw_lower_bound=3624, sensor_raw_upper_bound=1491)

    @patch.dict("os.environ", {}, clear=True)
    def test_negative_noise_margin_rejected(self):
        with pytest.raises(ValidationError):
            load(sensor_raw_noise_margin=-1)


class TestLevelSettings:
    """Tests for the LEVELS setting."""

    @patch.dict("os.environ", {}, clear=True)
    def test_default_levels(self):
        levels = load().level_set

        assert [level.name for level in levels] == ["low", "normal", "high"]
        assert levels[0].notification_interval_sec == 14400
        assert not levels[1].reminds
        assert all(isinstance(level, Level) for level in levels)

    @patch.dict(
        "os.environ",
        {
            "LEVELS": json.dumps(
                [
                    {"name": "dry", "start": 0, "end": 40,
                     "notification_interval_sec": 600},
                    {"name": "wet", "start": 41, "end": 100},
                ]
            )
        },
        clear=True,
    )
    def test_levels_from_json_env(self):
        levels = load().level_set

        assert levels == (
            Level("dry", 0, 40, notification_interval_sec=600),
            Level("wet", 41, 100),
        )

    @patch.dict(
        "os.environ",
        {
            "LEVELS": json.dumps(
                [
                    {"name": "dry", "start": 0, "end": 40},
                    {"name": "wet", "start": 50, "end": 100},
                ]
            )
        },
        clear=True,
    )
    def test_gap_in_levels_rejected(self):
        with pytest.raises(ValidationError, match="Gap between"):
            load()

    def test_level_bounds_checked(self):
        with pytest.raises(ValidationError):
            LevelSettings(name="bad", start=0, end=120)

    def test_negative_interval_rejected(self):
        with pytest.raises(ValidationError):
            LevelSettings(
                name="bad", start=0, end=100, notification_interval_sec=-5
            )


class TestWatchdogSettings:
    """Tests for watchdog settings."""

    @patch.dict("os.environ", {"WATCHDOG_TIMEOUT_SEC": "120"}, clear=True)
    def test_from_env(self):
        assert load().watchdog.timeout_sec == 120

    @patch.dict("os.environ", {}, clear=True)
    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            load(watchdog_timeout_sec=0)


class TestNotificationSettings:
    """Tests for notification settings."""

    @patch.dict("os.environ", {}, clear=True)
    def test_default_values(self):
        notifications = load().notifications

        assert notifications.enabled is False
        assert notifications.backends == [NotificationBackend.GMAIL]
        assert notifications.max_retries == 3

    @patch.dict(
        "os.environ",
        {
            "ENABLE_NOTIFICATION_SERVICE": "1",
            "NOTIFICATION_BACKENDS": " slack , ",
            "SLACK_WEBHOOK_URL": "https://hooks.slack.com/services/xxx",
        },
        clear=True,
    )
    def test_backends_trimmed(self):
        notifications = load().notifications

        assert notifications.enabled is True
        assert notifications.backends == [NotificationBackend.SLACK]

    @patch.dict(
        "os.environ",
        {
            "ENABLE_NOTIFICATION_SERVICE": "1",
            "NOTIFICATION_BACKENDS": "gmail",
        },
        clear=True,
    )
    def test_gmail_requires_credentials(self):
        with pytest.raises(ValidationError, match="GMAIL_SENDER"):
            load()


class TestSourceSettings:
    """Tests for reading source settings."""

    @patch.dict(
        "os.environ", {"MOCK_SENSORS": "1", "MOCK_INTERVAL_SEC": "2"}, clear=True
    )
    def test_mock_skips_port_detection(self):
        settings = load()

        assert settings.mock_sensors is True
        assert settings.source.serial_port == "auto"
        assert settings.source.mock_interval_sec == 2

    @patch.dict("os.environ", {}, clear=True)
    def test_auto_port_without_device_raises(self):
        with patch(
            "plantmon.lib.config.settings._detect_serial_port",
            return_value=None,
        ):
            with pytest.raises(RuntimeError, match="SENSOR_SERIAL_PORT"):
                load().source

    @patch.dict("os.environ", {}, clear=True)
    def test_auto_port_detected(self):
        with patch(
            "plantmon.lib.config.settings._detect_serial_port",
            return_value="/dev/ttyACM1",
        ):
            assert load().source.serial_port == "/dev/ttyACM1"


class TestGetSettings:
    """Tests for settings caching and overrides."""

    def test_override_is_returned(self):
        custom = load(watchdog_timeout_sec=10)
        set_settings(custom)

        assert get_settings() is custom

    @patch.dict("os.environ", {"WATCHDOG_TIMEOUT_SEC": "42"}, clear=True)
    def test_reload_reads_environment_again(self):
        set_settings(None)
        first = get_settings()

        with patch.dict("os.environ", {"WATCHDOG_TIMEOUT_SEC": "99"}):
            assert get_settings() is first
            reloaded = reload_settings()

        assert first.watchdog.timeout_sec == 42
        assert reloaded.watchdog.timeout_sec == 99
