"""Settings models and configuration loading for the plant monitor."""

import os
from functools import cached_property, lru_cache
from typing import Annotated, Any, Self

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    HttpUrl,
    SecretStr,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from plantmon.lib.config.constants import (
    DEFAULT_LOW_REMINDER_SEC,
    DEFAULT_MOVING_AVERAGE_LEN,
    DEFAULT_RAW_LOWER_BOUND,
    DEFAULT_RAW_NOISE_MARGIN,
    DEFAULT_RAW_UPPER_BOUND,
    DEFAULT_WATCHDOG_TIMEOUT_SEC,
)
from plantmon.lib.config.enums import NotificationBackend
from plantmon.lib.exceptions import LevelConfigurationError
from plantmon.lib.levels import Level, validate_levels


def _parse_bool(v: Any) -> bool:
    """Parse boolean from string '1'/'0' or actual bool."""
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        return v == "1"
    return bool(v)


_BoolFromStr = Annotated[bool, BeforeValidator(_parse_bool)]


def _validate_email_or_empty(v: str) -> str:
    """Validate email format, allowing empty string."""
    if not v:
        return v
    from pydantic import validate_email

    validate_email(v)
    return v


def _validate_http_url_or_empty(v: str) -> str:
    """Validate HTTP URL format, allowing empty string."""
    if not v:
        return v
    HttpUrl(v)
    return v


def _detect_serial_port() -> str | None:
    """Auto-detect the sensor board serial port."""
    for port in ("/dev/ttyACM0", "/dev/ttyACM1", "/dev/ttyUSB0"):
        if os.path.exists(port):
            return port
    return None


_EmailOrEmpty = Annotated[str, AfterValidator(_validate_email_or_empty)]
_HttpUrlOrEmpty = Annotated[str, AfterValidator(_validate_http_url_or_empty)]


class LevelSettings(BaseModel):
    """A single moisture level as written in the LEVELS JSON list."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    start: int = Field(ge=0, le=100)
    end: int = Field(ge=0, le=100)
    notification_interval_sec: float = Field(default=0, ge=0)

    def to_level(self) -> Level:
        return Level(
            name=self.name,
            start=self.start,
            end=self.end,
            notification_interval_sec=self.notification_interval_sec,
        )


_DEFAULT_LEVELS = [
    LevelSettings(
        name="low",
        start=0,
        end=30,
        notification_interval_sec=DEFAULT_LOW_REMINDER_SEC,
    ),
    LevelSettings(name="normal", start=31, end=66),
    LevelSettings(name="high", start=67, end=100),
]


class GmailSettings(BaseModel):
    """Gmail notification settings."""

    model_config = ConfigDict(frozen=True)

    sender: str = ""
    recipients: str = ""  # Comma-separated list, validated separately
    username: _EmailOrEmpty = ""
    password: SecretStr = SecretStr("")
    subject: str = "Plant monitor"


class SlackSettings(BaseModel):
    """Slack notification settings."""

    model_config = ConfigDict(frozen=True)

    webhook_url: _HttpUrlOrEmpty = ""


class NotificationSettings(BaseModel):
    """Notification service settings."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    backends: list[NotificationBackend] = []
    gmail: GmailSettings = GmailSettings()
    slack: SlackSettings = SlackSettings()
    max_retries: int = 3
    initial_backoff_sec: int = 2
    timeout_sec: int = 30


class SensorSettings(BaseModel):
    """ADC calibration and smoothing settings for the moisture sensor."""

    model_config = ConfigDict(frozen=True)

    raw_lower_bound: int = DEFAULT_RAW_LOWER_BOUND
    raw_upper_bound: int = DEFAULT_RAW_UPPER_BOUND
    raw_noise_margin: int = DEFAULT_RAW_NOISE_MARGIN
    moving_average_len: int = DEFAULT_MOVING_AVERAGE_LEN


class SourceSettings(BaseModel):
    """Serial connection settings for the sensor board."""

    model_config = ConfigDict(frozen=True)

    serial_port: str = "/dev/ttyACM0"
    serial_baud: int = 115200
    serial_timeout_sec: float = 30.0
    mock_interval_sec: float = 5.0


class WatchdogSettings(BaseModel):
    """Staleness watchdog settings."""

    model_config = ConfigDict(frozen=True)

    timeout_sec: float = DEFAULT_WATCHDOG_TIMEOUT_SEC


class PollingSettings(BaseModel):
    """Reading loop settings."""

    model_config = ConfigDict(frozen=True)

    # 0 handles readings as soon as the source yields them
    frequency_sec: float = 0


class EventBusSettings(BaseModel):
    """Redis event bus settings."""

    model_config = ConfigDict(frozen=True)

    redis_url: str = "redis://localhost:6379/0"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Sensor calibration
    sensor_raw_lower_bound: int = DEFAULT_RAW_LOWER_BOUND
    sensor_raw_upper_bound: int = DEFAULT_RAW_UPPER_BOUND
    sensor_raw_noise_margin: int = Field(default=DEFAULT_RAW_NOISE_MARGIN, ge=0)
    sensor_moving_average_len: int = DEFAULT_MOVING_AVERAGE_LEN

    # Levels, as a JSON list of {name, start, end, notification_interval_sec}
    levels: list[LevelSettings] = _DEFAULT_LEVELS

    # Watchdog
    watchdog_timeout_sec: float = Field(
        default=DEFAULT_WATCHDOG_TIMEOUT_SEC, gt=0
    )

    # Reading source
    mock_sensors: _BoolFromStr = False
    mock_interval_sec: float = Field(default=5.0, gt=0)
    sensor_serial_port: str = "auto"
    sensor_serial_baud: int = Field(default=115200, gt=0)
    sensor_serial_timeout_sec: float = Field(default=30.0, gt=0)
    polling_frequency_sec: float = Field(default=0, ge=0)

    # Notifications
    enable_notification_service: _BoolFromStr = False
    notification_backends: str = "gmail"
    gmail_sender: str = ""
    gmail_recipients: str = ""  # Comma-separated list
    gmail_username: _EmailOrEmpty = ""
    gmail_password: SecretStr = SecretStr("")
    gmail_subject: str = "Plant monitor"
    slack_webhook_url: _HttpUrlOrEmpty = ""
    email_max_retries: int = Field(default=3, ge=0)
    email_initial_backoff_sec: int = Field(default=2, ge=0)
    email_timeout_sec: int = Field(default=30, ge=1)

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    @cached_property
    def sensor(self) -> SensorSettings:
        """Get sensor calibration settings as nested object."""
        return SensorSettings(
            raw_lower_bound=self.sensor_raw_lower_bound,
            raw_upper_bound=self.sensor_raw_upper_bound,
            raw_noise_margin=self.sensor_raw_noise_margin,
            moving_average_len=self.sensor_moving_average_len,
        )

    @cached_property
    def level_set(self) -> tuple[Level, ...]:
        """Get the configured levels as immutable domain objects."""
        return tuple(level.to_level() for level in self.levels)

    @cached_property
    def watchdog(self) -> WatchdogSettings:
        """Get watchdog settings."""
        return WatchdogSettings(timeout_sec=self.watchdog_timeout_sec)

    @cached_property
    def notifications(self) -> NotificationSettings:
        """Get notification settings as nested object."""
        backends = [
            NotificationBackend(b.strip())
            for b in self.notification_backends.split(",")
            if b.strip()
        ]
        return NotificationSettings(
            enabled=self.enable_notification_service,
            backends=backends,
            gmail=GmailSettings(
                sender=self.gmail_sender,
                recipients=self.gmail_recipients,
                username=self.gmail_username,
                password=self.gmail_password,
                subject=self.gmail_subject,
            ),
            slack=SlackSettings(webhook_url=self.slack_webhook_url),
            max_retries=self.email_max_retries,
            initial_backoff_sec=self.email_initial_backoff_sec,
            timeout_sec=self.email_timeout_sec,
        )

    def _resolve_serial_port(self) -> str:
        """Resolve the sensor serial port, with auto-detection if needed."""
        port = self.sensor_serial_port
        if self.mock_sensors:
            return port
        if port != "auto" and os.path.exists(port):
            return port
        detected = _detect_serial_port()
        if detected:
            return detected
        if port == "auto":
            raise RuntimeError(
                "No sensor serial port detected. "
                "Set SENSOR_SERIAL_PORT explicitly."
            )
        return port  # Use configured port even if it doesn't exist yet

    @cached_property
    def source(self) -> SourceSettings:
        """Get reading source settings as nested object."""
        return SourceSettings(
            serial_port=self._resolve_serial_port(),
            serial_baud=self.sensor_serial_baud,
            serial_timeout_sec=self.sensor_serial_timeout_sec,
            mock_interval_sec=self.mock_interval_sec,
        )

    @cached_property
    def polling(self) -> PollingSettings:
        """Get reading loop settings."""
        return PollingSettings(frequency_sec=self.polling_frequency_sec)

    @cached_property
    def eventbus(self) -> EventBusSettings:
        """Get event bus settings."""
        return EventBusSettings(redis_url=self.redis_url)

    @model_validator(mode="after")
    def validate_settings(self) -> Self:
        """Validate cross-field configuration constraints."""
        errors: list[str] = []

        if self.sensor_raw_lower_bound >= self.sensor_raw_upper_bound:
            errors.append(
                f"SENSOR_RAW_LOWER_BOUND ({self.sensor_raw_lower_bound}) "
                f"must be less than SENSOR_RAW_UPPER_BOUND "
                f"({self.sensor_raw_upper_bound})"
            )

        try:
            validate_levels([level.to_level() for level in self.levels])
        except LevelConfigurationError as e:
            errors.append(f"LEVELS: {e}")

        # Notification credential checks
        if self.enable_notification_service:
            backends = [
                b.strip()
                for b in self.notification_backends.split(",")
                if b.strip()
            ]

            if NotificationBackend.GMAIL in backends:
                missing = []
                if not self.gmail_sender:
                    missing.append("GMAIL_SENDER")
                if not self.gmail_recipients:
                    missing.append("GMAIL_RECIPIENTS")
                if not self.gmail_username:
                    missing.append("GMAIL_USERNAME")
                if not self.gmail_password.get_secret_value():
                    missing.append("GMAIL_PASSWORD")
                if missing:
                    errors.append(
                        f"Gmail enabled but missing: {', '.join(missing)}"
                    )

            if NotificationBackend.SLACK in backends:
                if not self.slack_webhook_url:
                    errors.append(
                        "Slack enabled but SLACK_WEBHOOK_URL is not set"
                    )

        if errors:
            raise ValueError(
                "Configuration validation failed:\n  - "
                + "\n  - ".join(errors)
            )

        return self


# Settings override for testing - allows injecting custom Settings without
# modifying environment variables or clearing the lru_cache.
_settings_override: Settings | None = None


@lru_cache(maxsize=1)
def _load_settings() -> Settings:
    """Load settings from environment (cached)."""
    return Settings()


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns the test override if set, otherwise loads from environment
    variables (cached after first load). For testing, use set_settings()
    from plantmon.lib.config.testing to override.
    """
    if _settings_override is not None:
        return _settings_override
    return _load_settings()


def reload_settings() -> Settings:
    """Re-read settings from the environment and .env file.

    Raises pydantic's ValidationError if the new configuration is invalid;
    the previously cached settings are then discarded as well, so callers
    should keep their own reference to whatever they were running with.
    """
    _load_settings.cache_clear()
    return get_settings()
