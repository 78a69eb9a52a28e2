"""Redis-based event bus for outbound plant notifications.

Provides pub/sub messaging between the monitor service (publisher) and the
notification service (subscriber).
"""

import json
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal, Self

import redis
import redis.asyncio as aioredis

from plantmon.lib.config import Direction, get_settings
from plantmon.logging import get_logger

logger = get_logger("lib.eventbus")

_DATETIME_FMT = "%Y-%m-%d %H:%M:%S"


def _format_time(value: datetime) -> str:
    """Format a timestamp for the wire, always in UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime(_DATETIME_FMT)


def _parse_time(value: str) -> datetime:
    return datetime.strptime(value, _DATETIME_FMT).replace(tzinfo=UTC)


class Topic(StrEnum):
    """Event bus topics."""

    LEVEL_CHANGED = "level.changed"
    REMINDER = "level.reminder"
    SENSOR_STALE = "sensor.stale"


@dataclass(frozen=True, slots=True)
class Event(ABC):
    """Base class for all event bus payloads."""

    @property
    @abstractmethod
    def event_type(self) -> str:
        """Discriminator field for event type identification."""

    @property
    @abstractmethod
    def topic(self) -> Topic:
        """Topic the event is published on."""

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for JSON serialization."""


@dataclass(frozen=True, slots=True)
class LevelChangedEvent(Event):
    """The moisture level changed, or was assigned for the first time."""

    level: str
    direction: Direction
    value: int
    recording_time: datetime

    @property
    def event_type(self) -> Literal["level_changed"]:
        return "level_changed"

    @property
    def topic(self) -> Topic:
        return Topic.LEVEL_CHANGED

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "level": self.level,
            "direction": self.direction,
            "value": self.value,
            "recording_time": _format_time(self.recording_time),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            level=data["level"],
            direction=Direction(data["direction"]),
            value=int(data["value"]),
            recording_time=_parse_time(data["recording_time"]),
        )


@dataclass(frozen=True, slots=True)
class ReminderEvent(Event):
    """The plant is still in a level that asks for reminders."""

    level: str
    value: int
    recording_time: datetime

    @property
    def event_type(self) -> Literal["reminder"]:
        return "reminder"

    @property
    def topic(self) -> Topic:
        return Topic.REMINDER

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "level": self.level,
            "value": self.value,
            "recording_time": _format_time(self.recording_time),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            level=data["level"],
            value=int(data["value"]),
            recording_time=_parse_time(data["recording_time"]),
        )


@dataclass(frozen=True, slots=True)
class SensorStaleEvent(Event):
    """No sensor reading arrived within the watchdog timeout."""

    timeout_sec: float
    recording_time: datetime

    @property
    def event_type(self) -> Literal["sensor_stale"]:
        return "sensor_stale"

    @property
    def topic(self) -> Topic:
        return Topic.SENSOR_STALE

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "timeout_sec": self.timeout_sec,
            "recording_time": _format_time(self.recording_time),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            timeout_sec=float(data["timeout_sec"]),
            recording_time=_parse_time(data["recording_time"]),
        )


# Type alias for any concrete event type
type AnyEvent = LevelChangedEvent | ReminderEvent | SensorStaleEvent

_EVENT_TYPES: dict[Topic, type[AnyEvent]] = {
    Topic.LEVEL_CHANGED: LevelChangedEvent,
    Topic.REMINDER: ReminderEvent,
    Topic.SENSOR_STALE: SensorStaleEvent,
}


def parse_event(topic: Topic, data: dict[str, Any]) -> AnyEvent:
    """Rebuild an event from a message received on topic.

    Raises:
        KeyError, ValueError, TypeError: If the payload is malformed.
    """
    return _EVENT_TYPES[topic].from_dict(data)


class EventPublisher:
    """Publishes notification events to the event bus.

    Used by the monitor service to hand events to the notification service.
    """

    def __init__(self) -> None:
        self._redis_url = get_settings().eventbus.redis_url
        self._client: redis.Redis | None = None

    def connect(self) -> None:
        """Connect to Redis."""
        self._client = redis.from_url(self._redis_url)
        logger.info("Event publisher connected to Redis")

    def publish(self, event: Event) -> None:
        """Publish an event on its topic."""
        if self._client is None:
            return

        message = json.dumps(event.to_dict())
        self._client.publish(event.topic, message)
        logger.debug("Published to %s: %s", event.topic, message)

    def close(self) -> None:
        """Close the publisher connection."""
        if self._client is not None:
            self._client.close()
            self._client = None
        logger.info("Event publisher closed")


class EventSubscriber:
    """Subscribes to notification events from the event bus."""

    def __init__(self, topics: list[Topic] | None = None) -> None:
        """Initialize subscriber.

        Args:
            topics: List of topics to subscribe to. If None, subscribes to all.
        """
        self._redis_url = get_settings().eventbus.redis_url
        self._topics = topics or list(Topic)
        self._client: aioredis.Redis | None = None
        self._pubsub: aioredis.client.PubSub | None = None

    async def connect(self) -> None:
        """Connect to Redis and subscribe to topics."""
        self._client = aioredis.from_url(self._redis_url)
        self._pubsub = self._client.pubsub()
        await self._pubsub.subscribe(*self._topics)
        logger.info(
            "Event subscriber connected to Redis, topics: %s", self._topics
        )

    async def receive(self) -> AsyncIterator[tuple[Topic, dict[str, Any]]]:
        """Async iterator that yields (topic, data) tuples as they arrive."""
        if self._pubsub is None:
            return

        async for message in self._pubsub.listen():
            if message["type"] != "message":
                continue

            try:
                topic = Topic(message["channel"].decode())
                data = json.loads(message["data"].decode())
                yield topic, data
            except (ValueError, json.JSONDecodeError) as e:
                logger.warning("Invalid message: %s", e)

    async def close(self) -> None:
        """Close the subscriber connection."""
        if self._pubsub is not None:
            await self._pubsub.unsubscribe()
            await self._pubsub.close()
            self._pubsub = None
        if self._client is not None:
            await self._client.close()
            self._client = None
        logger.info("Event subscriber closed")

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        """Async context manager exit."""
        await self.close()
