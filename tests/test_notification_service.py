"""Tests for the notification subscriber service."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from plantmon.lib.eventbus import LevelChangedEvent, SensorStaleEvent, Topic
from plantmon.notifications import service


def make_subscriber(messages):
    """Build an async context manager yielding the given bus messages."""

    async def receive():
        for message in messages:
            yield message

    subscriber = MagicMock()
    subscriber.receive = receive
    subscriber.__aenter__ = AsyncMock(return_value=subscriber)
    subscriber.__aexit__ = AsyncMock(return_value=None)
    return subscriber


class TestNotificationService:
    """Tests for the notification service loop."""

    @pytest.mark.asyncio
    async def test_dispatches_events(self):
        subscriber = make_subscriber(
            [
                (
                    Topic.LEVEL_CHANGED,
                    {
                        "level": "low",
                        "direction": "down",
                        "value": 25,
                        "recording_time": "2024-06-15 12:00:00",
                    },
                ),
                (
                    Topic.SENSOR_STALE,
                    {"timeout_sec": 3600, "recording_time": "2024-06-15 13:00:00"},
                ),
            ]
        )
        notifier = MagicMock()
        notifier.send = AsyncMock()

        with (
            patch.object(service, "EventSubscriber", return_value=subscriber),
            patch.object(service, "get_notifier", return_value=notifier),
        ):
            await service.run()

        sent = [call.args[0] for call in notifier.send.call_args_list]
        assert isinstance(sent[0], LevelChangedEvent)
        assert sent[0].value == 25
        assert isinstance(sent[1], SensorStaleEvent)

    @pytest.mark.asyncio
    async def test_malformed_event_is_skipped(self, caplog):
        subscriber = make_subscriber(
            [
                (Topic.REMINDER, {"level": "low"}),
                (
                    Topic.REMINDER,
                    {
                        "level": "low",
                        "value": 20,
                        "recording_time": "2024-06-15 12:00:00",
                    },
                ),
            ]
        )
        notifier = MagicMock()
        notifier.send = AsyncMock()

        with (
            patch.object(service, "EventSubscriber", return_value=subscriber),
            patch.object(service, "get_notifier", return_value=notifier),
        ):
            await service.run()

        notifier.send.assert_called_once()
        assert "Failed to parse level.reminder event" in caplog.text

    @pytest.mark.asyncio
    async def test_send_failure_does_not_stop_service(self, caplog):
        payload = {"timeout_sec": 60, "recording_time": "2024-06-15 12:00:00"}
        subscriber = make_subscriber(
            [(Topic.SENSOR_STALE, payload), (Topic.SENSOR_STALE, payload)]
        )
        notifier = MagicMock()
        notifier.send = AsyncMock(side_effect=[OSError("smtp down"), None])

        with (
            patch.object(service, "EventSubscriber", return_value=subscriber),
            patch.object(service, "get_notifier", return_value=notifier),
        ):
            await service.run()

        assert notifier.send.call_count == 2
        assert "Failed to send notification" in caplog.text
