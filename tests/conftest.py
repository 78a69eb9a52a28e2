"""Shared pytest fixtures for the test suite."""

import logging
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from plantmon.lib.config import Settings
from plantmon.lib.config.testing import set_settings
from plantmon.lib.levels import Level


@pytest.fixture(autouse=True)
def configure_caplog(caplog):
    """Ensure caplog captures logs from the plantmon namespace."""
    caplog.set_level(logging.DEBUG, logger="plantmon")


@pytest.fixture(autouse=True)
def test_settings():
    """Use default settings, ignoring any local .env file.

    Notification retries use no backoff so failing sends do not slow the
    suite down.
    """
    settings = Settings(_env_file=None, email_initial_backoff_sec=0)
    set_settings(settings)
    yield settings
    set_settings(None)


@pytest.fixture
def frozen_time():
    """Return a fixed datetime for deterministic tests."""
    return datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def levels():
    """The default low / normal / high level set, low reminding hourly."""
    return (
        Level("low", 0, 30, notification_interval_sec=3600),
        Level("normal", 31, 66),
        Level("high", 67, 100),
    )


@pytest.fixture
def mock_source():
    """A data source whose readline() yields the lines given to it."""
    source = MagicMock()
    source.lines = []

    async def readline():
        return source.lines.pop(0) if source.lines else ""

    source.readline = readline
    return source


@pytest.fixture
def mock_publisher():
    """An event publisher recording published events."""
    publisher = MagicMock()
    publisher.events = []
    publisher.publish.side_effect = publisher.events.append
    return publisher
