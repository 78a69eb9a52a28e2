"""Enumerations for the plant monitor."""

from enum import StrEnum


class NotificationBackend(StrEnum):
    GMAIL = "gmail"
    SLACK = "slack"


class Direction(StrEnum):
    """Trend of a value or level relative to the previous reading."""

    UP = "up"
    STEADY = "steady"
    DOWN = "down"
