"""Centralized configuration for the plant monitor.

This package provides:
- Enums for directions and notification backends
- Pydantic settings models for configuration
- Functions for loading and reloading settings
"""

from .enums import Direction, NotificationBackend
from .settings import (
    EventBusSettings,
    GmailSettings,
    LevelSettings,
    NotificationSettings,
    PollingSettings,
    SensorSettings,
    Settings,
    SlackSettings,
    SourceSettings,
    WatchdogSettings,
    get_settings,
    reload_settings,
)

__all__ = [
    # Enums
    "Direction",
    "NotificationBackend",
    # Settings models
    "EventBusSettings",
    "GmailSettings",
    "LevelSettings",
    "NotificationSettings",
    "PollingSettings",
    "SensorSettings",
    "Settings",
    "SlackSettings",
    "SourceSettings",
    "WatchdogSettings",
    # Functions
    "get_settings",
    "reload_settings",
]
