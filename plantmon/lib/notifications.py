"""Notification system for plant monitor events.

Provides an abstract notification interface with pluggable backends.
Supports Gmail and Slack notifications, or both simultaneously.
"""

import asyncio
import json
import ssl
import urllib.request
from abc import ABC, abstractmethod
from email.message import EmailMessage
from smtplib import SMTP
from typing import Any, override

from plantmon.lib.config import Direction, NotificationBackend, get_settings
from plantmon.lib.eventbus import (
    AnyEvent,
    LevelChangedEvent,
    ReminderEvent,
    SensorStaleEvent,
)
from plantmon.lib.retry import with_retry
from plantmon.logging import get_logger

logger = get_logger("lib.notifications")

_DIRECTION_LABELS: dict[Direction, str] = {
    Direction.UP: "rose to",
    Direction.STEADY: "is",
    Direction.DOWN: "dropped to",
}


def get_level_label(level: str) -> str:
    """Get human-readable label for a level name."""
    return level.replace("-", " ").replace("_", " ").title()


def format_duration(seconds: float) -> str:
    """Format a duration as a short human-readable string."""
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:02d}m" if minutes else f"{hours}h"
    if minutes:
        return f"{minutes}m {secs:02d}s" if secs else f"{minutes}m"
    return f"{secs}s"


def format_title(event: AnyEvent) -> str:
    """Format a one-line title for an event."""
    match event:
        case LevelChangedEvent():
            return f"Moisture {get_level_label(event.level)}"
        case ReminderEvent():
            return f"Reminder: moisture {get_level_label(event.level)}"
        case SensorStaleEvent():
            return "Sensor offline"


def format_message(event: AnyEvent) -> str:
    """Format an event as a notification message."""
    time_str = event.recording_time.strftime("%H:%M:%S")

    match event:
        case LevelChangedEvent():
            verb = _DIRECTION_LABELS[event.direction]
            return (
                f"Soil moisture {verb} {get_level_label(event.level)}.\n\n"
                f"Current value: {event.value}%\n"
                f"Time: {time_str}"
            )
        case ReminderEvent():
            return (
                f"Soil moisture is still {get_level_label(event.level)}.\n\n"
                f"Current value: {event.value}%\n"
                f"Time: {time_str}"
            )
        case SensorStaleEvent():
            return (
                f"No sensor reading received for "
                f"{format_duration(event.timeout_sec)}.\n\n"
                f"Time: {time_str}"
            )


class AbstractNotifier(ABC):
    """Abstract base class for notification backends."""

    @abstractmethod
    async def send(self, event: AnyEvent) -> None:
        """Send a notification for the given event."""


class GmailNotifier(AbstractNotifier):
    """Gmail notification backend."""

    def _build_email(self, subject: str, body: str) -> EmailMessage:
        """Build an email message with the given subject and body."""
        gmail = get_settings().notifications.gmail
        msg = EmailMessage()
        msg.add_header("From", gmail.sender)
        msg.add_header("To", gmail.recipients)
        msg.add_header("Subject", subject)
        msg.set_content(body)
        return msg

    async def _send_email(self, message: EmailMessage, label: str) -> None:
        """Send an email with retry logic and exponential backoff."""
        cfg = get_settings().notifications
        gmail = cfg.gmail
        timeout = cfg.timeout_sec

        def do_send() -> None:
            context = ssl.create_default_context()
            with SMTP("smtp.gmail.com", 587, timeout=timeout) as server:
                server.starttls(context=context)
                server.login(gmail.username, gmail.password.get_secret_value())
                server.send_message(message)
            logger.info("Sent email notification: %s", label)

        await with_retry(
            do_send,
            name="Email",
            logger=logger,
            max_retries=cfg.max_retries,
            initial_backoff_sec=cfg.initial_backoff_sec,
            run_in_thread=True,
        )

    @override
    async def send(self, event: AnyEvent) -> None:
        """Send email notification."""
        base_subject = get_settings().notifications.gmail.subject
        title = format_title(event)
        message = self._build_email(
            f"{base_subject} - {title}", format_message(event)
        )
        await self._send_email(message, title)


class SlackNotifier(AbstractNotifier):
    """Slack webhook notification backend."""

    def _build_payload(
        self,
        title: str,
        fields: list[dict[str, str]],
        time_str: str,
    ) -> dict[str, Any]:
        """Build a Slack message payload."""
        return {
            "text": title,
            "blocks": [
                {
                    "type": "header",
                    "text": {"type": "plain_text", "text": title},
                },
                {"type": "section", "fields": fields},
                {
                    "type": "context",
                    "elements": [
                        {"type": "mrkdwn", "text": f":clock1: {time_str}"}
                    ],
                },
            ],
        }

    def _build_fields(self, event: AnyEvent) -> list[dict[str, str]]:
        """Build the section fields for an event."""
        match event:
            case LevelChangedEvent():
                return [
                    {"type": "mrkdwn", "text": f"*Current:*\n{event.value}%"},
                    {"type": "mrkdwn", "text": f"*Trend:*\n{event.direction}"},
                ]
            case ReminderEvent():
                return [
                    {"type": "mrkdwn", "text": f"*Current:*\n{event.value}%"},
                ]
            case SensorStaleEvent():
                return [
                    {
                        "type": "mrkdwn",
                        "text": (
                            "*Silent for:*\n"
                            f"{format_duration(event.timeout_sec)}"
                        ),
                    },
                ]

    async def _send_slack(self, payload: dict[str, Any], label: str) -> None:
        """Send a Slack message with retry logic."""
        data = json.dumps(payload).encode("utf-8")
        cfg = get_settings().notifications
        webhook_url = cfg.slack.webhook_url
        timeout = cfg.timeout_sec

        def do_send() -> None:
            req = urllib.request.Request(
                webhook_url,
                data=data,
                headers={"Content-Type": "application/json"},
                method="POST",
            )
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                if resp.status != 200:
                    raise OSError(f"Slack API returned status {resp.status}")
            logger.info("Sent Slack notification: %s", label)

        await with_retry(
            do_send,
            name="Slack",
            logger=logger,
            max_retries=cfg.max_retries,
            initial_backoff_sec=cfg.initial_backoff_sec,
            run_in_thread=True,
        )

    @override
    async def send(self, event: AnyEvent) -> None:
        """Send Slack notification."""
        title = format_title(event)
        time_str = event.recording_time.strftime("%H:%M:%S")
        payload = self._build_payload(
            title, self._build_fields(event), time_str
        )
        await self._send_slack(payload, title)


class CompositeNotifier(AbstractNotifier):
    """Sends notifications to multiple backends."""

    def __init__(self, notifiers: list[AbstractNotifier]):
        self._notifiers = notifiers

    @override
    async def send(self, event: AnyEvent) -> None:
        """Send notification to all configured backends concurrently."""
        await asyncio.gather(
            *(notifier.send(event) for notifier in self._notifiers),
            return_exceptions=True,
        )


class NoOpNotifier(AbstractNotifier):
    """No-op notifier that logs but doesn't send notifications."""

    @override
    async def send(self, event: AnyEvent) -> None:
        """Log the event but don't send a notification."""
        logger.info(
            "Notifications disabled, skipping %s", format_title(event)
        )


_BACKEND_MAP: dict[NotificationBackend, type[AbstractNotifier]] = {
    NotificationBackend.GMAIL: GmailNotifier,
    NotificationBackend.SLACK: SlackNotifier,
}


def get_notifier() -> AbstractNotifier:
    """Factory function to get the configured notifier."""
    cfg = get_settings().notifications
    if not cfg.enabled:
        return NoOpNotifier()

    notifiers: list[AbstractNotifier] = []
    for backend_str in cfg.backends:
        try:
            backend = NotificationBackend(backend_str)
            notifiers.append(_BACKEND_MAP[backend]())
        except (ValueError, KeyError):
            logger.warning("Unknown notification backend: %s", backend_str)

    if not notifiers:
        return NoOpNotifier()
    if len(notifiers) == 1:
        return notifiers[0]
    return CompositeNotifier(notifiers)
