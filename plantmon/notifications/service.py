"""Notification service that listens to monitor events and sends notifications.

Subscribes to every event bus topic (level changes, reminders and sensor
staleness) and dispatches notifications via configured backends.
"""

from plantmon.lib.eventbus import EventSubscriber, parse_event
from plantmon.lib.notifications import format_title, get_notifier
from plantmon.lib.service import run_service
from plantmon.logging import get_logger

logger = get_logger("notifications.service")


async def run() -> None:
    """Run the notification service."""
    async with EventSubscriber() as subscriber:
        logger.info("Notification service started")
        async for topic, data in subscriber.receive():
            try:
                event = parse_event(topic, data)
                logger.info("Processing %s", format_title(event))
                # Get notifier for each event to pick up latest settings
                notifier = get_notifier()
                await notifier.send(event)
            except (KeyError, ValueError, TypeError):
                logger.exception("Failed to parse %s event", topic)
            except OSError:
                logger.exception("Failed to send notification")

    logger.info("Notification service stopped")


def main() -> None:
    """Entry point for the notification service."""
    run_service(run, name="notifications")


if __name__ == "__main__":
    main()
