"""Notification service entrypoint.

Usage: python -m plantmon.notifications
"""

from plantmon.notifications.service import main

if __name__ == "__main__":
    main()
