"""Collaborator notifications for addrsync.

This module provides:
- Broadcaster: fire-and-forget "collection updated" sink for UI/CRUD layers
- Native OS notifications (macOS notification center, Linux notify-send)
  used by the command line in watch mode

Delivery failures are never errors for the sync engine: they are logged
and dropped.
"""

from __future__ import annotations

import logging
import platform
import subprocess
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto

from addrsync.core.types import Record

logger = logging.getLogger(__name__)

COLLECTION_UPDATED = "syncAddressesUpdated"


class NotificationType(Enum):
    """Type of notification."""

    INFO = auto()
    WARNING = auto()
    ERROR = auto()


@dataclass
class Notification:
    """Represents a notification to display."""

    title: str
    message: str
    type: NotificationType = NotificationType.INFO


@dataclass
class CollectionUpdate:
    """Message broadcast after a merge changed the LOCAL collection."""

    records: list[Record]
    action: str = COLLECTION_UPDATED
    owner: str | None = None


Subscriber = Callable[[CollectionUpdate], None]


class Broadcaster:
    """Fan-out of collection updates to subscribed collaborators."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

    def collection_updated(self, records: list[Record], owner: str | None = None) -> int:
        """Broadcast a collection update.

        Args:
            records: The merged collection.
            owner: Owner whose collection changed.

        Returns:
            Number of subscribers that received the update.
        """
        update = CollectionUpdate(records=list(records), owner=owner)
        with self._lock:
            subscribers = list(self._subscribers)

        delivered = 0
        for subscriber in subscribers:
            try:
                subscriber(update)
                delivered += 1
            except Exception as e:
                logger.warning(f"Collection update delivery failed: {e}")
        return delivered


def _notify_macos(notification: Notification) -> bool:
    """Send notification on macOS using osascript.

    Args:
        notification: The notification to send.

    Returns:
        True if notification was sent successfully.
    """
    try:
        # Escape quotes in title and message
        title = notification.title.replace('"', '\\"')
        message = notification.message.replace('"', '\\"')

        script = f'display notification "{message}" with title "{title}"'
        subprocess.run(
            ["osascript", "-e", script],
            capture_output=True,
            check=True,
        )
        return True
    except (OSError, subprocess.CalledProcessError) as e:
        logger.debug(f"macOS notification failed: {e}")
        return False


def _notify_linux(notification: Notification) -> bool:
    """Send notification on Linux using notify-send.

    Args:
        notification: The notification to send.

    Returns:
        True if notification was sent successfully.
    """
    urgency = "critical" if notification.type == NotificationType.ERROR else "normal"
    try:
        subprocess.run(
            [
                "notify-send",
                "--urgency", urgency,
                "--app-name", "addrsync",
                notification.title,
                notification.message,
            ],
            capture_output=True,
            check=True,
        )
        return True
    except FileNotFoundError:
        logger.debug("notify-send not found")
        return False
    except (OSError, subprocess.CalledProcessError) as e:
        logger.debug(f"Linux notification failed: {e}")
        return False


def send_notification(notification: Notification) -> bool:
    """Send a system notification.

    Returns:
        True if notification was sent, False if failed or unavailable.
    """
    system = platform.system()

    if system == "Darwin":
        return _notify_macos(notification)
    elif system == "Linux":
        return _notify_linux(notification)
    else:
        logger.warning(f"Notifications not supported on {system}")
        return False


def desktop_subscriber(update: CollectionUpdate) -> None:
    """Broadcaster subscriber announcing merged remote changes on the desktop."""
    send_notification(Notification(
        title="addrsync - Addresses Updated",
        message=f"{len(update.records)} addresses after merging remote changes",
    ))


def notify_error(message: str) -> bool:
    """Send an error notification."""
    return send_notification(Notification(
        title="addrsync - Error",
        message=message,
        type=NotificationType.ERROR,
    ))
