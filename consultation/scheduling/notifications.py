"""Append-only, in-memory notification log."""

import logging
from threading import Lock
from typing import Protocol

from consultation.models.notification import Notification
from consultation.scheduling.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def notify(self, recipient: str, message: str) -> None:
        ...


class NotificationLog:
    def __init__(self, clock: Clock | None = None):
        self.clock = clock or SystemClock()
        self._entries: dict[str, list[Notification]] = {}
        self._lock = Lock()

    def notify(self, recipient: str, message: str) -> None:
        if not recipient or not message or not message.strip():
            return

        notification = Notification(recipient=recipient, message=message, created_at=self.clock.now())
        with self._lock:
            self._entries.setdefault(recipient, []).append(notification)
        logger.info('Notification to %s: %s', recipient, message)

    def history(self, recipient: str) -> list[Notification]:
        """Every notification for the recipient in the order it was sent."""
        with self._lock:
            return list(self._entries.get(recipient, []))

    def unread(self, recipient: str) -> list[Notification]:
        # Newest first; the sequence index breaks timestamp ties.
        entries = list(enumerate(self.history(recipient)))
        entries.sort(key=lambda item: (item[1].created_at, item[0]), reverse=True)
        return [notification for _, notification in entries if not notification.is_read]

    def mark_read(self, recipient: str, notification_id: str) -> bool:
        for notification in self.history(recipient):
            if notification.id == notification_id:
                notification.is_read = True
                return True
        return False

    def mark_all_read(self, recipient: str) -> int:
        count = 0
        for notification in self.history(recipient):
            if not notification.is_read:
                notification.is_read = True
                count += 1
        return count
