"""Event notifier sinks."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List
from uuid import UUID

import structlog
from django.conf import settings  # type: ignore
from django.utils.module_loading import import_string  # type: ignore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BookingNotification:
    type: str
    booking_id: UUID
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"type": self.type, "booking_id": str(self.booking_id), "payload": self.payload}


class EventNotifier(ABC):
    """Receives booking notifications once the change is committed."""

    @abstractmethod
    def notify(self, notification: BookingNotification) -> None:
        raise NotImplementedError


class LoggingEventNotifier(EventNotifier):
    """Writes each notification as a structured log line."""

    def notify(self, notification: BookingNotification) -> None:
        logger.info(
            "booking_notification",
            notification_type=notification.type,
            booking_id=str(notification.booking_id),
            payload=notification.payload,
        )


class RecordingEventNotifier(EventNotifier):
    """Keeps notifications in memory. Used by tests."""

    def __init__(self):
        self._lock = threading.Lock()
        self.notifications: List[BookingNotification] = []

    def notify(self, notification: BookingNotification) -> None:
        with self._lock:
            self.notifications.append(notification)

    def of_type(self, notification_type: str) -> List[BookingNotification]:
        with self._lock:
            return [n for n in self.notifications if n.type == notification_type]

    def clear(self) -> None:
        with self._lock:
            self.notifications.clear()


@lru_cache(maxsize=None)
def _build_notifier(path: str) -> EventNotifier:
    return import_string(path)()


def get_event_notifier() -> EventNotifier:
    """Notifier configured in ``EVENT_NOTIFIER_CLASS`` (one instance per class path)."""
    path = getattr(settings, "EVENT_NOTIFIER_CLASS", "apps.notifications.notifier.LoggingEventNotifier")
    return _build_notifier(path)
