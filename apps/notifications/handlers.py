"""Message bus subscribers that forward booking events to the notifier."""

from __future__ import annotations

import logging

from apps.bookings.domain.events import (
    BookingCancelled,
    BookingCreated,
    BookingEvent,
    BookingPaid,
    BookingPaymentFailed,
    BookingStatusChanged,
)
from shared.application.message_bus import MessageBus, message_bus

from .notifier import BookingNotification, get_event_notifier

logger = logging.getLogger(__name__)

NOTIFIED_EVENTS = (
    BookingCreated,
    BookingStatusChanged,
    BookingPaid,
    BookingPaymentFailed,
    BookingCancelled,
)


def to_notification(event: BookingEvent) -> BookingNotification:
    return BookingNotification(
        type=event.notification_type,
        booking_id=event.booking_id,
        payload=event.to_dict(),
    )


def notify_booking_event(event: BookingEvent) -> None:
    notification = to_notification(event)
    get_event_notifier().notify(notification)
    logger.debug("Forwarded %s for booking %s", notification.type, notification.booking_id)


def register_notification_handlers(bus: MessageBus = message_bus) -> None:
    for event_type in NOTIFIED_EVENTS:
        bus.register_event_handler(event_type, notify_booking_event)
