"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.utils import timezone  # type: ignore

from shared.application.message_bus import message_bus
from shared.domain.exceptions import DomainError

from .application.command_handlers import (
    SYSTEM_ACTOR,
    CancelBookingCommand,
    UpdateBookingStatusCommand,
)
from .domain.entities import BookingStatus
from .infrastructure.repositories import DjangoBookingStore

logger = logging.getLogger(__name__)

PAYMENT_EXPIRED_REASON = "Payment window expired"


# ============================================================================
# PERIODIC TASKS (scheduled by Celery Beat, see config/celery.py)
# ============================================================================

@shared_task(name="bookings.expire_unpaid_bookings")
def expire_unpaid_bookings() -> dict[str, int]:
    """
    Cancel bookings whose payment hold ran out.

    Goes through the cancel handler so the window is freed in the
    availability cache and ``booking.cancelled`` is published.

    Returns:
        dict: {"expired": number of cancelled bookings}
    """
    now = timezone.now()
    expired_count = 0

    for booking_id in DjangoBookingStore().expired_unpaid_ids(now):
        try:
            message_bus.handle_command(CancelBookingCommand(
                booking_id=booking_id,
                reason=PAYMENT_EXPIRED_REASON,
                cancelled_by=SYSTEM_ACTOR,
                only_if_expired=True,
            ))
            expired_count += 1
        except DomainError as e:
            # Paid or cancelled meanwhile
            logger.info("Skipping expiry of booking %s: %s", booking_id, e)

    if expired_count:
        logger.info("Expired %d unpaid bookings", expired_count)
    return {"expired": expired_count}


@shared_task(name="bookings.advance_booking_lifecycle")
def advance_booking_lifecycle() -> dict[str, int]:
    """
    CONFIRMED -> ACTIVE once the start is reached,
    ACTIVE -> COMPLETED once the end is reached.

    Returns:
        dict: {"started": ..., "completed": ...}
    """
    store = DjangoBookingStore()
    local_now = timezone.localtime(timezone.now())
    started = completed = 0

    for booking_id in store.ids_due_to_start(local_now):
        if _move(booking_id, BookingStatus.ACTIVE):
            started += 1

    # Bookings started above are picked up here when they are already over
    for booking_id in store.ids_due_to_complete(local_now):
        if _move(booking_id, BookingStatus.COMPLETED):
            completed += 1

    if started or completed:
        logger.info("Lifecycle: %d bookings started, %d completed", started, completed)
    return {"started": started, "completed": completed}


def _move(booking_id, new_status: BookingStatus) -> bool:
    try:
        message_bus.handle_command(UpdateBookingStatusCommand(
            booking_id=booking_id,
            new_status=new_status.value,
        ))
        return True
    except DomainError as e:
        logger.warning("Could not move booking %s to %s: %s", booking_id, new_status.value, e)
        return False
