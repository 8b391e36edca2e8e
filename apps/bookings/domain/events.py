"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import Money, TimeRange


@dataclass(kw_only=True)
class BookingEvent(DomainEvent):
    """Common fields of every booking event"""
    booking_id: UUID
    court_id: UUID
    booking_date: date
    window: TimeRange

    notification_type = 'booking.updated'

    def payload(self) -> dict:
        return {
            'court_id': str(self.court_id),
            'booking_date': self.booking_date.isoformat(),
            'start_time': f"{self.window.start:%H:%M}",
            'end_time': f"{self.window.end:%H:%M}",
        }


@dataclass(kw_only=True)
class BookingCreated(BookingEvent):
    """
    Event: A new booking was created (PENDING, payment PENDING)

    Triggers:
    - Real-time availability refresh on clients
    - Payment hold expiry countdown
    """
    user_id: str
    total_price: Money
    deposit_amount: Money

    notification_type = 'booking.created'

    def payload(self) -> dict:
        return {
            **super().payload(),
            'user_id': self.user_id,
            'total_price': str(self.total_price.amount),
            'deposit_amount': str(self.deposit_amount.amount),
            'currency': self.total_price.currency,
        }


@dataclass(kw_only=True)
class BookingStatusChanged(BookingEvent):
    """
    Event: Booking moved along the lifecycle (CONFIRMED, ACTIVE, COMPLETED)
    """
    old_status: str
    new_status: str

    notification_type = 'booking.status_changed'

    def payload(self) -> dict:
        return {**super().payload(), 'old_status': self.old_status, 'new_status': self.new_status}


@dataclass(kw_only=True)
class BookingPaid(BookingEvent):
    """
    Event: A payment was recorded (DEPOSIT_PAID or FULLY_PAID)
    """
    payment_status: str
    payment_method: str | None = None

    notification_type = 'booking.paid'

    def payload(self) -> dict:
        return {
            **super().payload(),
            'payment_status': self.payment_status,
            'payment_method': self.payment_method,
        }


@dataclass(kw_only=True)
class BookingPaymentFailed(BookingEvent):
    notification_type = 'booking.payment_failed'


@dataclass(kw_only=True)
class BookingCancelled(BookingEvent):
    """
    Event: Booking was cancelled

    Carries the refund decision so the payment-reversal side and the UI
    can act on it without re-evaluating the policy.

    Triggers:
    - Release or retain funds
    - Notify user and administration
    """
    reason: str
    cancelled_by: str
    old_status: str
    refund: dict

    notification_type = 'booking.cancelled'

    def payload(self) -> dict:
        return {
            **super().payload(),
            'reason': self.reason,
            'cancelled_by': self.cancelled_by,
            'old_status': self.old_status,
            'refund': self.refund,
        }
