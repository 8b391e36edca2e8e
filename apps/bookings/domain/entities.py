"""
Booking Domain Entities

Core business entities for the booking domain:
- Booking: Main aggregate representing a court reservation
- BookingStatus: FSM states for booking lifecycle
- PaymentStatus: Payment state tracking
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from shared.domain.base import Aggregate, utcnow
from shared.domain.exceptions import InvalidStateTransition, ValidationError
from shared.domain.value_objects import Money, TimeRange


class BookingStatus(str, Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - PENDING -> CONFIRMED (first deposit or full payment recorded)
    - CONFIRMED -> ACTIVE (session start reached)
    - ACTIVE -> COMPLETED (session end reached)
    - PENDING | CONFIRMED | ACTIVE -> CANCELLED (user, admin or system)
    """
    PENDING = 'PENDING'
    CONFIRMED = 'CONFIRMED'
    ACTIVE = 'ACTIVE'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.COMPLETED, BookingStatus.CANCELLED)


class PaymentStatus(str, Enum):
    """
    Payment status tracking

    - PENDING -> DEPOSIT_PAID | FULLY_PAID | FAILED
    - DEPOSIT_PAID -> FULLY_PAID (balance settled)
    """
    PENDING = 'PENDING'
    DEPOSIT_PAID = 'DEPOSIT_PAID'
    FULLY_PAID = 'FULLY_PAID'
    FAILED = 'FAILED'

    @property
    def is_paid(self) -> bool:
        return self in (PaymentStatus.DEPOSIT_PAID, PaymentStatus.FULLY_PAID)


BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.ACTIVE, BookingStatus.CANCELLED},
    BookingStatus.ACTIVE: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.DEPOSIT_PAID, PaymentStatus.FULLY_PAID, PaymentStatus.FAILED},
    PaymentStatus.DEPOSIT_PAID: {PaymentStatus.FULLY_PAID},
    PaymentStatus.FULLY_PAID: set(),
    PaymentStatus.FAILED: set(),
}


@dataclass(kw_only=True, eq=False)
class Booking(Aggregate):
    """
    Booking Aggregate Root

    A user's reservation of a court window on a date.

    Key invariants:
    - window.start < window.end (enforced by TimeRange)
    - status and payment_status only move forward (see transition tables)
    - cancellation fields are set if and only if status is CANCELLED
    - CONFIRMED requires a recorded deposit or full payment
    """

    court_id: UUID
    user_id: str
    booking_date: date
    window: TimeRange

    total_price: Money
    deposit_amount: Money

    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: str | None = None
    notes: str = ''

    expires_at: datetime | None = None

    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    cancelled_at: datetime | None = None
    refund_granted: bool | None = None

    @property
    def duration_minutes(self) -> int:
        return self.window.duration_minutes

    @property
    def blocks_court(self) -> bool:
        """Every booking except a cancelled one holds its window, COMPLETED included"""
        return self.status != BookingStatus.CANCELLED

    @property
    def amount_paid(self) -> Money:
        if self.payment_status == PaymentStatus.FULLY_PAID:
            return self.total_price
        if self.payment_status == PaymentStatus.DEPOSIT_PAID:
            return self.deposit_amount
        return Money.zero(self.total_price.currency)

    def starts_at(self, tzinfo) -> datetime:
        return self.window.starts_at(self.booking_date, tzinfo)

    def ends_at(self, tzinfo) -> datetime:
        return self.window.ends_at(self.booking_date, tzinfo)

    def can_transition_to(self, new_status: BookingStatus) -> bool:
        return new_status in BOOKING_TRANSITIONS[self.status]

    def transition_to(self, new_status: BookingStatus, now: datetime | None = None):
        """
        Move along the lifecycle (CONFIRMED, ACTIVE, COMPLETED)

        Cancellation has its own entry point because it records who and why.
        Events: BookingStatusChanged
        """
        new_status = BookingStatus(new_status)
        if new_status == BookingStatus.CANCELLED:
            raise InvalidStateTransition("Use cancel() to cancel a booking")
        self._ensure_transition(new_status)

        if new_status == BookingStatus.CONFIRMED and not self.payment_status.is_paid:
            raise InvalidStateTransition(
                f"Cannot confirm booking {self.id} while payment is {self.payment_status.value}"
            )

        from apps.bookings.domain.events import BookingStatusChanged

        old_status = self.status
        self.status = new_status
        self.updated_at = now or utcnow()

        self.add_event(BookingStatusChanged(
            aggregate_id=self.id,
            **self._event_fields(),
            old_status=old_status.value,
            new_status=new_status.value,
        ))

    def record_payment(self, new_status: PaymentStatus, method: str | None = None, now: datetime | None = None):
        """
        Record a payment outcome

        The first successful payment confirms a PENDING booking.
        Events: BookingPaid (+ BookingStatusChanged) or BookingPaymentFailed
        """
        new_status = PaymentStatus(new_status)
        if self.status.is_terminal:
            raise InvalidStateTransition(
                f"Cannot change payment of booking {self.id} with status {self.status.value}"
            )
        if new_status not in PAYMENT_TRANSITIONS[self.payment_status]:
            raise InvalidStateTransition(
                f"Cannot change payment status from {self.payment_status.value} to {new_status.value}"
            )

        from apps.bookings.domain.events import BookingPaid, BookingPaymentFailed

        now = now or utcnow()
        self.payment_status = new_status
        self.updated_at = now

        if new_status == PaymentStatus.FAILED:
            self.add_event(BookingPaymentFailed(aggregate_id=self.id, **self._event_fields()))
            return

        if method:
            self.payment_method = method
        self.expires_at = None

        self.add_event(BookingPaid(
            aggregate_id=self.id,
            **self._event_fields(),
            payment_status=new_status.value,
            payment_method=self.payment_method,
        ))

        if self.status == BookingStatus.PENDING:
            self.transition_to(BookingStatus.CONFIRMED, now=now)

    def cancel(self, reason: str, cancelled_by: str, refund, now: datetime | None = None):
        """
        Cancel booking

        Allowed from PENDING, CONFIRMED or ACTIVE.
        ``refund`` is the RefundDecision computed by the cancellation policy.
        Events: BookingCancelled
        """
        if not reason or not reason.strip():
            raise ValidationError("A cancellation reason is required")
        self._ensure_transition(BookingStatus.CANCELLED)

        from apps.bookings.domain.events import BookingCancelled

        now = now or utcnow()
        old_status = self.status
        self.status = BookingStatus.CANCELLED
        self.cancellation_reason = reason.strip()
        self.cancelled_by = str(cancelled_by)
        self.cancelled_at = now
        self.refund_granted = refund.refund_granted
        self.expires_at = None
        self.updated_at = now

        self.add_event(BookingCancelled(
            aggregate_id=self.id,
            **self._event_fields(),
            reason=self.cancellation_reason,
            cancelled_by=self.cancelled_by,
            old_status=old_status.value,
            refund=refund.to_dict(),
        ))

    def is_expired(self, now: datetime) -> bool:
        """Unpaid hold ran out"""
        return (
            self.status == BookingStatus.PENDING
            and self.payment_status == PaymentStatus.PENDING
            and self.expires_at is not None
            and now > self.expires_at
        )

    def _ensure_transition(self, new_status: BookingStatus):
        if not self.can_transition_to(new_status):
            raise InvalidStateTransition(
                f"Cannot move booking {self.id} from {self.status.value} to {new_status.value}"
            )

    def _event_fields(self) -> dict:
        return {
            'booking_id': self.id,
            'court_id': self.court_id,
            'booking_date': self.booking_date,
            'window': self.window,
        }

    def __str__(self):
        return f"Booking {self.id} ({self.status.value})"

    def __repr__(self):
        return (
            f"Booking(id={self.id}, court_id={self.court_id}, "
            f"date={self.booking_date}, window={self.window}, status={self.status.value})"
        )
