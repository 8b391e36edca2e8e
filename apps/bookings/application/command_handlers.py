"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within transactions.

Commands:
- GetSlotsQuery: Candidate slots of a court on a date with availability
- CreateBookingCommand: Reserve a window (atomic check-and-insert)
- UpdateBookingStatusCommand: Move a booking along its lifecycle
- UpdatePaymentStatusCommand: Record a payment outcome
- CancelBookingCommand: Cancel and decide the refund
- CreatePaymentPreferenceCommand: Issue a payment intent for a booking
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, List, Mapping
from uuid import UUID, uuid4
import logging

from django.conf import settings
from django.utils import timezone

from apps.bookings.domain.cancellation import CancellationPolicy, RefundDecision, hours_between
from apps.bookings.domain.entities import Booking, BookingStatus, PaymentStatus
from apps.bookings.domain.events import BookingCreated
from apps.bookings.domain.pricing import PricingCalculator
from apps.bookings.domain.slots import AvailabilityChecker, OperatingHours, Slot, SlotCalculator
from apps.bookings.infrastructure.repositories import AbstractBookingStore, CourtSnapshot
from apps.core.services import DEFAULT_OPERATING_HOURS_KEY, DEPOSIT_PERCENTAGE_KEY, SettingsReader
from shared.application.uow import run_in_unit_of_work
from shared.domain.exceptions import (
    ConflictError,
    InvalidStateTransition,
    NotFoundError,
    ValidationError,
)
from shared.domain.value_objects import Money, TimeRange

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = 'system'


# ===== Commands =====

@dataclass
class GetSlotsQuery:
    court_id: UUID
    on_date: date


@dataclass
class CreateBookingCommand:
    """
    Command to create a new booking

    Times may be ``time`` objects or "HH:MM" strings.
    """
    court_id: UUID
    user_id: str
    booking_date: date
    start_time: object
    end_time: object
    notes: str = ''


@dataclass
class UpdateBookingStatusCommand:
    """Command to move a booking along its lifecycle (reason required for CANCELLED)"""
    booking_id: UUID
    new_status: str
    reason: str | None = None
    changed_by: str = SYSTEM_ACTOR


@dataclass
class UpdatePaymentStatusCommand:
    booking_id: UUID
    new_status: str
    method: str | None = None


@dataclass
class CancelBookingCommand:
    """
    Command to cancel a booking

    ``only_if_expired`` is set by the expiry job: the booking is re-checked
    under the row lock so a payment that arrived meanwhile wins.
    """
    booking_id: UUID
    reason: str
    cancelled_by: str
    only_if_expired: bool = False


@dataclass
class CreatePaymentPreferenceCommand:
    """Defaults: outstanding amount of the booking, booking payment deadline"""
    booking_id: UUID
    amount_minor_units: int | None = None
    expires_at: datetime | None = None
    back_urls: Mapping[str, str] | None = None


# ===== Results =====

@dataclass
class SlotsResult:
    court_id: UUID
    on_date: date
    price: Money
    slots: List[Slot] = field(default_factory=list)
    price_per_person: Money | None = None

    @property
    def open_count(self) -> int:
        return sum(1 for slot in self.slots if slot.is_available)

    @property
    def open_rate(self) -> float:
        """Share of candidate windows still free, 0 when the day has none"""
        if not self.slots:
            return 0.0
        return round(self.open_count / len(self.slots), 4)


@dataclass
class CancellationResult:
    booking: Booking
    refund: RefundDecision


# ===== Helpers =====

def resolve_operating_hours(court: CourtSnapshot, settings_reader: SettingsReader) -> OperatingHours:
    """Court hours, else the ``default_operating_hours`` setting, else Django settings"""
    config = court.operating_hours
    if not config:
        config = settings_reader.get_json(DEFAULT_OPERATING_HOURS_KEY)
    if not config:
        config = settings.BOOKING_DEFAULT_OPERATING_HOURS
    return OperatingHours.from_config(config)


def _parse_uuid(value, label: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(f"Invalid {label}: {value!r}")


class _BookingHandler:
    """Shared wiring: store, availability cache and an injectable clock"""

    def __init__(self, store: AbstractBookingStore, cache, clock: Callable[[], datetime] | None = None):
        self.store = store
        self.cache = cache
        self.clock = clock or timezone.now

    @property
    def tz(self):
        return timezone.get_current_timezone()

    def today(self) -> date:
        return timezone.localtime(self.clock(), self.tz).date()

    def _get_booking(self, booking_id: UUID, lock: bool = False) -> Booking:
        booking = self.store.get(booking_id, lock=lock)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    def _get_court(self, court_id: UUID, lock: bool = False) -> CourtSnapshot:
        court = self.store.get_court(court_id, lock=lock)
        if court is None:
            raise NotFoundError(f"Court {court_id} not found")
        return court


# ===== Command Handlers =====

class GetSlotsHandler(_BookingHandler):
    """Slots of a court/date, served from the availability cache when fresh"""

    def __init__(
        self,
        store: AbstractBookingStore,
        settings_reader: SettingsReader,
        cache,
        calculator: SlotCalculator | None = None,
        checker: AvailabilityChecker | None = None,
        pricing: PricingCalculator | None = None,
        clock=None,
        max_days_ahead: int | None = None,
    ):
        super().__init__(store, cache, clock)
        self.settings_reader = settings_reader
        self.calculator = calculator or SlotCalculator(settings.BOOKING_SLOT_STRIDE_MINUTES)
        self.checker = checker or AvailabilityChecker()
        self.pricing = pricing or PricingCalculator(settings.BOOKING_CURRENCY)
        self.max_days_ahead = (
            max_days_ahead if max_days_ahead is not None else settings.BOOKING_MAX_DAYS_AHEAD
        )

    def handle(self, query: GetSlotsQuery) -> SlotsResult:
        court_id = _parse_uuid(query.court_id, 'court id')
        today = self.today()
        if query.on_date < today:
            raise ValidationError("Cannot list slots for a past date")
        if self.max_days_ahead and query.on_date > today + timedelta(days=self.max_days_ahead):
            raise ValidationError(f"Slots are only available up to {self.max_days_ahead} days ahead")

        court = self._get_court(court_id)
        if not court.is_active:
            raise ValidationError(f"Court {court.name} is not accepting bookings")
        hours = resolve_operating_hours(court, self.settings_reader)

        def compute():
            candidates = self.calculator.candidate_windows(hours)
            booked = self.store.booked_windows(court.id, query.on_date)
            return self.checker.annotate(court.id, query.on_date, candidates, booked)

        slots = self.cache.get_or_compute(court.id, query.on_date, compute)
        price = self.pricing.total_price(court.base_price, court.price_multiplier)
        return SlotsResult(
            court_id=court.id,
            on_date=query.on_date,
            price=price,
            slots=list(slots),
            price_per_person=self.pricing.price_per_person(price),
        )


class CreateBookingHandler(_BookingHandler):
    """
    Handler for CreateBooking command

    Double booking prevention:
    1. Validate input outside the transaction (date, window, court, price)
    2. Start unit of work (atomic)
    3. Lock the court row (SELECT FOR UPDATE) so creations for the court serialize
    4. Re-read overlapping non-cancelled bookings, abort with ConflictError if any
    5. Insert PENDING/PENDING booking, commit
    6. Invalidate the availability cache, BookingCreated is published after commit
    7. PostgreSQL EXCLUDE constraint as final safety net
    """

    def __init__(
        self,
        store: AbstractBookingStore,
        settings_reader: SettingsReader,
        cache,
        calculator: SlotCalculator | None = None,
        pricing: PricingCalculator | None = None,
        clock=None,
        payment_timeout_minutes: int | None = None,
    ):
        super().__init__(store, cache, clock)
        self.settings_reader = settings_reader
        self.calculator = calculator or SlotCalculator(settings.BOOKING_SLOT_STRIDE_MINUTES)
        self.pricing = pricing or PricingCalculator(settings.BOOKING_CURRENCY)
        if payment_timeout_minutes is None:
            payment_timeout_minutes = settings.BOOKING_PAYMENT_TIMEOUT_MINUTES
        self.payment_timeout = timedelta(minutes=payment_timeout_minutes)

    def handle(self, command: CreateBookingCommand) -> Booking:
        logger.info(
            "Creating booking for court %s, user %s, %s %s-%s",
            command.court_id, command.user_id, command.booking_date, command.start_time, command.end_time,
        )

        if not isinstance(command.booking_date, date):
            raise ValidationError("booking_date must be a date")
        if command.booking_date < self.today():
            raise ValidationError("Booking date cannot be in the past")

        try:
            window = TimeRange.parse(command.start_time, command.end_time)
        except ValueError as exc:
            raise ValidationError(str(exc))

        court_id = _parse_uuid(command.court_id, 'court id')
        court = self._get_court(court_id)
        if not court.is_active:
            raise ValidationError(f"Court {court.name} is not accepting bookings")

        hours = resolve_operating_hours(court, self.settings_reader)
        if not self.calculator.is_legal_window(hours, window):
            raise ValidationError(
                f"Window {window} is not bookable: courts open {hours.open:%H:%M}-{hours.close:%H:%M} "
                f"and bookings start on a {self.calculator.stride_minutes}-minute grid"
            )

        price = self.pricing.calculate(
            court.base_price,
            court.price_multiplier,
            self.settings_reader.get(DEPOSIT_PERCENTAGE_KEY),
        )

        def work(uow) -> Booking:
            locked_court = self._get_court(court.id, lock=True)
            if not locked_court.is_active:
                raise ValidationError(f"Court {locked_court.name} is not accepting bookings")

            overlapping = self.store.find_overlapping(court.id, command.booking_date, window)
            if overlapping:
                logger.info(
                    "Court %s busy on %s %s: %d overlapping booking(s)",
                    court.id, command.booking_date, window, len(overlapping),
                )
                raise ConflictError(court_id=str(court.id), date=command.booking_date.isoformat())

            now = self.clock()
            booking = Booking(
                id=uuid4(),
                created_at=now,
                updated_at=now,
                court_id=court.id,
                user_id=str(command.user_id),
                booking_date=command.booking_date,
                window=window,
                total_price=price.total_price,
                deposit_amount=price.deposit_amount,
                notes=command.notes or '',
                expires_at=now + self.payment_timeout,
            )
            booking.add_event(BookingCreated(
                aggregate_id=booking.id,
                booking_id=booking.id,
                court_id=booking.court_id,
                booking_date=booking.booking_date,
                window=booking.window,
                user_id=booking.user_id,
                total_price=booking.total_price,
                deposit_amount=booking.deposit_amount,
            ))

            uow.collect_events(booking)
            self.store.insert(booking)
            return booking

        booking = run_in_unit_of_work(self.store.unit_of_work, work)
        self.cache.invalidate(booking.court_id, booking.booking_date)

        logger.info("Booking %s created (%s, total %s)", booking.id, booking.window, booking.total_price)
        return booking


class CancelBookingHandler(_BookingHandler):
    """Handler for cancelling a booking and deciding the refund"""

    def __init__(
        self,
        store: AbstractBookingStore,
        cache,
        policy: CancellationPolicy | None = None,
        clock=None,
    ):
        super().__init__(store, cache, clock)
        self.policy = policy or CancellationPolicy(settings.BOOKING_REFUND_THRESHOLD_HOURS)

    def handle(self, command: CancelBookingCommand) -> CancellationResult:
        logger.info("Cancelling booking %s by %s, reason: %s", command.booking_id, command.cancelled_by, command.reason)
        booking_id = _parse_uuid(command.booking_id, 'booking id')

        def work(uow) -> CancellationResult:
            booking = self._get_booking(booking_id, lock=True)
            now = self.clock()
            if command.only_if_expired and not booking.is_expired(now):
                raise InvalidStateTransition(f"Booking {booking.id} is no longer an unpaid expired hold")
            if not booking.can_transition_to(BookingStatus.CANCELLED):
                raise InvalidStateTransition(
                    f"Booking {booking.id} is already {booking.status.value}"
                )

            hours_until_start = hours_between(now, booking.starts_at(self.tz))
            decision = self.policy.decide(hours_until_start, booking.amount_paid)
            booking.cancel(command.reason, command.cancelled_by, decision, now=now)

            uow.collect_events(booking)
            self.store.save(booking)
            return CancellationResult(booking=booking, refund=decision)

        result = run_in_unit_of_work(self.store.unit_of_work, work)
        self.cache.invalidate(result.booking.court_id, result.booking.booking_date)

        logger.info(
            "Booking %s cancelled, %.2f h before start: %s",
            result.booking.id, result.refund.hours_until_start, result.refund.outcome,
        )
        return result


class UpdateBookingStatusHandler(_BookingHandler):
    """
    Handler for lifecycle changes (CONFIRMED, ACTIVE, COMPLETED)

    CANCELLED is delegated to the cancel handler so the refund policy and
    the cancellation fields are always applied together.
    """

    def __init__(self, store: AbstractBookingStore, cache, cancel_handler: CancelBookingHandler, clock=None):
        super().__init__(store, cache, clock)
        self.cancel_handler = cancel_handler

    def handle(self, command: UpdateBookingStatusCommand) -> Booking:
        try:
            new_status = BookingStatus(command.new_status)
        except ValueError:
            raise ValidationError(f"Unknown booking status: {command.new_status!r}")
        booking_id = _parse_uuid(command.booking_id, 'booking id')

        if new_status == BookingStatus.CANCELLED:
            if not command.reason or not command.reason.strip():
                # Unknown ids and terminal bookings report their own error first
                booking = self._get_booking(booking_id)
                if not booking.can_transition_to(BookingStatus.CANCELLED):
                    raise InvalidStateTransition(
                        f"Cannot move booking {booking.id} from {booking.status.value} to CANCELLED"
                    )
                raise ValidationError("A cancellation reason is required")
            return self.cancel_handler.handle(CancelBookingCommand(
                booking_id=booking_id,
                reason=command.reason,
                cancelled_by=command.changed_by,
            )).booking

        def work(uow) -> Booking:
            booking = self._get_booking(booking_id, lock=True)
            booking.transition_to(new_status, now=self.clock())
            uow.collect_events(booking)
            self.store.save(booking)
            return booking

        booking = run_in_unit_of_work(self.store.unit_of_work, work)
        self.cache.invalidate(booking.court_id, booking.booking_date)
        logger.info("Booking %s moved to %s", booking.id, booking.status.value)
        return booking


class UpdatePaymentStatusHandler(_BookingHandler):
    """Handler for recording payment outcomes"""

    def handle(self, command: UpdatePaymentStatusCommand) -> Booking:
        try:
            new_status = PaymentStatus(command.new_status)
        except ValueError:
            raise ValidationError(f"Unknown payment status: {command.new_status!r}")
        booking_id = _parse_uuid(command.booking_id, 'booking id')

        def work(uow) -> Booking:
            booking = self._get_booking(booking_id, lock=True)
            booking.record_payment(new_status, method=command.method, now=self.clock())
            uow.collect_events(booking)
            self.store.save(booking)
            return booking

        booking = run_in_unit_of_work(self.store.unit_of_work, work)
        self.cache.invalidate(booking.court_id, booking.booking_date)
        logger.info("Booking %s payment is now %s", booking.id, booking.payment_status.value)
        return booking


class CreatePaymentPreferenceHandler(_BookingHandler):
    """
    Handler for issuing a payment intent

    Only reads the booking; the payment outcome is recorded later through
    UpdatePaymentStatusCommand.
    """

    def __init__(self, store: AbstractBookingStore, payment_adapter, clock=None, site_url: str | None = None):
        super().__init__(store, cache=None, clock=clock)
        self.payment_adapter = payment_adapter
        self.site_url = (site_url if site_url is not None else getattr(settings, 'SITE_URL', '')).rstrip('/')

    def outstanding_amount(self, booking: Booking) -> Money:
        if booking.payment_status == PaymentStatus.DEPOSIT_PAID:
            return booking.total_price - booking.deposit_amount
        if booking.deposit_amount.amount > 0:
            return booking.deposit_amount
        return booking.total_price

    def default_back_urls(self, booking: Booking) -> dict | None:
        if not self.site_url:
            return None
        base = f"{self.site_url}/bookings/{booking.id}"
        return {'success': f"{base}?payment=success", 'failure': f"{base}?payment=failure",
                'pending': f"{base}?payment=pending"}

    def handle(self, command: CreatePaymentPreferenceCommand):
        booking = self._get_booking(_parse_uuid(command.booking_id, 'booking id'))

        if booking.status not in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
            raise ValidationError(f"Booking {booking.id} is {booking.status.value} and cannot be paid")
        if booking.payment_status == PaymentStatus.FULLY_PAID:
            raise ValidationError(f"Booking {booking.id} is already fully paid")

        total_minor = booking.total_price.minor_units
        amount = command.amount_minor_units
        if amount is None:
            amount = self.outstanding_amount(booking).minor_units
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0 or amount > total_minor:
            raise ValidationError(f"Amount must be between 1 and {total_minor} minor units")

        expires_at = command.expires_at or booking.expires_at
        court = self.store.get_court(booking.court_id)
        court_name = court.name if court else str(booking.court_id)

        return self.payment_adapter.create_preference(
            booking_id=booking.id,
            title=f"Reserva {court_name}",
            description=f"{court_name} {booking.booking_date.isoformat()} {booking.window}",
            amount_minor_units=amount,
            expires_at=expires_at,
            user_id=booking.user_id,
            back_urls=command.back_urls or self.default_back_urls(booking),
            currency=booking.total_price.currency,
        )


__all__ = [
    'GetSlotsQuery',
    'CreateBookingCommand',
    'UpdateBookingStatusCommand',
    'UpdatePaymentStatusCommand',
    'CancelBookingCommand',
    'CreatePaymentPreferenceCommand',
    'SlotsResult',
    'CancellationResult',
    'GetSlotsHandler',
    'CreateBookingHandler',
    'CancelBookingHandler',
    'UpdateBookingStatusHandler',
    'UpdatePaymentStatusHandler',
    'CreatePaymentPreferenceHandler',
    'resolve_operating_hours',
    'SYSTEM_ACTOR',
]
