"""Booking handlers against the in-memory store."""

from __future__ import annotations

import threading
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest

from apps.bookings.application.command_handlers import (
    CancelBookingCommand,
    CancelBookingHandler,
    CreateBookingCommand,
    CreateBookingHandler,
    CreatePaymentPreferenceCommand,
    CreatePaymentPreferenceHandler,
    GetSlotsHandler,
    GetSlotsQuery,
    UpdateBookingStatusCommand,
    UpdateBookingStatusHandler,
    UpdatePaymentStatusCommand,
    UpdatePaymentStatusHandler,
)
from apps.bookings.domain.cancellation import CancellationPolicy
from apps.bookings.domain.entities import BookingStatus, PaymentStatus
from apps.bookings.domain.events import BookingCancelled, BookingCreated
from apps.bookings.domain.pricing import PricingCalculator
from apps.bookings.domain.slots import SlotCalculator
from apps.bookings.infrastructure.cache import AvailabilityCache
from apps.bookings.infrastructure.repositories import CourtSnapshot
from apps.bookings.tests.fakes import (
    DictCacheBackend,
    FakeClock,
    InMemoryBookingStore,
    SpyCache,
)
from apps.core.services import StaticSettingsReader
from apps.payments.providers import MockPaymentAdapter
from shared.domain.exceptions import (
    ConfigurationError,
    ConflictError,
    InvalidStateTransition,
    NotFoundError,
    ValidationError,
)

TZ = ZoneInfo("America/Argentina/Buenos_Aires")
TODAY = date(2030, 5, 10)
HOURS = {"start": "08:00", "end": "23:00", "slot_duration": 90}

pytestmark = pytest.mark.usefixtures("project_time_zone")


@pytest.fixture
def project_time_zone(settings):
    settings.TIME_ZONE = "America/Argentina/Buenos_Aires"


def court(**overrides) -> CourtSnapshot:
    fields = dict(
        id=uuid4(),
        name="Cancha 1",
        base_price=Decimal("1000.00"),
        price_multiplier=Decimal("1.200"),
        operating_hours=HOURS,
        is_active=True,
    )
    fields.update(overrides)
    return CourtSnapshot(**fields)


class Engine:
    """Handlers wired to one in-memory store, one clock and one cache."""

    def __init__(self, courts=(), read_delay=0.0, deposit="50", cache=None):
        self.store = InMemoryBookingStore(list(courts), read_delay=read_delay)
        self.clock = FakeClock(datetime(2030, 5, 10, 9, 0, tzinfo=TZ))
        self.cache = cache if cache is not None else SpyCache()
        self.settings_reader = StaticSettingsReader({"deposit_percentage": deposit})
        self.payments = MockPaymentAdapter()

        self.slots = GetSlotsHandler(
            self.store, self.settings_reader, self.cache,
            calculator=SlotCalculator(30), pricing=PricingCalculator("ARS"),
            clock=self.clock, max_days_ahead=30,
        )
        self.create = CreateBookingHandler(
            self.store, self.settings_reader, self.cache,
            calculator=SlotCalculator(30), pricing=PricingCalculator("ARS"),
            clock=self.clock, payment_timeout_minutes=15,
        )
        self.cancel = CancelBookingHandler(self.store, self.cache, CancellationPolicy(2.0), clock=self.clock)
        self.update_status = UpdateBookingStatusHandler(self.store, self.cache, self.cancel, clock=self.clock)
        self.update_payment = UpdatePaymentStatusHandler(self.store, self.cache, clock=self.clock)
        self.preference = CreatePaymentPreferenceHandler(
            self.store, self.payments, clock=self.clock, site_url="https://padel.example"
        )

    def book(self, court_id, start="10:00", end="11:30", on=TODAY, user="7"):
        return self.create.handle(CreateBookingCommand(
            court_id=court_id, user_id=user, booking_date=on, start_time=start, end_time=end,
        ))


# ===== createBooking =====

def test_create_booking_is_pending_with_price_and_deposit():
    c = court()
    engine = Engine([c])

    booking = engine.book(c.id)

    stored = engine.store.get(booking.id)
    assert stored.status == BookingStatus.PENDING
    assert stored.payment_status == PaymentStatus.PENDING
    assert stored.total_price.amount == Decimal("1200.00")
    assert stored.deposit_amount.amount == Decimal("600.00")
    assert stored.duration_minutes == 90
    assert stored.expires_at == engine.clock.now + timedelta(minutes=15)
    assert engine.cache.invalidated == [(c.id, TODAY)]
    assert [type(e) for e in engine.store.published] == [BookingCreated]


def test_price_is_the_same_for_short_and_long_windows():
    c = court()
    engine = Engine([c])

    short = engine.book(c.id, "10:00", "10:30")
    long = engine.book(c.id, "12:00", "14:00")

    assert short.total_price == long.total_price
    assert short.total_price.amount == Decimal("1200.00")


def test_overlapping_booking_is_rejected_and_nothing_written():
    c = court()
    engine = Engine([c])
    engine.book(c.id, "10:00", "11:30")

    with pytest.raises(ConflictError):
        engine.book(c.id, "10:30", "12:00")

    assert len(engine.store.bookings) == 1
    assert len(engine.store.published) == 1


def test_adjacent_booking_is_accepted():
    c = court()
    engine = Engine([c])
    engine.book(c.id, "10:00", "11:30")

    engine.book(c.id, "11:30", "13:00")

    assert len(engine.store.bookings) == 2


def test_same_window_on_another_court_is_accepted():
    first, second = court(), court(name="Cancha 2")
    engine = Engine([first, second])
    engine.book(first.id)

    engine.book(second.id)

    assert len(engine.store.bookings) == 2


def test_yesterday_is_rejected_before_anything_else():
    engine = Engine([])

    with pytest.raises(ValidationError):
        engine.book(uuid4(), "nonsense", "10:00", on=TODAY - timedelta(days=1))


def test_today_is_accepted():
    c = court()
    engine = Engine([c])

    assert engine.book(c.id, on=TODAY).booking_date == TODAY


@pytest.mark.parametrize(
    "start,end",
    [("11:30", "10:00"), ("10:00", "10:00"), ("25:00", "26:00"), ("10:15", "11:45"), ("22:00", "23:30")],
)
def test_illegal_windows_are_validation_errors(start, end):
    c = court()
    engine = Engine([c])

    with pytest.raises(ValidationError):
        engine.book(c.id, start, end)
    assert engine.store.bookings == {}


def test_unknown_court_is_not_found():
    with pytest.raises(NotFoundError):
        Engine([]).book(uuid4())


def test_inactive_court_is_rejected():
    c = court(is_active=False)

    with pytest.raises(ValidationError):
        Engine([c]).book(c.id)


def test_missing_deposit_percentage_is_configuration_error():
    c = court()
    engine = Engine([c], deposit=None)

    with pytest.raises(ConfigurationError):
        engine.book(c.id)
    assert engine.store.bookings == {}


def test_court_without_hours_uses_default_operating_hours(settings):
    settings.BOOKING_DEFAULT_OPERATING_HOURS = {"start": "18:00", "end": "22:00", "slot_duration": 60}
    c = court(operating_hours=None)
    engine = Engine([c])

    with pytest.raises(ValidationError):
        engine.book(c.id, "10:00", "11:00")
    assert engine.book(c.id, "18:00", "19:00").window.duration_minutes == 60


def test_concurrent_overlapping_creates_yield_one_success():
    c = court()
    engine = Engine([c], read_delay=0.05)
    barrier = threading.Barrier(2)
    outcomes = []

    def attempt(start, end):
        barrier.wait()
        try:
            engine.book(c.id, start, end)
            outcomes.append("created")
        except ConflictError:
            outcomes.append("conflict")

    threads = [
        threading.Thread(target=attempt, args=("10:00", "11:30")),
        threading.Thread(target=attempt, args=("10:30", "12:00")),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert sorted(outcomes) == ["conflict", "created"]
    assert len(engine.store.bookings) == 1


# ===== slots =====

def test_slots_reflect_bookings_and_carry_price():
    c = court()
    engine = Engine([c])
    engine.book(c.id, "10:00", "11:30")

    result = engine.slots.handle(GetSlotsQuery(court_id=c.id, on_date=TODAY))

    by_start = {f"{s.start_time:%H:%M}": s.is_available for s in result.slots}
    assert by_start["08:30"] is True
    assert by_start["09:00"] is False
    assert by_start["10:30"] is False
    assert by_start["11:30"] is True
    assert result.price.amount == Decimal("1200.00")
    assert result.price_per_person.amount == Decimal("300.00")
    assert (len(result.slots), result.open_count, result.open_rate) == (28, 23, 0.8214)


def test_repeated_slot_reads_are_identical_and_cached():
    c = court()
    engine = Engine([c], cache=AvailabilityCache(backend=DictCacheBackend(), timeout=300, clock=lambda: 0.0))
    query = GetSlotsQuery(court_id=c.id, on_date=TODAY)

    first = engine.slots.handle(query).slots
    engine.store.bookings.clear()
    second = engine.slots.handle(query).slots

    assert first == second


def test_cancel_frees_the_window_in_slots():
    c = court()
    engine = Engine([c], cache=AvailabilityCache(backend=DictCacheBackend(), timeout=300, clock=lambda: 0.0))
    booking = engine.book(c.id, "10:00", "11:30")
    query = GetSlotsQuery(court_id=c.id, on_date=TODAY)
    assert not _slot(engine.slots.handle(query), "10:00").is_available

    engine.cancel.handle(CancelBookingCommand(booking_id=booking.id, reason="change of plans", cancelled_by="7"))

    assert _slot(engine.slots.handle(query), "10:00").is_available


@pytest.mark.parametrize("offset", [timedelta(days=-1), timedelta(days=31)])
def test_slots_outside_booking_horizon_are_rejected(offset):
    c = court()

    with pytest.raises(ValidationError):
        Engine([c]).slots.handle(GetSlotsQuery(court_id=c.id, on_date=TODAY + offset))


def test_slots_for_unknown_court_is_not_found():
    with pytest.raises(NotFoundError):
        Engine([]).slots.handle(GetSlotsQuery(court_id=uuid4(), on_date=TODAY))


def _slot(result, start):
    return next(s for s in result.slots if f"{s.start_time:%H:%M}" == start)


# ===== cancelBooking =====

def _paid_booking(engine, court_id, start="12:00", end="13:30"):
    booking = engine.book(court_id, start, end)
    engine.update_payment.handle(UpdatePaymentStatusCommand(booking_id=booking.id, new_status="DEPOSIT_PAID"))
    return booking


def test_cancel_exactly_two_hours_before_grants_refund():
    c = court()
    engine = Engine([c])
    booking = _paid_booking(engine, c.id, "12:00", "13:30")
    engine.clock.now = datetime(2030, 5, 10, 10, 0, tzinfo=TZ)

    result = engine.cancel.handle(CancelBookingCommand(booking_id=booking.id, reason="rain", cancelled_by="7"))

    assert result.refund.refund_granted is True
    assert result.refund.refund_amount.amount == Decimal("600.00")
    stored = engine.store.get(booking.id)
    assert stored.status == BookingStatus.CANCELLED
    assert stored.refund_granted is True
    assert stored.cancelled_at == engine.clock.now
    cancelled = [e for e in engine.store.published if isinstance(e, BookingCancelled)]
    assert cancelled[0].refund["outcome"] == "fondos_liberados"


def test_cancel_just_under_two_hours_retains_deposit():
    c = court()
    engine = Engine([c])
    booking = _paid_booking(engine, c.id, "12:00", "13:30")
    engine.clock.now = datetime(2030, 5, 10, 10, 0, 3, 600000, tzinfo=TZ)

    result = engine.cancel.handle(CancelBookingCommand(booking_id=booking.id, reason="rain", cancelled_by="7"))

    assert result.refund.hours_until_start == pytest.approx(1.999)
    assert result.refund.refund_granted is False
    assert result.refund.retained_amount.amount == Decimal("600.00")
    assert engine.store.get(booking.id).status == BookingStatus.CANCELLED


def test_cancel_twice_is_invalid_transition():
    c = court()
    engine = Engine([c])
    booking = engine.book(c.id)
    command = CancelBookingCommand(booking_id=booking.id, reason="rain", cancelled_by="7")
    engine.cancel.handle(command)

    with pytest.raises(InvalidStateTransition):
        engine.cancel.handle(command)


def test_cancel_unknown_booking_is_not_found():
    with pytest.raises(NotFoundError):
        Engine([]).cancel.handle(CancelBookingCommand(booking_id=uuid4(), reason="x", cancelled_by="7"))


def test_expiry_cancel_applies_only_to_lapsed_unpaid_holds():
    c = court()
    engine = Engine([c])
    lapsed = engine.book(c.id, "10:00", "11:30")
    paid = engine.book(c.id, "12:00", "13:30")
    engine.update_payment.handle(UpdatePaymentStatusCommand(paid.id, "DEPOSIT_PAID"))
    engine.clock.now += timedelta(minutes=16)

    engine.cancel.handle(CancelBookingCommand(
        booking_id=lapsed.id, reason="Payment window expired", cancelled_by="system", only_if_expired=True,
    ))
    with pytest.raises(InvalidStateTransition):
        engine.cancel.handle(CancelBookingCommand(
            booking_id=paid.id, reason="Payment window expired", cancelled_by="system", only_if_expired=True,
        ))

    assert engine.store.get(lapsed.id).status == BookingStatus.CANCELLED
    assert engine.store.get(paid.id).status == BookingStatus.CONFIRMED


def test_concurrent_cancels_yield_one_success():
    c = court()
    engine = Engine([c])
    booking = engine.book(c.id)
    barrier = threading.Barrier(3)
    outcomes = []

    def attempt():
        barrier.wait()
        try:
            engine.cancel.handle(CancelBookingCommand(booking_id=booking.id, reason="rain", cancelled_by="7"))
            outcomes.append("cancelled")
        except InvalidStateTransition:
            outcomes.append("invalid")

    threads = [threading.Thread(target=attempt) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert sorted(outcomes) == ["cancelled", "invalid", "invalid"]
    cancelled = [e for e in engine.store.published if isinstance(e, BookingCancelled)]
    assert len(cancelled) == 1


# ===== status / payment updates =====

def test_payment_confirms_and_lifecycle_advances():
    c = court()
    engine = Engine([c])
    booking = engine.book(c.id)

    engine.update_payment.handle(UpdatePaymentStatusCommand(booking.id, "FULLY_PAID", method="cash"))
    engine.update_status.handle(UpdateBookingStatusCommand(booking.id, "ACTIVE"))
    engine.update_status.handle(UpdateBookingStatusCommand(booking.id, "COMPLETED"))

    stored = engine.store.get(booking.id)
    assert stored.status == BookingStatus.COMPLETED
    assert stored.payment_method == "cash"


def test_completed_booking_still_holds_its_window():
    c = court()
    engine = Engine([c])
    booking = engine.book(c.id, "10:00", "11:30")
    engine.update_payment.handle(UpdatePaymentStatusCommand(booking.id, "DEPOSIT_PAID"))
    engine.update_status.handle(UpdateBookingStatusCommand(booking.id, "ACTIVE"))
    engine.update_status.handle(UpdateBookingStatusCommand(booking.id, "COMPLETED"))

    result = engine.slots.handle(GetSlotsQuery(court_id=c.id, on_date=TODAY))

    assert not _slot(result, "10:00").is_available
    with pytest.raises(ConflictError):
        engine.book(c.id, "10:00", "11:30")
    assert len(engine.store.bookings) == 1


@pytest.mark.parametrize("new_status", ["PENDING", "CONFIRMED", "ACTIVE", "COMPLETED", "CANCELLED"])
def test_cancelled_booking_rejects_any_status_and_stays_unchanged(new_status):
    c = court()
    engine = Engine([c])
    booking = engine.book(c.id)
    engine.cancel.handle(CancelBookingCommand(booking_id=booking.id, reason="rain", cancelled_by="7"))
    before = engine.store.get(booking.id)

    with pytest.raises(InvalidStateTransition):
        engine.update_status.handle(UpdateBookingStatusCommand(booking.id, new_status, reason="again"))

    after = engine.store.get(booking.id)
    assert (after.status, after.cancelled_at, after.updated_at) == (before.status, before.cancelled_at, before.updated_at)


def test_status_cancelled_goes_through_cancellation_policy():
    c = court()
    engine = Engine([c])
    booking = engine.book(c.id)

    result = engine.update_status.handle(
        UpdateBookingStatusCommand(booking.id, "CANCELLED", reason="court maintenance", changed_by="admin")
    )

    assert result.status == BookingStatus.CANCELLED
    assert result.cancelled_by == "admin"
    assert result.refund_granted is not None


def test_status_cancelled_without_reason_is_validation_error():
    c = court()
    engine = Engine([c])
    booking = engine.book(c.id)

    with pytest.raises(ValidationError):
        engine.update_status.handle(UpdateBookingStatusCommand(booking.id, "CANCELLED"))
    assert engine.store.get(booking.id).status == BookingStatus.PENDING


def test_confirm_without_payment_is_invalid_transition():
    c = court()
    engine = Engine([c])
    booking = engine.book(c.id)

    with pytest.raises(InvalidStateTransition):
        engine.update_status.handle(UpdateBookingStatusCommand(booking.id, "CONFIRMED"))


def test_unknown_status_values_are_validation_errors():
    c = court()
    engine = Engine([c])
    booking = engine.book(c.id)

    with pytest.raises(ValidationError):
        engine.update_status.handle(UpdateBookingStatusCommand(booking.id, "LOST"))
    with pytest.raises(ValidationError):
        engine.update_payment.handle(UpdatePaymentStatusCommand(booking.id, "REFUNDED"))


def test_status_update_for_unknown_booking_is_not_found():
    engine = Engine([])

    with pytest.raises(NotFoundError):
        engine.update_status.handle(UpdateBookingStatusCommand(uuid4(), "ACTIVE"))
    with pytest.raises(NotFoundError):
        engine.update_payment.handle(UpdatePaymentStatusCommand(uuid4(), "FULLY_PAID"))


# ===== payment preference =====

def test_preference_defaults_to_deposit_in_minor_units():
    c = court()
    engine = Engine([c])
    booking = engine.book(c.id)

    preference = engine.preference.handle(CreatePaymentPreferenceCommand(booking_id=booking.id))

    created = engine.payments.created[-1]
    assert created["amount_minor_units"] == 60000
    assert created["expires_at"] == booking.expires_at
    assert created["title"] == "Reserva Cancha 1"
    assert preference.init_point.endswith(preference.preference_id)


def test_preference_after_deposit_asks_for_balance():
    c = court()
    engine = Engine([c])
    booking = _paid_booking(engine, c.id)

    engine.preference.handle(CreatePaymentPreferenceCommand(booking_id=booking.id))

    assert engine.payments.created[-1]["amount_minor_units"] == 60000


@pytest.mark.parametrize("amount", [0, -5, 120001])
def test_preference_amount_must_be_within_total(amount):
    c = court()
    engine = Engine([c])
    booking = engine.book(c.id)

    with pytest.raises(ValidationError):
        engine.preference.handle(CreatePaymentPreferenceCommand(booking_id=booking.id, amount_minor_units=amount))
    assert engine.payments.created == []


def test_preference_for_cancelled_or_paid_booking_is_rejected():
    c = court()
    engine = Engine([c])
    cancelled = engine.book(c.id, "10:00", "11:30")
    engine.cancel.handle(CancelBookingCommand(booking_id=cancelled.id, reason="x", cancelled_by="7"))
    paid = engine.book(c.id, "14:00", "15:30")
    engine.update_payment.handle(UpdatePaymentStatusCommand(paid.id, "FULLY_PAID"))

    for booking in (cancelled, paid):
        with pytest.raises(ValidationError):
            engine.preference.handle(CreatePaymentPreferenceCommand(booking_id=booking.id))


def test_preference_for_unknown_booking_is_not_found():
    with pytest.raises(NotFoundError):
        Engine([]).preference.handle(CreatePaymentPreferenceCommand(booking_id=uuid4()))
