"""Periodic booking tasks."""

from __future__ import annotations

from datetime import time, timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.bookings.models import Booking
from apps.bookings.tasks import (
    PAYMENT_EXPIRED_REASON,
    advance_booking_lifecycle,
    expire_unpaid_bookings,
)
from apps.courts.models import Court

pytestmark = pytest.mark.django_db


@pytest.fixture
def court():
    return Court.objects.create(name="Cancha 2", base_price=Decimal("1000.00"))


@pytest.fixture
def user():
    return get_user_model().objects.create_user(username="player", password="secret-pass")


def make_row(court, user, booking_date, start, end, **fields):
    now = timezone.now()
    defaults = dict(
        court=court,
        user=user,
        booking_date=booking_date,
        start_time=start,
        end_time=end,
        duration_minutes=90,
        total_price=Decimal("1000.00"),
        deposit_amount=Decimal("500.00"),
        created_at=now,
        updated_at=now,
    )
    defaults.update(fields)
    return Booking.objects.create(**defaults)


def test_expire_unpaid_bookings_cancels_only_lapsed_holds(court, user):
    tomorrow = timezone.localdate() + timedelta(days=1)
    lapsed = make_row(court, user, tomorrow, time(10, 0), time(11, 30),
                      expires_at=timezone.now() - timedelta(minutes=1))
    waiting = make_row(court, user, tomorrow, time(12, 0), time(13, 30),
                       expires_at=timezone.now() + timedelta(minutes=10))
    paid = make_row(court, user, tomorrow, time(14, 0), time(15, 30),
                    status=Booking.Status.CONFIRMED, payment_status=Booking.PaymentStatus.DEPOSIT_PAID)

    assert expire_unpaid_bookings() == {"expired": 1}

    lapsed.refresh_from_db()
    assert lapsed.status == Booking.Status.CANCELLED
    assert lapsed.cancellation_reason == PAYMENT_EXPIRED_REASON
    assert lapsed.cancelled_by == "system"
    assert lapsed.cancelled_at is not None
    assert Booking.objects.get(pk=waiting.pk).status == Booking.Status.PENDING
    assert Booking.objects.get(pk=paid.pk).status == Booking.Status.CONFIRMED


def test_expire_unpaid_bookings_with_nothing_to_do(court, user):
    assert expire_unpaid_bookings() == {"expired": 0}


def test_advance_booking_lifecycle_starts_and_completes(court, user):
    yesterday = timezone.localdate() - timedelta(days=1)
    tomorrow = timezone.localdate() + timedelta(days=1)
    over = make_row(court, user, yesterday, time(10, 0), time(11, 30),
                    status=Booking.Status.CONFIRMED, payment_status=Booking.PaymentStatus.FULLY_PAID)
    future = make_row(court, user, tomorrow, time(10, 0), time(11, 30),
                      status=Booking.Status.CONFIRMED, payment_status=Booking.PaymentStatus.FULLY_PAID)
    unpaid = make_row(court, user, yesterday, time(12, 0), time(13, 30))

    assert advance_booking_lifecycle() == {"started": 1, "completed": 1}

    assert Booking.objects.get(pk=over.pk).status == Booking.Status.COMPLETED
    assert Booking.objects.get(pk=future.pk).status == Booking.Status.CONFIRMED
    assert Booking.objects.get(pk=unpaid.pk).status == Booking.Status.PENDING
