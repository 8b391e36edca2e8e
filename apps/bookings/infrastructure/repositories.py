"""
Booking store

Narrow persistence boundary used by the booking handlers. Handlers never
touch ORM models directly; they ask the store for courts and bookings as
domain objects and hand aggregates back to it inside a unit of work.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import List, Mapping
from uuid import UUID

from django.db import IntegrityError, transaction  # type: ignore
from django.db.models import Q  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from apps.bookings.domain.entities import Booking, BookingStatus, PaymentStatus
from shared.application.uow import AbstractUnitOfWork, DjangoUnitOfWork
from shared.domain.exceptions import ConflictError
from shared.domain.value_objects import Money, TimeRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CourtSnapshot:
    """Read-only view of a court as the engine needs it"""
    id: UUID
    name: str
    base_price: Decimal
    price_multiplier: Decimal
    operating_hours: Mapping | None
    is_active: bool


class AbstractBookingStore(ABC):
    """
    Everything the booking engine reads or writes

    ``lock=True`` asks the store to hold the rows until the surrounding
    unit of work finishes. Writers lock the court first so that two
    creations for the same court serialize on it.
    """

    @abstractmethod
    def unit_of_work(self) -> AbstractUnitOfWork:
        raise NotImplementedError

    @abstractmethod
    def get_court(self, court_id: UUID, lock: bool = False) -> CourtSnapshot | None:
        raise NotImplementedError

    @abstractmethod
    def get(self, booking_id: UUID, lock: bool = False) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def find_overlapping(
        self,
        court_id: UUID,
        on_date: date,
        window: TimeRange,
        exclude_id: UUID | None = None,
    ) -> List[Booking]:
        """Non-cancelled bookings of the court/date whose window overlaps ``window``"""
        raise NotImplementedError

    @abstractmethod
    def booked_windows(self, court_id: UUID, on_date: date) -> List[TimeRange]:
        """Windows held by non-cancelled bookings of the court/date"""
        raise NotImplementedError

    @abstractmethod
    def insert(self, booking: Booking) -> None:
        raise NotImplementedError

    @abstractmethod
    def save(self, booking: Booking) -> None:
        raise NotImplementedError

    @abstractmethod
    def expired_unpaid_ids(self, now: datetime) -> List[UUID]:
        raise NotImplementedError

    @abstractmethod
    def ids_due_to_start(self, local_now: datetime) -> List[UUID]:
        """CONFIRMED bookings whose start (project time zone) has been reached"""
        raise NotImplementedError

    @abstractmethod
    def ids_due_to_complete(self, local_now: datetime) -> List[UUID]:
        """ACTIVE bookings whose end (project time zone) has been reached"""
        raise NotImplementedError


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def _reached(local_now: datetime, date_field: str, time_field: str) -> Q:
    today = local_now.date()
    current = local_now.time().replace(microsecond=0)
    return Q(**{f"{date_field}__lt": today}) | Q(**{date_field: today, f"{time_field}__lte": current})


class DjangoBookingStore(AbstractBookingStore):
    """Booking store backed by the Django ORM"""

    def __init__(self, bus=None):
        self.bus = bus

    def unit_of_work(self) -> AbstractUnitOfWork:
        return DjangoUnitOfWork(bus=self.bus)

    def get_court(self, court_id: UUID, lock: bool = False) -> CourtSnapshot | None:
        from apps.courts.models import Court

        queryset = Court.objects.filter(pk=court_id)
        if lock:
            queryset = _lock_queryset_if_possible(queryset)
        court = queryset.first()
        if court is None:
            return None
        return CourtSnapshot(
            id=court.id,
            name=court.name,
            base_price=court.base_price,
            price_multiplier=court.price_multiplier,
            operating_hours=court.operating_hours,
            is_active=court.is_active,
        )

    def get(self, booking_id: UUID, lock: bool = False) -> Booking | None:
        from apps.bookings.models import Booking as BookingModel

        queryset = BookingModel.objects.filter(pk=booking_id)
        if lock:
            queryset = _lock_queryset_if_possible(queryset)
        row = queryset.first()
        return self._to_domain(row) if row is not None else None

    def find_overlapping(self, court_id, on_date, window, exclude_id=None) -> List[Booking]:
        queryset = self._blocking(court_id, on_date).filter(
            start_time__lt=window.end,
            end_time__gt=window.start,
        )
        if exclude_id is not None:
            queryset = queryset.exclude(pk=exclude_id)
        queryset = _lock_queryset_if_possible(queryset)
        return [self._to_domain(row) for row in queryset]

    def booked_windows(self, court_id, on_date) -> List[TimeRange]:
        rows = self._blocking(court_id, on_date).order_by("start_time").values_list("start_time", "end_time")
        return [TimeRange(start, end) for start, end in rows]

    def insert(self, booking: Booking) -> None:
        from apps.bookings.models import Booking as BookingModel

        try:
            with transaction.atomic():
                BookingModel.objects.create(id=booking.id, **self._to_fields(booking))
        except IntegrityError as exc:
            # The exclusion constraint on PostgreSQL reports the overlap here
            logger.warning("Insert of booking %s rejected by the database: %s", booking.id, exc)
            raise ConflictError(court_id=str(booking.court_id), date=booking.booking_date.isoformat()) from exc

    def save(self, booking: Booking) -> None:
        from apps.bookings.models import Booking as BookingModel

        fields = self._to_fields(booking)
        del fields["created_at"]
        BookingModel.objects.filter(pk=booking.id).update(**fields)

    def expired_unpaid_ids(self, now: datetime) -> List[UUID]:
        from apps.bookings.models import Booking as BookingModel

        return list(
            BookingModel.objects.filter(
                status=BookingModel.Status.PENDING,
                payment_status=BookingModel.PaymentStatus.PENDING,
                expires_at__lt=now,
            ).values_list("id", flat=True)
        )

    def ids_due_to_start(self, local_now: datetime) -> List[UUID]:
        from apps.bookings.models import Booking as BookingModel

        return list(
            BookingModel.objects.filter(status=BookingModel.Status.CONFIRMED)
            .filter(_reached(local_now, "booking_date", "start_time"))
            .values_list("id", flat=True)
        )

    def ids_due_to_complete(self, local_now: datetime) -> List[UUID]:
        from apps.bookings.models import Booking as BookingModel

        return list(
            BookingModel.objects.filter(status=BookingModel.Status.ACTIVE)
            .filter(_reached(local_now, "booking_date", "end_time"))
            .values_list("id", flat=True)
        )

    def _blocking(self, court_id, on_date):
        from apps.bookings.models import Booking as BookingModel

        return BookingModel.objects.filter(court_id=court_id, booking_date=on_date).exclude(
            status=BookingModel.Status.CANCELLED
        )

    @staticmethod
    def _to_fields(booking: Booking) -> dict:
        return {
            "court_id": booking.court_id,
            "user_id": booking.user_id,
            "booking_date": booking.booking_date,
            "start_time": booking.window.start,
            "end_time": booking.window.end,
            "duration_minutes": booking.duration_minutes,
            "total_price": booking.total_price.amount,
            "deposit_amount": booking.deposit_amount.amount,
            "currency": booking.total_price.currency,
            "status": booking.status.value,
            "payment_status": booking.payment_status.value,
            "payment_method": booking.payment_method,
            "notes": booking.notes,
            "expires_at": booking.expires_at,
            "cancellation_reason": booking.cancellation_reason,
            "cancelled_by": booking.cancelled_by,
            "cancelled_at": booking.cancelled_at,
            "refund_granted": booking.refund_granted,
            "created_at": booking.created_at,
            "updated_at": booking.updated_at,
        }

    @staticmethod
    def _to_domain(row) -> Booking:
        return Booking(
            id=row.id,
            created_at=row.created_at,
            updated_at=row.updated_at,
            court_id=row.court_id,
            user_id=str(row.user_id),
            booking_date=row.booking_date,
            window=TimeRange(row.start_time, row.end_time),
            total_price=Money(row.total_price, row.currency),
            deposit_amount=Money(row.deposit_amount, row.currency),
            status=BookingStatus(row.status),
            payment_status=PaymentStatus(row.payment_status),
            payment_method=row.payment_method,
            notes=row.notes,
            expires_at=row.expires_at,
            cancellation_reason=row.cancellation_reason,
            cancelled_by=row.cancelled_by,
            cancelled_at=row.cancelled_at,
            refund_granted=row.refund_granted,
        )
