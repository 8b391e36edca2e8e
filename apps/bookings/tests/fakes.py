"""In-memory collaborators for handler tests.

``InMemoryBookingStore`` serializes units of work with a lock, the same
guarantee the locked court row gives the ORM store, so the handlers can be
exercised from several threads without a database.
"""

from __future__ import annotations

import copy
import threading
import time
from datetime import date, datetime
from typing import Dict, List
from uuid import UUID

from apps.bookings.domain.entities import Booking, BookingStatus, PaymentStatus
from apps.bookings.infrastructure.repositories import AbstractBookingStore, CourtSnapshot
from shared.application.uow import AbstractUnitOfWork
from shared.domain.exceptions import ConflictError
from shared.domain.value_objects import TimeRange


class InMemoryUnitOfWork(AbstractUnitOfWork):
    def __init__(self, store: "InMemoryBookingStore"):
        self.store = store
        self._events: list = []
        self._snapshot: Dict[UUID, Booking] | None = None

    def __enter__(self):
        self.store.lock.acquire()
        self._snapshot = copy.deepcopy(self.store.bookings)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            return super().__exit__(exc_type, exc_val, exc_tb)
        finally:
            self.store.lock.release()

    def commit(self):
        self.store.published.extend(self._events)
        self._events = []

    def rollback(self):
        self.store.bookings = self._snapshot
        self._events = []

    def collect_events(self, aggregate):
        self._events.extend(aggregate.events)
        aggregate.clear_events()


class InMemoryBookingStore(AbstractBookingStore):
    def __init__(self, courts: List[CourtSnapshot] = (), read_delay: float = 0.0):
        self.courts: Dict[UUID, CourtSnapshot] = {court.id: court for court in courts}
        self.bookings: Dict[UUID, Booking] = {}
        self.published: list = []
        self.lock = threading.Lock()
        self.read_delay = read_delay

    def unit_of_work(self) -> AbstractUnitOfWork:
        return InMemoryUnitOfWork(self)

    def add_court(self, court: CourtSnapshot) -> CourtSnapshot:
        self.courts[court.id] = court
        return court

    def get_court(self, court_id, lock=False):
        return self.courts.get(court_id)

    def get(self, booking_id, lock=False):
        booking = self.bookings.get(booking_id)
        return copy.deepcopy(booking) if booking is not None else None

    def _blocking(self, court_id, on_date) -> List[Booking]:
        return [
            b for b in self.bookings.values()
            if b.court_id == court_id and b.booking_date == on_date and b.blocks_court
        ]

    def find_overlapping(self, court_id, on_date, window, exclude_id=None):
        if self.read_delay:
            # Widens the window between check and insert
            time.sleep(self.read_delay)
        return [
            copy.deepcopy(b) for b in self._blocking(court_id, on_date)
            if b.window.overlaps_with(window) and b.id != exclude_id
        ]

    def booked_windows(self, court_id, on_date) -> List[TimeRange]:
        return sorted((b.window for b in self._blocking(court_id, on_date)), key=lambda w: w.start)

    def insert(self, booking: Booking) -> None:
        if any(b.window.overlaps_with(booking.window) for b in self._blocking(booking.court_id, booking.booking_date)):
            raise ConflictError()
        self.bookings[booking.id] = copy.deepcopy(booking)

    def save(self, booking: Booking) -> None:
        self.bookings[booking.id] = copy.deepcopy(booking)

    def expired_unpaid_ids(self, now: datetime) -> List[UUID]:
        return [
            b.id for b in self.bookings.values()
            if b.status == BookingStatus.PENDING
            and b.payment_status == PaymentStatus.PENDING
            and b.expires_at is not None
            and b.expires_at < now
        ]

    def ids_due_to_start(self, local_now: datetime) -> List[UUID]:
        return [
            b.id for b in self.bookings.values()
            if b.status == BookingStatus.CONFIRMED and b.starts_at(local_now.tzinfo) <= local_now
        ]

    def ids_due_to_complete(self, local_now: datetime) -> List[UUID]:
        return [
            b.id for b in self.bookings.values()
            if b.status == BookingStatus.ACTIVE and b.ends_at(local_now.tzinfo) <= local_now
        ]


class DictCacheBackend:
    """Subset of the Django cache API used by ``AvailabilityCache``."""

    def __init__(self):
        self.data: dict = {}

    def get(self, key, default=None):
        return self.data.get(key, default)

    def set(self, key, value, timeout=None):
        self.data[key] = value

    def add(self, key, value, timeout=None):
        if key in self.data:
            return False
        self.data[key] = value
        return True

    def incr(self, key, delta=1):
        if key not in self.data:
            raise ValueError(f"Key {key!r} not found")
        self.data[key] += delta
        return self.data[key]

    def delete(self, key):
        return self.data.pop(key, None) is not None


class FakeClock:
    """Callable clock that tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class SpyCache:
    """Availability cache double that records invalidations and never caches."""

    def __init__(self):
        self.invalidated: list = []
        self.computed = 0

    def get_or_compute(self, court_id: UUID, on_date: date, compute):
        self.computed += 1
        return compute()

    def invalidate(self, court_id: UUID, on_date: date) -> None:
        self.invalidated.append((court_id, on_date))
