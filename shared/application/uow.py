"""
Unit of Work Pattern

Manages database transactions and ensures that domain events
are published only after successful transaction commit.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, TypeVar
import logging

from django.db import OperationalError, transaction

from shared.domain.base import DomainEvent
from shared.domain.exceptions import InternalError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class TransactionTimeout(Exception):
    """The store could not complete the unit in time (lock wait, busy database)"""


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        """Commit the transaction"""
        pass

    @abstractmethod
    def rollback(self):
        """Rollback the transaction"""
        pass

    @abstractmethod
    def collect_events(self, aggregate):
        """Collect events from aggregate root"""
        pass


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Manages Django database transactions and ensures domain events
    are published after successful commit.

    Usage:
        with DjangoUnitOfWork() as uow:
            booking = store.get(booking_id, lock=True)
            booking.cancel(...)
            uow.collect_events(booking)
            store.save(booking)
            # Transaction commits here
        # Events are published after commit

    Database lock waits and busy errors (``OperationalError``) are
    re-raised as ``TransactionTimeout`` once the transaction is rolled back.
    """

    def __init__(self, bus=None):
        self._events: List[DomainEvent] = []
        self._transaction = None
        self._bus = bus

    def __enter__(self):
        """Start database transaction"""
        atomic = transaction.atomic()
        try:
            # SQLite IMMEDIATE mode waits for the write lock in BEGIN
            atomic.__enter__()
        except OperationalError as exc:
            raise TransactionTimeout(str(exc)) from exc
        self._transaction = atomic
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Complete or rollback transaction"""
        try:
            try:
                if exc_type is None:
                    self.commit()
                else:
                    self.rollback()
            finally:
                if self._transaction:
                    self._transaction.__exit__(exc_type, exc_val, exc_tb)
        except OperationalError as exc:
            raise TransactionTimeout(str(exc)) from exc

        if exc_type is not None and issubclass(exc_type, OperationalError):
            raise TransactionTimeout(str(exc_val)) from exc_val
        return False

    def commit(self):
        """Hand the collected events to the bus once the outermost transaction commits"""
        events, self._events = self._events, []
        logger.debug("Committing unit of work with %d events", len(events))
        if events:
            transaction.on_commit(lambda: self._publish_events(events))

    def rollback(self):
        if self._events:
            logger.warning("Rolling back unit of work, discarding %d events", len(self._events))
        self._events = []

    def collect_events(self, aggregate):
        new_events = aggregate.events
        if new_events:
            self._events.extend(new_events)
            aggregate.clear_events()
            logger.debug(
                "Collected %d events from %s %s",
                len(new_events), aggregate.__class__.__name__, aggregate.id,
            )

    def _publish_events(self, events: List[DomainEvent]):
        bus = self._bus
        if bus is None:
            from shared.application.message_bus import message_bus as bus

        logger.info("Publishing %d domain events after commit", len(events))
        try:
            bus.publish_events(events)
        except Exception:
            # The booking change is committed; subscribers do not get a retry
            logger.exception("Publishing %d committed events failed", len(events))


def run_in_unit_of_work(
    uow_factory: Callable[[], AbstractUnitOfWork],
    work: Callable[[AbstractUnitOfWork], T],
    retries: int = 1,
) -> T:
    """
    Run ``work`` inside a fresh unit of work

    A ``TransactionTimeout`` is retried ``retries`` times with a new unit,
    then surfaced as ``InternalError``. Every other error propagates
    unchanged; nothing is committed for a failed attempt.
    """
    attempt = 0
    while True:
        try:
            with uow_factory() as uow:
                return work(uow)
        except TransactionTimeout as exc:
            if attempt >= retries:
                logger.error("Transaction timed out after %d attempts: %s", attempt + 1, exc)
                raise InternalError("The booking store did not respond in time") from exc
            attempt += 1
            logger.warning("Transaction timed out, retrying (attempt %d): %s", attempt + 1, exc)
