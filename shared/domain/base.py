"""
Base Domain Classes

- ValueObject: immutable, compared by value
- Aggregate: identity, timestamps and the events raised while it changed
- DomainEvent: something that happened; handed to the message bus after commit
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List
from uuid import UUID, uuid4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ValueObject(ABC):
    """Immutable, no identity. Equal when all fields are equal."""


@dataclass(eq=False)
class Aggregate(ABC):
    """
    Aggregate root

    Equality is by ``id``. Events recorded with ``add_event`` stay on the
    aggregate until a unit of work collects them.
    """
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    _events: List['DomainEvent'] = field(default_factory=list, repr=False, init=False)

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def add_event(self, event: 'DomainEvent'):
        self._events.append(event)

    def clear_events(self):
        self._events.clear()

    @property
    def events(self) -> List['DomainEvent']:
        return self._events.copy()


@dataclass(kw_only=True)
class DomainEvent:
    """
    Base class for domain events

    Subclasses add their fields and override ``payload`` with the
    JSON-ready part that subscribers forward.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=utcnow)
    aggregate_id: UUID | None = None

    def payload(self) -> dict:
        return {}

    def to_dict(self) -> dict:
        return {
            **self.payload(),
            'event_id': str(self.event_id),
            'event_type': self.__class__.__name__,
            'occurred_at': self.occurred_at.isoformat(),
            'aggregate_id': str(self.aggregate_id) if self.aggregate_id else None,
        }
