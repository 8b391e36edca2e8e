"""
Common Value Objects

Value objects used across multiple domains:
- Money: Represents monetary amounts with currency
- TimeRange: Represents a half-open window of the day (start to end)
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal

from shared.domain.base import ValueObject

SUPPORTED_CURRENCIES = ('ARS', 'USD', 'EUR')

CENT = Decimal('0.01')


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a monetary amount with currency.
    Immutable and supports arithmetic operations.
    """
    amount: Decimal
    currency: str = 'ARS'

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency:
            raise ValueError("Currency is required")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    @classmethod
    def zero(cls, currency: str = 'ARS') -> 'Money':
        return cls(Decimal('0'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only subtract Money from Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract different currencies: {self.currency} and {other.currency}")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> 'Money':
        """Multiply money by a factor"""
        if not isinstance(factor, (int, float, Decimal)):
            raise TypeError("Can only multiply Money by number")
        return Money(self.amount * Decimal(str(factor)), self.currency)

    def rounded(self) -> 'Money':
        """Quantize to cents, half-up. The single rounding rule for prices."""
        return Money(self.amount.quantize(CENT, rounding=ROUND_HALF_UP), self.currency)

    @property
    def minor_units(self) -> int:
        return int((self.amount * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


def parse_time_of_day(value) -> time:
    """Parse 'HH:MM' (or an existing time) into a time. Raises ValueError."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str):
        raise ValueError(f"Invalid time of day: {value!r}")
    parts = value.strip().split(':')
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time of day: {value!r}")
    return time(int(parts[0]), int(parts[1]))


def minutes_since_midnight(value: time) -> int:
    return value.hour * 60 + value.minute


@dataclass(frozen=True)
class TimeRange(ValueObject):
    """
    Time-of-day window

    Represents [start, end) within a single day. Used for candidate slots
    and booked windows.
    """
    start: time
    end: time

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time ({self.start:%H:%M}) must be before end time ({self.end:%H:%M})")

    @classmethod
    def parse(cls, start, end) -> 'TimeRange':
        return cls(parse_time_of_day(start), parse_time_of_day(end))

    def overlaps_with(self, other: 'TimeRange') -> bool:
        """
        Check if this window overlaps with another

        Half-open semantics: a window ending exactly when the other starts
        does not overlap it.

        Examples:
            - 10:00-11:30 overlaps with 10:30-12:00 -> True
            - 10:00-11:30 overlaps with 11:30-13:00 -> False (adjacent)
        """
        if not isinstance(other, TimeRange):
            raise TypeError("Can only check overlap with another TimeRange")

        return self.start < other.end and other.start < self.end

    @property
    def duration_minutes(self) -> int:
        return minutes_since_midnight(self.end) - minutes_since_midnight(self.start)

    def starts_at(self, on_date: date, tzinfo=None) -> datetime:
        return datetime.combine(on_date, self.start, tzinfo=tzinfo)

    def ends_at(self, on_date: date, tzinfo=None) -> datetime:
        return datetime.combine(on_date, self.end, tzinfo=tzinfo)

    def __str__(self):
        return f"{self.start:%H:%M}-{self.end:%H:%M}"

    def __repr__(self):
        return f"TimeRange({self.start:%H:%M}, {self.end:%H:%M})"
