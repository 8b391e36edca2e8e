"""
Slot generation and availability

SlotCalculator turns a court's operating hours into the ordered list of
candidate windows for a day. AvailabilityChecker marks each candidate as
free or taken against the non-cancelled bookings of that court and date.

Both are pure: no database, no clock, no Django.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, List, Mapping
from uuid import UUID

from shared.domain.base import ValueObject
from shared.domain.exceptions import ConfigurationError
from shared.domain.value_objects import TimeRange, minutes_since_midnight, parse_time_of_day

DEFAULT_SLOT_DURATION_MINUTES = 90
DEFAULT_STRIDE_MINUTES = 30


def _minutes_to_time(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


@dataclass(frozen=True)
class OperatingHours(ValueObject):
    """
    Daily opening window of a court plus the length of one slot

    Close must be later than open on the same day.
    """
    open: time
    close: time
    slot_duration_minutes: int = DEFAULT_SLOT_DURATION_MINUTES

    def __post_init__(self):
        if self.open >= self.close:
            raise ConfigurationError(
                f"Operating hours close ({self.close:%H:%M}) must be after open ({self.open:%H:%M})"
            )
        if self.slot_duration_minutes <= 0:
            raise ConfigurationError("Slot duration must be a positive number of minutes")

    @classmethod
    def from_config(cls, config: Mapping) -> 'OperatingHours':
        """
        Build from the stored JSON shape

        Accepts ``{"start": "08:00", "end": "23:00", "slot_duration": 90}``;
        ``open``/``close`` are accepted as aliases of ``start``/``end``.
        """
        if not isinstance(config, Mapping):
            raise ConfigurationError("Operating hours must be an object")
        try:
            opens = parse_time_of_day(config.get('start', config.get('open')))
            closes = parse_time_of_day(config.get('end', config.get('close')))
            duration = int(config.get('slot_duration', DEFAULT_SLOT_DURATION_MINUTES))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid operating hours: {config!r}") from exc
        return cls(opens, closes, duration)

    @property
    def open_minutes(self) -> int:
        return minutes_since_midnight(self.open)

    @property
    def close_minutes(self) -> int:
        return minutes_since_midnight(self.close)


@dataclass(frozen=True)
class Slot(ValueObject):
    """Candidate window of a court on a date, annotated with availability"""
    court_id: UUID
    date: date
    window: TimeRange
    is_available: bool

    @property
    def start_time(self) -> time:
        return self.window.start

    @property
    def end_time(self) -> time:
        return self.window.end


class SlotCalculator:
    """
    Generates candidate windows

    Windows are ``slot_duration`` long and start every ``stride_minutes``
    from opening time, so consecutive candidates overlap whenever the
    stride is shorter than the duration. Generation stops before a window
    would end after closing time.
    """

    def __init__(self, stride_minutes: int = DEFAULT_STRIDE_MINUTES):
        if stride_minutes <= 0:
            raise ConfigurationError("Slot stride must be a positive number of minutes")
        self.stride_minutes = stride_minutes

    def candidate_windows(self, hours: OperatingHours) -> List[TimeRange]:
        windows = []
        start = hours.open_minutes
        while start + hours.slot_duration_minutes <= hours.close_minutes:
            windows.append(TimeRange(
                _minutes_to_time(start),
                _minutes_to_time(start + hours.slot_duration_minutes),
            ))
            start += self.stride_minutes
        return windows

    def is_legal_window(self, hours: OperatingHours, window: TimeRange) -> bool:
        """Window lies within opening hours and both ends sit on the stride grid"""
        start = minutes_since_midnight(window.start)
        end = minutes_since_midnight(window.end)
        if start < hours.open_minutes or end > hours.close_minutes:
            return False
        return (
            (start - hours.open_minutes) % self.stride_minutes == 0
            and (end - hours.open_minutes) % self.stride_minutes == 0
        )


class AvailabilityChecker:
    """Marks candidates taken when they overlap any booked window ([s, e) semantics)"""

    def annotate(
        self,
        court_id: UUID,
        on_date: date,
        candidates: Iterable[TimeRange],
        booked: Iterable[TimeRange],
    ) -> List[Slot]:
        booked = list(booked)
        return [
            Slot(
                court_id=court_id,
                date=on_date,
                window=window,
                is_available=self.is_free(window, booked),
            )
            for window in candidates
        ]

    def is_free(self, window: TimeRange, booked: Iterable[TimeRange]) -> bool:
        return not any(window.overlaps_with(taken) for taken in booked)
