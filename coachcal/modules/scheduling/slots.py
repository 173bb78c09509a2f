# coachcal/modules/scheduling/slots.py
"""
Slot computation.

Free time for a date is the merged weekly availability for its weekday minus
the coach's blocks and buffered reservations. Each free fragment is cut into
consecutive slots of the calendar's duration starting at the fragment start;
a trailing remainder shorter than one slot is dropped. Candidate starts are
then filtered through the notice/advance window relative to an explicit `now`.
"""
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any, Iterator, Optional
from uuid import UUID

from coachcal.modules.scheduling.blocks import ExceptionSet
from coachcal.modules.scheduling.intervals import (
    DateTimeInterval,
    TimeInterval,
    epoch_minutes,
    epoch_minutes_ceil,
    merge,
    subtract_all,
)
from coachcal.modules.scheduling.reservations import ReservationIndex
from coachcal.modules.scheduling.rules import AvailabilityRuleSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarPolicy:
    coach_id: UUID | str
    slot_duration: int
    buffer: int = 0
    max_advance_days: int = 60
    min_notice_hours: int = 24

    def __post_init__(self) -> None:
        if self.slot_duration <= 0:
            raise ValueError("slot_duration must be positive")
        if self.buffer < 0:
            raise ValueError("buffer must not be negative")
        if self.max_advance_days < 0 or self.min_notice_hours < 0:
            raise ValueError("booking window bounds must not be negative")

    @classmethod
    def from_calendar(cls, calendar: Any) -> "CalendarPolicy":
        return cls(
            coach_id=calendar.coach_id,
            slot_duration=calendar.slot_duration_minutes,
            buffer=calendar.buffer_minutes,
            max_advance_days=calendar.max_advance_days,
            min_notice_hours=calendar.min_notice_hours,
        )

    def booking_window(self, now: dt.datetime) -> Optional[DateTimeInterval]:
        """
        Minutes (since epoch) at which a slot may start: from now + notice,
        up to and including now + advance. None when notice exceeds advance.
        """
        earliest = epoch_minutes_ceil(now + dt.timedelta(hours=self.min_notice_hours))
        latest = epoch_minutes(now + dt.timedelta(days=self.max_advance_days))
        if latest < earliest:
            return None
        return DateTimeInterval(earliest, latest + 1)

    def allows_start(self, day: dt.date, start_minute: int, now: dt.datetime) -> bool:
        window = self.booking_window(now)
        if window is None or day < now.date():
            return False
        return window.contains_minute(DateTimeInterval.anchor(day, TimeInterval.whole_day()).start + start_minute)


def discretize(fragment: TimeInterval, slot_duration: int) -> Iterator[int]:
    """Consecutive slot starts that fit entirely inside `fragment`."""
    start = fragment.start
    while start + slot_duration <= fragment.end:
        yield start
        start += slot_duration


class SlotComputer:
    """
    Pure slot engine over one calendar's rules and the coach's blocks/bookings.
    """

    def __init__(
        self,
        policy: CalendarPolicy,
        rules: AvailabilityRuleSet,
        exceptions: ExceptionSet | None = None,
        reservations: ReservationIndex | None = None,
    ):
        self.policy = policy
        self.rules = rules
        self.exceptions = exceptions or ExceptionSet()
        self.reservations = reservations or ReservationIndex()

    def free_intervals(self, day: dt.date) -> list[TimeInterval]:
        available = merge(self.rules.rules_for_day(day.weekday()))
        if not available:
            return []
        unavailable = self.exceptions.exceptions_for_date(day) + self.reservations.occupied_intervals_for_date(
            self.policy.coach_id, day, min_buffer=self.policy.buffer
        )
        return subtract_all(available, unavailable)

    def slots_on_date(self, day: dt.date, now: dt.datetime) -> list[int]:
        """
        Ordered, duplicate-free slot starts (minutes since midnight) bookable on `day`.
        """
        if day < now.date():
            return []
        window = self.policy.booking_window(now)
        if window is None:
            return []
        day_span = DateTimeInterval.anchor(day, TimeInterval.whole_day())
        if day_span.end <= window.start or day_span.start >= window.end:
            return []

        base = day_span.start
        slots: list[int] = []
        for fragment in self.free_intervals(day):
            for start in discretize(fragment, self.policy.slot_duration):
                if window.contains_minute(base + start):
                    slots.append(start)
        return slots

    def is_bookable(self, day: dt.date, start_minute: int, now: dt.datetime) -> bool:
        return start_minute in self.slots_on_date(day, now)

    def dates_with_availability(
        self,
        start_date: dt.date,
        end_date: dt.date,
        now: dt.datetime,
    ) -> list[dt.date]:
        """
        Dates in [start_date, end_date] whose `slots_on_date` is non-empty, ascending.
        """
        dates: list[dt.date] = []
        day = start_date
        while day <= end_date:
            # days without rules can never produce a slot
            if not self.rules.is_day_fully_unavailable(day.weekday()) and self.slots_on_date(day, now):
                dates.append(day)
            day += dt.timedelta(days=1)
        logger.debug("availability %s..%s -> %d dates", start_date, end_date, len(dates))
        return dates
