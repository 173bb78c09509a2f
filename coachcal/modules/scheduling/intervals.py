# coachcal/modules/scheduling/intervals.py
"""
Half-open interval arithmetic over integer minutes.

`TimeInterval` is a time-of-day window in minutes since midnight (0..1440).
`DateTimeInterval` is the same shape anchored to the calendar, in minutes since
the Unix epoch (naive wall clock). HH:MM strings and `datetime.time` values are
only converted at the edges.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, TypeVar

MINUTES_PER_DAY = 24 * 60
EPOCH = dt.datetime(1970, 1, 1)
_MINUTE = dt.timedelta(minutes=1)

IntervalT = TypeVar("IntervalT", bound="TimeInterval")


@dataclass(frozen=True, order=True)
class TimeInterval:
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(f"interval end ({self.end}) must be after start ({self.start})")
        self._check_bounds()

    def _check_bounds(self) -> None:
        if self.start < 0 or self.end > MINUTES_PER_DAY:
            raise ValueError(f"time-of-day interval out of range: {self.start}-{self.end}")

    @classmethod
    def from_times(cls, start: dt.time, end: dt.time) -> "TimeInterval":
        return cls(to_minutes(start), to_minutes(end))

    @classmethod
    def whole_day(cls) -> "TimeInterval":
        return cls(0, MINUTES_PER_DAY)

    @property
    def length(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "TimeInterval") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: "TimeInterval") -> bool:
        return self.start <= other.start and other.end <= self.end

    def expand(self, before: int, after: int) -> "TimeInterval":
        """Widen by `before`/`after` minutes, clipped to the day."""
        return TimeInterval(
            max(0, self.start - before),
            min(MINUTES_PER_DAY, self.end + after),
        )

    def __str__(self) -> str:
        return f"{format_hhmm(self.start)}-{format_hhmm(self.end)}"


@dataclass(frozen=True, order=True)
class DateTimeInterval(TimeInterval):
    """[start, end) in minutes since the epoch."""

    def _check_bounds(self) -> None:
        return None

    @classmethod
    def anchor(cls, day: dt.date, window: TimeInterval) -> "DateTimeInterval":
        base = epoch_minutes(dt.datetime.combine(day, dt.time()))
        return cls(base + window.start, base + window.end)

    def contains_minute(self, minute: int) -> bool:
        return self.start <= minute < self.end

    def __str__(self) -> str:
        return f"{from_epoch_minutes(self.start):%Y-%m-%d %H:%M}-{from_epoch_minutes(self.end):%Y-%m-%d %H:%M}"


def intersect(a: IntervalT, b: IntervalT) -> Optional[IntervalT]:
    start = max(a.start, b.start)
    end = min(a.end, b.end)
    if end <= start:
        return None
    return type(a)(start, end)


def merge(intervals: Iterable[IntervalT]) -> list[IntervalT]:
    """
    Sort by start and coalesce overlapping or touching intervals.
    """
    ordered = sorted(intervals, key=lambda i: (i.start, i.end))
    merged: list[IntervalT] = []
    for item in ordered:
        if merged and item.start <= merged[-1].end:
            last = merged[-1]
            if item.end > last.end:
                merged[-1] = type(last)(last.start, item.end)
            continue
        merged.append(item)
    return merged


def subtract(a: IntervalT, bs: Sequence[IntervalT]) -> list[IntervalT]:
    """
    `a` minus the union of `bs`, as zero or more disjoint fragments in order.
    """
    fragments: list[IntervalT] = []
    cursor = a.start
    for b in merge(bs):
        if b.end <= cursor:
            continue
        if b.start >= a.end:
            break
        if b.start > cursor:
            fragments.append(type(a)(cursor, b.start))
        cursor = max(cursor, b.end)
        if cursor >= a.end:
            break
    if cursor < a.end:
        fragments.append(type(a)(cursor, a.end))
    return fragments


def subtract_all(intervals: Sequence[IntervalT], bs: Sequence[IntervalT]) -> list[IntervalT]:
    """Subtract `bs` from every interval of an already merged list."""
    out: list[IntervalT] = []
    removed = merge(bs)
    for item in intervals:
        out.extend(subtract(item, removed))
    return out


# --- boundary conversions ---

def to_minutes(value: dt.time) -> int:
    return value.hour * 60 + value.minute


def is_whole_minute(value: dt.time) -> bool:
    """True for naive HH:MM values; anything finer would be truncated by `to_minutes`."""
    return not (value.second or value.microsecond or value.tzinfo is not None)


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_hhmm(value: str) -> int:
    """'09:30' -> 570. Accepts '24:00' as end of day."""
    try:
        hours, mins = value.strip().split(":")[:2]
        h, m = int(hours), int(mins)
    except (AttributeError, ValueError):
        raise ValueError(f"invalid HH:MM value: {value!r}") from None
    if not (0 <= m < 60 and (0 <= h < 24 or (h == 24 and m == 0))):
        raise ValueError(f"invalid HH:MM value: {value!r}")
    return h * 60 + m


def epoch_minutes(value: dt.datetime) -> int:
    """Whole minutes since the epoch, rounded down."""
    return (value - EPOCH) // _MINUTE


def epoch_minutes_ceil(value: dt.datetime) -> int:
    return -((EPOCH - value) // _MINUTE)


def from_epoch_minutes(minutes: int) -> dt.datetime:
    return EPOCH + minutes * _MINUTE


__all__ = [
    "MINUTES_PER_DAY",
    "TimeInterval",
    "DateTimeInterval",
    "intersect",
    "merge",
    "subtract",
    "subtract_all",
    "to_minutes",
    "format_hhmm",
    "parse_hhmm",
    "epoch_minutes",
    "epoch_minutes_ceil",
    "from_epoch_minutes",
]
