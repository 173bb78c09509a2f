# coachcal/modules/scheduling/blocks.py
from __future__ import annotations

import datetime as dt
from collections import defaultdict
from typing import Any, Iterable

from coachcal.modules.scheduling.intervals import TimeInterval, merge


class ExceptionSet:
    """
    A coach's date-specific blocks. Applies to every calendar of that coach.

    Rows need `blocked_date`, `all_day`, `start_time`, `end_time`.
    """

    def __init__(self, blocks: Iterable[Any] = ()):
        self._by_date: dict[dt.date, list[TimeInterval]] = defaultdict(list)
        for block in blocks:
            if block.all_day:
                window = TimeInterval.whole_day()
            else:
                window = TimeInterval.from_times(block.start_time, block.end_time)
            self._by_date[block.blocked_date].append(window)

    def exceptions_for_date(self, day: dt.date) -> list[TimeInterval]:
        return merge(self._by_date.get(day, ()))

    def is_fully_blocked(self, day: dt.date) -> bool:
        return TimeInterval.whole_day() in self.exceptions_for_date(day)
