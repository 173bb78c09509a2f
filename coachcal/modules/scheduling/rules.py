# coachcal/modules/scheduling/rules.py
from __future__ import annotations

from collections import defaultdict
from typing import Any, Iterable

from coachcal.modules.scheduling.intervals import TimeInterval, merge

# Monday-first ordinal, same as datetime.date.weekday()
DAYS_OF_WEEK = range(7)


class AvailabilityRuleSet:
    """
    Weekly recurrence of one calendar: day_of_week -> merged open windows.

    Built from anything exposing `day_of_week`, `start_time` and `end_time`
    (ORM rows, schemas). Overlapping rules on the same day are unioned.
    """

    def __init__(self, rules: Iterable[Any] = ()):
        by_day: dict[int, list[TimeInterval]] = defaultdict(list)
        for rule in rules:
            day = int(rule.day_of_week)
            if day not in DAYS_OF_WEEK:
                raise ValueError(f"day_of_week must be 0..6, got {day}")
            by_day[day].append(TimeInterval.from_times(rule.start_time, rule.end_time))
        self._by_day = {day: merge(windows) for day, windows in by_day.items()}

    @classmethod
    def from_windows(cls, windows: dict[int, Iterable[TimeInterval]]) -> "AvailabilityRuleSet":
        rule_set = cls()
        rule_set._by_day = {day: merge(items) for day, items in windows.items() if items}
        return rule_set

    def rules_for_day(self, day_of_week: int) -> list[TimeInterval]:
        return list(self._by_day.get(day_of_week, ()))

    def is_day_fully_unavailable(self, day_of_week: int) -> bool:
        return not self._by_day.get(day_of_week)

    @property
    def is_empty(self) -> bool:
        return not any(self._by_day.values())

    def __repr__(self) -> str:
        days = ", ".join(
            f"{day}: [{', '.join(str(w) for w in windows)}]"
            for day, windows in sorted(self._by_day.items())
        )
        return f"<AvailabilityRuleSet {{{days}}}>"
