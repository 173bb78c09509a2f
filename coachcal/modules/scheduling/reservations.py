# coachcal/modules/scheduling/reservations.py
from __future__ import annotations

import datetime as dt
from collections import defaultdict
from typing import Any, Iterable

from coachcal.modules.appointments.states import occupies_slot
from coachcal.modules.scheduling.intervals import MINUTES_PER_DAY, TimeInterval, to_minutes


class ReservationIndex:
    """
    Read model over existing appointments.

    Rows need `coach_id`, `appointment_date`, `start_time`, `duration_minutes`,
    `buffer_minutes` and `status`. Cancelled rows are ignored. Built per request
    from a fresh query; never kept across requests.
    """

    def __init__(self, appointments: Iterable[Any] = ()):
        self._rows: dict[tuple[Any, dt.date], list[tuple[TimeInterval, int]]] = defaultdict(list)
        for appt in appointments:
            if not occupies_slot(appt.status):
                continue
            start = to_minutes(appt.start_time)
            end = min(start + int(appt.duration_minutes), MINUTES_PER_DAY)
            key = (str(appt.coach_id), appt.appointment_date)
            self._rows[key].append((TimeInterval(start, end), int(appt.buffer_minutes or 0)))

    def booked_intervals_for_date(self, coach_id: Any, day: dt.date) -> list[TimeInterval]:
        """Raw appointment intervals, no buffer."""
        return sorted(raw for raw, _ in self._rows.get((str(coach_id), day), ()))

    def occupied_intervals_for_date(
        self,
        coach_id: Any,
        day: dt.date,
        min_buffer: int = 0,
    ) -> list[TimeInterval]:
        """
        Every non-cancelled appointment of the coach on `day`, widened on both
        sides by its own buffer (or `min_buffer`, whichever is larger).
        """
        occupied = [
            raw.expand(max(buffer, min_buffer), max(buffer, min_buffer))
            for raw, buffer in self._rows.get((str(coach_id), day), ())
        ]
        return sorted(occupied)
