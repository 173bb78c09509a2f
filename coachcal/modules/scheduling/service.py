# coachcal/modules/scheduling/service.py
from __future__ import annotations

import logging
from datetime import date, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from coachcal.core.config import settings
from coachcal.core.errors import ValidationError
from coachcal.modules.appointments import repository as appt_repo
from coachcal.modules.appointments.schemas import AvailabilityResponse, SlotsResponse
from coachcal.modules.calendars import repository as cal_repo
from coachcal.modules.calendars.models import Calendar
from coachcal.modules.calendars.service import load_visible_calendar
from coachcal.modules.scheduling.blocks import ExceptionSet
from coachcal.modules.scheduling.intervals import format_hhmm
from coachcal.modules.scheduling.reservations import ReservationIndex
from coachcal.modules.scheduling.rules import AvailabilityRuleSet
from coachcal.modules.scheduling.slots import CalendarPolicy, SlotComputer
from coachcal.modules.users.models import User

logger = logging.getLogger(__name__)


async def build_slot_computer(
    session: AsyncSession,
    calendar: Calendar,
    from_date: date,
    to_date: date,
) -> SlotComputer:
    """
    Load the coach's blocks and live appointments for the range once and wrap
    them, with the calendar's rules, into a pure SlotComputer.
    """
    try:
        policy = CalendarPolicy.from_calendar(calendar)
        rules = AvailabilityRuleSet(calendar.rules)
    except ValueError as exc:
        raise ValidationError(str(exc), code="invalid_calendar") from exc

    blocks = await cal_repo.list_blocked_times(
        session, coach_id=calendar.coach_id, from_date=from_date, to_date=to_date
    )
    appointments = await appt_repo.list_occupying(
        session, coach_id=calendar.coach_id, from_date=from_date, to_date=to_date
    )
    try:
        exceptions = ExceptionSet(blocks)
    except ValueError as exc:
        raise ValidationError(str(exc), code="invalid_blocked_time") from exc
    return SlotComputer(policy, rules, exceptions, ReservationIndex(appointments))


async def get_slots(
    session: AsyncSession,
    user: User,
    calendar_id: UUID,
    day: date,
    now: datetime,
) -> SlotsResponse:
    calendar = await load_visible_calendar(session, user, calendar_id)
    computer = await build_slot_computer(session, calendar, day, day)
    slots = computer.slots_on_date(day, now)
    return SlotsResponse(calendar_id=calendar.id, date=day, slots=[format_hhmm(s) for s in slots])


async def get_availability(
    session: AsyncSession,
    user: User,
    calendar_id: UUID,
    from_date: date,
    to_date: date,
    now: datetime,
) -> AvailabilityResponse:
    if to_date < from_date:
        raise ValidationError("'to' must not be before 'from'", code="invalid_range")
    span = (to_date - from_date).days + 1
    if span > settings.MAX_AVAILABILITY_RANGE_DAYS:
        raise ValidationError(
            f"range exceeds {settings.MAX_AVAILABILITY_RANGE_DAYS} days", code="range_too_large"
        )

    calendar = await load_visible_calendar(session, user, calendar_id)
    computer = await build_slot_computer(session, calendar, from_date, to_date)
    dates = computer.dates_with_availability(from_date, to_date, now)
    return AvailabilityResponse(calendar_id=calendar.id, from_date=from_date, to_date=to_date, dates=dates)
