# coachcal/modules/calendars/service.py
from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from coachcal.core.errors import BlockedTimeNotFound, CalendarNotFound, Conflict, RuleNotFound, ValidationError
from coachcal.core.permission import can_view_calendar, owns
from coachcal.modules.calendars import repository as cal_repo
from coachcal.modules.calendars.models import AvailabilityRule, Calendar
from coachcal.modules.calendars.schemas import (
    BlockedTimeCreate,
    BlockedTimePublic,
    CalendarCreate,
    CalendarPublic,
    CalendarUpdate,
    RuleIn,
    RulePublic,
)
from coachcal.modules.scheduling.intervals import is_whole_minute
from coachcal.modules.scheduling.slots import CalendarPolicy
from coachcal.modules.users.models import User

logger = logging.getLogger(__name__)


def _to_public(calendar: Calendar) -> CalendarPublic:
    return CalendarPublic.model_validate(calendar)


def _sorted_rules(calendar: Calendar) -> List[AvailabilityRule]:
    return sorted(calendar.rules, key=lambda r: (r.day_of_week, r.start_time))


def validate_rule(rule: RuleIn) -> None:
    if not 0 <= rule.day_of_week <= 6:
        raise ValidationError("day_of_week must be 0..6", code="invalid_rule")
    if not (is_whole_minute(rule.start_time) and is_whole_minute(rule.end_time)):
        raise ValidationError("rule times must be whole minutes", code="invalid_rule")
    if rule.end_time <= rule.start_time:
        raise ValidationError("end_time must be after start_time", code="invalid_rule")


def validate_policy(calendar: Calendar) -> None:
    try:
        CalendarPolicy.from_calendar(calendar)
    except ValueError as exc:
        raise ValidationError(str(exc), code="invalid_policy") from exc


async def load_visible_calendar(session: AsyncSession, user: User, calendar_id: UUID) -> Calendar:
    calendar = await cal_repo.get_calendar(session, calendar_id)
    if calendar is None or not can_view_calendar(user, calendar):
        raise CalendarNotFound()
    return calendar


async def load_owned_calendar(session: AsyncSession, user: User, calendar_id: UUID) -> Calendar:
    """Calendars of other coaches are reported as missing, never as forbidden."""
    calendar = await cal_repo.get_calendar(session, calendar_id)
    if calendar is None or not (owns(user, calendar.coach_id) or user.is_admin):
        raise CalendarNotFound()
    return calendar


# ---- calendars ----

async def create_calendar(session: AsyncSession, coach: User, payload: CalendarCreate) -> CalendarPublic:
    calendar = await cal_repo.create_calendar(session, coach_id=coach.id, **payload.model_dump())
    validate_policy(calendar)
    logger.info("Coach %s created calendar %s", coach.id, calendar.id)
    return _to_public(calendar)


async def list_calendars(session: AsyncSession, coach: User) -> List[CalendarPublic]:
    return [_to_public(c) for c in await cal_repo.list_by_coach(session, coach_id=coach.id)]


async def list_visible_calendars(session: AsyncSession, viewer: User, coach_id: UUID) -> List[CalendarPublic]:
    calendars = await cal_repo.list_by_coach(session, coach_id=coach_id)
    return [_to_public(c) for c in calendars if can_view_calendar(viewer, c)]


async def get_calendar(session: AsyncSession, user: User, calendar_id: UUID) -> CalendarPublic:
    return _to_public(await load_visible_calendar(session, user, calendar_id))


async def update_calendar(
    session: AsyncSession,
    user: User,
    calendar_id: UUID,
    payload: CalendarUpdate,
) -> CalendarPublic:
    calendar = await load_owned_calendar(session, user, calendar_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name") is not None:
        changes["name"] = changes["name"].strip()
    for field, value in changes.items():
        if value is None and field != "description":
            raise ValidationError(f"{field} must not be null")
        setattr(calendar, field, value)
    validate_policy(calendar)
    await session.flush()
    logger.info("Calendar %s updated: %s", calendar.id, sorted(changes))
    return _to_public(calendar)


async def delete_calendar(session: AsyncSession, user: User, calendar_id: UUID, today: date) -> None:
    """
    Refused while upcoming live bookings use the calendar. A calendar with
    booking history is archived so its appointments stay; otherwise it is
    removed together with its rules.
    """
    calendar = await load_owned_calendar(session, user, calendar_id)
    live = await cal_repo.count_appointments(session, calendar_id=calendar.id, live_from=today)
    if live:
        raise Conflict(f"{live} upcoming appointment(s) still use this calendar", code="calendar_in_use")
    if await cal_repo.count_appointments(session, calendar_id=calendar.id):
        await cal_repo.archive_calendar(session, calendar)
        logger.info("Calendar %s archived", calendar_id)
    else:
        await cal_repo.delete_calendar(session, calendar)
        logger.info("Calendar %s deleted", calendar_id)


# ---- weekly rules ----

async def list_rules(session: AsyncSession, user: User, calendar_id: UUID) -> List[RulePublic]:
    calendar = await load_visible_calendar(session, user, calendar_id)
    return [RulePublic.model_validate(r) for r in _sorted_rules(calendar)]


async def replace_rules(
    session: AsyncSession,
    user: User,
    calendar_id: UUID,
    rules: Iterable[RuleIn],
) -> List[RulePublic]:
    """Swap the whole weekly grid in one go; the old rows are deleted as orphans."""
    calendar = await load_owned_calendar(session, user, calendar_id)
    rules = list(rules)
    for rule in rules:
        validate_rule(rule)
    calendar.rules = [
        cal_repo.new_rule(day_of_week=r.day_of_week, start_time=r.start_time, end_time=r.end_time)
        for r in sorted(rules, key=lambda r: (r.day_of_week, r.start_time))
    ]
    await session.flush()
    logger.info("Calendar %s weekly rules replaced (%d rules)", calendar.id, len(rules))
    return [RulePublic.model_validate(r) for r in _sorted_rules(calendar)]


async def add_rule(session: AsyncSession, user: User, calendar_id: UUID, rule: RuleIn) -> RulePublic:
    calendar = await load_owned_calendar(session, user, calendar_id)
    validate_rule(rule)
    row = cal_repo.new_rule(day_of_week=rule.day_of_week, start_time=rule.start_time, end_time=rule.end_time)
    calendar.rules.append(row)
    await session.flush()
    return RulePublic.model_validate(row)


async def delete_rule(session: AsyncSession, user: User, calendar_id: UUID, rule_id: UUID) -> None:
    calendar = await load_owned_calendar(session, user, calendar_id)
    rule = next((r for r in calendar.rules if r.id == rule_id), None)
    if rule is None:
        raise RuleNotFound()
    calendar.rules.remove(rule)
    await session.flush()


# ---- blocked times ----

async def add_blocked_time(session: AsyncSession, coach: User, payload: BlockedTimeCreate) -> BlockedTimePublic:
    if payload.all_day and (payload.start_time or payload.end_time):
        raise ValidationError("all-day blocks take no start_time/end_time", code="invalid_blocked_time")
    if not payload.all_day and (
        payload.start_time is None or payload.end_time is None or payload.end_time <= payload.start_time
    ):
        raise ValidationError("partial blocks need start_time < end_time", code="invalid_blocked_time")
    if any(t is not None and not is_whole_minute(t) for t in (payload.start_time, payload.end_time)):
        raise ValidationError("block times must be whole minutes", code="invalid_blocked_time")

    block = await cal_repo.create_blocked_time(
        session,
        coach_id=coach.id,
        blocked_date=payload.blocked_date,
        all_day=payload.all_day,
        start_time=payload.start_time,
        end_time=payload.end_time,
        reason=payload.reason,
    )
    logger.info("Coach %s blocked %s", coach.id, payload.blocked_date)
    return BlockedTimePublic.model_validate(block)


async def list_blocked_times(
    session: AsyncSession,
    coach: User,
    from_date: Optional[date],
    to_date: Optional[date] = None,
) -> List[BlockedTimePublic]:
    blocks = await cal_repo.list_blocked_times(session, coach_id=coach.id, from_date=from_date, to_date=to_date)
    return [BlockedTimePublic.model_validate(b) for b in blocks]


async def delete_blocked_time(session: AsyncSession, coach: User, block_id: UUID) -> None:
    block = await cal_repo.get_blocked_time(session, coach_id=coach.id, block_id=block_id)
    if block is None:
        raise BlockedTimeNotFound()
    await cal_repo.delete_blocked_time(session, block)
