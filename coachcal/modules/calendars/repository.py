# coachcal/modules/calendars/repository.py
from __future__ import annotations

from datetime import date, time
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from coachcal.db.base import utcnow
from coachcal.modules.appointments.models import Appointment
from coachcal.modules.appointments.states import AppointmentStatus
from coachcal.modules.calendars.models import AvailabilityRule, BlockedTime, Calendar


# ---- calendars ----

async def get_calendar(db: AsyncSession, calendar_id: UUID) -> Optional[Calendar]:
    # rules come along via selectin loading; archived calendars count as gone
    calendar = await db.get(Calendar, calendar_id)
    if calendar is None or calendar.archived_at is not None:
        return None
    return calendar


async def list_by_coach(db: AsyncSession, *, coach_id: UUID) -> Sequence[Calendar]:
    rows = await db.execute(
        select(Calendar)
        .where(Calendar.coach_id == coach_id, Calendar.archived_at.is_(None))
        .order_by(Calendar.created_at, Calendar.name)
    )
    return rows.scalars().all()


async def create_calendar(db: AsyncSession, *, coach_id: UUID, **fields) -> Calendar:
    calendar = Calendar(coach_id=coach_id, rules=[], **fields)
    db.add(calendar)
    await db.flush()
    return calendar


async def count_appointments(
    db: AsyncSession,
    *,
    calendar_id: UUID,
    live_from: Optional[date] = None,
) -> int:
    """
    Appointments referencing the calendar. With `live_from`, only
    non-cancelled ones on or after that date.
    """
    stmt = select(func.count()).select_from(Appointment).where(Appointment.calendar_id == calendar_id)
    if live_from is not None:
        stmt = stmt.where(
            Appointment.appointment_date >= live_from,
            Appointment.status != AppointmentStatus.CANCELLED.value,
        )
    return (await db.execute(stmt)).scalar_one()


async def archive_calendar(db: AsyncSession, calendar: Calendar) -> None:
    calendar.archived_at = utcnow()
    await db.flush()


async def delete_calendar(db: AsyncSession, calendar: Calendar) -> None:
    await db.delete(calendar)
    await db.flush()


# ---- rules ----

def new_rule(*, day_of_week: int, start_time: time, end_time: time) -> AvailabilityRule:
    return AvailabilityRule(day_of_week=day_of_week, start_time=start_time, end_time=end_time)


# ---- blocked times ----

async def create_blocked_time(
    db: AsyncSession,
    *,
    coach_id: UUID,
    blocked_date: date,
    all_day: bool,
    start_time: Optional[time] = None,
    end_time: Optional[time] = None,
    reason: Optional[str] = None,
) -> BlockedTime:
    block = BlockedTime(
        coach_id=coach_id,
        blocked_date=blocked_date,
        all_day=all_day,
        start_time=start_time,
        end_time=end_time,
        reason=reason,
    )
    db.add(block)
    await db.flush()
    return block


async def list_blocked_times(
    db: AsyncSession,
    *,
    coach_id: UUID,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
) -> Sequence[BlockedTime]:
    stmt = select(BlockedTime).where(BlockedTime.coach_id == coach_id)
    if from_date is not None:
        stmt = stmt.where(BlockedTime.blocked_date >= from_date)
    if to_date is not None:
        stmt = stmt.where(BlockedTime.blocked_date <= to_date)
    rows = await db.execute(stmt.order_by(BlockedTime.blocked_date, BlockedTime.start_time))
    return rows.scalars().all()


async def get_blocked_time(db: AsyncSession, *, coach_id: UUID, block_id: UUID) -> Optional[BlockedTime]:
    row = await db.execute(
        select(BlockedTime).where(BlockedTime.id == block_id, BlockedTime.coach_id == coach_id)
    )
    return row.scalar_one_or_none()


async def delete_blocked_time(db: AsyncSession, block: BlockedTime) -> None:
    await db.delete(block)
    await db.flush()
