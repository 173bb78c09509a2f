# coachcal/modules/appointments/repository.py
from __future__ import annotations

from datetime import date
from typing import Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from coachcal.modules.appointments.models import Appointment
from coachcal.modules.appointments.states import OCCUPYING_STATUSES, AppointmentStatus


async def get_by_id(db: AsyncSession, appointment_id: UUID, *, for_update: bool = False) -> Optional[Appointment]:
    stmt = select(Appointment).where(Appointment.id == appointment_id)
    if for_update:
        stmt = stmt.with_for_update()
    return (await db.execute(stmt)).scalar_one_or_none()


async def list_occupying(
    db: AsyncSession,
    *,
    coach_id: UUID,
    from_date: date,
    to_date: date,
) -> Sequence[Appointment]:
    """
    Every slot-holding appointment of the coach in the date range, across all
    of the coach's calendars.
    """
    stmt = select(Appointment).where(
        Appointment.coach_id == coach_id,
        Appointment.appointment_date >= from_date,
        Appointment.appointment_date <= to_date,
        Appointment.status.in_([s.value for s in OCCUPYING_STATUSES]),
    )
    # always re-read: rows from an earlier statement in this session may be stale
    stmt = stmt.execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalars().all()


async def add(db: AsyncSession, appt: Appointment) -> Appointment:
    db.add(appt)
    await db.flush()
    return appt


async def list_by_booker(
    db: AsyncSession,
    *,
    booker_id: UUID,
    status: Optional[AppointmentStatus] = None,
    limit: int = 20,
    offset: int = 0,
) -> Tuple[Sequence[Appointment], int]:
    cond = [Appointment.booker_id == booker_id]
    if status is not None:
        cond.append(Appointment.status == status.value)

    total_stmt = select(func.count()).select_from(Appointment).where(*cond)
    total = (await db.execute(total_stmt)).scalar_one()

    stmt = (
        select(Appointment)
        .where(*cond)
        .order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc())
        .limit(limit)
        .offset(offset)
    )
    return (await db.execute(stmt)).scalars().all(), total


async def list_by_coach(
    db: AsyncSession,
    *,
    coach_id: UUID,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    status: Optional[AppointmentStatus] = None,
) -> Sequence[Appointment]:
    stmt = select(Appointment).where(Appointment.coach_id == coach_id)
    if from_date is not None:
        stmt = stmt.where(Appointment.appointment_date >= from_date)
    if to_date is not None:
        stmt = stmt.where(Appointment.appointment_date <= to_date)
    if status is not None:
        stmt = stmt.where(Appointment.status == status.value)
    stmt = stmt.order_by(Appointment.appointment_date, Appointment.start_time)
    return (await db.execute(stmt)).scalars().all()
