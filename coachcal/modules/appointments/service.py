# coachcal/modules/appointments/service.py
"""
Booking lifecycle: request, confirm, cancel, plus the read side.

Every write commits explicitly and only then publishes its domain event, so
subscribers never hear about a booking that was rolled back.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coachcal.core.errors import AppointmentNotFound, OutsideBookingWindow, SlotTaken
from coachcal.core.permission import owns
from coachcal.db.base import utcnow
from coachcal.modules.appointments import repository as appt_repo
from coachcal.modules.appointments.models import Appointment
from coachcal.modules.appointments.schemas import (
    AppointmentListItem,
    AppointmentListPage,
    AppointmentPublic,
    BookingCreateRequest,
)
from coachcal.modules.appointments.states import (
    INITIAL_STATUS,
    Actor,
    AppointmentStatus,
    check_transition,
)
from coachcal.modules.calendars.service import load_visible_calendar
from coachcal.modules.events import (
    AppointmentCancelled,
    AppointmentConfirmed,
    AppointmentRequested,
    EventBus,
    event_bus,
)
from coachcal.modules.scheduling.intervals import to_minutes
from coachcal.modules.scheduling.service import build_slot_computer
from coachcal.modules.users import repository as users_repo
from coachcal.modules.users.models import User

logger = logging.getLogger(__name__)


def _to_public(appt: Appointment) -> AppointmentPublic:
    return AppointmentPublic.model_validate(appt)


def _to_list_item(appt: Appointment) -> AppointmentListItem:
    return AppointmentListItem.model_validate(appt)


def _actor_for(user: User, appt: Appointment) -> Optional[Actor]:
    if owns(user, appt.coach_id) or user.is_admin:
        return Actor.COACH
    if owns(user, appt.booker_id):
        return Actor.BOOKER
    return None


async def _load_for_actor(
    session: AsyncSession,
    user: User,
    appointment_id: UUID,
    *,
    for_update: bool = False,
) -> tuple[Appointment, Actor]:
    appt = await appt_repo.get_by_id(session, appointment_id, for_update=for_update)
    actor = _actor_for(user, appt) if appt is not None else None
    if appt is None or actor is None:
        raise AppointmentNotFound()
    return appt, actor


# REQUEST
async def request_booking(
    session: AsyncSession,
    user: User,
    payload: BookingCreateRequest,
    now: datetime,
    *,
    bus: EventBus = event_bus,
) -> AppointmentPublic:
    """
    Create a PENDING appointment if the requested start is still free.

    Steps:
    - Lock the coach row so concurrent requests for the same coach serialize.
    - Recompute the day's slots inside this transaction (never trust an
      earlier read by the client).
    - Insert with the calendar's current duration/buffer baked in.
    The partial unique index on (coach, date, start) backs the check up; a
    violation there is the same SlotTaken outcome.
    """
    calendar = await load_visible_calendar(session, user, payload.calendar_id)
    calendar_id = calendar.id
    day = payload.appointment_date
    start = to_minutes(payload.start_time)

    await users_repo.lock_coach(session, calendar.coach_id)
    computer = await build_slot_computer(session, calendar, day, day)

    if not computer.policy.allows_start(day, start, now):
        logger.debug("Booking outside window: calendar=%s %s %s", calendar.id, day, payload.start_time)
        raise OutsideBookingWindow()
    if start not in computer.slots_on_date(day, now):
        logger.info("Slot taken: calendar=%s %s %s", calendar.id, day, payload.start_time)
        raise SlotTaken()

    appt = Appointment(
        calendar_id=calendar.id,
        coach_id=calendar.coach_id,
        booker_id=user.id,
        booker_name=payload.booker_name or user.display_name,
        booker_email=payload.booker_email or user.email,
        note=payload.note,
        appointment_date=day,
        start_time=payload.start_time.replace(second=0, microsecond=0),
        duration_minutes=calendar.slot_duration_minutes,
        buffer_minutes=calendar.buffer_minutes,
        status=INITIAL_STATUS.value,
    )
    try:
        await appt_repo.add(session, appt)
        await session.commit()
    except IntegrityError as exc:
        # rollback expires every instance in the session; only plain values from here on
        await session.rollback()
        logger.info("Slot taken at insert: calendar=%s %s %s", calendar_id, day, payload.start_time)
        raise SlotTaken() from exc

    logger.info("Appointment %s requested by %s", appt.id, user.id)
    await bus.publish(AppointmentRequested.from_appointment(appt))
    return _to_public(appt)


# CONFIRM
async def confirm_appointment(
    session: AsyncSession,
    user: User,
    appointment_id: UUID,
    *,
    bus: EventBus = event_bus,
) -> AppointmentPublic:
    """
    PENDING -> CONFIRMED, coach only. The slot has been held since creation,
    so nothing is re-validated against other bookings.
    """
    appt, actor = await _load_for_actor(session, user, appointment_id, for_update=True)
    appt.status = check_transition(appt.status, AppointmentStatus.CONFIRMED, actor).value
    appt.confirmed_at = utcnow()
    await session.flush()
    await session.commit()

    logger.info("Appointment %s confirmed by %s", appt.id, user.id)
    await bus.publish(AppointmentConfirmed.from_appointment(appt))
    return _to_public(appt)


# CANCEL
async def cancel_appointment(
    session: AsyncSession,
    user: User,
    appointment_id: UUID,
    reason: Optional[str] = None,
    *,
    bus: EventBus = event_bus,
) -> AppointmentPublic:
    """
    PENDING -> CANCELLED (coach or booker), CONFIRMED -> CANCELLED (coach).
    The slot is free again for the next slot query.
    """
    appt, actor = await _load_for_actor(session, user, appointment_id, for_update=True)
    appt.status = check_transition(appt.status, AppointmentStatus.CANCELLED, actor).value
    appt.cancelled_at = utcnow()
    appt.cancellation_reason = reason
    await session.flush()
    await session.commit()

    logger.info("Appointment %s cancelled by %s (%s)", appt.id, actor.value, user.id)
    await bus.publish(AppointmentCancelled.from_appointment(appt, reason=reason))
    return _to_public(appt)


# READS
async def get_appointment(session: AsyncSession, user: User, appointment_id: UUID) -> AppointmentPublic:
    appt, _ = await _load_for_actor(session, user, appointment_id)
    return _to_public(appt)


async def list_my_bookings(
    session: AsyncSession,
    user: User,
    status: Optional[AppointmentStatus],
    limit: int,
    offset: int,
) -> AppointmentListPage:
    rows, total = await appt_repo.list_by_booker(
        session, booker_id=user.id, status=status, limit=limit, offset=offset
    )
    return AppointmentListPage(
        items=[_to_list_item(a) for a in rows],
        total=total,
        limit=limit,
        offset=offset,
        has_next=offset + limit < total,
    )


async def list_coach_appointments(
    session: AsyncSession,
    coach: User,
    from_date: Optional[date],
    to_date: Optional[date],
    status: Optional[AppointmentStatus] = None,
) -> List[AppointmentPublic]:
    rows = await appt_repo.list_by_coach(
        session, coach_id=coach.id, from_date=from_date, to_date=to_date, status=status
    )
    return [_to_public(a) for a in rows]
