# coachcal/routers/bookings.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from coachcal.core.errors import Conflict, NotFound, ValidationError
from coachcal.core.permission import require_roles
from coachcal.db.sql import get_session
from coachcal.dependencies import get_current_user, get_now
from coachcal.modules.appointments.schemas import (
    AppointmentListPage,
    AppointmentPublic,
    BookingCreateRequest,
    CancelRequest,
)
from coachcal.modules.appointments.service import (
    cancel_appointment,
    confirm_appointment,
    get_appointment,
    list_coach_appointments,
    list_my_bookings,
    request_booking,
)
from coachcal.modules.appointments.states import AppointmentStatus
from coachcal.modules.users.models import User

router = APIRouter(tags=["bookings"])


@router.post(
    "/bookings",
    response_model=AppointmentPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Request a booking (created as PENDING)",
    responses={
        400: {"description": "Outside the notice/advance window"},
        404: {"description": "Calendar not found"},
        409: {"description": "Slot already taken"},
    },
)
async def bookings_create(
    payload: BookingCreateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    try:
        return await request_booking(session, current_user, payload, now)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.code)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.code)
    except Conflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.code)


@router.get(
    "/bookings/my",
    response_model=AppointmentListPage,
    summary="Retrieve current user's bookings",
)
async def bookings_my(
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return await list_my_bookings(session, current_user, status_filter, limit, offset)


@router.get(
    "/coach/appointments",
    response_model=List[AppointmentPublic],
    summary="Coach agenda ordered by date and time",
)
async def coach_appointments(
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_roles("coach")),
):
    return await list_coach_appointments(session, current_user, from_date, to_date, status_filter)


@router.get("/bookings/{appointment_id}", response_model=AppointmentPublic)
async def bookings_get(
    appointment_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        return await get_appointment(session, current_user, appointment_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.code)


@router.post(
    "/bookings/{appointment_id}/confirm",
    response_model=AppointmentPublic,
    summary="Coach confirms a pending booking",
)
async def bookings_confirm(
    appointment_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        return await confirm_appointment(session, current_user, appointment_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.code)
    except Conflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.code)


@router.post(
    "/bookings/{appointment_id}/cancel",
    response_model=AppointmentPublic,
    summary="Cancel a booking",
)
async def bookings_cancel(
    appointment_id: UUID,
    payload: Optional[CancelRequest] = Body(None),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    reason = payload.reason if payload else None
    try:
        return await cancel_appointment(session, current_user, appointment_id, reason)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.code)
    except Conflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.code)
