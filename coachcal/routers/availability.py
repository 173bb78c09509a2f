# coachcal/routers/availability.py
from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from coachcal.core.errors import NotFound, ValidationError
from coachcal.db.sql import get_session
from coachcal.dependencies import get_current_user, get_now
from coachcal.modules.appointments.schemas import AvailabilityResponse, SlotsResponse
from coachcal.modules.scheduling.service import get_availability, get_slots
from coachcal.modules.users.models import User

router = APIRouter(tags=["availability"])


@router.get(
    "/slots",
    response_model=SlotsResponse,
    summary="Bookable start times of a calendar on one date",
)
async def slots_for_date(
    calendar_id: UUID = Query(...),
    day: date = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    try:
        return await get_slots(session, user, calendar_id, day, now)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.code)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.code)


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    summary="Dates in a range that have at least one free slot (month view)",
)
async def availability_for_range(
    calendar_id: UUID = Query(...),
    from_date: date = Query(..., alias="from"),
    to_date: date = Query(..., alias="to"),
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    try:
        return await get_availability(session, user, calendar_id, from_date, to_date, now)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.code)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.code)
