# coachcal/routers/calendars.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from coachcal.core.errors import Conflict, NotFound, ValidationError
from coachcal.core.permission import require_roles
from coachcal.db.sql import get_session
from coachcal.dependencies import get_current_user, get_now
from coachcal.modules.calendars import service as svc
from coachcal.modules.calendars.schemas import (
    BlockedTimeCreate,
    BlockedTimePublic,
    CalendarCreate,
    CalendarPublic,
    CalendarUpdate,
    RuleIn,
    RulePublic,
    RulesReplace,
)
from coachcal.modules.users.models import User

router = APIRouter(tags=["calendars"])

coach_only = require_roles("coach", "admin")


# ---- calendars ----

@router.post(
    "/calendars",
    response_model=CalendarPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Create a calendar (booking type) for the current coach",
)
async def calendars_create(
    payload: CalendarCreate,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(coach_only),
):
    try:
        return await svc.create_calendar(session, user, payload)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.code)


@router.get(
    "/calendars",
    response_model=List[CalendarPublic],
    summary="List the current coach's calendars",
)
async def calendars_list(
    session: AsyncSession = Depends(get_session),
    user: User = Depends(coach_only),
):
    return await svc.list_calendars(session, user)


@router.get(
    "/coaches/{coach_id}/calendars",
    response_model=List[CalendarPublic],
    summary="Calendars of a coach visible to the caller",
)
async def coach_calendars(
    coach_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return await svc.list_visible_calendars(session, user, coach_id)


@router.get("/calendars/{calendar_id}", response_model=CalendarPublic)
async def calendars_get(
    calendar_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    try:
        return await svc.get_calendar(session, user, calendar_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.code)


@router.patch("/calendars/{calendar_id}", response_model=CalendarPublic)
async def calendars_update(
    calendar_id: UUID,
    payload: CalendarUpdate,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(coach_only),
):
    try:
        return await svc.update_calendar(session, user, calendar_id, payload)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.code)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.code)


@router.delete("/calendars/{calendar_id}", status_code=status.HTTP_204_NO_CONTENT)
async def calendars_delete(
    calendar_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(coach_only),
    now: datetime = Depends(get_now),
):
    try:
        await svc.delete_calendar(session, user, calendar_id, today=now.date())
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.code)
    except Conflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.code)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---- weekly rules ----

@router.get("/calendars/{calendar_id}/rules", response_model=List[RulePublic])
async def rules_list(
    calendar_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    try:
        return await svc.list_rules(session, user, calendar_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.code)


@router.put(
    "/calendars/{calendar_id}/rules",
    response_model=List[RulePublic],
    summary="Replace the whole weekly availability grid",
)
async def rules_replace(
    calendar_id: UUID,
    payload: RulesReplace,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(coach_only),
):
    try:
        return await svc.replace_rules(session, user, calendar_id, payload.rules)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.code)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.code)


@router.post(
    "/calendars/{calendar_id}/rules",
    response_model=RulePublic,
    status_code=status.HTTP_201_CREATED,
)
async def rules_add(
    calendar_id: UUID,
    payload: RuleIn,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(coach_only),
):
    try:
        return await svc.add_rule(session, user, calendar_id, payload)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.code)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.code)


@router.delete("/calendars/{calendar_id}/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def rules_delete(
    calendar_id: UUID,
    rule_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(coach_only),
):
    try:
        await svc.delete_rule(session, user, calendar_id, rule_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.code)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---- blocked times ----

@router.post(
    "/blocked-times",
    response_model=BlockedTimePublic,
    status_code=status.HTTP_201_CREATED,
    summary="Block a whole day or a time range for all of the coach's calendars",
)
async def blocked_times_create(
    payload: BlockedTimeCreate,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(coach_only),
):
    try:
        return await svc.add_blocked_time(session, user, payload)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.code)


@router.get(
    "/blocked-times",
    response_model=List[BlockedTimePublic],
    summary="Upcoming blocks of the current coach",
)
async def blocked_times_list(
    from_date: Optional[date] = Query(None, alias="from", description="Defaults to today"),
    to_date: Optional[date] = Query(None, alias="to"),
    session: AsyncSession = Depends(get_session),
    user: User = Depends(coach_only),
    now: datetime = Depends(get_now),
):
    return await svc.list_blocked_times(session, user, from_date or now.date(), to_date)


@router.delete("/blocked-times/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
async def blocked_times_delete(
    block_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(coach_only),
):
    try:
        await svc.delete_blocked_time(session, user, block_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.code)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
