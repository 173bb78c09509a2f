# coachcal/modules/appointments/schemas.py
from __future__ import annotations

import datetime as dt
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from coachcal.modules.scheduling.intervals import is_whole_minute


class BookingCreateRequest(BaseModel):
    """
    Payload to request a booking.
    - booker_id is taken from current_user, never from the body.
    - booker_name / booker_email default to the account's values.
    """
    model_config = ConfigDict(populate_by_name=True)

    calendar_id: UUID
    appointment_date: dt.date = Field(..., alias="date")
    start_time: dt.time = Field(..., alias="time", description="HH:MM, 24h, coach-local")
    booker_name: Optional[str] = Field(default=None, max_length=120)
    booker_email: Optional[EmailStr] = None
    note: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("start_time")
    @classmethod
    def _whole_minutes(cls, v: dt.time) -> dt.time:
        if not is_whole_minute(v):
            raise ValueError("time must be a naive HH:MM value")
        return v


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class AppointmentPublic(BaseModel):
    """
    DTO returns a detailed appointment.
    """
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    calendar_id: UUID
    coach_id: UUID
    booker_id: UUID
    booker_name: Optional[str] = None
    booker_email: Optional[str] = None
    note: Optional[str] = None
    appointment_date: dt.date
    start_time: dt.time
    duration_minutes: int
    buffer_minutes: int
    status: str
    created_at: dt.datetime
    updated_at: dt.datetime
    confirmed_at: Optional[dt.datetime] = None
    cancelled_at: Optional[dt.datetime] = None
    cancellation_reason: Optional[str] = None


class AppointmentListItem(BaseModel):
    """
    Used for lists
    """
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    calendar_id: UUID
    coach_id: UUID
    booker_id: UUID
    appointment_date: dt.date
    start_time: dt.time
    duration_minutes: int
    status: str
    created_at: dt.datetime


class AppointmentListPage(BaseModel):
    """
    Page the appointments list (with pagination).
    """
    items: List[AppointmentListItem]
    total: int
    limit: int
    offset: int
    has_next: bool


class SlotsResponse(BaseModel):
    calendar_id: UUID
    date: dt.date
    slots: List[str] = Field(..., description="Bookable start times, HH:MM ascending")


class AvailabilityResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    calendar_id: UUID
    from_date: dt.date = Field(..., alias="from")
    to_date: dt.date = Field(..., alias="to")
    dates: List[dt.date]
