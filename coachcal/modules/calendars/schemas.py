# coachcal/modules/calendars/schemas.py
from __future__ import annotations

from datetime import date, datetime, time
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from coachcal.core.config import settings
from coachcal.modules.scheduling.intervals import is_whole_minute


class CalendarCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    slot_duration_minutes: int = Field(default=settings.DEFAULT_SLOT_DURATION, gt=0, le=24 * 60)
    buffer_minutes: int = Field(default=settings.DEFAULT_BUFFER, ge=0)
    max_advance_days: int = Field(default=settings.DEFAULT_MAX_ADVANCE_DAYS, ge=0)
    min_notice_hours: int = Field(default=settings.DEFAULT_MIN_NOTICE_HOURS, ge=0)
    is_public: bool = False

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class CalendarUpdate(BaseModel):
    """
    Partial update; only fields that are sent are applied.
    Existing appointments keep their own duration/buffer.
    """
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = None
    slot_duration_minutes: Optional[int] = Field(default=None, gt=0, le=24 * 60)
    buffer_minutes: Optional[int] = Field(default=None, ge=0)
    max_advance_days: Optional[int] = Field(default=None, ge=0)
    min_notice_hours: Optional[int] = Field(default=None, ge=0)
    is_public: Optional[bool] = None


class CalendarPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    coach_id: UUID
    name: str
    description: Optional[str] = None
    slot_duration_minutes: int
    buffer_minutes: int
    max_advance_days: int
    min_notice_hours: int
    is_public: bool
    created_at: datetime
    updated_at: datetime


class RuleIn(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Monday ... 6 = Sunday")
    start_time: time
    end_time: time

    @field_validator("start_time", "end_time")
    @classmethod
    def _whole_minutes(cls, v: time) -> time:
        if not is_whole_minute(v):
            raise ValueError("times must be naive HH:MM values")
        return v

    @field_validator("end_time")
    @classmethod
    def _end_after_start(cls, v, info):
        start = info.data.get("start_time")
        if start and v <= start:
            raise ValueError("end_time must be after start_time")
        return v


class RulesReplace(BaseModel):
    rules: List[RuleIn] = Field(default_factory=list)


class RulePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    calendar_id: UUID
    day_of_week: int
    start_time: time
    end_time: time


class BlockedTimeCreate(BaseModel):
    blocked_date: date
    all_day: bool = True
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = Field(default=None, max_length=255)

    @field_validator("start_time", "end_time")
    @classmethod
    def _whole_minutes(cls, v: Optional[time]) -> Optional[time]:
        if v is not None and not is_whole_minute(v):
            raise ValueError("times must be naive HH:MM values")
        return v

    @model_validator(mode="after")
    def _check_shape(self):
        if self.all_day:
            if self.start_time is not None or self.end_time is not None:
                raise ValueError("all-day blocks take no start_time/end_time")
        else:
            if self.start_time is None or self.end_time is None:
                raise ValueError("partial blocks need start_time and end_time")
            if self.end_time <= self.start_time:
                raise ValueError("end_time must be after start_time")
        return self


class BlockedTimePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    coach_id: UUID
    blocked_date: date
    all_day: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = None
    created_at: datetime
