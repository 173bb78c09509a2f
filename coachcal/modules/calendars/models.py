# coachcal/modules/calendars/models.py
from __future__ import annotations

import uuid
from datetime import date, datetime, time
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    Time,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coachcal.db.base import Base, ReprMixin, TimestampMixin, UUIDPKMixin


class Calendar(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    One booking type of a coach ("Erstgespräch", "Check-in", ...) with its own policy.
    """

    __tablename__ = "coach_calendars"

    coach_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    slot_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    buffer_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_advance_days: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    min_notice_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=24)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    # set instead of deleting once appointments reference the calendar
    archived_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    rules: Mapped[List["AvailabilityRule"]] = relationship(
        back_populates="calendar",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [AvailabilityRule.day_of_week, AvailabilityRule.start_time],
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("slot_duration_minutes > 0", name="ck_calendar_duration_positive"),
        CheckConstraint("buffer_minutes >= 0", name="ck_calendar_buffer_non_negative"),
        CheckConstraint("max_advance_days >= 0", name="ck_calendar_advance_non_negative"),
        CheckConstraint("min_notice_hours >= 0", name="ck_calendar_notice_non_negative"),
        Index("ix_calendar_coach", "coach_id"),
    )


class AvailabilityRule(UUIDPKMixin, ReprMixin, Base):
    """
    Recurring weekly open window. day_of_week: 0 = Monday ... 6 = Sunday.
    """

    __tablename__ = "calendar_availability"

    calendar_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("coach_calendars.id", ondelete="CASCADE"),
        nullable=False,
    )
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    calendar: Mapped[Calendar] = relationship(back_populates="rules")

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_rule_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_rule_time_order"),
        Index("ix_rule_calendar_day", "calendar_id", "day_of_week"),
    )


class BlockedTime(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    Date-specific block owned by the coach; applies to all of the coach's calendars.
    """

    __tablename__ = "coach_blocked_times"

    coach_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    blocked_date: Mapped[date] = mapped_column(Date, nullable=False)
    all_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    start_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "(all_day AND start_time IS NULL AND end_time IS NULL) OR "
            "(NOT all_day AND start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)",
            name="ck_blocked_time_shape",
        ),
        Index("ix_blocked_coach_date", "coach_id", "blocked_date"),
    )
