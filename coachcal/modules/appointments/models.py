# coachcal/modules/appointments/models.py
from __future__ import annotations

import datetime as dt
import uuid
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from coachcal.db.base import Base, ReprMixin, TimestampMixin, UUIDPKMixin
from coachcal.modules.appointments.states import AppointmentStatus


class Appointment(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    A reservation on a coach's calendar.

    duration_minutes / buffer_minutes are copied from the calendar when the
    booking is created; later calendar edits do not touch existing rows.
    """

    __tablename__ = "appointments"

    calendar_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("coach_calendars.id", ondelete="RESTRICT"),
        nullable=False,
    )
    coach_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    booker_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    booker_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    booker_email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    appointment_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    buffer_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AppointmentStatus.PENDING.value,
        server_default=AppointmentStatus.PENDING.value,
    )
    confirmed_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_appt_duration_positive"),
        CheckConstraint("buffer_minutes >= 0", name="ck_appt_buffer_non_negative"),
        CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'CANCELLED')", name="ck_appt_status_valid"
        ),
        # At most one live booking per coach and start time
        Index(
            "uq_appt_coach_day_start_active",
            "coach_id",
            "appointment_date",
            "start_time",
            unique=True,
            postgresql_where=text("status <> 'CANCELLED'"),
            sqlite_where=text("status <> 'CANCELLED'"),
        ),
        Index("ix_appt_coach_date", "coach_id", "appointment_date"),
        Index("ix_appt_booker", "booker_id", "appointment_date"),
        Index("ix_appt_calendar", "calendar_id"),
    )
