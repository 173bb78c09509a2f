"""initial schema: users, calendars, weekly rules, blocked times, appointments

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(120), nullable=False),
        sa.Column("role", sa.String(20), server_default="client", nullable=False),
        sa.Column("coach_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("email = lower(email)", name="ck_users_email_lowercase"),
        sa.CheckConstraint("role IN ('coach', 'client', 'admin')", name="ck_users_role_valid"),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_coach", "users", ["coach_id"])

    op.create_table(
        "coach_calendars",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("coach_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("slot_duration_minutes", sa.Integer(), nullable=False),
        sa.Column("buffer_minutes", sa.Integer(), nullable=False),
        sa.Column("max_advance_days", sa.Integer(), nullable=False),
        sa.Column("min_notice_hours", sa.Integer(), nullable=False),
        sa.Column("is_public", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("archived_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("slot_duration_minutes > 0", name="ck_calendar_duration_positive"),
        sa.CheckConstraint("buffer_minutes >= 0", name="ck_calendar_buffer_non_negative"),
        sa.CheckConstraint("max_advance_days >= 0", name="ck_calendar_advance_non_negative"),
        sa.CheckConstraint("min_notice_hours >= 0", name="ck_calendar_notice_non_negative"),
    )
    op.create_index("ix_calendar_coach", "coach_calendars", ["coach_id"])

    op.create_table(
        "calendar_availability",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "calendar_id", sa.Uuid(), sa.ForeignKey("coach_calendars.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("day_of_week", sa.SmallInteger(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_rule_day_of_week"),
        sa.CheckConstraint("start_time < end_time", name="ck_rule_time_order"),
    )
    op.create_index("ix_rule_calendar_day", "calendar_availability", ["calendar_id", "day_of_week"])

    op.create_table(
        "coach_blocked_times",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("coach_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("blocked_date", sa.Date(), nullable=False),
        sa.Column("all_day", sa.Boolean(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("reason", sa.String(255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(all_day AND start_time IS NULL AND end_time IS NULL) OR "
            "(NOT all_day AND start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)",
            name="ck_blocked_time_shape",
        ),
    )
    op.create_index("ix_blocked_coach_date", "coach_blocked_times", ["coach_id", "blocked_date"])

    op.create_table(
        "appointments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "calendar_id", sa.Uuid(), sa.ForeignKey("coach_calendars.id", ondelete="RESTRICT"), nullable=False
        ),
        sa.Column("coach_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("booker_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("booker_name", sa.String(120), nullable=True),
        sa.Column("booker_email", sa.String(320), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("buffer_minutes", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), server_default="PENDING", nullable=False),
        sa.Column("confirmed_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("duration_minutes > 0", name="ck_appt_duration_positive"),
        sa.CheckConstraint("buffer_minutes >= 0", name="ck_appt_buffer_non_negative"),
        sa.CheckConstraint("status IN ('PENDING', 'CONFIRMED', 'CANCELLED')", name="ck_appt_status_valid"),
    )
    op.create_index(
        "uq_appt_coach_day_start_active",
        "appointments",
        ["coach_id", "appointment_date", "start_time"],
        unique=True,
        postgresql_where=sa.text("status <> 'CANCELLED'"),
        sqlite_where=sa.text("status <> 'CANCELLED'"),
    )
    op.create_index("ix_appt_coach_date", "appointments", ["coach_id", "appointment_date"])
    op.create_index("ix_appt_booker", "appointments", ["booker_id", "appointment_date"])
    op.create_index("ix_appt_calendar", "appointments", ["calendar_id"])


def downgrade() -> None:
    op.drop_table("appointments")
    op.drop_table("coach_blocked_times")
    op.drop_table("calendar_availability")
    op.drop_table("coach_calendars")
    op.drop_table("users")
