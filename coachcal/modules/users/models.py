# coachcal/modules/users/models.py
from __future__ import annotations

import uuid
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column

from coachcal.db.base import Base, ReprMixin, TimestampMixin, UUIDPKMixin


class UserRole(PyEnum):
    COACH = "coach"
    CLIENT = "client"
    ADMIN = "admin"


class User(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        index=True,
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    display_name: Mapped[str] = mapped_column(String(120), nullable=False)

    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.CLIENT.value, server_default=UserRole.CLIENT.value
    )

    # A client may belong to one coach; that coach's non-public calendars become visible
    coach_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        CheckConstraint("email = lower(email)", name="ck_users_email_lowercase"),
        CheckConstraint(
            "role IN ('coach', 'client', 'admin')", name="ck_users_role_valid"
        ),
        Index("ix_users_role", "role"),
        Index("ix_users_coach", "coach_id"),
    )

    @property
    def is_coach(self) -> bool:
        return self.role == UserRole.COACH.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
