# coachcal/modules/users/schemas.py
from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, SecretStr, StringConstraints, field_validator


class Role(str, Enum):
    coach = "coach"
    client = "client"
    admin = "admin"


class RegisterRole(str, Enum):
    """Roles a user may pick at sign-up; admins are promoted out of band."""

    coach = "coach"
    client = "client"


NameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=120)]

PASSWORD_RE = re.compile(r"^(?=.*[A-Za-z])(?=.*\d)[A-Za-z\d\S]{8,64}$")


class RegisterRequest(BaseModel):
    email: EmailStr = Field(...)
    password: SecretStr = Field(..., description="8–64 chars, at least one letter and one digit")
    display_name: NameStr
    role: RegisterRole = RegisterRole.client
    coach_id: Optional[UUID] = Field(default=None, description="Coach this client trains with")

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: SecretStr) -> SecretStr:
        if not PASSWORD_RE.match(v.get_secret_value()):
            raise ValueError(
                "Password must be 8–64 chars and include at least one letter and one digit"
            )
        return v


class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: EmailStr
    role: Role
    display_name: str
    coach_id: Optional[UUID] = None
    is_active: bool
    created_at: datetime


RegisterResponse = UserPublic
MeResponse = UserPublic


class LoginRequest(BaseModel):
    email: EmailStr
    password: SecretStr

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class TokenPair(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


LoginResponse = TokenPair
