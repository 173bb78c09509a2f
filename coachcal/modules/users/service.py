# coachcal/modules/users/service.py
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from coachcal.core.config import settings
from coachcal.core.security import create_access_token, hash_password, verify_password
from coachcal.modules.users import repository as users_repo
from coachcal.modules.users.models import User, UserRole
from coachcal.modules.users.schemas import LoginRequest, LoginResponse, RegisterRequest, UserPublic

logger = logging.getLogger(__name__)


# Service-level errors (map them to HTTP in the router)
class EmailAlreadyExists(Exception):
    pass


class InvalidCredentials(Exception):
    pass


class UnknownCoach(Exception):
    pass


def to_public(user: User) -> UserPublic:
    return UserPublic.model_validate(user)


async def register_user(session: AsyncSession, payload: RegisterRequest) -> UserPublic:
    """
    Business flow for user registration:
      1) Check email uniqueness.
      2) For clients linked to a coach, make sure that coach exists.
      3) Hash password and persist.
    """
    existing = await users_repo.get_by_email(session, payload.email)
    if existing:
        raise EmailAlreadyExists("email_already_exists")

    coach_id = None
    if payload.coach_id is not None:
        coach = await users_repo.get_by_id(session, payload.coach_id)
        if coach is None or not coach.is_coach:
            raise UnknownCoach("coach_not_found")
        coach_id = coach.id

    try:
        user = await users_repo.create_user(
            session,
            email=payload.email,
            password_hash=hash_password(payload.password.get_secret_value()),
            display_name=payload.display_name,
            role=UserRole(payload.role.value),
            coach_id=coach_id,
        )
    except users_repo.EmailAlreadyExistsError as exc:
        raise EmailAlreadyExists("email_already_exists") from exc

    logger.info("Registered %s user %s", user.role, user.id)
    return to_public(user)


async def login_user(session: AsyncSession, payload: LoginRequest) -> LoginResponse:
    user = await users_repo.get_by_email(session, payload.email)
    if not user or not user.is_active:
        raise InvalidCredentials("invalid_credentials")

    if not verify_password(payload.password.get_secret_value(), user.password_hash):
        raise InvalidCredentials("invalid_credentials")

    access = create_access_token(subject=str(user.id), email=user.email, role=user.role)
    return LoginResponse(
        access_token=access,
        expires_in=settings.ACCESS_EXPIRES_MIN * 60,
    )
