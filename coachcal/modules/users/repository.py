# coachcal/modules/users/repository.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coachcal.modules.users.models import User, UserRole


class EmailAlreadyExistsError(Exception):
    """Raised when trying to insert a user with an email that already exists."""


class InvalidUserDataError(Exception):
    """Raised when DB-level constraints fail (e.g., bad CHECK constraints)."""


async def get_by_id(session: AsyncSession, user_id: UUID | str) -> Optional[User]:
    """
    Returns a User by primary key or None if not found.
    """
    if isinstance(user_id, str):
        try:
            user_id = UUID(user_id)
        except ValueError:
            return None
    return await session.get(User, user_id)


async def get_by_email(session: AsyncSession, email: str) -> Optional[User]:
    email = email.strip().lower()
    stmt = select(User).where(User.email == email)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def lock_coach(session: AsyncSession, coach_id: UUID) -> None:
    """
    Hold a write lock on the coach until the transaction ends, so concurrent
    bookings for the same coach serialize.

    SQLite drops FOR UPDATE; there a no-op UPDATE of the coach row takes the
    database write lock instead, and other writers wait on the busy timeout.
    """
    if session.get_bind().dialect.name == "sqlite":
        stmt = (
            update(User)
            .where(User.id == coach_id)
            .values(updated_at=User.updated_at)
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)
        return
    await session.execute(select(User.id).where(User.id == coach_id).with_for_update())


async def create_user(
    session: AsyncSession,
    *,
    email: str,
    password_hash: str,
    display_name: str,
    role: UserRole | str = UserRole.CLIENT,
    coach_id: Optional[UUID] = None,
    is_active: bool = True,
) -> User:
    """
    Inserts a new user row and returns the persisted ORM instance.

    Expects an already hashed password. Uniqueness and CHECK violations are
    mapped to the exceptions above.
    """
    role_value = role.value if isinstance(role, UserRole) else str(role)

    user = User(
        email=email.strip().lower(),
        password_hash=password_hash,
        display_name=display_name.strip(),
        role=role_value,
        coach_id=coach_id,
        is_active=is_active,
    )

    session.add(user)
    try:
        # Flush to force INSERT and surface constraint violations here
        await session.flush()
    except IntegrityError as exc:
        message = str(exc.orig).lower() if exc.orig else str(exc).lower()

        if "uq_users_email" in message or "unique" in message:
            raise EmailAlreadyExistsError("Email already registered") from exc

        raise InvalidUserDataError("User data violates DB constraints") from exc

    return user
