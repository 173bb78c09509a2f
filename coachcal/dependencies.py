# coachcal/dependencies.py
from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from coachcal.core.config import settings
from coachcal.core.security import InvalidTokenError, decode_token, is_access_token
from coachcal.db.sql import get_session
from coachcal.modules.users.models import User
from coachcal.modules.users.repository import get_by_id

# use /auth/token here so Swagger sends username/password to that endpoint
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/auth/token"
)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
) -> User:
    try:
        payload = decode_token(token)
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_token",
        )

    if not is_access_token(payload):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_token_type",
        )

    user = await get_by_id(session, payload.get("sub"))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="user_not_found",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="user_inactive",
        )
    return user


def get_now() -> datetime:
    """
    Coach-local wall clock, naive. Read once per request and passed down.
    """
    return datetime.now(ZoneInfo(settings.COACH_TIMEZONE)).replace(tzinfo=None)
