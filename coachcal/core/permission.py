# coachcal/core/permission.py
from __future__ import annotations

from typing import Any

from fastapi import Depends, HTTPException, status

from coachcal.dependencies import get_current_user
from coachcal.modules.users.models import User, UserRole


def require_roles(*allowed: str):
    """
    Role guard factory. Example: Depends(require_roles("coach", "admin"))
    """
    async def dep(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="forbidden_role",
            )
        return user
    return dep


def owns(user: User, owner_id: Any) -> bool:
    return str(user.id) == str(owner_id)


def can_view_calendar(user: User, calendar: Any) -> bool:
    """
    Owner and admins always; others when the calendar is public or they are
    a client linked to the owning coach.
    """
    if owns(user, calendar.coach_id) or user.role == UserRole.ADMIN.value:
        return True
    if calendar.is_public:
        return True
    return user.coach_id is not None and str(user.coach_id) == str(calendar.coach_id)
