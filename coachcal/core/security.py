# coachcal/core/security.py
"""
Password hashing and the bearer access token. There are no refresh tokens;
clients log in again when the access token expires.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from coachcal.core.config import settings

ALGORITHM = "HS256"
ACCESS = "access"

_pwd_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")


class InvalidTokenError(Exception):
    """Token missing, expired, badly signed or without the claims we need."""


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("Password must be a non-empty string")
    return _pwd_ctx.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not (plain_password and password_hash):
        return False
    try:
        return _pwd_ctx.verify(plain_password, password_hash)
    except ValueError:
        # unknown or corrupt hash format in storage
        return False


def create_access_token(*, subject: str, email: Optional[str] = None, role: Optional[str] = None) -> str:
    now = datetime.now(timezone.utc)
    claims: Dict[str, Any] = {
        "sub": subject,
        "type": ACCESS,
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_EXPIRES_MIN),
    }
    if email:
        claims["email"] = email
    if role:
        claims["role"] = role
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    if not token:
        raise InvalidTokenError("missing_token")
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise InvalidTokenError("invalid_token") from exc
    if "sub" not in payload or "type" not in payload:
        raise InvalidTokenError("invalid_claims")
    return payload


def is_access_token(payload: Dict[str, Any]) -> bool:
    return payload.get("type") == ACCESS
