"""
Caller identity.

Requests carry a signed HS256 token in the ``x-auth-token`` header whose
``sub`` claim is the user id.  ``verify_caller`` turns that token into a
caller id or raises ``AuthError``; issuing tokens is limited to
``create_access_token``, used by the seed script and the tests.
"""
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Header

from postfeed.config import settings
from postfeed.errors import AuthError


def create_access_token(user_id: int, expires_minutes: int | None = None) -> str:
    lifetime = timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_caller(token: str | None) -> int:
    if not token:
        raise AuthError("No token, authorization denied")
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        return int(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError) as exc:
        raise AuthError("Token is not valid") from exc


async def get_caller_id(x_auth_token: str | None = Header(default=None)) -> int:
    """FastAPI dependency resolving the caller id for the current request."""
    return verify_caller(x_auth_token)
