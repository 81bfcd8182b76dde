"""Bearer-token authentication for the API."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Header

from shared.config import get_settings
from shared.errors import AuthError

JWT_ALGORITHM = "HS256"


@dataclass
class PortalUser:
    """Authenticated caller. Injected by require_auth."""

    user_id: uuid.UUID
    email: str = ""


def create_access_token(
    user_id: uuid.UUID,
    email: str = "",
    expires_in: timedelta | None = None,
) -> str:
    """Issue a signed token in the same shape the auth provider uses."""
    settings = get_settings()
    if not settings.jwt_secret:
        raise AuthError("Auth not configured")
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": now + (expires_in or timedelta(minutes=settings.jwt_ttl_minutes)),
    }
    if settings.jwt_audience:
        payload["aud"] = settings.jwt_audience
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def _decode_token(token: str) -> PortalUser:
    """Decode and validate a JWT, returning a PortalUser."""
    settings = get_settings()
    if not settings.jwt_secret:
        raise AuthError("Auth not configured")
    options = {} if settings.jwt_audience else {"verify_aud": False}
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[JWT_ALGORITHM],
            audience=settings.jwt_audience or None,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthError("Invalid token subject")

    return PortalUser(user_id=user_id, email=payload.get("email", ""))


async def require_auth(authorization: str | None = Header(default=None)) -> PortalUser:
    """FastAPI dependency: extract and validate JWT from Authorization header.

    Expects: Authorization: Bearer <jwt>
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("Missing Bearer token")
    token = authorization[7:]
    return _decode_token(token)
