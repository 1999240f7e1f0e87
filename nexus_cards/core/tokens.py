"""JWT access tokens and opaque one-time tokens."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from .config import get_settings


@dataclass(frozen=True)
class TokenPayload:
    user_id: str
    email: str
    role: str
    issued_at: datetime
    expires_at: datetime


def create_access_token(*, user_id: str, email: str, role: str, ttl_seconds: int | None = None) -> str:
    """Return a signed JWT for the supplied identity."""
    settings = get_settings()
    ttl = ttl_seconds if ttl_seconds is not None else settings.jwt_ttl_seconds
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenPayload:
    """Decode ``token``; raises ``jwt.PyJWTError`` when invalid or expired."""
    settings = get_settings()
    data = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "iat", "exp"]},
    )
    return TokenPayload(
        user_id=str(data["sub"]),
        email=str(data.get("email", "")),
        role=str(data.get("role", "USER")),
        issued_at=datetime.fromtimestamp(int(data["iat"]), tz=timezone.utc),
        expires_at=datetime.fromtimestamp(int(data["exp"]), tz=timezone.utc),
    )


def mint_opaque_token(length: int = 32) -> str:
    """Random URL-safe token for verification and reset links."""
    return secrets.token_urlsafe(length)
