# Bearer token helpers. Tokens are minted by the identity service that
# shares SECRET_KEY; this service only needs to issue them for tooling
# and tests, and to decode them on every authenticated request.

from __future__ import annotations

from datetime import timedelta
from typing import Any

from jose import jwt

from app.core.config import settings
from app.core.time import utcnow


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    to_encode = dict(data)
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode["exp"] = expire
    if "sub" in to_encode:
        to_encode["sub"] = str(to_encode["sub"])
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
