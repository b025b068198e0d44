"""Bearer-token identity for the status store API.

Tokens are HS256 JWTs whose ``sub`` is the viewer's user id. Read routes accept
anonymous callers (``get_optional_user``); every mutation requires a viewer.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)

ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
TOKEN_TTL = timedelta(minutes=int(os.getenv("JWT_EXPIRES_MINUTES", "1440")))

MIN_SIGNING_KEY_LENGTH = 16
_PLACEHOLDER_KEYS = frozenset({"changeme", "change-me", "placeholder", "secret", "your-key-here"})


@lru_cache(maxsize=1)
def _signing_key() -> str:
    """Return ``JWT_SECRET_KEY``; unset, placeholder or short keys are refused."""

    key = (os.getenv("JWT_SECRET_KEY") or "").strip()
    if not key or key.lower() in _PLACEHOLDER_KEYS:
        raise RuntimeError("JWT_SECRET_KEY is required and must not use placeholder defaults")
    if len(key) < MIN_SIGNING_KEY_LENGTH:
        raise RuntimeError(f"JWT_SECRET_KEY must be at least {MIN_SIGNING_KEY_LENGTH} characters long")
    return key


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(viewer_id: UUID, *, ttl: timedelta | None = None) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {"sub": str(viewer_id), "iat": issued_at, "exp": issued_at + (ttl or TOKEN_TTL)}
    return jwt.encode(claims, _signing_key(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> UUID:
    """Return the viewer id carried by ``token`` or raise a 401."""

    try:
        claims = jwt.decode(token, _signing_key(), algorithms=[ALGORITHM])
        return UUID(str(claims["sub"]))
    except (JWTError, KeyError, ValueError) as exc:
        raise _unauthorized("Invalid token") from exc


def _bearer_token(credentials: HTTPAuthorizationCredentials | None) -> str | None:
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    return credentials.credentials


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: Session = Depends(get_session),
) -> User:
    token = _bearer_token(credentials)
    if token is None:
        raise _unauthorized("Missing bearer token")

    viewer = db.get(User, decode_access_token(token))
    if viewer is None:
        logger.info("Rejected bearer token for unknown viewer")
        raise _unauthorized("Invalid token")
    return viewer


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: Session = Depends(get_session),
) -> User | None:
    """Like :func:`get_current_user` but anonymous or invalid tokens yield ``None``."""

    token = _bearer_token(credentials)
    if token is None:
        return None
    try:
        viewer_id = decode_access_token(token)
    except HTTPException:
        return None
    return db.get(User, viewer_id)


__all__ = [
    "ALGORITHM",
    "TOKEN_TTL",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "get_optional_user",
]
