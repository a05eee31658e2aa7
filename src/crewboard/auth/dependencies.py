"""FastAPI auth dependencies: the authentication gate.

Learn: These are used as Depends() in route handlers to extract
and validate the current user from the request.

Two variants:
1. protect: strict; 401 on a missing, bad or stale token
2. is_logged_in: permissive; anonymous on any auth failure

Token sources, in order: `Authorization: Bearer <token>` header, then
the `jwt` cookie set at login.
"""

import re
import uuid
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from crewboard.auth.jwt import TokenError, verify_token
from crewboard.config import Settings
from crewboard.db.engine import get_db
from crewboard.db.models import User
from crewboard.errors import AppError, Unauthorized

TOKEN_COOKIE = "jwt"

_BEARER = re.compile(r"^bearer\s+", re.IGNORECASE)


def extract_token(
    authorization: Optional[str], cookie: Optional[str] = None
) -> Optional[str]:
    """Pick the session token out of the header or cookie.

    The header wins when both are present. The scheme is matched
    case-insensitively and extra whitespace or a repeated "Bearer"
    ("Bearer Bearer abc") is tolerated; the last word is the token.
    A header with some other scheme is ignored.
    """
    if authorization:
        header = authorization.strip()
        if _BEARER.match(header):
            parts = header.split()
            if len(parts) >= 2:
                return parts[-1]
    return cookie or None


def get_settings(request: Request) -> Settings:
    """The Settings the running app was built with."""
    return request.app.state.settings


async def _resolve_user(token: str, request: Request, db: AsyncSession) -> User:
    payload = verify_token(token, get_settings(request))
    try:
        user_id = uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise TokenError("Invalid token. Please log in again!")

    user = await db.get(User, user_id)
    if not user:
        # Deleted account still holding a valid token
        raise Unauthorized("The user belonging to this token does no longer exist.")
    return user


async def protect(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the current user (required, 401 if no valid token).

    Learn: This is the "hard" auth dependency. The user is also parked
    on request.state.user for anything downstream that only has the
    request (middleware, logging).
    """
    token = extract_token(
        request.headers.get("authorization"),
        request.cookies.get(TOKEN_COOKIE),
    )
    if not token:
        raise Unauthorized("You are not logged in! Please log in to get access.")

    user = await _resolve_user(token, request, db)
    request.state.user = user
    return user


async def is_logged_in(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Resolve the current user if possible (optional, never raises for auth).

    Learn: This is the "soft" auth dependency, for endpoints that
    personalize output but don't require login. Any token problem
    leaves the request anonymous instead of failing it.
    """
    token = extract_token(
        request.headers.get("authorization"),
        request.cookies.get(TOKEN_COOKIE),
    )
    if not token:
        return None

    try:
        user = await _resolve_user(token, request, db)
    except AppError:
        return None

    request.state.user = user
    return user
