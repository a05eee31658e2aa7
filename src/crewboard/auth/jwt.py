"""JWT session token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
The token carries the user id (`sub`) and issue time (`iat`); expiry
comes from CREWBOARD_JWT_EXPIRES_MINUTES. Both functions take the app's
Settings explicitly, so an app built with its own secret signs and
verifies with that secret. The same token is handed out
in the response body and in the httpOnly `jwt` cookie.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from crewboard.config import Settings
from crewboard.errors import Unauthorized


class TokenError(Unauthorized):
    """Raised when token verification fails. Renders as 401."""


def create_access_token(
    user_id: str,
    settings: Settings,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a signed session token for a user."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(
        minutes=expires_minutes or settings.jwt_expires_minutes
    )
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": expires,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str, settings: Settings) -> dict:
    """Verify and decode a session token.

    Returns the payload dict on success (always has `sub` and `iat`).
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "iat", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Your token has expired. Please log in again!")
    except jwt.InvalidTokenError:
        raise TokenError("Invalid token. Please log in again!")
    return payload
