"""Auth service: signup, login and the password lifecycle.

Learn: Every path that ends with the user holding a fresh session
(signup, login, reset, update) returns the User; the API layer turns
that into a token + cookie. Validation messages are the ones clients
see, so they're written for humans.
"""

import re
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewboard.auth.password import (
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)
from crewboard.config import Settings
from crewboard.db.models import User
from crewboard.errors import Conflict, InternalError, NotFound, Unauthorized, ValidationError
from crewboard.services.email import EmailDeliveryError, EmailService

logger = structlog.get_logger()

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def _require(**fields: str) -> None:
    for name, value in fields.items():
        if not value or not str(value).strip():
            raise ValidationError(f"{name} is required")


def _check_new_password(password: str, password_confirm: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if password != password_confirm:
        raise ValidationError("Passwords do not match")


class AuthService:
    """Business logic for accounts and credentials."""

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def get_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    # ─── Signup / login ─────────────────────────────────

    async def signup(
        self, email: str, password: str, password_confirm: str, name: str
    ) -> User:
        _require(
            email=email,
            password=password,
            password_confirm=password_confirm,
            name=name,
        )
        if not is_valid_email(email):
            raise ValidationError("Please provide a valid email address")
        if await self.get_by_email(email):
            raise Conflict("Email already in use")
        _check_new_password(password, password_confirm)

        user = User(
            email=email,
            name=name.strip(),
            password_hash=hash_password(password, self.settings.bcrypt_rounds),
        )
        self.db.add(user)
        await self.db.commit()
        logger.info("user.signed_up", user_id=str(user.id))
        return user

    async def login(self, email: str, password: str) -> User:
        if not email or not password:
            raise ValidationError("Please provide email and password")

        user = await self.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise Unauthorized("Incorrect email or password")
        return user

    # ─── Password reset ─────────────────────────────────

    async def forgot_password(self, email: str, mailer: EmailService) -> None:
        """Store a hashed reset token and mail the raw one to the user."""
        _require(email=email)
        user = await self.get_by_email(email)
        if not user:
            raise NotFound("There is no user with that email address")

        raw_token, hashed = generate_reset_token()
        user.password_reset_token = hashed
        user.password_reset_expires = datetime.now(timezone.utc) + timedelta(
            minutes=self.settings.password_reset_expires_minutes
        )
        await self.db.commit()

        reset_url = f"{self.settings.frontend_url.rstrip('/')}/reset-password/{raw_token}"
        try:
            await mailer.send_password_reset(user.email, user.name, reset_url)
        except EmailDeliveryError:
            user.password_reset_token = None
            user.password_reset_expires = None
            await self.db.commit()
            raise InternalError(
                "There was an error sending the email. Try again later!"
            )

    async def reset_password(
        self, token: str, password: str, password_confirm: str
    ) -> User:
        _require(token=token, password=password, password_confirm=password_confirm)
        _check_new_password(password, password_confirm)

        result = await self.db.execute(
            select(User).where(
                User.password_reset_token == hash_reset_token(token),
                User.password_reset_expires > datetime.now(timezone.utc),
            )
        )
        user = result.scalars().first()
        if not user:
            raise ValidationError("Token is invalid or has expired")

        user.password_hash = hash_password(password, self.settings.bcrypt_rounds)
        user.password_reset_token = None
        user.password_reset_expires = None
        await self.db.commit()
        logger.info("user.password_reset", user_id=str(user.id))
        return user

    async def update_password(
        self,
        user: User,
        password_current: str,
        password: str,
        password_confirm: str,
    ) -> User:
        _require(
            password_current=password_current,
            password=password,
            password_confirm=password_confirm,
        )
        if not verify_password(password_current, user.password_hash):
            raise Unauthorized("Your current password is wrong")
        _check_new_password(password, password_confirm)

        user.password_hash = hash_password(password, self.settings.bcrypt_rounds)
        await self.db.commit()
        logger.info("user.password_changed", user_id=str(user.id))
        return user
