"""Auth API: signup, login, logout and the password lifecycle.

Learn: Routes for account authentication:
- POST /auth/signup → create account, start a session
- POST /auth/login → email/password → session
- POST /auth/logout → clear the session cookie
- POST /auth/forgotPassword → email a reset link
- PATCH /auth/resetPassword/{token} → new password from a reset link
- PATCH /auth/updateMyPassword → change password while logged in

A "session" is a JWT returned in the body AND set as the httpOnly `jwt`
cookie, so both API clients and browsers can use it.
"""

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from crewboard.auth.dependencies import TOKEN_COOKIE, get_settings, protect
from crewboard.auth.jwt import create_access_token
from crewboard.config import Settings
from crewboard.db.engine import get_db
from crewboard.db.models import User
from crewboard.middleware.security import is_tls
from crewboard.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
    UpdatePasswordRequest,
)
from crewboard.schemas.user import SessionData, SessionResponse, UserProfile
from crewboard.services.auth_service import AuthService
from crewboard.services.email import EmailService
from crewboard.services.user_service import UserService

router = APIRouter(prefix="/auth")


def _svc(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(db, settings)


def get_mailer(settings: Settings = Depends(get_settings)) -> EmailService:
    return EmailService(settings)


async def _start_session(
    user: User, request: Request, response: Response, db: AsyncSession
) -> SessionResponse:
    """Sign a token, set it as a cookie, and return it with the user's profile."""
    settings = get_settings(request)
    token = create_access_token(str(user.id), settings)
    max_age = settings.jwt_cookie_expires_days * 24 * 60 * 60
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=max_age,
        expires=datetime.now(timezone.utc) + timedelta(seconds=max_age),
        httponly=True,
        secure=is_tls(request),
        samesite="lax",
    )
    profile = await UserService(db).get_profile(user.id)
    return SessionResponse(
        token=token,
        data=SessionData(user=UserProfile.model_validate(profile)),
    )


# ─── Signup / login / logout ─────────────────────────────


@router.post("/signup", response_model=SessionResponse, status_code=201)
async def signup(
    body: SignupRequest,
    request: Request,
    response: Response,
    svc: AuthService = Depends(_svc),
):
    """Create a new user account and log it in."""
    user = await svc.signup(
        email=body.email,
        password=body.password,
        password_confirm=body.password_confirm,
        name=body.name,
    )
    return await _start_session(user, request, response, svc.db)


@router.post("/login", response_model=SessionResponse)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    svc: AuthService = Depends(_svc),
):
    """Login with email and password."""
    user = await svc.login(body.email, body.password)
    return await _start_session(user, request, response, svc.db)


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request, response: Response):
    """Clear the session cookie. Bearer tokens simply expire."""
    response.delete_cookie(
        TOKEN_COOKIE,
        httponly=True,
        secure=is_tls(request),
        samesite="lax",
    )
    return MessageResponse(message="Logged out successfully")


# ─── Password lifecycle ──────────────────────────────────


@router.post("/forgotPassword", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    svc: AuthService = Depends(_svc),
    mailer: EmailService = Depends(get_mailer),
):
    """Email a single-use password reset link."""
    await svc.forgot_password(body.email, mailer)
    return MessageResponse(message="Reset token sent to email")


@router.patch("/resetPassword/{token}", response_model=SessionResponse)
async def reset_password(
    token: str,
    body: ResetPasswordRequest,
    request: Request,
    response: Response,
    svc: AuthService = Depends(_svc),
):
    """Set a new password using the token from the reset email."""
    user = await svc.reset_password(token, body.password, body.password_confirm)
    return await _start_session(user, request, response, svc.db)


@router.patch("/updateMyPassword", response_model=SessionResponse)
async def update_my_password(
    body: UpdatePasswordRequest,
    request: Request,
    response: Response,
    user: User = Depends(protect),
    svc: AuthService = Depends(_svc),
):
    """Change the password of the logged-in user; issues a fresh session."""
    user = await svc.update_password(
        user,
        password_current=body.password_current,
        password=body.password,
        password_confirm=body.password_confirm,
    )
    return await _start_session(user, request, response, svc.db)
