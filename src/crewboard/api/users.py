"""User API routes.

Learn: Every response here goes through UserRead / UserProfile, which
simply have no password or reset-token fields, so there's nothing to strip
by hand and nothing to forget.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from crewboard.auth.dependencies import is_logged_in, protect
from crewboard.db.engine import get_db
from crewboard.db.models import User
from crewboard.errors import Unauthorized
from crewboard.schemas.user import UserProfile, UserRead, UserUpdate
from crewboard.services.user_service import UserService

router = APIRouter(prefix="/users")


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("", response_model=list[UserRead], dependencies=[Depends(protect)])
async def list_users(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    svc: UserService = Depends(_svc),
):
    return await svc.list_users(limit=limit, offset=offset)


@router.get("/me", response_model=UserProfile)
async def my_profile(
    user: Optional[User] = Depends(is_logged_in),
    svc: UserService = Depends(_svc),
):
    """The caller's profile with their project memberships."""
    if user is None:
        raise Unauthorized("You are not logged in! Please log in to get access.")
    return await svc.get_profile(user.id)


@router.get("/{user_id}", response_model=UserProfile, dependencies=[Depends(protect)])
async def get_user(user_id: uuid.UUID, svc: UserService = Depends(_svc)):
    return await svc.get_profile(user_id)


@router.patch("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    user: User = Depends(protect),
    svc: UserService = Depends(_svc),
):
    """Update name and/or email of your own account."""
    return await svc.update_user(user, user_id, body.model_dump(exclude_unset=True))


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: uuid.UUID,
    user: User = Depends(protect),
    svc: UserService = Depends(_svc),
):
    await svc.delete_user(user, user_id)
    return Response(status_code=204)
