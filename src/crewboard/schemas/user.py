"""Pydantic schemas for users and sessions.

Learn: Read schemas list their fields explicitly, so the password hash
and reset-token columns can't leak into a response even by accident.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from crewboard.db.models import Role


class UserRead(BaseModel):
    id: uuid.UUID
    email: str
    name: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ProjectBrief(BaseModel):
    id: uuid.UUID
    name: str

    model_config = {"from_attributes": True}


class UserMembershipRead(BaseModel):
    project_id: uuid.UUID
    role: Role
    project: ProjectBrief

    model_config = {"from_attributes": True}


class UserProfile(UserRead):
    """User with the projects they belong to."""
    memberships: list[UserMembershipRead] = []


class UserUpdate(BaseModel):
    """Profile update. Unknown keys (password, reset fields) are dropped."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, min_length=3, max_length=255)


class SessionData(BaseModel):
    user: UserProfile


class SessionResponse(BaseModel):
    """Returned by signup / login / password changes. Token also set as cookie."""
    status: str = "success"
    token: str
    data: SessionData
