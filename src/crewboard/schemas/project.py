"""Pydantic schemas for projects, memberships and the activity feed."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from crewboard.db.models import Role
from crewboard.schemas.user import UserRead


# ─── Projects ───────────────────────────────────────────

class ProjectCreate(BaseModel):
    name: str = Field(..., max_length=200)
    description: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class ProjectUpdate(BaseModel):
    """Partial update: only fields present in the body are applied."""
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class ProjectRead(BaseModel):
    id: uuid.UUID
    name: str
    description: str
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    creator_id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectWithRole(ProjectRead):
    """A project as seen by one of its members."""
    role: Role


# ─── Memberships ────────────────────────────────────────

class MembershipRead(BaseModel):
    user_id: uuid.UUID
    project_id: uuid.UUID
    role: Role
    created_at: datetime

    model_config = {"from_attributes": True}


class MemberRead(MembershipRead):
    user: UserRead


class MemberAdd(BaseModel):
    email: str


class MemberTarget(BaseModel):
    user_id: uuid.UUID


# ─── Activity ───────────────────────────────────────────

class ActivityRead(BaseModel):
    id: int
    project_id: uuid.UUID
    actor_id: Optional[uuid.UUID]
    type: str
    data: dict
    created_at: datetime

    model_config = {"from_attributes": True}
