"""Project and membership API routes.

Learn: Each project route declares the roles it admits through the
access guard. The guard returns the caller's Membership, so handlers
read the project id and the caller's id straight off it.

    GET    /projects/{id}                           any member
    PATCH  /projects/{id}                           OWNER, ADMIN
    DELETE /projects/{id}                           OWNER
    POST   /projects/{id}/members/add               OWNER, ADMIN
    DELETE /projects/{id}/members/remove            OWNER, ADMIN
    PATCH  /projects/{id}/members/role/makeAdmin    OWNER, ADMIN
    PATCH  /projects/{id}/members/role/remove-admin OWNER, ADMIN
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from crewboard.auth.access import restrict_to_project_access
from crewboard.auth.dependencies import protect
from crewboard.db.engine import get_db
from crewboard.db.models import ALL_ROLES, MANAGERS, Membership, User
from crewboard.events.store import ActivityLog
from crewboard.schemas.auth import MessageResponse
from crewboard.schemas.project import (
    ActivityRead,
    MemberAdd,
    MemberRead,
    MembershipRead,
    MemberTarget,
    ProjectCreate,
    ProjectRead,
    ProjectUpdate,
    ProjectWithRole,
)
from crewboard.services.membership_service import MembershipService
from crewboard.services.project_service import DELETE_ROLES, ProjectService

router = APIRouter(prefix="/projects")

any_member = restrict_to_project_access(ALL_ROLES)
managers = restrict_to_project_access(MANAGERS)
owner_only = restrict_to_project_access(DELETE_ROLES)


def _svc(db: AsyncSession = Depends(get_db)) -> ProjectService:
    return ProjectService(db)


def _members_svc(db: AsyncSession = Depends(get_db)) -> MembershipService:
    return MembershipService(db)


# ─── Projects ───────────────────────────────────────────

@router.get("", response_model=list[ProjectWithRole])
async def list_projects(
    user: User = Depends(protect),
    svc: ProjectService = Depends(_svc),
):
    """Projects the caller belongs to, with the caller's role in each."""
    rows = await svc.list_for_user(user.id)
    return [
        ProjectWithRole(**ProjectRead.model_validate(project).model_dump(), role=role)
        for project, role in rows
    ]


@router.post("", response_model=ProjectRead, status_code=201)
async def create_project(
    body: ProjectCreate,
    user: User = Depends(protect),
    svc: ProjectService = Depends(_svc),
):
    """Create a project. The caller becomes its OWNER."""
    return await svc.create_project(
        creator_id=user.id,
        name=body.name,
        description=body.description,
        start_date=body.start_date,
        end_date=body.end_date,
    )


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    membership: Membership = Depends(any_member),
    svc: ProjectService = Depends(_svc),
):
    return await svc.get_project(membership.project_id)


@router.patch("/{project_id}", response_model=ProjectRead)
async def update_project(
    body: ProjectUpdate,
    membership: Membership = Depends(managers),
    svc: ProjectService = Depends(_svc),
):
    return await svc.update_project(
        membership.project_id,
        actor_id=membership.user_id,
        changes=body.model_dump(exclude_unset=True),
    )


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    membership: Membership = Depends(owner_only),
    svc: ProjectService = Depends(_svc),
):
    """Delete the project with its tasks, memberships and activity feed."""
    await svc.delete_project(membership.project_id, actor_id=membership.user_id)
    return Response(status_code=204)


@router.get("/{project_id}/activity", response_model=list[ActivityRead])
async def project_activity(
    before_id: Optional[int] = Query(None, ge=1),
    limit: int = Query(50, ge=1, le=200),
    membership: Membership = Depends(any_member),
    db: AsyncSession = Depends(get_db),
):
    """Project feed, newest first. Page with ?before_id=<last id seen>."""
    return await ActivityLog(db).read_project(
        membership.project_id, before_id=before_id, limit=limit
    )


# ─── Members ────────────────────────────────────────────

@router.get("/{project_id}/members", response_model=list[MemberRead])
async def list_members(
    membership: Membership = Depends(any_member),
    svc: MembershipService = Depends(_members_svc),
):
    return await svc.list_members(membership.project_id)


@router.post("/{project_id}/members/add", response_model=MembershipRead, status_code=201)
async def add_member(
    body: MemberAdd,
    membership: Membership = Depends(managers),
    svc: MembershipService = Depends(_members_svc),
):
    """Add a registered user, by email, as a MEMBER."""
    return await svc.add_member(membership.user_id, membership.project_id, body.email)


@router.delete("/{project_id}/members/remove", response_model=MessageResponse)
async def remove_member(
    body: MemberTarget,
    membership: Membership = Depends(managers),
    svc: MembershipService = Depends(_members_svc),
):
    await svc.remove_member(membership.user_id, membership.project_id, body.user_id)
    return MessageResponse(message="Member removed")


@router.patch("/{project_id}/members/role/makeAdmin", response_model=MembershipRead)
async def make_admin(
    body: MemberTarget,
    membership: Membership = Depends(managers),
    svc: MembershipService = Depends(_members_svc),
):
    return await svc.promote_to_admin(
        membership.user_id, membership.project_id, body.user_id
    )


@router.patch("/{project_id}/members/role/remove-admin", response_model=MembershipRead)
async def remove_admin(
    body: MemberTarget,
    membership: Membership = Depends(managers),
    svc: MembershipService = Depends(_members_svc),
):
    return await svc.demote_to_member(
        membership.user_id, membership.project_id, body.user_id
    )
