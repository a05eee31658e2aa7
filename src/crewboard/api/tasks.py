"""Task API routes, nested under a project.

Learn: Routes translate HTTP to service calls. The project role check
happens in the access guard; the "only the creator may edit or delete"
rule lives in TaskService so it holds for every caller.

Key patterns:
- PUT applies only the fields present in the body
- Query params for filtering (status, priority, assigned_to_id)
- Assignment has its own endpoints, gated to OWNER/ADMIN
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from crewboard.auth.access import restrict_to_project_access
from crewboard.db.engine import get_db
from crewboard.db.models import ALL_ROLES, MANAGERS, Membership, TaskPriority, TaskStatus
from crewboard.schemas.task import TaskAssign, TaskCreate, TaskRead, TaskUpdate
from crewboard.services.task_service import TaskService

router = APIRouter(prefix="/projects/{project_id}/tasks")

any_member = restrict_to_project_access(ALL_ROLES)
managers = restrict_to_project_access(MANAGERS)


def _task_svc(db: AsyncSession = Depends(get_db)) -> TaskService:
    return TaskService(db)


@router.post("", response_model=TaskRead, status_code=201)
async def create_task(
    body: TaskCreate,
    membership: Membership = Depends(any_member),
    svc: TaskService = Depends(_task_svc),
):
    """Create a task in the project. Defaults to TODO / MEDIUM."""
    return await svc.create_task(
        project_id=membership.project_id,
        created_by_id=membership.user_id,
        title=body.title,
        description=body.description,
        status=body.status,
        priority=body.priority,
        due_date=body.due_date,
        assigned_to_id=body.assigned_to_id,
    )


@router.get("", response_model=list[TaskRead])
async def list_tasks(
    status: Optional[TaskStatus] = Query(None, description="Filter by status"),
    priority: Optional[TaskPriority] = Query(None, description="Filter by priority"),
    assigned_to_id: Optional[uuid.UUID] = Query(None, description="Filter by assignee"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    membership: Membership = Depends(any_member),
    svc: TaskService = Depends(_task_svc),
):
    return await svc.list_tasks(
        project_id=membership.project_id,
        status=status,
        priority=priority,
        assigned_to_id=assigned_to_id,
        limit=limit,
        offset=offset,
    )


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: uuid.UUID,
    membership: Membership = Depends(any_member),
    svc: TaskService = Depends(_task_svc),
):
    return await svc.get_task(membership.project_id, task_id)


@router.put("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: uuid.UUID,
    body: TaskUpdate,
    membership: Membership = Depends(any_member),
    svc: TaskService = Depends(_task_svc),
):
    """Update a task you created."""
    return await svc.update_task(
        membership.project_id,
        task_id,
        actor_id=membership.user_id,
        changes=body.model_dump(exclude_unset=True),
    )


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: uuid.UUID,
    membership: Membership = Depends(managers),
    svc: TaskService = Depends(_task_svc),
):
    await svc.delete_task(membership.project_id, task_id, actor_id=membership.user_id)
    return Response(status_code=204)


@router.patch("/{task_id}/assign", response_model=TaskRead)
async def assign_task(
    task_id: uuid.UUID,
    body: TaskAssign,
    membership: Membership = Depends(managers),
    svc: TaskService = Depends(_task_svc),
):
    """Assign a task to a project member."""
    return await svc.assign_task(
        membership.project_id, task_id, actor_id=membership.user_id, user_id=body.user_id
    )


@router.patch("/{task_id}/unassign", response_model=TaskRead)
async def unassign_task(
    task_id: uuid.UUID,
    membership: Membership = Depends(managers),
    svc: TaskService = Depends(_task_svc),
):
    return await svc.unassign_task(
        membership.project_id, task_id, actor_id=membership.user_id
    )
