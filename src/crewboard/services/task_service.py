"""Task service: task CRUD and assignment inside a project.

Learn: Who may do what to a task is decided in two places:
1. The route guard checks the caller's project role (any member for
   read/create/update, OWNER/ADMIN for delete and (un)assign).
2. This service adds the creator rule: only the user who created a
   task may update or delete it, whatever their role.

Tasks are always looked up *within* a project, so a task id from
another project is a 404 even for a member of both.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewboard.auth.access import get_membership
from crewboard.db.models import Task, TaskPriority, TaskStatus
from crewboard.errors import Forbidden, NotFound, ValidationError
from crewboard.events.store import ActivityLog
from crewboard.events.types import (
    TASK_ASSIGNED,
    TASK_CREATED,
    TASK_DELETED,
    TASK_UNASSIGNED,
    TASK_UPDATED,
)

UPDATABLE_FIELDS = ("title", "description", "status", "priority", "due_date")


def _jsonable(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (TaskStatus, TaskPriority)):
        return value.value
    return value


class TaskService:
    """Business logic for tasks."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityLog(db)

    async def _check_assignee(self, project_id: uuid.UUID, user_id: uuid.UUID) -> None:
        if not await get_membership(self.db, user_id, project_id):
            raise ValidationError("Assignee must be a member of this project")

    # ─── Create ──────────────────────────────────────────

    async def create_task(
        self,
        project_id: uuid.UUID,
        created_by_id: uuid.UUID,
        title: str,
        description: str = "",
        status: TaskStatus = TaskStatus.TODO,
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_date: Optional[datetime] = None,
        assigned_to_id: Optional[uuid.UUID] = None,
    ) -> Task:
        if not title or not title.strip():
            raise ValidationError("title is required")
        if assigned_to_id is not None:
            await self._check_assignee(project_id, assigned_to_id)

        task = Task(
            project_id=project_id,
            created_by_id=created_by_id,
            title=title.strip(),
            description=description,
            status=status,
            priority=priority,
            due_date=due_date,
            assigned_to_id=assigned_to_id,
        )
        self.db.add(task)
        await self.db.flush()  # get the generated id

        await self.activity.append(
            project_id=project_id,
            activity_type=TASK_CREATED,
            data={
                "task_id": str(task.id),
                "title": task.title,
                "assigned_to_id": str(assigned_to_id) if assigned_to_id else None,
            },
            actor_id=created_by_id,
        )
        await self.db.commit()
        return task

    # ─── Read ────────────────────────────────────────────

    async def get_task(self, project_id: uuid.UUID, task_id: uuid.UUID) -> Task:
        result = await self.db.execute(
            select(Task).where(Task.id == task_id, Task.project_id == project_id)
        )
        task = result.scalars().first()
        if not task:
            raise NotFound("Task not found")
        return task

    async def list_tasks(
        self,
        project_id: uuid.UUID,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
        assigned_to_id: Optional[uuid.UUID] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Task]:
        """List a project's tasks with optional filters."""
        query = (
            select(Task)
            .where(Task.project_id == project_id)
            .order_by(Task.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        if status:
            query = query.where(Task.status == status)
        if priority:
            query = query.where(Task.priority == priority)
        if assigned_to_id:
            query = query.where(Task.assigned_to_id == assigned_to_id)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ─── Update / delete (creator only) ──────────────────

    async def update_task(
        self,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        actor_id: uuid.UUID,
        changes: dict,
    ) -> Task:
        task = await self.get_task(project_id, task_id)
        if task.created_by_id != actor_id:
            raise Forbidden("Not allowed to update this task")

        applied = {}
        for field in UPDATABLE_FIELDS:
            if field not in changes:
                continue
            value = changes[field]
            if field in ("title", "status", "priority") and value is None:
                raise ValidationError(f"{field} cannot be empty")
            if field == "title":
                value = value.strip()
                if not value:
                    raise ValidationError("title cannot be empty")
            if field == "description" and value is None:
                value = ""
            setattr(task, field, value)
            applied[field] = _jsonable(value)

        if applied:
            await self.activity.append(
                project_id=project_id,
                activity_type=TASK_UPDATED,
                data={"task_id": str(task_id), **applied},
                actor_id=actor_id,
            )
        await self.db.commit()
        return task

    async def delete_task(
        self, project_id: uuid.UUID, task_id: uuid.UUID, actor_id: uuid.UUID
    ) -> None:
        task = await self.get_task(project_id, task_id)
        if task.created_by_id != actor_id:
            raise Forbidden("Not allowed to delete this task")

        await self.db.delete(task)
        await self.activity.append(
            project_id=project_id,
            activity_type=TASK_DELETED,
            data={"task_id": str(task_id), "title": task.title},
            actor_id=actor_id,
        )
        await self.db.commit()

    # ─── Assignment ──────────────────────────────────────

    async def assign_task(
        self,
        project_id: uuid.UUID,
        task_id: uuid.UUID,
        actor_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Task:
        task = await self.get_task(project_id, task_id)
        await self._check_assignee(project_id, user_id)

        task.assigned_to_id = user_id
        await self.activity.append(
            project_id=project_id,
            activity_type=TASK_ASSIGNED,
            data={"task_id": str(task_id), "user_id": str(user_id)},
            actor_id=actor_id,
        )
        await self.db.commit()
        return task

    async def unassign_task(
        self, project_id: uuid.UUID, task_id: uuid.UUID, actor_id: uuid.UUID
    ) -> Task:
        task = await self.get_task(project_id, task_id)
        previous = task.assigned_to_id

        task.assigned_to_id = None
        await self.activity.append(
            project_id=project_id,
            activity_type=TASK_UNASSIGNED,
            data={
                "task_id": str(task_id),
                "user_id": str(previous) if previous else None,
            },
            actor_id=actor_id,
        )
        await self.db.commit()
        return task
