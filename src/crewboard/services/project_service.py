"""Project service: project lifecycle.

Learn: Two operations here touch several tables and must be all-or-nothing:

- create: project row + the creator's OWNER membership
- delete: tasks + activity feed + memberships + project row

Both run inside the request's session and commit once at the end. Any
exception rolls the whole unit back, so a project never exists without
its owner and a failed delete leaves everything in place.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from crewboard.auth.access import require_role
from crewboard.db.models import Membership, Project, Role, Task
from crewboard.errors import NotFound, ValidationError
from crewboard.events.store import ActivityLog
from crewboard.events.types import PROJECT_CREATED, PROJECT_UPDATED

logger = structlog.get_logger()

# Only the OWNER may delete a project.
DELETE_ROLES = frozenset({Role.OWNER})


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything we store is UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def check_date_range(start: Optional[datetime], end: Optional[datetime]) -> None:
    start, end = _as_utc(start), _as_utc(end)
    if start is not None and end is not None and start >= end:
        raise ValidationError("Start date must be before end date")


class ProjectService:
    """Business logic for projects."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityLog(db)

    async def list_for_user(self, user_id: uuid.UUID) -> list[tuple[Project, Role]]:
        """Projects the user belongs to, with the user's role in each."""
        result = await self.db.execute(
            select(Project, Membership.role)
            .join(Membership, Membership.project_id == Project.id)
            .where(Membership.user_id == user_id)
            .order_by(Project.created_at.desc())
        )
        return [(project, role) for project, role in result.all()]

    async def get_project(self, project_id: uuid.UUID) -> Project:
        project = await self.db.get(Project, project_id)
        if not project:
            raise NotFound("Project not found")
        return project

    async def create_project(
        self,
        creator_id: uuid.UUID,
        name: str,
        description: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Project:
        """Create a project and make its creator the OWNER, atomically."""
        if not name or not name.strip() or not description or not description.strip():
            raise ValidationError("Fill in the required fields")
        check_date_range(start_date, end_date)

        try:
            project = Project(
                name=name.strip(),
                description=description,
                start_date=start_date,
                end_date=end_date,
                creator_id=creator_id,
            )
            self.db.add(project)
            await self.db.flush()  # need project.id for the membership

            self.db.add(
                Membership(user_id=creator_id, project_id=project.id, role=Role.OWNER)
            )
            await self.activity.append(
                project_id=project.id,
                activity_type=PROJECT_CREATED,
                data={"name": project.name},
                actor_id=creator_id,
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("project.created", project_id=str(project.id), creator_id=str(creator_id))
        return project

    async def update_project(
        self, project_id: uuid.UUID, actor_id: uuid.UUID, changes: dict
    ) -> Project:
        """Apply a partial update. `changes` holds only the fields the client sent."""
        project = await self.get_project(project_id)

        changes = dict(changes)
        if "name" in changes:
            changes["name"] = (changes["name"] or "").strip()
            if not changes["name"]:
                raise ValidationError("Project name cannot be empty")
        if "description" in changes and not (changes["description"] or "").strip():
            raise ValidationError("Project description cannot be empty")
        check_date_range(
            changes.get("start_date", project.start_date),
            changes.get("end_date", project.end_date),
        )

        for field, value in changes.items():
            setattr(project, field, value)

        if changes:
            await self.activity.append(
                project_id=project.id,
                activity_type=PROJECT_UPDATED,
                data={k: (v.isoformat() if isinstance(v, datetime) else v) for k, v in changes.items()},
                actor_id=actor_id,
            )
        await self.db.commit()
        return project

    async def delete_project(self, project_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        """Delete a project and everything hanging off it, atomically."""
        await require_role(self.db, actor_id, project_id, DELETE_ROLES)
        project = await self.get_project(project_id)

        try:
            await self.db.execute(delete(Task).where(Task.project_id == project_id))
            await self.activity.purge_project(project_id)
            await self.db.execute(
                delete(Membership).where(Membership.project_id == project_id)
            )
            await self.db.execute(delete(Project).where(Project.id == project.id))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("project.deleted", project_id=str(project_id), actor_id=str(actor_id))
