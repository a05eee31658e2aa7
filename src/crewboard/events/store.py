"""Activity log: append-only record of project changes.

Learn: Services append an activity in the same session (and so the same
transaction) as the change it describes. If the change rolls back, so
does its activity row. The feed never shows something that didn't happen.
"""

import uuid
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from crewboard.db.models import Activity


class ActivityLog:
    """Append-only activity store backed by the activities table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(
        self,
        project_id: uuid.UUID,
        activity_type: str,
        data: dict,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Activity:
        """Append an activity to a project feed. Returns the created row."""
        activity = Activity(
            project_id=project_id,
            actor_id=actor_id,
            type=activity_type,
            data=data,
        )
        self.db.add(activity)
        await self.db.flush()  # get the auto-generated id
        return activity

    async def read_project(
        self,
        project_id: uuid.UUID,
        before_id: Optional[int] = None,
        limit: int = 50,
    ) -> list[Activity]:
        """Read a project feed, newest first, optionally before a given position."""
        query = (
            select(Activity)
            .where(Activity.project_id == project_id)
            .order_by(Activity.id.desc())
            .limit(limit)
        )
        if before_id is not None:
            query = query.where(Activity.id < before_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def purge_project(self, project_id: uuid.UUID) -> None:
        """Drop a project's feed. Only called while deleting the project."""
        await self.db.execute(
            delete(Activity).where(Activity.project_id == project_id)
        )
