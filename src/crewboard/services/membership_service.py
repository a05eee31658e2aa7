"""Membership service: who is in a project, and with which role.

Learn: The role field is a tiny state machine:

    MEMBER ──promote──▶ ADMIN ──demote──▶ MEMBER
    OWNER  (fixed: never promoted, demoted or removed)

Every operation requires the actor to be OWNER or ADMIN of the project.
Promote/demote are idempotent (promoting an ADMIN is a no-op success).
"""

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from crewboard.auth.access import get_membership, require_role
from crewboard.db.models import MANAGERS, Membership, Role, Task, User
from crewboard.errors import Conflict, Forbidden, NotFound, ValidationError
from crewboard.events.store import ActivityLog
from crewboard.events.types import MEMBER_ADDED, MEMBER_REMOVED, MEMBER_ROLE_CHANGED

logger = structlog.get_logger()


class MembershipService:
    """Business logic for project membership and roles."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityLog(db)

    async def list_members(self, project_id: uuid.UUID) -> list[Membership]:
        result = await self.db.execute(
            select(Membership)
            .where(Membership.project_id == project_id)
            .options(selectinload(Membership.user))
            .order_by(Membership.created_at)
        )
        return list(result.scalars().all())

    async def _get_target(self, project_id: uuid.UUID, user_id: uuid.UUID) -> Membership:
        target = await get_membership(self.db, user_id, project_id)
        if not target:
            raise NotFound("Target member not found")
        return target

    # ─── Add / remove ───────────────────────────────────

    async def add_member(
        self, actor_id: uuid.UUID, project_id: uuid.UUID, email: str
    ) -> Membership:
        """Add the user with this email as a MEMBER. 409 if already in."""
        await require_role(self.db, actor_id, project_id, MANAGERS)
        if not email or not email.strip():
            raise ValidationError("Missing email")

        result = await self.db.execute(select(User).where(User.email == email.strip()))
        user = result.scalars().first()
        if not user:
            raise NotFound("User not found")

        if await get_membership(self.db, user.id, project_id):
            raise Conflict("User is already a member")

        membership = Membership(user_id=user.id, project_id=project_id, role=Role.MEMBER)
        self.db.add(membership)
        await self.db.flush()
        await self.activity.append(
            project_id=project_id,
            activity_type=MEMBER_ADDED,
            data={"user_id": str(user.id), "role": Role.MEMBER.value},
            actor_id=actor_id,
        )
        await self.db.commit()
        logger.info("member.added", project_id=str(project_id), user_id=str(user.id))
        return membership

    async def remove_member(
        self, actor_id: uuid.UUID, project_id: uuid.UUID, user_id: uuid.UUID
    ) -> None:
        """Remove a member. The OWNER can't be removed, same as promote/demote."""
        await require_role(self.db, actor_id, project_id, MANAGERS)
        target = await self._get_target(project_id, user_id)
        if target.role == Role.OWNER:
            raise Forbidden("Cannot remove the project OWNER")

        # Tasks assigned to someone who left the project become unassigned.
        result = await self.db.execute(
            select(Task).where(
                Task.project_id == project_id, Task.assigned_to_id == user_id
            )
        )
        for task in result.scalars().all():
            task.assigned_to_id = None

        await self.db.delete(target)
        await self.activity.append(
            project_id=project_id,
            activity_type=MEMBER_REMOVED,
            data={"user_id": str(user_id)},
            actor_id=actor_id,
        )
        await self.db.commit()
        logger.info("member.removed", project_id=str(project_id), user_id=str(user_id))

    # ─── Role changes ───────────────────────────────────

    async def promote_to_admin(
        self, actor_id: uuid.UUID, project_id: uuid.UUID, user_id: uuid.UUID
    ) -> Membership:
        return await self._set_role(actor_id, project_id, user_id, Role.ADMIN)

    async def demote_to_member(
        self, actor_id: uuid.UUID, project_id: uuid.UUID, user_id: uuid.UUID
    ) -> Membership:
        return await self._set_role(actor_id, project_id, user_id, Role.MEMBER)

    async def _set_role(
        self,
        actor_id: uuid.UUID,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        new_role: Role,
    ) -> Membership:
        await require_role(self.db, actor_id, project_id, MANAGERS)
        target = await self._get_target(project_id, user_id)
        if target.role == Role.OWNER:
            raise Forbidden("Cannot modify OWNER role")
        if target.role == new_role:
            return target

        old_role = target.role
        target.role = new_role
        await self.activity.append(
            project_id=project_id,
            activity_type=MEMBER_ROLE_CHANGED,
            data={
                "user_id": str(user_id),
                "from": old_role.value,
                "to": new_role.value,
            },
            actor_id=actor_id,
        )
        await self.db.commit()
        logger.info(
            "member.role_changed",
            project_id=str(project_id),
            user_id=str(user_id),
            role=new_role.value,
        )
        return target
