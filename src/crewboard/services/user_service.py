"""User service: directory, profiles and self-service account changes."""

import uuid

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from crewboard.db.models import Membership, Role, Task, User
from crewboard.errors import Conflict, Forbidden, NotFound, ValidationError
from crewboard.services.auth_service import is_valid_email

logger = structlog.get_logger()


class UserService:
    """Business logic for user accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_users(self, limit: int = 100, offset: int = 0) -> list[User]:
        result = await self.db.execute(
            select(User).order_by(User.created_at).limit(limit).offset(offset)
        )
        return list(result.scalars().all())

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    async def get_profile(self, user_id: uuid.UUID) -> User:
        """User with memberships and their projects eagerly loaded."""
        result = await self.db.execute(
            select(User)
            .where(User.id == user_id)
            .options(selectinload(User.memberships).selectinload(Membership.project))
            .execution_options(populate_existing=True)
        )
        user = result.scalars().first()
        if not user:
            raise NotFound("User not found")
        return user

    async def update_user(
        self, actor: User, user_id: uuid.UUID, changes: dict
    ) -> User:
        """Change name/email. Users may only edit their own account."""
        if actor.id != user_id:
            raise Forbidden("You can only update your own account")
        user = await self.get_user(user_id)

        if "name" in changes:
            if not (changes["name"] or "").strip():
                raise ValidationError("name cannot be empty")
            user.name = changes["name"].strip()
        if "email" in changes and changes["email"] != user.email:
            email = changes["email"] or ""
            if not is_valid_email(email):
                raise ValidationError("Please provide a valid email address")
            taken = await self.db.execute(select(User.id).where(User.email == email))
            if taken.first():
                raise Conflict("Email already in use")
            user.email = email

        await self.db.commit()
        return user

    async def delete_user(self, actor: User, user_id: uuid.UUID) -> None:
        """Delete an account. Owners must delete their projects first."""
        if actor.id != user_id:
            raise Forbidden("You can only delete your own account")
        user = await self.get_user(user_id)

        owned = await self.db.execute(
            select(Membership.project_id).where(
                Membership.user_id == user_id, Membership.role == Role.OWNER
            )
        )
        if owned.first():
            raise Conflict("Delete the projects you own before deleting your account")

        try:
            await self.db.execute(
                update(Task)
                .where(Task.assigned_to_id == user_id)
                .values(assigned_to_id=None)
            )
            await self.db.execute(
                update(Task)
                .where(Task.created_by_id == user_id)
                .values(created_by_id=None)
            )
            await self.db.execute(delete(Membership).where(Membership.user_id == user_id))
            await self.db.execute(delete(User).where(User.id == user.id))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("user.deleted", user_id=str(user_id))
