"""Project access guard: role-based gate for project routes.

Learn: restrict_to_project_access() is a dependency *factory*. Each
route asks for the roles it permits:

    membership: Membership = Depends(restrict_to_project_access(MANAGERS))

The returned dependency authenticates the caller, finds the project id
on the request, loads the caller's membership and checks its role. The
membership is returned (and parked on request.state.membership) so the
handler doesn't look it up again.
"""

import json
import uuid
from typing import Any, Iterable, Mapping, Optional

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewboard.auth.dependencies import protect
from crewboard.db.engine import get_db
from crewboard.db.models import Membership, Role, User
from crewboard.errors import Forbidden, ValidationError

PROJECT_ID_KEYS = ("project_id", "projectId")


def _lookup(source: Mapping[str, Any]) -> Optional[str]:
    for key in PROJECT_ID_KEYS:
        value = source.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def extract_project_id(
    path_params: Mapping[str, Any],
    body: Optional[Mapping[str, Any]] = None,
    query: Optional[Mapping[str, Any]] = None,
) -> Optional[str]:
    """Find the target project id. Precedence: path, then body, then query."""
    for source in (path_params, body or {}, query or {}):
        project_id = _lookup(source)
        if project_id is not None:
            return project_id
    return None


async def _json_body(request: Request) -> dict:
    body = await request.body()
    if not body:
        return {}
    try:
        data = json.loads(body)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


async def resolve_project_id(request: Request) -> uuid.UUID:
    """Resolve the project id for a request, or fail with 400."""
    raw = extract_project_id(
        request.path_params,
        await _json_body(request),
        request.query_params,
    )
    if raw is None:
        raise ValidationError("Missing project id")
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise ValidationError("Invalid project id")


async def get_membership(
    db: AsyncSession, user_id: uuid.UUID, project_id: uuid.UUID
) -> Optional[Membership]:
    result = await db.execute(
        select(Membership).where(
            Membership.user_id == user_id,
            Membership.project_id == project_id,
        )
    )
    return result.scalars().first()


def check_role(membership: Optional[Membership], allowed_roles: Iterable[Role]) -> Membership:
    """Apply the guard's decision to an already-loaded membership.

    No membership → 403. A non-empty role set that doesn't contain the
    membership's role → 403. An empty set admits any member.
    """
    allowed = frozenset(allowed_roles)
    if membership is None:
        raise Forbidden("You are not a member of this project")
    if allowed and membership.role not in allowed:
        raise Forbidden("Insufficient permissions")
    return membership


def restrict_to_project_access(allowed_roles: Iterable[Role] = ()):
    """Build a dependency that admits only project members holding one of `allowed_roles`."""
    allowed = frozenset(allowed_roles)

    async def guard(
        request: Request,
        user: User = Depends(protect),
        db: AsyncSession = Depends(get_db),
    ) -> Membership:
        project_id = await resolve_project_id(request)
        membership = check_role(
            await get_membership(db, user.id, project_id), allowed
        )
        request.state.membership = membership
        return membership

    return guard


async def require_role(
    db: AsyncSession,
    user_id: uuid.UUID,
    project_id: uuid.UUID,
    allowed_roles: Iterable[Role] = (),
) -> Membership:
    """Same decision as the guard, for service code that has ids, not a request."""
    return check_role(await get_membership(db, user_id, project_id), allowed_roles)
