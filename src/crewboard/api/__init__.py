"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter for routers whose every route needs a user.
Health and auth routers are open; the users router mixes strict and
soft auth per route (GET /users/me personalizes, it doesn't gate).
"""

from fastapi import APIRouter, Depends

from crewboard.api.auth import router as auth_router
from crewboard.api.health import router as health_router
from crewboard.api.projects import router as projects_router
from crewboard.api.tasks import router as tasks_router
from crewboard.api.users import router as users_router
from crewboard.auth.dependencies import protect

# All protected routers require authentication
_auth = [Depends(protect)]

api_router = APIRouter(prefix="/api/v1")

# Open routes, no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Mixed, per-route auth
api_router.include_router(users_router, tags=["users"])

# Protected routes require a valid session token
api_router.include_router(projects_router, tags=["projects", "members"], dependencies=_auth)
api_router.include_router(tasks_router, tags=["tasks"], dependencies=_auth)
