"""FastAPI application factory.

Learn: App factory pattern. create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (Redis, database pool).
Middleware, CORS, error handlers and routers are all registered here.

Settings and the Database are parameters so tests can build an app
on an in-memory SQLite database without touching env vars.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crewboard import __version__
from crewboard.api import api_router
from crewboard.api.errors import install_error_handlers
from crewboard.config import Settings, settings as default_settings
from crewboard.db.engine import Database
from crewboard.db.redis import close_redis, connect_redis
from crewboard.logconfig import configure_logging
from crewboard.middleware.rate_limit import RateLimitMiddleware
from crewboard.middleware.request_id import RequestIdMiddleware
from crewboard.middleware.security import SecurityHeadersMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs
    at shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(
        "crewboard.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    try:
        app.state.redis = await connect_redis(settings.redis_url)
        logger.info("crewboard.redis_connected", url=settings.redis_url)
    except Exception as e:
        # Redis is optional, the app runs without rate limiting
        logger.warning("crewboard.redis_unavailable", error=str(e))

    yield

    logger.info("crewboard.shutdown")
    await close_redis(app.state.redis)
    app.state.redis = None
    await app.state.database.dispose()


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or default_settings
    configure_logging(settings)

    app = FastAPI(
        title="Crewboard",
        description="Multi-tenant project and task management API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database or Database.from_settings(settings)
    app.state.redis = None

    # ── Middleware stack ──────────────────────────────────────
    # Starlette runs middleware in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    # Credentials on, so the browser sends the jwt cookie cross-origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app)
    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: crewboard.main:app)
app = create_app()
