"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode: create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.

The Database object is built once by the app factory and parked on
app.state. Nothing imports a module-level engine, so tests (and the CLI)
can point the whole app at a different database by passing their own.
"""

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from crewboard.config import Settings


class Database:
    """Owns the connection pool for the lifetime of the process."""

    def __init__(self, url: str, echo: bool = False, **engine_options):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(
            url, echo=echo, **engine_options
        )
        # Each request gets its own session from this factory.
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        options = {}
        if not settings.database_url.startswith("sqlite"):
            # Connection pool: min 5, max 20 connections.
            options = {"pool_size": 5, "max_overflow": 15}
        return cls(settings.database_url, echo=settings.debug, **options)

    async def create_all(self) -> None:
        """Create every table from the ORM metadata (tests, init-db)."""
        from crewboard.db.models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        from crewboard.db.models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency, yields a session per request, auto-closes."""
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
