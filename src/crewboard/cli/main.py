"""Crewboard CLI: run the server and manage the database.

Usage:
    crewboard serve                  # Run the API with uvicorn
    crewboard init-db                # Create all tables (dev / SQLite)
    crewboard seed                   # Demo users, project and tasks

Production schemas are managed with Alembic (`alembic upgrade head`);
init-db is the quick path for local development.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
from datetime import datetime, timedelta, timezone
from typing import Optional

import click
from sqlalchemy import select

from crewboard import __version__
from crewboard.auth.password import hash_password
from crewboard.config import settings
from crewboard.db.engine import Database
from crewboard.db.models import TaskPriority, TaskStatus, User
from crewboard.services.membership_service import MembershipService
from crewboard.services.project_service import ProjectService
from crewboard.services.task_service import TaskService

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    ("alice@example.com", "Alice Dev"),
    ("bob@example.com", "Bob Dev"),
]

DEMO_PROJECT = {
    "name": "Task Tracker Alpha",
    "description": "Build the first version of the task tracker",
}

DEMO_TASKS = [
    ("Design the database schema", TaskStatus.DONE, TaskPriority.HIGH),
    ("Implement authentication", TaskStatus.IN_PROGRESS, TaskPriority.HIGH),
    ("Write the API documentation", TaskStatus.TODO, TaskPriority.LOW),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _database(database_url: Optional[str]) -> Database:
    return Database(database_url or settings.database_url)


database_url_option = click.option(
    "--database-url",
    envvar="CREWBOARD_DATABASE_URL",
    help="SQLAlchemy URL (defaults to CREWBOARD_DATABASE_URL)",
)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="crewboard")
def main():
    """Crewboard: multi-tenant project and task tracking API."""


@main.command()
@click.option("--host", default=None, help="Bind address (defaults to CREWBOARD_HOST)")
@click.option("--port", type=int, default=None, help="Port (defaults to CREWBOARD_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "crewboard.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
@database_url_option
def init_db(database_url: Optional[str]):
    """Create every table that doesn't exist yet."""
    _run(_init_db_impl(_database(database_url)))
    click.secho("Database tables created.", fg="green")


async def _init_db_impl(database: Database) -> None:
    try:
        await database.create_all()
    finally:
        await database.dispose()


@main.command()
@database_url_option
def seed(database_url: Optional[str]):
    """Load two demo users sharing one project with a few tasks."""
    created = _run(_seed_impl(_database(database_url)))
    if not created:
        click.secho("Demo data already present, nothing to do.", fg="yellow")
        return
    click.secho("Seeded demo data:", fg="green")
    for email, name in DEMO_USERS:
        click.echo(f"  {name:<10} {email} / {DEMO_PASSWORD}")
    click.echo(f"  Project: {DEMO_PROJECT['name']} ({len(DEMO_TASKS)} tasks)")


async def _seed_impl(database: Database) -> bool:
    try:
        await database.create_all()
        async with database.session_factory() as db:
            existing = await db.execute(
                select(User).where(User.email == DEMO_USERS[0][0])
            )
            if existing.scalars().first():
                return False

            password_hash = hash_password(DEMO_PASSWORD, settings.bcrypt_rounds)
            users = [
                User(email=email, name=name, password_hash=password_hash)
                for email, name in DEMO_USERS
            ]
            db.add_all(users)
            await db.commit()
            alice, bob = users

            now = datetime.now(timezone.utc)
            project = await ProjectService(db).create_project(
                creator_id=alice.id,
                start_date=now,
                end_date=now + timedelta(days=30),
                **DEMO_PROJECT,
            )
            await MembershipService(db).add_member(alice.id, project.id, bob.email)

            tasks = TaskService(db)
            for i, (title, status, priority) in enumerate(DEMO_TASKS):
                await tasks.create_task(
                    project_id=project.id,
                    created_by_id=alice.id,
                    title=title,
                    status=status,
                    priority=priority,
                    due_date=now + timedelta(days=7 * (i + 1)),
                    assigned_to_id=bob.id if i % 2 else alice.id,
                )
        return True
    finally:
        await database.dispose()


if __name__ == "__main__":
    main()
