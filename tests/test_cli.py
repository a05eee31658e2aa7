"""CLI tests: init-db and seed against a throwaway SQLite file."""

import asyncio

from click.testing import CliRunner
from sqlalchemy import func, select

from crewboard.cli.main import DEMO_TASKS, main
from crewboard.db.engine import Database
from crewboard.db.models import Membership, Role, Task, User


def _url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"


async def _snapshot(url: str) -> dict:
    database = Database(url)
    try:
        async with database.session_factory() as db:
            roles = (await db.execute(select(Membership.role))).scalars().all()
            return {
                "users": await db.scalar(select(func.count()).select_from(User)),
                "tasks": await db.scalar(select(func.count()).select_from(Task)),
                "roles": sorted(r.value for r in roles),
            }
    finally:
        await database.dispose()


def test_init_db_creates_tables(tmp_path):
    runner = CliRunner()
    result = runner.invoke(main, ["init-db", "--database-url", _url(tmp_path)])
    assert result.exit_code == 0, result.output
    assert "Database tables created." in result.output

    assert asyncio.run(_snapshot(_url(tmp_path))) == {"users": 0, "tasks": 0, "roles": []}


def test_seed_loads_demo_data_once(tmp_path):
    runner = CliRunner()
    result = runner.invoke(main, ["seed", "--database-url", _url(tmp_path)])
    assert result.exit_code == 0, result.output
    assert "alice@example.com" in result.output
    assert "Task Tracker Alpha" in result.output

    snapshot = asyncio.run(_snapshot(_url(tmp_path)))
    assert snapshot == {
        "users": 2,
        "tasks": len(DEMO_TASKS),
        "roles": sorted([Role.OWNER.value, Role.MEMBER.value]),
    }

    again = runner.invoke(main, ["seed", "--database-url", _url(tmp_path)])
    assert again.exit_code == 0
    assert "already present" in again.output
    assert asyncio.run(_snapshot(_url(tmp_path)))["users"] == 2


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "crewboard" in result.output
