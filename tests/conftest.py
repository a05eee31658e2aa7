"""Test fixtures: a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI + aiosqlite:

1. Each test gets its own Database on "sqlite+aiosqlite://" with a
   StaticPool, so every session shares the one in-memory connection
   and sees the tables create_all() made.
2. The app is built by create_app(database=...), so the real get_db,
   the real auth gate and the real access guard all run in tests.
3. Outbound mail is swapped for a RecordingMailer that keeps the reset
   links, so password-reset flows can be driven end to end.

Services commit for real; isolation comes from throwing the whole
in-memory database away after each test.
"""

import os

# Must happen before crewboard.config is imported anywhere.
os.environ.setdefault("CREWBOARD_BCRYPT_ROUNDS", "4")
os.environ.setdefault("CREWBOARD_ENVIRONMENT", "development")

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from crewboard.api.auth import get_mailer
from crewboard.db.engine import Database
from crewboard.main import create_app
from crewboard.services.email import EmailDeliveryError

PASSWORD = "password123"


class RecordingMailer:
    """Stands in for EmailService; remembers every reset link it was asked to send."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    async def send_password_reset(self, to_email: str, name: str, url: str) -> None:
        if self.fail:
            raise EmailDeliveryError("SMTP server unavailable")
        self.sent.append({"to": to_email, "name": name, "url": url})

    @property
    def last_token(self) -> str:
        return self.sent[-1]["url"].rsplit("/", 1)[-1]


@pytest_asyncio.fixture()
async def database():
    db = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()
    try:
        yield db
    finally:
        await db.dispose()


@pytest.fixture()
def session_factory(database):
    """Open short-lived sessions to inspect or seed rows directly."""
    return database.session_factory


@pytest.fixture()
def mailer():
    return RecordingMailer()


@pytest.fixture()
def app(database, mailer):
    app = create_app(database=database)
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def signup(client):
    """Factory: create an account and return its id, token and auth headers.

    Learn: httpx keeps the `jwt` cookie from signup, which would
    silently authenticate later requests. The cookie jar is cleared so
    each test says explicitly who it is acting as.
    """

    async def _signup(name: str = "Test User", email: str | None = None) -> dict:
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        r = await client.post(
            "/api/v1/auth/signup",
            json={
                "email": email,
                "password": PASSWORD,
                "password_confirm": PASSWORD,
                "name": name,
            },
        )
        assert r.status_code == 201, r.text
        client.cookies.clear()
        body = r.json()
        return {
            "id": body["data"]["user"]["id"],
            "email": email,
            "name": name,
            "token": body["token"],
            "headers": {"Authorization": f"Bearer {body['token']}"},
        }

    return _signup


@pytest.fixture()
def make_project(client):
    """Factory: create a project as `owner` and return its JSON."""

    async def _make_project(owner: dict, name: str = "Alpha", **extra) -> dict:
        r = await client.post(
            "/api/v1/projects",
            json={"name": name, "description": f"{name} project", **extra},
            headers=owner["headers"],
        )
        assert r.status_code == 201, r.text
        return r.json()

    return _make_project


@pytest.fixture()
def add_member(client):
    """Factory: `actor` adds `user` to the project by email."""

    async def _add_member(project_id: str, actor: dict, user: dict):
        return await client.post(
            f"/api/v1/projects/{project_id}/members/add",
            json={"email": user["email"]},
            headers=actor["headers"],
        )

    return _add_member
