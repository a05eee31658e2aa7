"""Error envelope tests.

Learn: Every failure leaves the API as {"status", "message"}. Unexpected
exceptions are the interesting case: development shows the real message
and a stack trace, anything else hides them behind a generic 500.
"""

import pytest
import pytest_asyncio
from fastapi import APIRouter
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import NoResultFound

from crewboard.config import Settings
from crewboard.errors import AppError, Conflict, Forbidden, NotFound, Unauthorized, ValidationError
from crewboard.main import create_app


def _with_failing_routes(app):
    router = APIRouter()

    @router.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    @router.get("/missing-row")
    async def missing_row():
        raise NoResultFound("No row was found")

    app.include_router(router)
    return app


async def _client_for(app):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest_asyncio.fixture()
async def dev_client(database):
    app = _with_failing_routes(
        create_app(settings=Settings(environment="development"), database=database)
    )
    async with await _client_for(app) as ac:
        yield ac


@pytest_asyncio.fixture()
async def prod_client(database):
    app = _with_failing_routes(
        create_app(
            settings=Settings(environment="production", jwt_secret="x" * 40),
            database=database,
        )
    )
    async with await _client_for(app) as ac:
        yield ac


# ═══════════════════════════════════════════════════════════
# Taxonomy
# ═══════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    "error, status_code, status",
    [
        (ValidationError("x"), 400, "fail"),
        (Unauthorized("x"), 401, "fail"),
        (Forbidden("x"), 403, "fail"),
        (NotFound("x"), 404, "fail"),
        (Conflict("x"), 409, "fail"),
        (AppError("x"), 500, "error"),
        (AppError("x", status_code=418), 418, "fail"),
    ],
)
def test_error_status(error, status_code, status):
    assert error.status_code == status_code
    assert error.status == status
    assert error.is_operational


def test_production_requires_real_secret():
    with pytest.raises(ValueError):
        Settings(environment="production", jwt_secret="change-me-in-production")


# ═══════════════════════════════════════════════════════════
# Unhandled errors
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_unhandled_error_in_production_is_generic(prod_client):
    r = await prod_client.get("/boom")
    assert r.status_code == 500
    assert r.json() == {"status": "error", "message": "Something went wrong"}


@pytest.mark.asyncio
async def test_unhandled_error_in_development_has_details(dev_client):
    r = await dev_client.get("/boom")
    assert r.status_code == 500
    body = r.json()
    assert body["status"] == "error"
    assert body["message"] == "kaboom"
    assert "RuntimeError" in body["stack"]


@pytest.mark.asyncio
async def test_missing_row_maps_to_404(prod_client):
    r = await prod_client.get("/missing-row")
    assert r.status_code == 404
    assert r.json() == {"status": "fail", "message": "Record not found"}


@pytest.mark.asyncio
async def test_unknown_route_uses_envelope(prod_client):
    r = await prod_client.get("/api/v1/nope")
    assert r.status_code == 404
    assert r.json() == {"status": "fail", "message": "Not Found"}
