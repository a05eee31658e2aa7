"""Auth API tests: signup, login, logout and the password lifecycle.

Learn: Tests cover:
1. Signup → session token + cookie, no secrets in the body
2. Signup validation and duplicate emails
3. Login success / failure
4. Logout clears the cookie
5. forgotPassword → resetPassword round trip, token single-use
6. updateMyPassword
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, update

from crewboard.db.models import User

from conftest import PASSWORD


async def _login(client, email, password=PASSWORD):
    r = await client.post(
        "/api/v1/auth/login", json={"email": email, "password": password}
    )
    client.cookies.clear()
    return r


# ═══════════════════════════════════════════════════════════
# Signup
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_signup_returns_session(client):
    r = await client.post(
        "/api/v1/auth/signup",
        json={
            "email": "ada@example.com",
            "password": PASSWORD,
            "password_confirm": PASSWORD,
            "name": "Ada Lovelace",
        },
    )
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "success"
    assert body["token"]
    user = body["data"]["user"]
    assert user["email"] == "ada@example.com"
    assert user["name"] == "Ada Lovelace"
    assert user["memberships"] == []
    # Nothing sensitive leaves the server
    assert "password_hash" not in user
    assert "password_reset_token" not in user

    cookie = r.headers["set-cookie"]
    assert cookie.startswith("jwt=")
    assert "HttpOnly" in cookie


@pytest.mark.asyncio
async def test_signup_duplicate_email(client, signup):
    user = await signup(email="dup@example.com")
    r = await client.post(
        "/api/v1/auth/signup",
        json={
            "email": user["email"],
            "password": PASSWORD,
            "password_confirm": PASSWORD,
            "name": "Someone Else",
        },
    )
    assert r.status_code == 409
    assert r.json() == {"status": "fail", "message": "Email already in use"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"email": "not-an-email"}, "Please provide a valid email address"),
        ({"password": "short", "password_confirm": "short"},
         "Password must be at least 8 characters long"),
        ({"password_confirm": "different123"}, "Passwords do not match"),
        ({"name": "  "}, "name is required"),
    ],
)
async def test_signup_validation(client, overrides, message):
    body = {
        "email": "val@example.com",
        "password": PASSWORD,
        "password_confirm": PASSWORD,
        "name": "Val",
        **overrides,
    }
    r = await client.post("/api/v1/auth/signup", json=body)
    assert r.status_code == 400
    assert r.json()["message"] == message


@pytest.mark.asyncio
async def test_signup_missing_field_is_400(client):
    r = await client.post("/api/v1/auth/signup", json={"email": "x@example.com"})
    assert r.status_code == 400
    assert r.json()["status"] == "fail"
    assert r.json()["message"].startswith("Invalid input:")


# ═══════════════════════════════════════════════════════════
# Login / logout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_success(client, signup):
    user = await signup()
    r = await _login(client, user["email"])
    assert r.status_code == 200
    body = r.json()
    assert body["data"]["user"]["id"] == user["id"]

    me = await client.get(
        "/api/v1/users/me", headers={"Authorization": f"Bearer {body['token']}"}
    )
    assert me.status_code == 200
    assert me.json()["email"] == user["email"]


@pytest.mark.asyncio
async def test_login_wrong_password(client, signup):
    user = await signup()
    r = await _login(client, user["email"], "wrong-password")
    assert r.status_code == 401
    assert r.json()["message"] == "Incorrect email or password"


@pytest.mark.asyncio
async def test_login_unknown_email(client):
    r = await _login(client, "nobody@example.com")
    assert r.status_code == 401
    assert r.json()["message"] == "Incorrect email or password"


@pytest.mark.asyncio
async def test_login_cookie_authenticates(client, signup):
    """Browsers only have the cookie; that alone must be enough."""
    user = await signup()
    r = await client.post(
        "/api/v1/auth/login", json={"email": user["email"], "password": PASSWORD}
    )
    assert r.status_code == 200
    me = await client.get("/api/v1/users/me")
    assert me.status_code == 200
    assert me.json()["id"] == user["id"]


@pytest.mark.asyncio
async def test_logout_clears_cookie(client, signup):
    user = await signup()
    await client.post(
        "/api/v1/auth/login", json={"email": user["email"], "password": PASSWORD}
    )
    r = await client.post("/api/v1/auth/logout")
    assert r.status_code == 200
    assert r.json() == {"status": "success", "message": "Logged out successfully"}

    me = await client.get("/api/v1/users/me")
    assert me.status_code == 401


# ═══════════════════════════════════════════════════════════
# Forgot / reset password
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_forgot_and_reset_password(client, signup, mailer, session_factory):
    user = await signup(name="Grace Hopper")
    r = await client.post(
        "/api/v1/auth/forgotPassword", json={"email": user["email"]}
    )
    assert r.status_code == 200
    assert r.json()["message"] == "Reset token sent to email"
    assert mailer.sent[-1]["to"] == user["email"]
    assert "/reset-password/" in mailer.sent[-1]["url"]

    token = mailer.last_token
    # Only the hash is stored
    async with session_factory() as db:
        stored = (
            await db.execute(select(User).where(User.email == user["email"]))
        ).scalars().one()
        assert stored.password_reset_token is not None
        assert stored.password_reset_token != token

    r = await client.patch(
        f"/api/v1/auth/resetPassword/{token}",
        json={"password": "brand-new-pass", "password_confirm": "brand-new-pass"},
    )
    client.cookies.clear()
    assert r.status_code == 200
    assert r.json()["token"]

    assert (await _login(client, user["email"])).status_code == 401
    assert (await _login(client, user["email"], "brand-new-pass")).status_code == 200

    # Single use
    again = await client.patch(
        f"/api/v1/auth/resetPassword/{token}",
        json={"password": "another-pass1", "password_confirm": "another-pass1"},
    )
    assert again.status_code == 400
    assert again.json()["message"] == "Token is invalid or has expired"


@pytest.mark.asyncio
async def test_reset_password_expired_token(client, signup, mailer, session_factory):
    user = await signup()
    await client.post("/api/v1/auth/forgotPassword", json={"email": user["email"]})

    async with session_factory() as db:
        await db.execute(
            update(User)
            .where(User.email == user["email"])
            .values(
                password_reset_expires=datetime.now(timezone.utc) - timedelta(minutes=1)
            )
        )
        await db.commit()

    r = await client.patch(
        f"/api/v1/auth/resetPassword/{mailer.last_token}",
        json={"password": "brand-new-pass", "password_confirm": "brand-new-pass"},
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Token is invalid or has expired"


@pytest.mark.asyncio
async def test_forgot_password_unknown_email(client, mailer):
    r = await client.post(
        "/api/v1/auth/forgotPassword", json={"email": "ghost@example.com"}
    )
    assert r.status_code == 404
    assert r.json()["message"] == "There is no user with that email address"
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_forgot_password_mail_failure(client, signup, mailer, session_factory):
    user = await signup()
    mailer.fail = True
    r = await client.post(
        "/api/v1/auth/forgotPassword", json={"email": user["email"]}
    )
    assert r.status_code == 500
    assert r.json() == {
        "status": "error",
        "message": "There was an error sending the email. Try again later!",
    }

    async with session_factory() as db:
        stored = (
            await db.execute(select(User).where(User.email == user["email"]))
        ).scalars().one()
        assert stored.password_reset_token is None
        assert stored.password_reset_expires is None


# ═══════════════════════════════════════════════════════════
# Update password (logged in)
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_update_my_password(client, signup):
    user = await signup()
    r = await client.patch(
        "/api/v1/auth/updateMyPassword",
        json={
            "password_current": PASSWORD,
            "password": "rotated-pass-1",
            "password_confirm": "rotated-pass-1",
        },
        headers=user["headers"],
    )
    client.cookies.clear()
    assert r.status_code == 200
    assert r.json()["token"]

    assert (await _login(client, user["email"], "rotated-pass-1")).status_code == 200


@pytest.mark.asyncio
async def test_update_my_password_wrong_current(client, signup):
    user = await signup()
    r = await client.patch(
        "/api/v1/auth/updateMyPassword",
        json={
            "password_current": "not-my-password",
            "password": "rotated-pass-1",
            "password_confirm": "rotated-pass-1",
        },
        headers=user["headers"],
    )
    assert r.status_code == 401
    assert r.json()["message"] == "Your current password is wrong"


@pytest.mark.asyncio
async def test_update_my_password_requires_login(client):
    r = await client.patch(
        "/api/v1/auth/updateMyPassword",
        json={
            "password_current": PASSWORD,
            "password": "rotated-pass-1",
            "password_confirm": "rotated-pass-1",
        },
    )
    assert r.status_code == 401
