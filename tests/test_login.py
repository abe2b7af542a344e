"""Tests for POST /api/auth/login."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import create_user, decode_bearer_token


@pytest.mark.asyncio
async def test_login_with_username(client: AsyncClient, db_session: AsyncSession) -> None:
    user = await create_user(db_session, verified=True)

    resp = await client.post("/api/auth/login", json={"username": "alice", "password": "pw123!"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Login successful"
    assert body["user"]["id"] == str(user.id)
    assert body["user"]["email_verified"] is True
    assert "password_hash" not in body["user"]

    claims = decode_bearer_token(body["token"])
    assert claims is not None
    assert claims["sub"] == str(user.id)
    assert claims["username"] == "alice"


@pytest.mark.asyncio
async def test_login_with_email(client: AsyncClient, db_session: AsyncSession) -> None:
    await create_user(db_session, verified=True)
    resp = await client.post("/api/auth/login", json={"username": "a@x.com", "password": "pw123!"})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, db_session: AsyncSession) -> None:
    await create_user(db_session, verified=True)
    resp = await client.post("/api/auth/login", json={"username": "alice", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json() == {
        "success": False,
        "message": "Invalid credentials",
        "error_code": "invalid_credentials",
    }


@pytest.mark.asyncio
async def test_login_unknown_user_same_as_wrong_password(
    client: AsyncClient, db_session: AsyncSession
) -> None:
    await create_user(db_session, verified=True)
    wrong_pw = await client.post("/api/auth/login", json={"username": "alice", "password": "nope"})
    unknown = await client.post("/api/auth/login", json={"username": "mallory", "password": "nope"})

    assert unknown.status_code == wrong_pw.status_code == 401
    assert unknown.json() == wrong_pw.json()


@pytest.mark.asyncio
async def test_login_unverified_refused_with_correct_password(
    client: AsyncClient, db_session: AsyncSession
) -> None:
    await create_user(db_session, verified=False)
    resp = await client.post("/api/auth/login", json={"username": "alice", "password": "pw123!"})
    assert resp.status_code == 401
    body = resp.json()
    assert body["success"] is False
    assert body["error_code"] == "email_not_verified"
    assert body["message"] == "Please verify your email before logging in"
    assert "token" not in body


@pytest.mark.asyncio
async def test_login_unverified_wrong_password_is_generic(
    client: AsyncClient, db_session: AsyncSession
) -> None:
    """Verification status is only revealed once the password is right."""
    await create_user(db_session, verified=False)
    resp = await client.post("/api/auth/login", json={"username": "alice", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["error_code"] == "invalid_credentials"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"username": "alice"}, {"password": "pw123!"}, {}])
async def test_login_missing_fields(client: AsyncClient, payload: dict[str, str]) -> None:
    resp = await client.post("/api/auth/login", json=payload)
    assert resp.status_code == 400
    assert resp.json()["error_code"] == "validation_error"


@pytest.mark.asyncio
async def test_login_prefers_username_match_over_email_match(
    client: AsyncClient, db_session: AsyncSession
) -> None:
    """Rows that predate the cross-field identity check resolve deterministically."""
    await create_user(db_session, username="bob", email="bob@x.com", password="bob-pw", verified=True)
    shadow = await create_user(
        db_session, username="bob@x.com", email="other@x.com", password="shadow-pw", verified=True
    )

    resp = await client.post("/api/auth/login", json={"username": "bob@x.com", "password": "shadow-pw"})
    assert resp.status_code == 200
    assert resp.json()["user"]["id"] == str(shadow.id)

    resp = await client.post("/api/auth/login", json={"username": "bob@x.com", "password": "bob-pw"})
    assert resp.status_code == 401
