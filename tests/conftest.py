"""Test configuration and fixtures.

Each test gets a fresh database built from the models (in-memory SQLite by
default, or whatever TEST_DATABASE_URL points at). Redis and the email
transport are replaced through FastAPI dependency overrides.
"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from echo_api.auth.security import hash_password
from echo_api.config import settings
from echo_api.database import Base, get_db
from echo_api.main import app
from echo_api.models.user import User
from echo_api.redis import get_redis
from echo_api.services.email import EmailDeliveryError, Notifier, get_notifier


class RecordingEmailSender:
    """EmailSender that keeps messages in memory, or fails on demand."""

    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []
        self.fail = False

    async def send(self, to: str, subject: str, html: str) -> str | None:
        if self.fail:
            raise EmailDeliveryError("transport down")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return f"<msg-{len(self.sent)}@test>"


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_settings() -> None:
    """Snapshot settings before each test and restore after to prevent mutation bleed."""
    original = settings.model_dump()
    object.__setattr__(settings, "bcrypt_rounds", 4)  # fast hashing in tests
    object.__setattr__(settings, "base_url", "http://test")
    yield  # type: ignore[misc]
    for key, value in original.items():
        object.__setattr__(settings, key, value)


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    url = settings.test_database_url
    kwargs: dict[str, Any] = {}
    if url.startswith("sqlite"):
        # One shared connection so every session sees the same in-memory DB
        kwargs["poolclass"] = StaticPool
    engine = create_async_engine(url, **kwargs)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> AsyncMock:
    """Redis stand-in whose token bucket always has room unless told otherwise."""
    redis = AsyncMock()
    redis.eval.return_value = [1, 4, 0]
    return redis


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def notifier(email_sender: RecordingEmailSender) -> Notifier:
    return Notifier(email_sender)


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    fake_redis: AsyncMock,
    notifier: Notifier,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP test client with overridden DB, Redis and notifier dependencies."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def override_get_redis() -> AsyncGenerator[AsyncMock, None]:
        yield fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_register_data(**overrides: str) -> dict[str, str]:
    """Factory for registration payload."""
    data = {
        "username": "alice",
        "email": "a@x.com",
        "password": "pw123!",
        "display_name": "Alice",
    }
    data.update(overrides)
    return data


async def create_user(
    db: AsyncSession,
    *,
    username: str = "alice",
    email: str = "a@x.com",
    password: str = "pw123!",
    verified: bool = False,
    token: str | None = "a" * 64,
    expires_at: datetime | None = None,
) -> User:
    """Insert an account directly, bypassing the API."""
    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        display_name=username,
        email_verified=verified,
    )
    if not verified and token is not None:
        user.email_verification_token = token
        user.email_verification_expires = expires_at or datetime.now(UTC) + timedelta(hours=24)
    db.add(user)
    await db.commit()
    return user


def decode_bearer_token(token: str) -> dict[str, Any] | None:
    """Verify a login token's signature and expiry. Returns the claims, or None."""
    from jose import JWTError, jwt

    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def token_from_email(email_sender: RecordingEmailSender) -> str:
    """Pull the verification token out of the most recent email's link."""
    import re

    match = re.search(r"verify-email\?token=([0-9a-f]+)", email_sender.sent[-1]["html"])
    assert match, "Token not found in email body"
    return match.group(1)
