"""Tests for password hashing and bearer token signing."""

import uuid
from datetime import UTC, datetime, timedelta

from jose import jwt

from echo_api.auth.security import (
    create_access_token,
    hash_password,
    verify_password,
)
from echo_api.config import settings
from tests.conftest import decode_bearer_token


def test_hash_is_salted_and_not_plaintext() -> None:
    h1 = hash_password("pw123!")
    h2 = hash_password("pw123!")
    assert h1 != "pw123!"
    assert h1 != h2
    assert h1.startswith("$2")


def test_verify_password() -> None:
    h = hash_password("pw123!")
    assert verify_password("pw123!", h)
    assert not verify_password("pw123?", h)


def test_verify_password_malformed_hash() -> None:
    assert not verify_password("pw123!", "not-a-bcrypt-hash")


def test_access_token_claims() -> None:
    user_id = uuid.uuid4()
    token = create_access_token(user_id, "alice")

    claims = decode_bearer_token(token)
    assert claims is not None
    assert claims["sub"] == str(user_id)
    assert claims["username"] == "alice"

    lifetime = claims["exp"] - claims["iat"]
    assert lifetime == int(timedelta(days=7).total_seconds())


def test_access_token_wrong_secret_rejected() -> None:
    token = create_access_token(uuid.uuid4(), "alice")
    object.__setattr__(settings, "jwt_secret", "another-secret")
    assert decode_bearer_token(token) is None


def test_expired_access_token_rejected() -> None:
    past = datetime.now(UTC) - timedelta(days=1)
    token = jwt.encode(
        {"sub": "x", "username": "alice", "iat": past - timedelta(days=7), "exp": past},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    assert decode_bearer_token(token) is None
