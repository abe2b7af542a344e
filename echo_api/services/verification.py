"""Email verification tokens: issue, redeem, reissue.

An account holds at most one live token. Tokens are single-use and expire
``verification_token_ttl_hours`` after issue. Redemption clears the token
and marks the account verified in one guarded UPDATE.
"""

import logging
import secrets
from datetime import UTC, datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from echo_api.config import settings
from echo_api.errors import AlreadyVerified, InvalidToken, TokenExpired
from echo_api.models.user import User

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32  # 256 bits


def _utcnow() -> datetime:
    return datetime.now(UTC)


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


async def issue(db: AsyncSession, user: User) -> tuple[str, datetime]:
    """Attach a fresh token to ``user`` and commit. Replaces any pending token.

    ``user`` may be a new, not yet persisted account; it is added to the
    session and created in the same commit.
    """
    token = generate_token()
    expires_at = _utcnow() + timedelta(hours=settings.verification_token_ttl_hours)

    user.email_verification_token = token
    user.email_verification_expires = expires_at
    db.add(user)
    await db.commit()

    logger.info("Verification token issued for user %s, expires %s", user.id, expires_at.isoformat())
    return token, expires_at


async def reissue(db: AsyncSession, user: User) -> tuple[str, datetime]:
    """Replace the pending token of an unverified account.

    Also recovers an unverified account that holds no token at all.
    Concurrent reissues are last-write-wins: the earlier token is silently
    invalidated.
    """
    if user.email_verified:
        raise AlreadyVerified()
    return await issue(db, user)


async def redeem(db: AsyncSession, token: str) -> User:
    """Exchange a verification token for a verified account.

    Raises InvalidToken if no account holds ``token`` (including a second
    redemption), TokenExpired if it is past its expiry.
    """
    now = _utcnow()

    result = await db.execute(
        select(User).where(User.email_verification_token == token)
    )
    user = result.scalar_one_or_none()

    if user is None:
        raise InvalidToken()

    if user.email_verification_expires is None or now > user.email_verification_expires:
        logger.info("Expired verification token presented for user %s", user.id)
        raise TokenExpired()

    result = await db.execute(
        update(User)
        .where(User.id == user.id, User.email_verification_token == token)
        .values(
            email_verified=True,
            email_verification_token=None,
            email_verification_expires=None,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # Redeemed or reissued by a concurrent request since the lookup
        await db.rollback()
        raise InvalidToken()

    await db.commit()
    await db.refresh(user)

    logger.info("Email verified for user %s", user.id)
    return user
