"""Account service: registration, email verification, resend, login."""

import logging
import uuid

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from echo_api.auth.security import create_access_token, hash_password, verify_password
from echo_api.errors import (
    AccountExists,
    AlreadyVerified,
    EmailNotVerified,
    EmailSendFailed,
    InvalidCredentials,
    UserNotFound,
)
from echo_api.models.user import User
from echo_api.services import verification
from echo_api.services.email import EmailDeliveryError, Notifier

logger = logging.getLogger(__name__)

REGISTERED_MESSAGE = "User registered successfully. Please check your email to verify your account."
REGISTERED_EMAIL_FAILED_MESSAGE = (
    "User registered successfully, but verification email could not be sent. "
    "Please contact support."
)


async def register(
    db: AsyncSession,
    notifier: Notifier,
    username: str,
    email: str,
    password: str,
    display_name: str | None = None,
) -> tuple[User, str]:
    """Create an unverified account and email it a verification link.

    Returns (user, message). A failed email does not undo the registration;
    the message says so instead.
    """
    # Login accepts either identity in one field, so neither value may
    # collide with any account's username or email.
    identities = [username, email]
    result = await db.execute(
        select(User.id).where(
            or_(User.username.in_(identities), User.email.in_(identities))
        )
    )
    if result.first() is not None:
        raise AccountExists()

    password_hash = await run_in_threadpool(hash_password, password)

    user = User(
        id=uuid.uuid4(),
        username=username,
        email=email,
        password_hash=password_hash,
        display_name=display_name or username,
        email_verified=False,
    )
    try:
        token, _ = await verification.issue(db, user)
    except IntegrityError:
        # Lost a race with a concurrent registration for the same identity
        await db.rollback()
        raise AccountExists()

    logger.info("User %s registered (%s)", user.id, username)

    try:
        await notifier.send_verification_email(email, username, token)
    except EmailDeliveryError:
        logger.warning("Registered user %s without a delivered verification email", user.id)
        return user, REGISTERED_EMAIL_FAILED_MESSAGE

    return user, REGISTERED_MESSAGE


async def verify_email(db: AsyncSession, token: str) -> User:
    return await verification.redeem(db, token)


async def resend_verification(db: AsyncSession, notifier: Notifier, email: str) -> None:
    """Reissue the verification token for ``email`` and send it.

    Unlike registration, an email failure here is an error for the caller.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None:
        raise UserNotFound()
    if user.email_verified:
        raise AlreadyVerified()

    token, _ = await verification.reissue(db, user)

    try:
        await notifier.send_verification_email(user.email, user.username, token)
    except EmailDeliveryError:
        raise EmailSendFailed()


async def login(db: AsyncSession, username: str, password: str) -> tuple[User, str]:
    """Authenticate by username or email. Returns (user, bearer_token).

    Unknown account and wrong password fail identically.
    """
    result = await db.execute(
        select(User)
        .where(or_(User.username == username, User.email == username))
        # An exact username match wins over an email match
        .order_by((User.username == username).desc(), User.created_at)
    )
    user = result.scalars().first()

    if user is None:
        logger.info("Login failed: no account for %s", username)
        raise InvalidCredentials()

    if not await run_in_threadpool(verify_password, password, user.password_hash):
        logger.info("Login failed: wrong password for user %s", user.id)
        raise InvalidCredentials()

    if not user.email_verified:
        logger.info("Login refused: email not verified for user %s", user.id)
        raise EmailNotVerified()

    token = create_access_token(user.id, user.username)
    logger.info("User %s logged in", user.id)
    return user, token
