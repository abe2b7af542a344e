"""User account model and its email verification state."""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import Boolean, CheckConstraint, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from echo_api.database import Base, UTCDateTime


@dataclass(frozen=True)
class Unverified:
    """A verification is pending: the account holds a live token."""

    token: str
    expires_at: datetime


@dataclass(frozen=True)
class Verified:
    """Terminal state. No token is held."""


VerificationState = Unverified | Verified


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "(email_verification_token IS NULL) = (email_verification_expires IS NULL)",
            name="ck_users_verification_token_expiry_pair",
        ),
        CheckConstraint(
            "NOT email_verified OR email_verification_token IS NULL",
            name="ck_users_verified_has_no_token",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    username: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False
    )
    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    email_verification_token: Mapped[str | None] = mapped_column(
        String(128), unique=True, nullable=True
    )
    email_verification_expires: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=lambda: datetime.now(UTC)
    )

    @property
    def verification_state(self) -> VerificationState:
        if self.email_verified:
            return Verified()
        if self.email_verification_token is None or self.email_verification_expires is None:
            raise ValueError(f"User {self.id} is unverified but holds no verification token")
        return Unverified(
            token=self.email_verification_token,
            expires_at=self.email_verification_expires,
        )

    def __repr__(self) -> str:
        return f"<User {self.username} verified={self.email_verified}>"
