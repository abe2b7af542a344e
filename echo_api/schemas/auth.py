"""Pydantic schemas for registration, email verification and login."""

import re
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

_EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)
# bcrypt only looks at the first 72 bytes
_MAX_PASSWORD_BYTES = 72


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    email: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1)
    display_name: str | None = Field(None, max_length=100)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not _EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v: str) -> str:
        if len(v.encode("utf-8")) > _MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {_MAX_PASSWORD_BYTES} bytes")
        return v


class ResendVerificationRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=320)


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=320, description="Username or email")
    password: str = Field(..., min_length=1)


class UserSummary(BaseModel):
    """Public view of an account. Never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    email: str
    display_name: str
    email_verified: bool
    created_at: datetime


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class RegisterResponse(MessageResponse):
    message: str = "User registered successfully. Please check your email to verify your account."
    user: UserSummary


class VerifyEmailResponse(MessageResponse):
    message: str = "Email verified successfully! You can now login."
    user: UserSummary


class LoginResponse(MessageResponse):
    message: str = "Login successful"
    token: str
    token_type: str = "bearer"
    user: UserSummary


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error_code: str
