"""API error taxonomy.

Every failure a client can see is an ``ApiError``: an HTTP status, a stable
``ErrorCode`` and a fixed user-facing message. Internal detail never leaves
the server.
"""

from enum import Enum

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    # --- Generic ---
    BAD_REQUEST = "bad_request"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    INTERNAL_ERROR = "internal_error"
    DATABASE_ERROR = "database_error"

    # --- Accounts ---
    ACCOUNT_EXISTS = "account_exists"
    USER_NOT_FOUND = "user_not_found"
    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_NOT_VERIFIED = "email_not_verified"

    # --- Verification tokens ---
    TOKEN_MISSING = "token_missing"
    INVALID_TOKEN = "invalid_token"
    TOKEN_EXPIRED = "token_expired"
    ALREADY_VERIFIED = "already_verified"

    # --- Email ---
    EMAIL_SEND_FAILED = "email_send_failed"


class ApiError(HTTPException):
    """HTTP error carrying a machine-readable code alongside its message."""

    status_code_default = status.HTTP_400_BAD_REQUEST
    code = ErrorCode.BAD_REQUEST
    message = "Bad request"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        code: ErrorCode | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if code is not None:
            self.code = code
        super().__init__(
            status_code=status_code or self.status_code_default,
            detail=message or self.message,
            headers=headers,
        )


class InvalidToken(ApiError):
    code = ErrorCode.INVALID_TOKEN
    message = "Invalid verification token"


class TokenExpired(ApiError):
    code = ErrorCode.TOKEN_EXPIRED
    message = "Verification token has expired"


class AlreadyVerified(ApiError):
    code = ErrorCode.ALREADY_VERIFIED
    message = "Email is already verified"


class AccountExists(ApiError):
    code = ErrorCode.ACCOUNT_EXISTS
    message = "Username or email already exists"


class UserNotFound(ApiError):
    code = ErrorCode.USER_NOT_FOUND
    message = "User not found"


class InvalidCredentials(ApiError):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    code = ErrorCode.INVALID_CREDENTIALS
    message = "Invalid credentials"


class EmailNotVerified(ApiError):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    code = ErrorCode.EMAIL_NOT_VERIFIED
    message = "Please verify your email before logging in"


class EmailSendFailed(ApiError):
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = ErrorCode.EMAIL_SEND_FAILED
    message = "Failed to send verification email"


class RateLimited(ApiError):
    status_code_default = status.HTTP_429_TOO_MANY_REQUESTS
    code = ErrorCode.RATE_LIMITED
    message = "Rate limit exceeded"
