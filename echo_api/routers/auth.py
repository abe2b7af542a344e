"""Auth endpoints: register, verify email, resend verification, login."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from echo_api.auth.rate_limit import rate_limit
from echo_api.database import get_db
from echo_api.errors import ApiError, ErrorCode
from echo_api.schemas.auth import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResendVerificationRequest,
    UserSummary,
    VerifyEmailResponse,
)
from echo_api.services import account as account_service
from echo_api.services.email import Notifier, get_notifier

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=201,
    dependencies=[Depends(rate_limit("register"))],
)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> RegisterResponse:
    """Create an unverified account and send the verification email."""
    user, message = await account_service.register(
        db,
        notifier,
        username=data.username,
        email=data.email,
        password=data.password,
        display_name=data.display_name,
    )
    return RegisterResponse(message=message, user=UserSummary.model_validate(user))


@router.get("/verify-email", response_model=VerifyEmailResponse)
async def verify_email(
    token: str | None = Query(None, max_length=128),
    db: AsyncSession = Depends(get_db),
) -> VerifyEmailResponse:
    """Redeem the token from a verification link."""
    if not token:
        raise ApiError("Verification token is required", code=ErrorCode.TOKEN_MISSING)
    user = await account_service.verify_email(db, token)
    return VerifyEmailResponse(user=UserSummary.model_validate(user))


@router.post(
    "/resend-verification",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit("resend"))],
)
async def resend_verification(
    data: ResendVerificationRequest,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> MessageResponse:
    """Issue a new verification token, invalidating the previous one."""
    await account_service.resend_verification(db, notifier, data.email)
    return MessageResponse(message="Verification email sent successfully")


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse}},
    dependencies=[Depends(rate_limit("login"))],
)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """Exchange username (or email) and password for a bearer token."""
    user, token = await account_service.login(db, data.username, data.password)
    return LoginResponse(token=token, user=UserSummary.model_validate(user))
