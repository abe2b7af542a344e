"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from echo_api.config import settings
from echo_api.errors import ApiError, ErrorCode
from echo_api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from echo_api.routers import auth
from echo_api.schemas.auth import ErrorResponse

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _check_database() -> bool:
    """Log whether the store is reachable. Startup continues either way."""
    from echo_api.database import engine

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database connection failed: %s", e)
        return False
    logger.info("Database connected")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown."""
    from echo_api.database import engine
    from echo_api.redis import check_redis_connection, redis_pool

    configure_logging()
    await _check_database()
    if settings.rate_limit_enabled:
        await check_redis_connection()
    logger.info("%s API %s listening on port %d", settings.app_name, settings.version, settings.port)

    yield

    await engine.dispose()
    await redis_pool.aclose()


app = FastAPI(
    title=f"{settings.app_name} API",
    description="User accounts: registration, email verification and login",
    version=settings.version,
    lifespan=lifespan,
)


def _error(status_code: int, code: ErrorCode | str, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, error_code=ErrorCode(code).value).model_dump(),
        headers=headers,
    )


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return _error(exc.status_code, exc.code, str(exc.detail), exc.headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Map plain HTTPExceptions (routing 404/405 etc.) into the same envelope
    code_map = {
        404: ErrorCode.NOT_FOUND,
        429: ErrorCode.RATE_LIMITED,
    }
    return _error(
        exc.status_code,
        code_map.get(exc.status_code, ErrorCode.BAD_REQUEST),
        str(exc.detail),
        getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
    message = "Missing or invalid fields: " + ", ".join(fields) if fields else "Invalid request"
    return _error(status.HTTP_400_BAD_REQUEST, ErrorCode.VALIDATION_ERROR, message)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.DATABASE_ERROR, "Internal server error"
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.INTERNAL_ERROR, "Internal server error"
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware (order matters — outermost last)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(auth.router)


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "message": f"Welcome to {settings.app_name} API",
        "version": settings.version,
        "status": "Server is running!",
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "OK", "timestamp": datetime.now(UTC).isoformat()}
