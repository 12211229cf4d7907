"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from timeclock_engine.api.routes import (
    health_router,
    payment_adjustments_router,
    payroll_runs_router,
    time_entries_router,
    weekly_hours_router,
)
from timeclock_engine.config import configure_logging, settings
from timeclock_engine.database import dispose_db, init_db
from timeclock_engine.errors import (
    AuthError,
    ConflictError,
    TimeclockError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthError: status.HTTP_401_UNAUTHORIZED,
    ConflictError: status.HTTP_409_CONFLICT,
    UpstreamError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: TimeclockError) -> int:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    configure_logging(settings.log_level)
    init_db()
    logger.info("Timeclock engine %s started", settings.engine_version)
    yield
    # Shutdown
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Timeclock Engine API",
        description="Time-entry event log and payroll hours engine",
        version=settings.engine_version,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(TimeclockError)
    async def timeclock_exception_handler(
        request: Request, exc: TimeclockError
    ) -> JSONResponse:
        """Map engine errors to their HTTP status."""
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={
                "detail": exc.message,
                "code": exc.code,
                "context": exc.context or None,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report malformed payloads as 400 with the failing fields."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": "Invalid request",
                "code": ValidationError.code,
                "context": {
                    "errors": [
                        {"loc": [str(part) for part in error["loc"]], "msg": error["msg"]}
                        for error in exc.errors()
                    ]
                },
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(time_entries_router, prefix="/api/v1")
    app.include_router(weekly_hours_router, prefix="/api/v1")
    app.include_router(payment_adjustments_router, prefix="/api/v1")
    app.include_router(payroll_runs_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
