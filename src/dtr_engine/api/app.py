"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dtr_engine import __version__
from dtr_engine.api.routes import (
    attendance_router,
    clock_router,
    health_router,
    leave_router,
    payroll_router,
    salary_rules_router,
)
from dtr_engine.config import get_settings
from dtr_engine.database import dispose_db, init_db
from dtr_engine.errors import (
    ConcurrencyError,
    DataIntegrityError,
    EmployeeNotFoundError,
    EngineError,
    PayrollLineNotFoundError,
    SalaryRuleNotFoundError,
)
from dtr_engine.logging_config import configure_logging

logger = logging.getLogger(__name__)

NOT_FOUND_ERRORS = (EmployeeNotFoundError, PayrollLineNotFoundError, SalaryRuleNotFoundError)


def status_for(exc: EngineError) -> int:
    """HTTP status for an engine error."""
    if isinstance(exc, NOT_FOUND_ERRORS):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, (ConcurrencyError, DataIntegrityError)):
        return status.HTTP_409_CONFLICT
    return status.HTTP_422_UNPROCESSABLE_ENTITY


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    init_db()
    yield
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(get_settings().log_level)

    app = FastAPI(
        title="DTR Payroll Engine API",
        description="Time and attendance, leave and payroll computation",
        version=__version__,
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
    @app.exception_handler(EngineError)
    async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
        """Return engine errors as typed, displayable responses."""
        if isinstance(exc, DataIntegrityError):
            logger.warning("%s %s: %s", request.method, request.url.path, exc.message)
        else:
            logger.debug("%s %s rejected: %s", request.method, request.url.path, exc.code)
        return JSONResponse(
            status_code=status_for(exc),
            content={"detail": exc.message, "code": exc.code, "retryable": exc.retryable},
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
    app.include_router(clock_router, prefix="/api/v1")
    app.include_router(attendance_router, prefix="/api/v1")
    app.include_router(leave_router, prefix="/api/v1")
    app.include_router(payroll_router, prefix="/api/v1")
    app.include_router(salary_rules_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
