"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fleet_payroll import __version__
from fleet_payroll.api.routes import (
    health_router,
    simulator_router,
    statements_router,
    tariffs_router,
)
from fleet_payroll.database import init_db
from fleet_payroll.exceptions import (
    InvalidTripError,
    PaymentCancellationError,
    PaymentNotFoundError,
    StatementComputationError,
    StatementLockedError,
    StatementNotFoundError,
    TariffCloneError,
    TariffValidationError,
)
from fleet_payroll.services.state_machine import InvalidTransitionError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    engine, _ = init_db()
    yield
    await engine.dispose()


def _error(status_code: int, exc: Exception, code: str, **context: object) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": code, "context": context or None},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Fleet Payroll API",
        description="Monthly compensation for transport drivers and partners",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(TariffValidationError)
    async def tariff_validation_handler(request: Request, exc: TariffValidationError) -> JSONResponse:
        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY, exc, "TARIFF_INVALID", errors=exc.errors
        )

    @app.exception_handler(TariffCloneError)
    async def tariff_clone_handler(request: Request, exc: TariffCloneError) -> JSONResponse:
        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            exc,
            "TARIFF_CLONE_FAILED",
            source_year=exc.source_year,
            target_year=exc.target_year,
        )

    @app.exception_handler(InvalidTripError)
    async def invalid_trip_handler(request: Request, exc: InvalidTripError) -> JSONResponse:
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, exc, "TRIP_INVALID")

    @app.exception_handler(StatementComputationError)
    async def computation_handler(request: Request, exc: StatementComputationError) -> JSONResponse:
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, exc, "STATEMENT_NOT_COMPUTABLE")

    @app.exception_handler(StatementNotFoundError)
    async def not_found_handler(request: Request, exc: StatementNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, exc, "STATEMENT_NOT_FOUND")

    @app.exception_handler(StatementLockedError)
    async def locked_handler(request: Request, exc: StatementLockedError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, exc, "STATEMENT_LOCKED", status=exc.status)

    @app.exception_handler(PaymentNotFoundError)
    async def payment_not_found_handler(request: Request, exc: PaymentNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, exc, "PAYMENT_NOT_FOUND")

    @app.exception_handler(PaymentCancellationError)
    async def payment_cancellation_handler(
        request: Request, exc: PaymentCancellationError
    ) -> JSONResponse:
        return _error(
            status.HTTP_409_CONFLICT, exc, "PAYMENT_NOT_CANCELLABLE", reason=exc.reason
        )

    @app.exception_handler(InvalidTransitionError)
    async def transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
        return _error(
            status.HTTP_409_CONFLICT,
            exc,
            "INVALID_TRANSITION",
            from_status=exc.from_status,
            to_status=exc.to_status,
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

    app.include_router(health_router)
    app.include_router(tariffs_router, prefix="/api/v1")
    app.include_router(simulator_router, prefix="/api/v1")
    app.include_router(statements_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
