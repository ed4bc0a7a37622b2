"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError

from autoinvest.config.settings import get_settings
from autoinvest.config.logging_config import setup_logging
from autoinvest.repositories.sqlalchemy.database import init_db
from autoinvest.api.routers import (
    holdings_router,
    schedules_router,
    sweep_router,
    balances_router,
)
from autoinvest.core.exceptions import AppError, NotFoundError, SweepAbortedError


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    setup_logging()
    init_db()
    yield
    # Shutdown (nothing to clean up)


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    description="Recurring auto-invest scheduling, execution and ledger reconciliation",
    version=settings.app_version,
    lifespan=lifespan,
)

# Include routers
app.include_router(holdings_router)
app.include_router(schedules_router)
app.include_router(sweep_router)
app.include_router(balances_router)


def _status_for(exc: AppError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, SweepAbortedError):
        return 503
    return 400


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Global handler for application errors."""
    return JSONResponse(
        status_code=_status_for(exc),
        content={"error": exc.code, "message": exc.message},
    )


@app.exception_handler(StaleDataError)
async def stale_data_handler(request: Request, exc: StaleDataError) -> JSONResponse:
    """A concurrent writer moved the row on; the client may retry."""
    return JSONResponse(
        status_code=409,
        content={"error": "CONFLICT", "message": str(exc)},
    )


@app.get("/health")
def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
