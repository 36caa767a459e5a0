"""FastAPI application entry point."""

import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cartera.api.routers import cache_router, instruments_router, portfolio_router
from cartera.app_context import get_app_context
from cartera.config.logging_config import setup_logging
from cartera.config.settings import get_settings
from cartera.core.exceptions import (
    AppError,
    InsufficientDataError,
    NotFoundError,
    UpstreamUnavailableError,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    setup_logging()
    yield
    # Shutdown
    get_app_context().close()


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    description="Portfolio reconstruction and valuation in USD",
    version=settings.app_version,
    lifespan=lifespan,
)

# Include routers
app.include_router(portfolio_router)
app.include_router(instruments_router)
app.include_router(cache_router)


def _status_for(exc: AppError) -> int:
    if isinstance(exc, (NotFoundError, InsufficientDataError)):
        return 404
    if isinstance(exc, UpstreamUnavailableError):
        return 503
    return 400


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Global handler for application errors."""
    return JSONResponse(
        status_code=_status_for(exc),
        content={"error": exc.code, "message": exc.message},
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


def run() -> None:
    """Start uvicorn with the port from BACKEND_PORT."""
    port = int(os.environ.get("BACKEND_PORT", "8001"))
    uvicorn.run(app, host="127.0.0.1", port=port)
