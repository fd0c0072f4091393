"""
FastAPI API Service Entry Point
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import bookings, stylists
from database.connection import dispose_engine, init_db
from scheduling.errors import (
    AccessDeniedError,
    InvalidServiceError,
    InvalidStylistError,
    InvalidTimeError,
    InvalidTransitionError,
    NotFoundError,
    ScheduleConflictError,
    SchedulingError,
    SlotUnavailableError,
)
from shared.config import get_settings
from shared.logging_config import configure_logging

# Configure structured JSON logging on startup
configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Salon Scheduling API",
    version="1.0.0",
)

# Load settings for CORS configuration
settings = get_settings()
origins = settings.CORS_ORIGINS.split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(stylists.router, tags=["stylists"])
app.include_router(bookings.router, tags=["bookings"])

HTTP_STATUS_BY_ERROR: dict[type[SchedulingError], int] = {
    InvalidServiceError: 400,
    InvalidStylistError: 400,
    InvalidTimeError: 400,
    SlotUnavailableError: 409,
    InvalidTransitionError: 409,
    AccessDeniedError: 403,
    NotFoundError: 404,
    ScheduleConflictError: 409,
}


def status_for_error(exc: SchedulingError) -> int:
    for cls in type(exc).__mro__:
        if cls in HTTP_STATUS_BY_ERROR:
            return HTTP_STATUS_BY_ERROR[cls]
    return 400


@app.on_event("startup")
async def startup_create_tables():
    """Create missing tables (schema migrations are managed outside this service)."""
    logger.info("Ensuring database schema...")
    await init_db()


@app.on_event("shutdown")
async def shutdown_dispose_engine():
    await dispose_engine()


@app.exception_handler(SchedulingError)
async def scheduling_exception_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    """Return the error's code, message and details with its mapped status."""
    status_code = status_for_error(exc)
    logger.info(
        f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}",
        extra={"request_path": request.url.path, "error_code": exc.error_code},
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.get("/health")
async def health_check() -> JSONResponse:
    """
    Health check endpoint for Docker health checks and monitoring.

    Returns:
        200 OK if the database answers SELECT 1
        503 Service Unavailable otherwise
    """
    from sqlalchemy import text

    from database.connection import get_async_session

    health_status = {"status": "healthy", "database": "unknown"}
    status_code = 200

    try:
        async with get_async_session() as session:
            await session.execute(text("SELECT 1"))
            health_status["database"] = "connected"
    except Exception:
        logger.exception("Health check: database unreachable")
        health_status["database"] = "disconnected"
        health_status["status"] = "degraded"
        status_code = 503

    return JSONResponse(status_code=status_code, content=health_status)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {"message": "Salon Scheduling API - Use /health for health checks"}
