"""
FastAPI application entry point for the Co:Lab notification server.

This module initializes the FastAPI application with:
- Application state (presence registry, notification queue, reminder scheduler)
- Background tasks (presence sweeper, queue worker, daily reminders)
- Exception handlers for consistent error responses
- Rate limiting on push subscription endpoints
- Logging configuration

Environment Variables:
    COLAB_DB_URL: Database URL (default: local Postgres)
    COLAB_ENV: Environment (production/development, default: development)
    COLAB_LOG_LEVEL: Log level (DEBUG/INFO/WARNING/ERROR/CRITICAL, default: INFO)
    VAPID_PUBLIC_KEY / VAPID_PRIVATE_KEY / VAPID_SUBJECT: Web Push credentials
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from server.src.config.settings import get_settings
from server.src.db.database import SessionLocal
from server.src.services.notification_queue import NotificationQueue
from server.src.services.notification_router import build_router
from server.src.services.presence_registry import ViewerPresenceRegistry
from server.src.services.reminder_scheduler import ReminderScheduler
from server.src.utils.logging_config import init_logging, get_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events:
    - Startup: Create singletons, start sweeper, queue worker and scheduler
    - Shutdown: Cancel background tasks

    Args:
        app: FastAPI application instance

    Yields:
        Control to the application
    """
    # Startup
    logger = get_logger("api")
    logger.info("Starting Co:Lab notification server")

    settings = get_settings()
    if not settings.vapid_configured:
        logger.warning("VAPID keys not configured; push notifications are disabled")

    presence = ViewerPresenceRegistry(
        liveness_window=timedelta(seconds=settings.presence_liveness_seconds),
        sweep_interval=timedelta(seconds=settings.presence_sweep_seconds),
    )

    def router_factory(db):
        return build_router(db, presence, settings)

    app.state.presence = presence
    app.state.notification_queue = NotificationQueue(
        SessionLocal,
        router_factory,
        workers=settings.notification_workers,
        max_pending=settings.notification_queue_size,
    )
    app.state.reminder_scheduler = ReminderScheduler(
        SessionLocal, presence, settings, router_factory=router_factory
    )

    sweeper = asyncio.create_task(presence.run_sweeper(), name="presence-sweeper")
    app.state.notification_queue.start()
    if settings.scheduler_enabled:
        app.state.reminder_scheduler.start()

    logger.info("Co:Lab notification server started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Co:Lab notification server")
    await app.state.reminder_scheduler.stop()
    await app.state.notification_queue.stop()
    sweeper.cancel()
    try:
        await sweeper
    except asyncio.CancelledError:
        pass


# Initialize logging before creating app
init_logging()

# Create FastAPI application
app = FastAPI(
    title="Co:Lab Notification API",
    description="Push notification service for the Co:Lab community app. "
                "Manages device subscriptions, viewer presence and notification "
                "preferences, and fans social events out to Web Push.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5000",  # Vite dev server
        "http://127.0.0.1:5000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """
    Handle SQLAlchemy database errors.

    Args:
        request: HTTP request
        exc: SQLAlchemy exception

    Returns:
        JSON response with database error message
    """
    logger = get_logger("db")
    logger.error(
        "Database error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error": str(exc),
        }
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Database Error",
            "message": "An error occurred while accessing the database. "
                      "Please try again later.",
        }
    )


@app.exception_handler(Exception)
async def generic_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Handle all other unhandled exceptions.

    Args:
        request: HTTP request
        exc: Unhandled exception

    Returns:
        JSON response with generic error message
    """
    logger = get_logger("api")
    logger.error(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error": str(exc),
        },
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred. Please try again later.",
        }
    )


# Health check endpoint


@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, Any]:
    """
    Health check endpoint.

    Returns:
        Health status and application information
    """
    return {
        "status": "healthy",
        "service": "colab-push-server",
        "version": "1.0.0",
        "push_configured": get_settings().vapid_configured,
    }


# API routers
from server.src.api import notifications, notify, presence, push

app.state.limiter = push.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(push.router, prefix="/api")
app.include_router(notifications.router, prefix="/api")
app.include_router(presence.router, prefix="/api")
app.include_router(notify.router, prefix="/api")
