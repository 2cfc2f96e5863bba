"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request

from offboard_api.api.offboarding import router as offboarding_router
from offboard_api.core.config import settings
from offboard_api.core.logging import logger, setup_logging
from offboard_api.middleware import (
    LoggingMiddleware,
    RequestIDMiddleware,
    limiter,
    setup_cors,
    setup_exception_handlers,
    setup_rate_limiting,
)
from offboard_api.services.offboardings import OffboardingStore
from offboard_api.services.scheduler import (
    scheduler,
    setup_scheduler,
    shutdown_scheduler,
    start_scheduler,
)
from offboard_api.services.sessions import create_session_store

# Configure logging
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Own the pool for the app's lifetime: build stores on startup, close on shutdown."""
    logger.info("application_starting")

    session_store, db = await create_session_store(
        settings.database_url,
        table_name=settings.session_table_name,
        prune_session_interval=settings.session_prune_interval,
        schema_name=settings.session_schema_name,
    )
    app.state.db = db
    app.state.session_store = session_store
    app.state.offboarding_store = OffboardingStore(db)

    setup_scheduler(session_store)
    start_scheduler()

    logger.info("application_ready")

    yield

    logger.info("application_shutting_down")
    shutdown_scheduler()
    await db.disconnect()
    logger.info("application_stopped")


app = FastAPI(
    title="Employee Offboarding API",
    description="Scheduled offboardings and session storage for the offboarding portal",
    version="1.0.0",
    lifespan=lifespan,
)

# Last added runs first: request id must be bound before logging
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
setup_cors(app)
setup_exception_handlers(app)
setup_rate_limiting(app, limiter)

app.include_router(offboarding_router)


@app.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """
    Health check endpoint.

    Verifies database connectivity and reports pool stats.

    Raises:
        HTTPException: 503 if database is unavailable
    """
    try:
        db = getattr(request.app.state, "db", None)
        if db is None or db.pool is None:
            raise RuntimeError("Database pool not initialized")

        await db.ping()

        pool_size = db.pool.get_size()
        pool_free = db.pool.get_idle_size()

        return {
            "status": "healthy",
            "database": "connected",
            "scheduler": "running" if scheduler.running else "stopped",
            "pool": {
                "size": pool_size,
                "free": pool_free,
                "in_use": pool_size - pool_free,
                "max": db.max_size,
            },
        }
    except Exception as e:
        logger.error("health_check_failed", error=str(e))
        raise HTTPException(status_code=503, detail="Database unavailable") from e


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint."""
    return {
        "message": "Employee Offboarding API",
        "endpoints": {
            "health": "/health",
            "offboarding": "/api/offboarding/scheduled",
        },
    }
