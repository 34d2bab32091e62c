"""
Venue Booking API application.

Run with:
    uvicorn venue_booking.main:app
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from venue_booking import __version__
from venue_booking.api.errors import register_exception_handlers
from venue_booking.api.middleware import RequestLoggingMiddleware
from venue_booking.api.router import api_router
from venue_booking.core.config import get_settings
from venue_booking.core.logging import get_logger, setup_logging
from venue_booking.core.metrics import metrics_endpoint
from venue_booking.db.session import get_db
from venue_booking.infrastructure import close_redis, get_redis, redis_status

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings)
    logger.info(
        "application_starting",
        version=__version__,
        environment=settings.ENVIRONMENT,
        cancellation_window_hours=settings.CANCELLATION_WINDOW_HOURS,
    )

    # Redis only carries notifications, so the API starts without it
    if await get_redis() is None:
        logger.warning("notifications_log_only", redis_enabled=settings.REDIS_ENABLED)

    yield

    await close_redis()
    logger.info("application_shutdown")


async def health(db: AsyncSession = Depends(get_db)) -> dict:
    try:
        await db.execute(text("SELECT 1"))
        database = {"status": "connected"}
    except SQLAlchemyError as e:
        logger.error("health_database_failed", error=str(e))
        database = {"status": "error", "error": type(e).__name__}

    return {
        "status": "healthy" if database["status"] == "connected" else "degraded",
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "database": database,
        "redis": await redis_status(),
    }


async def root() -> dict:
    return {"name": settings.APP_NAME, "version": __version__, "docs": "/docs", "api": api_router.prefix}


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=__version__,
        description="Events, bookings and seat accounting for a single venue",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials="*" not in settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Response-Time"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(api_router)
    app.add_api_route("/health", health, methods=["GET"], tags=["Health"])
    app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], include_in_schema=False)
    app.add_api_route("/", root, methods=["GET"], include_in_schema=False)
    return app


app = create_app()
