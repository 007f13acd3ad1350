"""Application startup and shutdown events."""

import logging
import os
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from prometheus_client import Counter

from plottr.core.config import get_settings
from plottr.core.geocoding.service import GeocodingService, set_geocoding_service
from plottr.core.logging import configure_logging

# Prometheus metrics
REQUESTS_TOTAL = Counter(
    "app_http_requests_total",
    "Total number of HTTP requests",
    labelnames=["method", "path"],
)

RESPONSES_TOTAL = Counter(
    "app_http_responses_total",
    "Total number of HTTP responses",
    labelnames=["status_code"],
)

logger: logging.Logger = logging.getLogger("plottr.core.events")


def create_start_app_handler(app: Any) -> Callable[[], Awaitable[None]]:
    """Create startup event handler.

    Args:
        app: FastAPI application instance

    Returns:
        Startup handler function
    """

    async def start_app() -> None:
        settings = get_settings()
        configure_logging(
            testing=os.getenv("TESTING") == "true",
            level=settings.LOG_LEVEL,
            json_logs=settings.JSON_LOGS,
        )

        service = GeocodingService(settings)
        app.state.geocoding_service = service
        set_geocoding_service(service)

        logger.info(
            "Application startup complete - "
            f"Geocoder: {service.active_provider.name}, "
            f"Cache TTL: {service.cache.ttl}s"
        )

    return start_app


def create_stop_app_handler(app: Any) -> Callable[[], Awaitable[None]]:
    """Create shutdown event handler.

    Args:
        app: FastAPI application instance

    Returns:
        Shutdown handler function
    """

    async def stop_app() -> None:
        service: GeocodingService | None = getattr(
            app.state, "geocoding_service", None
        )
        try:
            if service is not None:
                logger.info("Closing geocoding HTTP clients...")
                await service.aclose()
                app.state.geocoding_service = None
                set_geocoding_service(None)

            logger.info("Application shutdown complete")
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")
            raise

    return stop_app


@asynccontextmanager
async def lifespan(app: Any) -> AsyncIterator[None]:
    """Run the startup handler, serve, then run the shutdown handler.

    Args:
        app: FastAPI application instance
    """
    await create_start_app_handler(app)()
    try:
        yield
    finally:
        await create_stop_app_handler(app)()
