"""Main FastAPI application module."""

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from plottr.api.v1.router import router as v1_router
from plottr.core.config import Settings, get_settings
from plottr.core.events import lifespan
from plottr.middleware.correlation import CorrelationMiddleware
from plottr.middleware.errors import ErrorHandlingMiddleware, register_error_handlers
from plottr.middleware.metrics import MetricsMiddleware


def create_app(settings: Settings | None = None) -> FastAPI:
    """Assemble the application.

    Args:
        settings: Settings to build from; the process settings if omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Geocoding resolution API (Mapbox primary, Nominatim fallback)",
        version=settings.version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        default_response_class=JSONResponse,
        lifespan=lifespan,
    )

    # Add middleware in order (inside -> out); the last one added is outermost:
    # 1. Error handling (innermost - handles unexpected errors)
    # 2. Metrics (tracks all requests)
    # 3. Correlation (adds request ID)
    # 4. CORS (outermost)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "DELETE", "OPTIONS"],
        allow_headers=["*", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        max_age=600,
    )
    register_error_handlers(app)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose Prometheus metrics."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/health")
    async def health_check(request: Request) -> dict[str, str]:
        """
        Health check endpoint.

        Returns
        -------
            Dict containing health status information
        """
        return {
            "status": "healthy",
            "version": settings.version,
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
        }

    app.include_router(v1_router, prefix=settings.api_prefix)
    return app


app = create_app()
