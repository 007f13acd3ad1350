"""Error handling middleware and exception handlers."""

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.status import HTTP_422_UNPROCESSABLE_ENTITY, HTTP_500_INTERNAL_SERVER_ERROR
from starlette.types import ASGIApp

from plottr.core.geocoding.errors import GeocodingError, RateLimitError
from plottr.core.logging import get_logger

logger = get_logger()

# Map exception types to status codes (None means use exception's status_code)
ErrorMapping = dict[type[Exception], int | None]


def _correlation_id(request: Request) -> str | None:
    correlation_id = getattr(request.state, "correlation_id", None)
    return str(correlation_id) if correlation_id else None


def _error_response(
    error_type: str,
    detail: str,
    status_code: int,
    correlation_id: str | None,
    code: str | None = None,
) -> JSONResponse:
    """Create JSON error response with optional correlation ID."""
    content: dict[str, object] = {
        "error": error_type,
        "message": detail,
        "status_code": status_code,
        "correlation_id": correlation_id if correlation_id else "unknown",
    }
    if code is not None:
        content["code"] = code
    response = JSONResponse(
        status_code=status_code, content=content, media_type="application/json"
    )
    if correlation_id:
        response.headers["X-Request-ID"] = correlation_id
    return response


async def handle_geocoding_error(request: Request, exc: GeocodingError) -> JSONResponse:
    """Render a geocoding failure with its own status code and error code."""
    correlation_id = _correlation_id(request)
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "request_error",
        error_type=exc.__class__.__name__,
        error_code=exc.code,
        error_message=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
        method=request.method,
        correlation_id=correlation_id,
    )

    response = _error_response(
        exc.__class__.__name__,
        exc.message,
        exc.status_code,
        correlation_id,
        code=exc.code,
    )
    if isinstance(exc, RateLimitError) and exc.retry_after is not None:
        # Retry-After is whole seconds
        response.headers["Retry-After"] = str(max(1, round(exc.retry_after)))
    return response


def register_error_handlers(app: FastAPI) -> None:
    """Register exception handlers for the geocoding error family."""
    app.add_exception_handler(GeocodingError, handle_geocoding_error)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware turning unexpected exceptions into consistent JSON errors."""

    def __init__(self, app: ASGIApp) -> None:
        """
        Initialize middleware with error mappings.

        Args:
        ----
            app: The ASGI application
        """
        super().__init__(app)
        # Anything unlisted is an internal fault and answers 500
        self.error_mapping: ErrorMapping = {
            RequestValidationError: HTTP_422_UNPROCESSABLE_ENTITY,
            HTTPException: None,  # Use its own status_code
        }

    def _get_error_detail(self, exc: Exception) -> tuple[str, int]:
        """Get error detail and status code from exception."""
        if isinstance(exc, HTTPException):
            return str(exc.detail), exc.status_code

        mapped_status = self.error_mapping.get(type(exc))
        status_code = (
            mapped_status
            if mapped_status is not None
            else HTTP_500_INTERNAL_SERVER_ERROR
        )
        detail = str(exc.args[0] if exc.args else str(exc))
        return detail, status_code

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """
        Process the request/response cycle and handle errors.

        Args:
        ----
            request: The incoming request
            call_next: The next handler in the middleware chain

        Returns:
        -------
            The response from downstream handlers or error response
        """
        try:
            return await call_next(request)
        except Exception as exc:
            correlation_id = _correlation_id(request)
            error_type = exc.__class__.__name__
            detail, status_code = self._get_error_detail(exc)

            logger.error(
                "request_error",
                error_type=error_type,
                error_message=detail,
                status_code=status_code,
                path=request.url.path,
                method=request.method,
                correlation_id=correlation_id,
                exc_info=status_code >= HTTP_500_INTERNAL_SERVER_ERROR,
            )
            return _error_response(error_type, detail, status_code, correlation_id)
