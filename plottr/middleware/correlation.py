"""Correlation ID middleware for request tracking."""

import re
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from structlog.contextvars import bind_contextvars, clear_contextvars

REQUEST_ID_HEADER = "X-Request-ID"

# Caller-supplied IDs that are not UUIDs must still be short and log-safe
_TOKEN_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,63}$")


def is_valid_correlation_id(value: str | None) -> bool:
    """Accept UUIDs and short tokens of letters, digits, dots, dashes, underscores."""
    if not value:
        return False
    try:
        uuid.UUID(value)
        return True
    except ValueError:
        return bool(_TOKEN_ID.match(value))


class CorrelationMiddleware(BaseHTTPMiddleware):
    """
    Middleware to handle request correlation IDs.

    Reuses a valid incoming ``X-Request-ID`` or generates one, then exposes
    it on ``request.state``, in the structlog context (so every geocoding
    log event of the request carries it) and on the response.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        clear_contextvars()

        header_value = request.headers.get(REQUEST_ID_HEADER)
        if is_valid_correlation_id(header_value):
            correlation_id = str(header_value)
        else:
            correlation_id = str(uuid.uuid4())

        bind_contextvars(correlation_id=correlation_id)
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = correlation_id
        return response
