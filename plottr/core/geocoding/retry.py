"""Retry mechanisms for outbound geocoding HTTP calls."""

import asyncio
import functools
from typing import Any, Awaitable, Callable

import httpx

from plottr.core.geocoding.constants import (
    RETRY_BACKOFF_FACTOR,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
)
from plottr.core.geocoding.errors import GeocodeError
from plottr.core.logging import get_logger

logger = get_logger(__name__)

SendFunc = Callable[..., Awaitable[httpx.Response]]


def is_transient(response: httpx.Response) -> bool:
    """Server errors (5xx) are worth retrying; client errors (4xx) are not."""
    return response.status_code >= 500


def backoff_delay(
    attempt: int,
    base_delay: float = RETRY_BASE_DELAY,
    backoff_factor: float = RETRY_BACKOFF_FACTOR,
    max_delay: float = RETRY_MAX_DELAY,
) -> float:
    """Delay before retry number ``attempt + 1`` (100 ms, 200 ms, 400 ms, ...)."""
    return min(base_delay * (backoff_factor**attempt), max_delay)


def with_http_retry(
    max_retries: int = 2,
    base_delay: float = RETRY_BASE_DELAY,
    max_delay: float = RETRY_MAX_DELAY,
    backoff_factor: float = RETRY_BACKOFF_FACTOR,
    provider: str | None = None,
) -> Callable[[SendFunc], SendFunc]:
    """Decorator that retries an async HTTP call with exponential backoff.

    Responses with a 5xx status and ``httpx.TransportError``s are retried.
    Any other response, including 4xx, is returned on the first attempt.

    Args:
        max_retries: Maximum number of retry attempts after the first call
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
        backoff_factor: Multiplier for exponential backoff
        provider: Provider name for log events and errors

    Returns:
        Decorated coroutine function. When retries are exhausted it returns
        the last 5xx response, or raises GeocodeError if the last attempt
        failed at the transport level.
    """

    def decorator(func: SendFunc) -> SendFunc:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> httpx.Response:
            for attempt in range(max_retries + 1):
                try:
                    response = await func(*args, **kwargs)
                except httpx.TransportError as e:
                    if attempt == max_retries:
                        logger.error(
                            "provider_unreachable",
                            provider=provider,
                            attempts=attempt + 1,
                            error=str(e),
                        )
                        raise GeocodeError(
                            f"Geocoding request failed after {attempt + 1} "
                            f"attempt(s): {e}",
                            status_code=503,
                            provider=provider,
                        ) from e
                    reason = type(e).__name__
                else:
                    if not is_transient(response) or attempt == max_retries:
                        return response
                    reason = f"HTTP {response.status_code}"

                delay = backoff_delay(attempt, base_delay, backoff_factor, max_delay)
                logger.warning(
                    "provider_retry",
                    provider=provider,
                    attempt=attempt + 1,
                    max_attempts=max_retries + 1,
                    reason=reason,
                    delay=delay,
                )
                await asyncio.sleep(delay)

            raise RuntimeError("Unexpected retry loop exit")

        return wrapper

    return decorator
