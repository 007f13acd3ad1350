"""Base class for geocoding provider adapters."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, Optional, TypeVar

import httpx

from plottr.core.geocoding.errors import GeocodeError, RateLimitError
from plottr.core.geocoding.retry import with_http_retry
from plottr.core.geocoding.types import GeocodeQuery, GeocodeResult
from plottr.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    # Only the delta-seconds form is honoured
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class BaseGeocodingProvider(ABC):
    """Base class for geocoding providers.

    Subclasses translate a :class:`GeocodeQuery` into their service's query
    string, and map the service's JSON back into :class:`GeocodeResult`.
    Provider-specific response shapes never leave the subclass.

    Adapters raise only on transport or HTTP failure. An empty but
    successful answer is returned as an empty list.
    """

    name: str = "base"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        max_retries: int = 2,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Initialize the provider.

        Args:
            client: Shared HTTP client; one is created (and owned) if omitted
            timeout: Request timeout in seconds for an owned client
            max_retries: Retries for transient (5xx / transport) failures
            headers: Headers attached to every request
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = dict(headers or {})
        self.max_retries = max_retries
        self._send = with_http_retry(max_retries=max_retries, provider=self.name)(
            self._request
        )

    @property
    def available(self) -> bool:
        """Whether the provider is configured well enough to be called."""
        return True

    async def _request(
        self, url: str, params: Mapping[str, Any]
    ) -> httpx.Response:
        return await self._client.get(url, params=params, headers=self._headers)

    async def _get(self, url: str, params: Mapping[str, Any]) -> httpx.Response:
        """GET through the retry executor; non-success becomes a typed error.

        Raises:
            RateLimitError: Provider answered 429
            GeocodeError: Any other non-2xx status, or transport failure
        """
        response = await self._send(url, params)
        if response.is_success:
            return response

        if response.status_code == 429:
            raise RateLimitError(
                "Geocoding rate limit exceeded",
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
                provider=self.name,
            )

        logger.error(
            "provider_http_error",
            provider=self.name,
            status_code=response.status_code,
            reason=response.reason_phrase,
        )
        raise GeocodeError(
            f"{self.name} geocoding failed: {response.reason_phrase or 'error'}",
            status_code=response.status_code,
            provider=self.name,
        )

    @staticmethod
    def _json(response: httpx.Response, provider: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise GeocodeError(
                f"{provider} returned an unreadable response",
                status_code=502,
                provider=provider,
            ) from e

    def _parse(self, payload: Any, mapper: Callable[[Any], T]) -> T:
        """Map a decoded body; a body of the wrong shape is a provider failure.

        Raises:
            GeocodeError: Missing or malformed fields (status 502)
        """
        try:
            return mapper(payload)
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(
                "provider_malformed_response",
                provider=self.name,
                error_type=e.__class__.__name__,
                error=str(e),
            )
            raise GeocodeError(
                f"{self.name} returned a malformed response",
                status_code=502,
                provider=self.name,
            ) from e

    @abstractmethod
    async def forward_geocode(self, query: GeocodeQuery) -> list[GeocodeResult]:
        """Resolve free text (or a structured code) into ordered results.

        Args:
            query: The normalized request

        Returns:
            Results in provider order, possibly empty

        Raises:
            GeocodeError: The provider could not answer
            RateLimitError: The provider or local limiter refused the call
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    def __repr__(self) -> str:
        """String representation of the provider."""
        return f"{self.__class__.__name__}(max_retries={self.max_retries})"
