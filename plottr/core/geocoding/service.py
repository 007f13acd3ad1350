"""Geocoding resolution service.

This module composes the geocoding pieces into the two operations the rest
of the application uses:

- ``search``: free text or a structured postal code -> ordered results.
  Validate, check the result cache, classify, call the active provider,
  fall back to the alternate provider on an empty or failed answer, store
  the (possibly empty) result array, return it.
- ``reverse``: a point -> the address there, or None.

Concurrent identical searches are not coalesced: each may miss the cache
and issue its own provider call.
"""

import time
from typing import Any, Optional

import httpx

from plottr.core.config import Settings, get_settings
from plottr.core.geocoding import metrics
from plottr.core.geocoding.cache import ResultCache, build_cache_key
from plottr.core.geocoding.classifier import classify_query
from plottr.core.geocoding.constants import (
    GLOBAL_RATE_KEY,
    NOMINATIM,
    STRUCTURED_CODE_COUNTRY,
)
from plottr.core.geocoding.errors import GeocodeError, GeocodingError, RateLimitError
from plottr.core.geocoding.providers import (
    BaseGeocodingProvider,
    MapboxProvider,
    NominatimProvider,
)
from plottr.core.geocoding.rate_limiter import RateLimiter
from plottr.core.geocoding.types import (
    GeocodeQuery,
    GeocodeResult,
    OutcomeStatus,
    ProviderOutcome,
)
from plottr.core.geocoding.validator import (
    ProximityInput,
    clamp_limit,
    normalize_country,
    parse_proximity,
    validate_coordinates,
    validate_query_text,
)
from plottr.core.logging import get_logger

logger = get_logger(__name__)


class GeocodingService:
    """Forward and reverse geocoding with caching, rate limiting and fallback."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        mapbox: Optional[MapboxProvider] = None,
        nominatim: Optional[NominatimProvider] = None,
        cache: Optional[ResultCache] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize the service.

        Providers not passed in are built from settings and share one HTTP
        client, which the service then owns and closes in :meth:`aclose`.

        Args:
            settings: Provider configuration; the process settings if omitted
            mapbox: Primary provider
            nominatim: Secondary provider, also used for reverse lookups
            cache: Result cache
            client: HTTP client shared by providers built here
        """
        self.settings = settings or get_settings()
        s = self.settings

        self._owns_client = client is None and (
            nominatim is None or (mapbox is None and s.has_mapbox_token)
        )
        self._client = client
        if self._client is None and self._owns_client:
            self._client = httpx.AsyncClient(timeout=s.GEOCODING_TIMEOUT)

        if nominatim is None:
            nominatim = NominatimProvider(
                user_agent=s.NOMINATIM_USER_AGENT,
                accept_language=s.NOMINATIM_ACCEPT_LANGUAGE,
                rate_limiter=RateLimiter(
                    min_interval_ms=s.NOMINATIM_RATE_LIMIT_MS, name=NOMINATIM
                ),
                client=self._client,
                max_retries=s.NOMINATIM_MAX_RETRIES,
            )
        self.nominatim = nominatim

        if mapbox is None and s.has_mapbox_token:
            mapbox = MapboxProvider(
                access_token=s.MAPBOX_ACCESS_TOKEN,
                language=s.MAPBOX_LANGUAGE,
                country_bias=s.MAPBOX_COUNTRY_BIAS,
                proximity=parse_proximity(s.MAPBOX_PROXIMITY),
                client=self._client,
                max_retries=s.GEOCODING_MAX_RETRIES,
            )
        self.mapbox = mapbox

        self.cache = cache or ResultCache(
            ttl=s.GEOCODING_CACHE_TTL, max_entries=s.GEOCODING_CACHE_SIZE
        )
        self.default_country = s.MAPBOX_COUNTRY_BIAS or None

        if s.use_mapbox and self.mapbox is not None:
            self.active_provider: BaseGeocodingProvider = self.mapbox
        else:
            self.active_provider = self.nominatim

        logger.info(
            "geocoding_service_initialized",
            provider=self.active_provider.name,
            fallback=self.mapbox is not None,
            cache_ttl=self.cache.ttl,
        )

    def _provider_chain(self, structured: bool) -> list[BaseGeocodingProvider]:
        """Providers to try in order; Nominatim is the final fallback option."""
        chain = [self.active_provider]
        alternate = self.nominatim if self.active_provider is self.mapbox else self.mapbox
        if alternate is not None and alternate.available:
            if structured or self.active_provider is not self.nominatim:
                chain.append(alternate)
        return chain

    async def _attempt(
        self, provider: BaseGeocodingProvider, query: GeocodeQuery
    ) -> ProviderOutcome:
        start = time.perf_counter()
        try:
            results = await provider.forward_geocode(query)
        except GeocodeError as e:
            outcome = ProviderOutcome.failed(provider.name, e)
        else:
            outcome = ProviderOutcome.from_results(provider.name, results)
        finally:
            metrics.GEOCODE_PROVIDER_LATENCY.labels(provider=provider.name).observe(
                time.perf_counter() - start
            )
        metrics.GEOCODE_PROVIDER_CALLS.labels(
            provider=provider.name, status=outcome.status.value
        ).inc()
        return outcome

    async def search(
        self,
        text: str,
        *,
        country: Optional[str] = None,
        limit: Any = None,
        proximity: ProximityInput = None,
        language: Optional[str] = None,
    ) -> list[GeocodeResult]:
        """Resolve free text or a structured postal code into results.

        Args:
            text: Query text
            country: ISO country bias; the configured bias if omitted
            limit: Maximum results, clamped to [1, 10]; 5 if omitted
            proximity: (lon, lat) or "lon,lat" bias point
            language: Language tag

        Returns:
            Results in provider order, possibly empty

        Raises:
            ValidationError: Malformed input
            RateLimitError: A rate-limited provider refused the call
            GeocodeError: The last provider attempted failed
        """
        try:
            results = await self._search(
                text,
                country=country,
                limit=limit,
                proximity=proximity,
                language=language,
            )
        except RateLimitError:
            metrics.GEOCODE_REQUESTS.labels(
                operation="search", outcome="rate_limited"
            ).inc()
            raise
        except GeocodingError:
            metrics.GEOCODE_REQUESTS.labels(operation="search", outcome="error").inc()
            raise

        metrics.GEOCODE_REQUESTS.labels(
            operation="search", outcome="found" if results else "empty"
        ).inc()
        return results

    async def _search(
        self,
        text: str,
        *,
        country: Optional[str],
        limit: Any,
        proximity: ProximityInput,
        language: Optional[str],
    ) -> list[GeocodeResult]:
        start = time.perf_counter()

        text = validate_query_text(text)
        effective_limit = clamp_limit(limit)
        effective_country = normalize_country(country) or self.default_country
        point = parse_proximity(proximity)
        language = language.strip() if language and language.strip() else None

        cache_key = build_cache_key(
            self.active_provider.name,
            text,
            effective_country,
            effective_limit,
            point,
            language,
        )
        cached = self.cache.get(cache_key)
        if cached is not None:
            metrics.GEOCODE_CACHE_LOOKUPS.labels(result="hit").inc()
            logger.debug("geocode_cache_hit", query=text, results=len(cached))
            return cached
        metrics.GEOCODE_CACHE_LOOKUPS.labels(result="miss").inc()

        classification = classify_query(text)
        if classification.is_structured_code:
            query = GeocodeQuery(
                text=text,
                limit=effective_limit,
                country=STRUCTURED_CODE_COUNTRY,
                proximity=point,
                language=language,
                postal_code=classification.normalized_code,
            )
        else:
            query = GeocodeQuery(
                text=text,
                limit=effective_limit,
                country=effective_country,
                proximity=point,
                language=language,
            )

        primary, *fallbacks = self._provider_chain(query.is_structured)
        outcome = await self._attempt(primary, query)
        for provider in fallbacks:
            if outcome.found:
                break
            logger.info(
                "geocode_fallback",
                query=text,
                from_provider=outcome.provider,
                to_provider=provider.name,
                reason=outcome.status.value,
                structured=query.is_structured,
            )
            metrics.GEOCODE_FALLBACKS.labels(
                from_provider=outcome.provider,
                to_provider=provider.name,
                reason=outcome.status.value,
            ).inc()
            if outcome.error is not None:
                logger.warning(
                    "geocode_provider_failed",
                    provider=outcome.provider,
                    status_code=outcome.error.status_code,
                    error=outcome.error.message,
                )
            outcome = await self._attempt(provider, query)

        if outcome.status is OutcomeStatus.FAILED and outcome.error is not None:
            raise outcome.error

        results = outcome.results[:effective_limit]
        self.cache.set(cache_key, results)

        logger.info(
            "geocode_search",
            provider=outcome.provider,
            query=text,
            country=query.country,
            structured=query.is_structured,
            results=len(results),
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return results

    async def reverse(
        self, lat: Any, lon: Any, *, client_key: Optional[str] = None
    ) -> Optional[GeocodeResult]:
        """Resolve a point into the address found there.

        Args:
            lat: Latitude in [-90, 90]
            lon: Longitude in [-180, 180]
            client_key: Caller identity for the rate limiter

        Returns:
            The address result, or None when nothing is found at the point

        Raises:
            ValidationError: Non-finite or out-of-range coordinates
            RateLimitError: The caller exceeded the allowed cadence
            GeocodeError: The provider failed
        """
        try:
            lat, lon = validate_coordinates(lat, lon)
            result = await self.nominatim.reverse_geocode(
                lat, lon, client_key=client_key or GLOBAL_RATE_KEY
            )
        except RateLimitError:
            metrics.GEOCODE_REQUESTS.labels(
                operation="reverse", outcome="rate_limited"
            ).inc()
            raise
        except GeocodingError:
            metrics.GEOCODE_REQUESTS.labels(operation="reverse", outcome="error").inc()
            raise

        metrics.GEOCODE_REQUESTS.labels(
            operation="reverse", outcome="found" if result else "empty"
        ).inc()
        return result

    def cache_stats(self) -> dict[str, Any]:
        """Cache statistics plus the provider configuration in use."""
        return {
            **self.cache.stats(),
            "provider": self.active_provider.name,
            "fallback_available": self.mapbox is not None,
        }

    def clear_cache(self) -> None:
        self.cache.clear()

    async def aclose(self) -> None:
        """Release HTTP resources held by the service and its providers."""
        for provider in (self.mapbox, self.nominatim):
            if provider is not None:
                await provider.aclose()
        if self._owns_client and self._client is not None:
            await self._client.aclose()


# Process-wide instance for callers outside the request cycle
_geocoding_service: Optional[GeocodingService] = None


def get_geocoding_service() -> GeocodingService:
    """Get or create the process-wide geocoding service instance.

    Returns:
        GeocodingService instance
    """
    global _geocoding_service
    if _geocoding_service is None:
        _geocoding_service = GeocodingService()
    return _geocoding_service


def set_geocoding_service(service: Optional[GeocodingService]) -> None:
    """Install (or clear) the process-wide instance."""
    global _geocoding_service
    _geocoding_service = service


def reset_geocoding_service() -> None:
    """Forget the process-wide instance so the next access rebuilds it."""
    set_geocoding_service(None)
