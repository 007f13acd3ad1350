"""Geocoding resolution: classify, cache, rate limit, retry and fall back."""

from plottr.core.geocoding.cache import ResultCache, build_cache_key
from plottr.core.geocoding.classifier import (
    QueryClassification,
    classify_query,
    format_code,
    normalize_code,
)
from plottr.core.geocoding.errors import (
    GeocodeError,
    GeocodingError,
    ProviderError,
    RateLimitError,
    ValidationError,
)
from plottr.core.geocoding.rate_limiter import RateLimiter
from plottr.core.geocoding.service import (
    GeocodingService,
    get_geocoding_service,
    reset_geocoding_service,
    set_geocoding_service,
)
from plottr.core.geocoding.types import (
    Address,
    GeocodeQuery,
    GeocodeResult,
    OutcomeStatus,
    ProviderOutcome,
)

__all__ = [
    "Address",
    "GeocodeError",
    "GeocodeQuery",
    "GeocodeResult",
    "GeocodingError",
    "GeocodingService",
    "OutcomeStatus",
    "ProviderError",
    "ProviderOutcome",
    "QueryClassification",
    "RateLimitError",
    "RateLimiter",
    "ResultCache",
    "ValidationError",
    "build_cache_key",
    "classify_query",
    "format_code",
    "get_geocoding_service",
    "normalize_code",
    "reset_geocoding_service",
    "set_geocoding_service",
]
