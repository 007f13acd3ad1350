"""Prometheus metrics for the geocoding resolution path."""

from prometheus_client import Counter, Histogram

GEOCODE_REQUESTS = Counter(
    "geocode_requests_total",
    "Total number of geocoding resolutions",
    ["operation", "outcome"],  # search/reverse; found, empty, error, rate_limited
)

GEOCODE_CACHE_LOOKUPS = Counter(
    "geocode_cache_lookups_total",
    "Result cache lookups",
    ["result"],  # hit, miss
)

GEOCODE_PROVIDER_CALLS = Counter(
    "geocode_provider_calls_total",
    "Calls made to external geocoding providers",
    ["provider", "status"],  # found, empty, failed
)

GEOCODE_FALLBACKS = Counter(
    "geocode_fallbacks_total",
    "Fallback provider invocations",
    ["from_provider", "to_provider", "reason"],  # empty, failed
)

GEOCODE_PROVIDER_LATENCY = Histogram(
    "geocode_provider_latency_seconds",
    "Latency of provider calls including retries",
    ["provider"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
