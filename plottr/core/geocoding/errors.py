"""Typed failures raised by the geocoding subsystem.

Each error carries an HTTP-status-like ``status_code`` and a stable ``code``
so the web layer can render it without knowing where it came from. The
classes also sit in the geopy / stdlib exception families so code that
already catches ``GeocoderServiceError`` or ``ValueError`` keeps working.
"""

from geopy.exc import GeocoderRateLimited, GeocoderServiceError


class GeocodingError(Exception):
    """Base class for geocoding failures surfaced to callers."""

    status_code: int = 500
    code: str = "GEOCODE_ERROR"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, object]:
        """Serialize for an API error body."""
        return {
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
        }


class ValidationError(GeocodingError, ValueError):
    """Malformed input, rejected before any network call."""

    status_code = 400
    code = "VALIDATION_ERROR"


class RateLimitError(GeocodingError, GeocoderRateLimited):
    """Caller exceeded the allowed cadence for a rate-limited provider."""

    status_code = 429
    code = "RATE_LIMIT"

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        provider: str | None = None,
    ) -> None:
        GeocodingError.__init__(self, message, 429)
        # GeocoderRateLimited keeps retry_after as an int number of seconds
        self.retry_after = retry_after
        self.provider = provider


class GeocodeError(GeocodingError, GeocoderServiceError):
    """A provider answered with a non-success status or could not be reached."""

    status_code = 502
    code = "GEOCODE_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        provider: str | None = None,
    ) -> None:
        super().__init__(message, status_code)
        self.provider = provider

    @property
    def http_status(self) -> int:
        """Status reported by the provider (or the gateway status)."""
        return self.status_code


# The adapter contract names its failure ProviderError
ProviderError = GeocodeError
