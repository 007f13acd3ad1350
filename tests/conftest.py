"""Test configuration."""

import os
from collections.abc import Generator
from typing import Any, Optional

import pytest
from pytest import Config

from plottr.core.config import Settings, reset_settings
from plottr.core.geocoding.cache import ResultCache
from plottr.core.geocoding.errors import GeocodeError
from plottr.core.geocoding.service import GeocodingService, reset_geocoding_service
from plottr.core.geocoding.types import Address, GeocodeQuery, GeocodeResult
from plottr.core.logging import configure_logging

fixture = pytest.fixture


def pytest_configure(config: Config) -> None:
    """Configure pytest.

    Args:
        config: Pytest configuration object
    """
    os.environ["TESTING"] = "true"
    # Configure logging for test environment
    configure_logging(testing=True)


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider:
    """In-memory provider that records every call it receives.

    ``responses`` is consumed in order; each item is a result list or an
    exception to raise. When exhausted, the last item is repeated.
    """

    def __init__(
        self,
        name: str,
        responses: Optional[list[Any]] = None,
        reverse_result: Optional[GeocodeResult] = None,
    ) -> None:
        self.name = name
        self.available = True
        self.responses = list(responses or [[]])
        self.reverse_result = reverse_result
        self.queries: list[GeocodeQuery] = []
        self.reverse_calls: list[tuple[float, float, str]] = []
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.queries)

    async def forward_geocode(self, query: GeocodeQuery) -> list[GeocodeResult]:
        self.queries.append(query)
        index = min(len(self.queries) - 1, len(self.responses) - 1)
        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        return list(response)

    async def reverse_geocode(
        self, lat: float, lon: float, client_key: str = "global"
    ) -> Optional[GeocodeResult]:
        self.reverse_calls.append((lat, lon, client_key))
        return self.reverse_result

    async def aclose(self) -> None:
        self.closed = True


def make_result(
    id: str = "1",
    label: str = "Main Street, Cork, Ireland",
    lon: float = -8.47,
    lat: float = 51.9,
    postcode: Optional[str] = None,
) -> GeocodeResult:
    """Build a result with sensible defaults."""
    return GeocodeResult(
        id=id,
        label=label,
        name=label.split(",")[0],
        coordinates=(lon, lat),
        address=Address(city="Cork", country="Ireland", country_code="ie", postcode=postcode),
    )


def provider_failure(status_code: int = 500, provider: str = "mapbox") -> GeocodeError:
    return GeocodeError(
        f"{provider} geocoding failed", status_code=status_code, provider=provider
    )


@fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Isolate the process-wide settings and service between tests."""
    reset_settings()
    reset_geocoding_service()
    yield
    reset_settings()
    reset_geocoding_service()


@fixture
def settings() -> Settings:
    """Settings with a Mapbox token and no .env influence."""
    return Settings(
        _env_file=None,
        GEOCODER_PROVIDER="mapbox",
        MAPBOX_ACCESS_TOKEN="pk.test-token",
        MAPBOX_COUNTRY_BIAS="ie",
    )


@fixture
def clock() -> FakeClock:
    return FakeClock()


@fixture
def mapbox() -> FakeProvider:
    return FakeProvider("mapbox")


@fixture
def nominatim() -> FakeProvider:
    return FakeProvider("nominatim")


@fixture
def service(
    settings: Settings,
    mapbox: FakeProvider,
    nominatim: FakeProvider,
    clock: FakeClock,
) -> GeocodingService:
    """Service wired to fake providers, Mapbox active."""
    return GeocodingService(
        settings=settings,
        mapbox=mapbox,  # type: ignore[arg-type]
        nominatim=nominatim,  # type: ignore[arg-type]
        cache=ResultCache(ttl=300, max_entries=100, clock=clock),
    )
