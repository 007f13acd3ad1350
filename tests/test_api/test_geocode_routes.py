"""Tests for the geocoding API routes."""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from conftest import FakeClock, FakeProvider, make_result
from plottr.core.config import Settings
from plottr.core.geocoding.cache import ResultCache
from plottr.core.geocoding.errors import RateLimitError
from plottr.core.geocoding.providers import NominatimProvider
from plottr.core.geocoding.rate_limiter import RateLimiter
from plottr.core.geocoding.service import GeocodingService, set_geocoding_service
from plottr.main import create_app


@pytest.fixture
async def client(service: GeocodingService):
    """Client for an app whose routes resolve to the fake-backed service."""
    app = create_app()
    set_geocoding_service(service)
    transport = ASGITransport(app=app, client=("203.0.113.7", 50000))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def test_search_returns_results(client: AsyncClient, mapbox: FakeProvider) -> None:
    mapbox.responses = [[make_result("a", postcode="T12 X70A")]]

    response = await client.get("/api/v1/geocode/search", params={"q": "Cork"})

    assert response.status_code == 200
    data = response.json()
    assert data["query"] == "Cork"
    assert data["count"] == 1
    result = data["results"][0]
    assert result["id"] == "a"
    assert result["coordinates"] == [-8.47, 51.9]
    assert result["address"]["postcode"] == "T12 X70A"


async def test_search_limit_clamped(client: AsyncClient, mapbox: FakeProvider) -> None:
    mapbox.responses = [[make_result(str(i)) for i in range(12)]]

    response = await client.get(
        "/api/v1/geocode/search", params={"q": "test", "limit": "100"}
    )

    assert response.status_code == 200
    assert response.json()["count"] == 10
    assert mapbox.queries[0].limit == 10


async def test_search_passes_options(client: AsyncClient, mapbox: FakeProvider) -> None:
    await client.get(
        "/api/v1/geocode/search",
        params={"q": "main st", "country": "GB", "proximity": "-0.12,51.5", "language": "en"},
    )

    query = mapbox.queries[0]
    assert query.country == "gb"
    assert query.proximity == (-0.12, 51.5)
    assert query.language == "en"


async def test_search_missing_query_rejected(client: AsyncClient) -> None:
    response = await client.get("/api/v1/geocode/search")
    assert response.status_code == 422


async def test_search_invalid_limit_is_400(client: AsyncClient) -> None:
    response = await client.get(
        "/api/v1/geocode/search", params={"q": "cork", "limit": "lots"}
    )

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


async def test_search_rate_limited_is_429(
    client: AsyncClient, mapbox: FakeProvider
) -> None:
    mapbox.responses = [RateLimitError("Geocoding rate limit exceeded", retry_after=3)]

    response = await client.get("/api/v1/geocode/search", params={"q": "cork"})

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "3"


async def test_reverse_uses_client_address(
    client: AsyncClient, nominatim: FakeProvider
) -> None:
    nominatim.reverse_result = make_result("here")

    response = await client.get(
        "/api/v1/geocode/reverse", params={"lat": 51.9, "lon": -8.47}
    )

    assert response.status_code == 200
    assert response.json()["result"]["id"] == "here"
    assert nominatim.reverse_calls == [(51.9, -8.47, "203.0.113.7")]


async def test_reverse_no_match_is_null(client: AsyncClient) -> None:
    response = await client.get(
        "/api/v1/geocode/reverse", params={"lat": 0, "lon": -30}
    )

    assert response.status_code == 200
    assert response.json() == {"lat": 0.0, "lon": -30.0, "result": None}


async def test_reverse_out_of_range_is_400(
    client: AsyncClient, nominatim: FakeProvider
) -> None:
    response = await client.get(
        "/api/v1/geocode/reverse", params={"lat": 200, "lon": 100}
    )

    assert response.status_code == 400
    assert nominatim.reverse_calls == []


async def test_reverse_non_numeric_is_400(
    client: AsyncClient, nominatim: FakeProvider
) -> None:
    response = await client.get(
        "/api/v1/geocode/reverse", params={"lat": "north", "lon": "-8.47"}
    )

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert nominatim.reverse_calls == []


async def test_malformed_provider_answer_is_502(clock: FakeClock) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"place_id": 1, "display_name": "x"}])

    provider_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    nominatim = NominatimProvider(
        user_agent="plottr-tests (dev@example.com)",
        rate_limiter=RateLimiter(min_interval_ms=1000, clock=clock, name="nominatim"),
        client=provider_client,
    )
    set_geocoding_service(
        GeocodingService(
            settings=Settings(_env_file=None, MAPBOX_ACCESS_TOKEN=""),
            nominatim=nominatim,
            cache=ResultCache(ttl=300, max_entries=100, clock=clock),
        )
    )
    transport = ASGITransport(app=create_app())

    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/api/v1/geocode/search", params={"q": "Cork"})

    assert response.status_code == 502
    body = response.json()
    assert body["code"] == "GEOCODE_ERROR"
    assert body["error"] == "GeocodeError"
    await provider_client.aclose()


async def test_cache_stats_and_clear(client: AsyncClient, mapbox: FakeProvider) -> None:
    mapbox.responses = [[make_result()]]
    await client.get("/api/v1/geocode/search", params={"q": "Cork"})
    await client.get("/api/v1/geocode/search", params={"q": "Cork"})

    stats = (await client.get("/api/v1/geocode/cache")).json()
    assert stats["hits"] == 1
    assert stats["entries"] == 1
    assert stats["provider"] == "mapbox"

    response = await client.delete("/api/v1/geocode/cache")
    assert response.status_code == 204
    assert (await client.get("/api/v1/geocode/cache")).json()["entries"] == 0
