"""Nominatim geocoding provider (OpenStreetMap).

Free and community run. The public instance allows one request per second
and requires an identifying User-Agent.
"""

from typing import Any, Optional, TypedDict

import httpx

from plottr.core.geocoding.constants import (
    GLOBAL_RATE_KEY,
    NOMINATIM,
    NOMINATIM_REVERSE_URL,
    NOMINATIM_SEARCH_URL,
    STRUCTURED_CODE_COUNTRY,
)
from plottr.core.geocoding.errors import GeocodeError
from plottr.core.geocoding.providers.base import BaseGeocodingProvider
from plottr.core.geocoding.rate_limiter import RateLimiter
from plottr.core.geocoding.types import Address, GeocodeQuery, GeocodeResult
from plottr.core.logging import get_logger

logger = get_logger(__name__)


class NominatimAddress(TypedDict, total=False):
    """Type for the flat ``address`` object of a jsonv2 place."""

    house_number: str
    road: str
    neighbourhood: str
    city: str
    town: str
    village: str
    county: str
    state: str
    postcode: str
    country: str
    country_code: str


class NominatimPlace(TypedDict, total=False):
    """Type for one jsonv2 place; numbers arrive as strings."""

    place_id: int
    osm_id: int
    lat: str
    lon: str
    name: str
    display_name: str
    boundingbox: list[str]  # [minLat, maxLat, minLon, maxLon]
    address: NominatimAddress
    error: str


class NominatimProvider(BaseGeocodingProvider):
    """Free provider with a strict global rate limit and postal-code search."""

    name = NOMINATIM

    def __init__(
        self,
        user_agent: str,
        accept_language: str = "en-IE,en-GB,en-US,en",
        rate_limiter: Optional[RateLimiter] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        max_retries: int = 0,
        search_url: str = NOMINATIM_SEARCH_URL,
        reverse_url: str = NOMINATIM_REVERSE_URL,
    ) -> None:
        """Initialize the Nominatim provider.

        Args:
            user_agent: Identifying User-Agent required by the usage policy
            accept_language: Accept-Language preference sent with each call
            rate_limiter: Limiter guarding every call; 1 req/s if omitted
            client: Shared HTTP client
            timeout: Request timeout in seconds
            max_retries: Retries for 5xx responses
            search_url: Search endpoint
            reverse_url: Reverse endpoint
        """
        super().__init__(
            client=client,
            timeout=timeout,
            max_retries=max_retries,
            headers={"User-Agent": user_agent, "Accept-Language": accept_language},
        )
        self.rate_limiter = rate_limiter or RateLimiter(name=NOMINATIM)
        self.search_url = search_url
        self.reverse_url = reverse_url

    async def forward_geocode(
        self, query: GeocodeQuery, client_key: str = GLOBAL_RATE_KEY
    ) -> list[GeocodeResult]:
        """Forward geocode, trying a postal-code search first for structured codes."""
        self.rate_limiter.check(client_key)

        if query.postal_code:
            results = await self._postal_search(query)
            if results:
                return results

        params = {
            "q": query.text,
            "format": "jsonv2",
            "limit": str(query.limit),
            "addressdetails": "1",
            "dedupe": "1",
        }
        if query.country:
            params["countrycodes"] = query.country.lower()

        response = await self._get(self.search_url, params)
        return self._parse(self._json(response, self.name), self.transform_places)

    async def _postal_search(self, query: GeocodeQuery) -> list[GeocodeResult]:
        params = {
            "postalcode": query.postal_code,
            "country": STRUCTURED_CODE_COUNTRY,
            "format": "jsonv2",
            "limit": str(query.limit),
            "addressdetails": "1",
            "dedupe": "1",
        }
        try:
            response = await self._get(self.search_url, params)
            results = self._parse(self._json(response, self.name), self.transform_places)
        except GeocodeError as e:
            # Free-text search below still gets a chance
            logger.warning(
                "nominatim_postal_search_failed",
                postal_code=query.postal_code,
                status_code=e.status_code,
            )
            return []

        logger.debug(
            "nominatim_postal_search",
            postal_code=query.postal_code,
            results=len(results),
        )
        return results

    async def reverse_geocode(
        self, lat: float, lon: float, client_key: str = GLOBAL_RATE_KEY
    ) -> Optional[GeocodeResult]:
        """Reverse geocode a point; None when no address is found there."""
        self.rate_limiter.check(client_key)

        params = {
            "lat": str(lat),
            "lon": str(lon),
            "format": "jsonv2",
            "addressdetails": "1",
        }
        response = await self._get(self.reverse_url, params)
        result = self._parse(self._json(response, self.name), self.transform_reverse)
        if result is None:
            logger.info("nominatim_reverse_no_match", lat=lat, lon=lon)
        return result

    @classmethod
    def transform_places(cls, places: Any) -> list[GeocodeResult]:
        """Map a search answer, a JSON array of places, onto results."""
        if not isinstance(places, list):
            raise TypeError(f"expected a list of places, got {type(places).__name__}")
        return [cls.transform_place(p) for p in places]

    @classmethod
    def transform_reverse(cls, place: Any) -> Optional[GeocodeResult]:
        """Map a reverse answer; an empty body or an ``error`` member is no match."""
        if not place:
            return None
        if place.get("error"):
            return None
        return cls.transform_place(place)

    @staticmethod
    def transform_place(place: NominatimPlace) -> GeocodeResult:
        """Map a Nominatim place onto the shared result shape."""
        addr: NominatimAddress = place.get("address") or {}

        road = addr.get("road")
        if addr.get("house_number"):
            line1 = f"{addr['house_number']} {road or ''}".strip()
        else:
            line1 = road or addr.get("neighbourhood")

        place_id = place.get("place_id") or place.get("osm_id")
        bbox = _bbox(place.get("boundingbox"))

        return GeocodeResult(
            id=str(place_id) if place_id is not None else "unknown",
            label=place.get("display_name", ""),
            name=place.get("name") or road or addr.get("neighbourhood") or "",
            coordinates=(float(place["lon"]), float(place["lat"])),
            bbox=bbox,
            address=Address(
                line1=line1 or None,
                city=addr.get("city") or addr.get("town") or addr.get("village"),
                county=addr.get("county") or addr.get("state"),
                state=addr.get("state"),
                country=addr.get("country"),
                country_code=addr.get("country_code"),
                postcode=addr.get("postcode"),
            ),
        )


def _bbox(raw: Any) -> Optional[tuple[float, float, float, float]]:
    # Nominatim orders the box as [minLat, maxLat, minLon, maxLon]
    if not raw or len(raw) != 4:
        return None
    min_lat, max_lat, min_lon, max_lon = (float(v) for v in raw)
    return (min_lon, min_lat, max_lon, max_lat)
