"""Mapbox Geocoding API provider.

https://docs.mapbox.com/api/search/geocoding/
"""

from typing import Any, Optional, TypedDict
from urllib.parse import quote

import httpx

from plottr.core.geocoding.constants import (
    MAPBOX,
    MAPBOX_BASE_URL,
    MAPBOX_POSTAL_TYPES,
    MAPBOX_SEARCH_TYPES,
    MAX_LIMIT,
)
from plottr.core.geocoding.providers.base import BaseGeocodingProvider
from plottr.core.geocoding.types import (
    Address,
    Coordinates,
    GeocodeQuery,
    GeocodeResult,
)
from plottr.core.logging import get_logger

logger = get_logger(__name__)


class MapboxContextEntry(TypedDict, total=False):
    """Type for one level of a feature's place hierarchy."""

    id: str
    text: str
    short_code: str


class MapboxProperties(TypedDict, total=False):
    """Type for feature properties."""

    accuracy: str
    address: str
    category: str
    short_code: str


class MapboxFeature(TypedDict, total=False):
    """Type for a Mapbox feature."""

    id: str
    type: str
    place_type: list[str]
    relevance: float
    properties: MapboxProperties
    text: str
    address: str  # house number on address features
    place_name: str
    center: list[float]
    context: list[MapboxContextEntry]
    bbox: list[float]


class MapboxProvider(BaseGeocodingProvider):
    """Token-authenticated commercial provider with rich structured results."""

    name = MAPBOX

    def __init__(
        self,
        access_token: str,
        language: Optional[str] = "en",
        country_bias: Optional[str] = None,
        proximity: Optional[Coordinates] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        max_retries: int = 2,
        base_url: str = MAPBOX_BASE_URL,
    ) -> None:
        """Initialize the Mapbox provider.

        Args:
            access_token: Mapbox access token
            language: Default language when a query sets none
            country_bias: Default country filter when a query sets none
            proximity: Default (lon, lat) bias when a query sets none
            client: Shared HTTP client
            timeout: Request timeout in seconds
            max_retries: Retries for 5xx responses
            base_url: API base URL
        """
        if not access_token:
            raise ValueError("Mapbox access token is required")
        super().__init__(client=client, timeout=timeout, max_retries=max_retries)
        self._access_token = access_token
        self.language = language
        self.country_bias = country_bias
        self.proximity = proximity
        self.base_url = base_url.rstrip("/")

    def build_params(self, query: GeocodeQuery) -> dict[str, str]:
        """Build the query string for a forward search."""
        params = {
            "access_token": self._access_token,
            "limit": str(min(query.limit, MAX_LIMIT)),
            "autocomplete": "true",
            "types": MAPBOX_POSTAL_TYPES if query.is_structured else MAPBOX_SEARCH_TYPES,
            "language": query.language or self.language or "en",
        }

        country = query.country or self.country_bias
        if country:
            params["country"] = country.lower()

        proximity = query.proximity or self.proximity
        if proximity:
            params["proximity"] = f"{proximity[0]},{proximity[1]}"

        return params

    async def forward_geocode(self, query: GeocodeQuery) -> list[GeocodeResult]:
        """Forward geocode through the Mapbox places endpoint."""
        search_text = query.postal_code or query.text
        url = f"{self.base_url}/{quote(search_text, safe='')}.json"

        response = await self._get(url, self.build_params(query))
        results = self._parse(self._json(response, self.name), self.transform_response)

        logger.debug(
            "mapbox_response",
            query=search_text,
            structured=query.is_structured,
            features=len(results),
        )
        return results

    @classmethod
    def transform_response(cls, data: Any) -> list[GeocodeResult]:
        """Map a feature collection onto results, in feature order."""
        features: list[MapboxFeature] = data.get("features") or []
        return [cls.transform_feature(f) for f in features]

    @staticmethod
    def _context_entry(
        context: list[MapboxContextEntry], prefix: str
    ) -> Optional[MapboxContextEntry]:
        for entry in context:
            if entry.get("id", "").startswith(prefix):
                return entry
        return None

    @classmethod
    def _context_text(cls, context: list[MapboxContextEntry], prefix: str) -> Optional[str]:
        entry = cls._context_entry(context, prefix)
        return entry.get("text") if entry else None

    @classmethod
    def transform_feature(cls, feature: MapboxFeature) -> GeocodeResult:
        """Map a Mapbox feature onto the shared result shape."""
        context = feature.get("context") or []
        properties = feature.get("properties") or {}
        place_type = feature.get("place_type") or []
        text = feature.get("text", "")
        place_name = feature.get("place_name", text)

        line1 = None
        house_number = feature.get("address") or properties.get("address")
        if house_number:
            line1 = f"{house_number} {text}"
        elif "address" in place_type:
            line1 = place_name.split(",")[0]

        # A postcode feature is its own postcode; others carry it in context
        postcode = cls._context_text(context, "postcode")
        if postcode is None and "postcode" in place_type:
            postcode = text

        country = cls._context_entry(context, "country")
        country_code = country.get("short_code") if country else None

        center = feature.get("center") or []
        lon, lat = float(center[0]), float(center[1])
        bbox = feature.get("bbox")

        return GeocodeResult(
            id=str(feature.get("id", "unknown")),
            label=place_name,
            name=text,
            coordinates=(lon, lat),
            bbox=tuple(float(v) for v in bbox) if bbox and len(bbox) == 4 else None,
            address=Address(
                line1=line1 or None,
                city=cls._context_text(context, "place"),
                county=cls._context_text(context, "district"),
                state=cls._context_text(context, "region"),
                country=country.get("text") if country else None,
                country_code=country_code.lower() if country_code else None,
                postcode=postcode,
            ),
        )
