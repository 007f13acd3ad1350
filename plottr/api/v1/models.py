"""Response models for the geocoding API."""

from typing import Optional

from pydantic import BaseModel, Field

from plottr.core.geocoding.types import GeocodeResult


class SearchResponse(BaseModel):
    """Forward geocoding results."""

    query: str = Field(..., description="Query text as received")
    count: int = Field(..., description="Number of results returned")
    results: list[GeocodeResult] = Field(default_factory=list)


class ReverseResponse(BaseModel):
    """Reverse geocoding result; ``result`` is null when nothing is found."""

    lat: float
    lon: float
    result: Optional[GeocodeResult] = None


class CacheStatsResponse(BaseModel):
    """Result cache statistics and the provider configuration in use."""

    backend: str
    hits: int
    misses: int
    hit_rate: float
    entries: int
    max_entries: int
    ttl: float
    provider: str
    fallback_available: bool
