"""Geocoding API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from starlette import status

from plottr.api.v1.models import CacheStatsResponse, ReverseResponse, SearchResponse
from plottr.core.geocoding.constants import GLOBAL_RATE_KEY
from plottr.core.geocoding.service import GeocodingService, get_geocoding_service
from plottr.core.geocoding.validator import validate_coordinates

router = APIRouter(prefix="/geocode", tags=["geocoding"])


def get_service(request: Request) -> GeocodingService:
    """Service built at startup, or the process-wide instance."""
    service = getattr(request.app.state, "geocoding_service", None)
    return service if service is not None else get_geocoding_service()


def client_key(request: Request) -> str:
    """Rate-limit key for the caller: its address, else the shared key."""
    return request.client.host if request.client else GLOBAL_RATE_KEY


@router.get("/search", response_model=SearchResponse)
async def search(
    q: str = Query(..., description="Free-text address or Eircode"),
    country: Optional[str] = Query(None, description="ISO country code bias"),
    # Clamped rather than rejected, so accept it raw
    limit: Optional[str] = Query(None, description="Maximum results (1-10)"),
    proximity: Optional[str] = Query(None, description="Bias point as 'lon,lat'"),
    language: Optional[str] = Query(None, description="Result language"),
    service: GeocodingService = Depends(get_service),
) -> SearchResponse:
    """
    Forward geocode an address, place name or Eircode.

    Structured postal codes are searched by code first and fall back to the
    alternate provider when the active one finds nothing.
    """
    results = await service.search(
        q, country=country, limit=limit, proximity=proximity, language=language
    )
    return SearchResponse(query=q, count=len(results), results=results)


@router.get("/reverse", response_model=ReverseResponse)
async def reverse(
    request: Request,
    # Validated by the service, so accept them raw
    lat: str = Query(..., description="Latitude"),
    lon: str = Query(..., description="Longitude"),
    service: GeocodingService = Depends(get_service),
) -> ReverseResponse:
    """Reverse geocode a point. ``result`` is null when no address is found."""
    result = await service.reverse(lat, lon, client_key=client_key(request))
    lat_value, lon_value = validate_coordinates(lat, lon)
    return ReverseResponse(lat=lat_value, lon=lon_value, result=result)


@router.get("/cache", response_model=CacheStatsResponse)
async def cache_stats(
    service: GeocodingService = Depends(get_service),
) -> CacheStatsResponse:
    """Result cache statistics."""
    return CacheStatsResponse(**service.cache_stats())


@router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cache(service: GeocodingService = Depends(get_service)) -> None:
    """Drop all cached results."""
    service.clear_cache()
