"""Geocoding provider adapters."""

from plottr.core.geocoding.providers.base import BaseGeocodingProvider
from plottr.core.geocoding.providers.mapbox import MapboxProvider
from plottr.core.geocoding.providers.nominatim import NominatimProvider

__all__ = ["BaseGeocodingProvider", "MapboxProvider", "NominatimProvider"]
