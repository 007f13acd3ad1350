"""Types shared across geocoding providers and the resolution service."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from plottr.core.geocoding.constants import DEFAULT_LIMIT
from plottr.core.geocoding.errors import GeocodeError

Coordinates = tuple[float, float]  # (lon, lat), WGS84
BoundingBox = tuple[float, float, float, float]  # (minLon, minLat, maxLon, maxLat)


class Address(BaseModel):
    """Structured address attached to a result."""

    model_config = ConfigDict(frozen=True)

    line1: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    postcode: Optional[str] = None


class GeocodeResult(BaseModel):
    """A normalized geocoding result, independent of the provider that made it."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Provider-scoped opaque identifier")
    label: str = Field(..., description="Full display label")
    name: str = Field(default="", description="Short name")
    coordinates: Coordinates = Field(..., description="[lon, lat] in WGS84")
    bbox: Optional[BoundingBox] = Field(
        default=None, description="[minLon, minLat, maxLon, maxLat]"
    )
    address: Optional[Address] = None

    @field_validator("coordinates")
    @classmethod
    def validate_coordinates(cls, v: Coordinates) -> Coordinates:
        """Coordinates are ordered lon, lat."""
        lon, lat = v
        if not (-180 <= lon <= 180 and -90 <= lat <= 90):
            raise ValueError(f"Coordinates out of range: {v}")
        return v

    @field_validator("bbox")
    @classmethod
    def normalize_bbox(cls, v: Optional[BoundingBox]) -> Optional[BoundingBox]:
        """Normalize any corner ordering to [minLon, minLat, maxLon, maxLat]."""
        if v is None:
            return None
        lon_a, lat_a, lon_b, lat_b = v
        return (
            min(lon_a, lon_b),
            min(lat_a, lat_b),
            max(lon_a, lon_b),
            max(lat_a, lat_b),
        )


@dataclass(frozen=True)
class GeocodeQuery:
    """One forward-geocoding request as handed to a provider.

    ``postal_code`` is set when the text was classified as a structured
    postal code; it holds the normalized code.
    """

    text: str
    limit: int = DEFAULT_LIMIT
    country: Optional[str] = None
    proximity: Optional[Coordinates] = None
    language: Optional[str] = None
    postal_code: Optional[str] = None

    @property
    def is_structured(self) -> bool:
        return self.postal_code is not None


class OutcomeStatus(str, Enum):
    """How a single provider attempt ended."""

    FOUND = "found"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class ProviderOutcome:
    """Result of one provider attempt: data, empty, or a typed error."""

    provider: str
    status: OutcomeStatus
    results: list[GeocodeResult] = field(default_factory=list)
    error: Optional[GeocodeError] = None

    @classmethod
    def from_results(
        cls, provider: str, results: list[GeocodeResult]
    ) -> "ProviderOutcome":
        status = OutcomeStatus.FOUND if results else OutcomeStatus.EMPTY
        return cls(provider=provider, status=status, results=list(results))

    @classmethod
    def failed(cls, provider: str, error: GeocodeError) -> "ProviderOutcome":
        return cls(provider=provider, status=OutcomeStatus.FAILED, error=error)

    @property
    def found(self) -> bool:
        return self.status is OutcomeStatus.FOUND
