"""Input validation for geocoding requests.

Everything here runs before any network call and raises
:class:`ValidationError` on bad input.
"""

import math
from typing import Any, Optional, Sequence, Union

from plottr.core.geocoding.constants import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    MAX_QUERY_LENGTH,
    MIN_LIMIT,
)
from plottr.core.geocoding.errors import ValidationError
from plottr.core.geocoding.types import Coordinates

ProximityInput = Union[str, Sequence[float], None]


def validate_query_text(text: Any) -> str:
    """Trim and check the query text.

    Raises:
        ValidationError: If the text is missing, blank or too long
    """
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Query string is required")
    text = text.strip()
    if len(text) > MAX_QUERY_LENGTH:
        raise ValidationError(
            f"Query string is too long (max {MAX_QUERY_LENGTH} characters)"
        )
    return text


def clamp_limit(limit: Any) -> int:
    """Resolve the effective result limit.

    ``None`` means the default (5). Integers, and strings holding an integer,
    are clamped into [1, 10]; zero and negatives become 1.

    Raises:
        ValidationError: If the limit is not an integer
    """
    if limit is None:
        return DEFAULT_LIMIT
    if isinstance(limit, bool):
        raise ValidationError("limit must be an integer")
    if isinstance(limit, str):
        try:
            limit = int(limit.strip())
        except ValueError:
            raise ValidationError(f"limit must be an integer, got {limit!r}")
    elif isinstance(limit, float):
        if not limit.is_integer():
            raise ValidationError(f"limit must be an integer, got {limit!r}")
        limit = int(limit)
    elif not isinstance(limit, int):
        raise ValidationError(f"limit must be an integer, got {type(limit).__name__}")
    return max(MIN_LIMIT, min(limit, MAX_LIMIT))


def _finite(value: Any, name: str) -> float:
    # Query strings arrive as text
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise ValidationError(f"{name} must be a number") from None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number")
    value = float(value)
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be a finite number")
    return value


def validate_coordinates(lat: Any, lon: Any) -> tuple[float, float]:
    """Check a latitude/longitude pair.

    Returns:
        (lat, lon) as floats

    Raises:
        ValidationError: If either value is not a finite number or out of range
    """
    lat = _finite(lat, "latitude")
    lon = _finite(lon, "longitude")
    if not -90 <= lat <= 90:
        raise ValidationError(f"latitude must be within [-90, 90], got {lat}")
    if not -180 <= lon <= 180:
        raise ValidationError(f"longitude must be within [-180, 180], got {lon}")
    return lat, lon


def parse_proximity(proximity: ProximityInput) -> Optional[Coordinates]:
    """Parse a proximity bias given as ``"lon,lat"`` or a (lon, lat) pair.

    Raises:
        ValidationError: If the value cannot be read as a valid point
    """
    if proximity is None or proximity == "":
        return None
    if isinstance(proximity, str):
        parts = proximity.split(",")
        if len(parts) != 2:
            raise ValidationError("proximity must be formatted as 'lon,lat'")
        try:
            values = [float(p) for p in parts]
        except ValueError:
            raise ValidationError("proximity must be formatted as 'lon,lat'")
    else:
        values = list(proximity)
        if len(values) != 2:
            raise ValidationError("proximity must be a (lon, lat) pair")
    lat, lon = validate_coordinates(values[1], values[0])
    return (lon, lat)


def normalize_country(country: Optional[str]) -> Optional[str]:
    """Lower-case an ISO country code; blank means no bias.

    Raises:
        ValidationError: If the code is not two or three letters
    """
    if country is None or not country.strip():
        return None
    country = country.strip().lower()
    if not country.isalpha() or len(country) not in (2, 3):
        raise ValidationError(f"country must be an ISO country code, got {country!r}")
    return country
