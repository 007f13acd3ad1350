"""Constants shared by the geocoding providers and resolution service."""

import re

# Provider names, also used as cache-key and metric label values
MAPBOX = "mapbox"
NOMINATIM = "nominatim"

# Endpoints
MAPBOX_BASE_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"
NOMINATIM_SEARCH_URL = "https://nominatim.openstreetmap.org/search"
NOMINATIM_REVERSE_URL = "https://nominatim.openstreetmap.org/reverse"

# Mapbox feature types requested for free-text and postal searches
MAPBOX_SEARCH_TYPES = "address,place,locality,neighborhood,postcode,poi"
MAPBOX_POSTAL_TYPES = "postcode,address"

# Result limits
DEFAULT_LIMIT = 5
MIN_LIMIT = 1
MAX_LIMIT = 10
MAX_QUERY_LENGTH = 256

# Structured postal codes (Irish Eircode: 3 + 4 alphanumerics)
STRUCTURED_CODE_PATTERN = re.compile(r"^[A-Z0-9]{3}[A-Z0-9]{4}$")
STRUCTURED_CODE_COUNTRY = "ie"

# Rate limiter
DEFAULT_MIN_INTERVAL_MS = 1000
RATE_LIMIT_PRUNE_THRESHOLD = 100
RATE_LIMIT_PRUNE_AGE_MS = 10_000
GLOBAL_RATE_KEY = "global"

# Retry executor
RETRY_BASE_DELAY = 0.1  # seconds
RETRY_BACKOFF_FACTOR = 2.0
RETRY_MAX_DELAY = 2.0

# Result cache
DEFAULT_CACHE_TTL = 300  # seconds
DEFAULT_CACHE_SIZE = 2000
