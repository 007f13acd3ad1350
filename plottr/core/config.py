"""Application configuration."""

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Value shipped in .env.example; treated as "no token configured"
PLACEHOLDER_MAPBOX_TOKEN = "your_mapbox_access_token_here"


class Settings(BaseSettings):
    """
    Application settings.

    Environment variables will be loaded and validated using Pydantic.
    The geocoder section is the provider configuration consumed by the
    geocoding service: provider selection, credentials and defaults.
    """

    app_name: str = "Plottr"
    version: str = "0.1.0"
    api_prefix: str = "/api/v1"

    # CORS Settings
    cors_origins: list[str] = ["*"]  # Default to allow all in development
    cors_allow_credentials: bool = False

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = True

    # Geocoder provider selection and credentials
    GEOCODER_PROVIDER: str = "mapbox"
    MAPBOX_ACCESS_TOKEN: str = Field(
        default="",
        validation_alias=AliasChoices("MAPBOX_ACCESS_TOKEN", "MAPBOX_TOKEN"),
    )

    # Geocoder defaults
    MAPBOX_LANGUAGE: str = "en"
    MAPBOX_COUNTRY_BIAS: str = "ie"
    MAPBOX_PROXIMITY: str | None = "-6.2603,53.3498"  # Dublin lng,lat

    # Nominatim usage policy
    NOMINATIM_USER_AGENT: str = "plotiq.app (support@plotiq.app)"
    NOMINATIM_ACCEPT_LANGUAGE: str = "en-IE,en-GB,en-US,en"
    NOMINATIM_RATE_LIMIT_MS: int = Field(default=1000, ge=0)
    NOMINATIM_MAX_RETRIES: int = Field(default=0, ge=0)

    # Transport
    GEOCODING_MAX_RETRIES: int = Field(default=2, ge=0)
    GEOCODING_TIMEOUT: float = Field(default=10.0, gt=0)

    # Result cache
    GEOCODING_CACHE_TTL: int = Field(default=300, ge=0)  # seconds
    GEOCODING_CACHE_SIZE: int = Field(default=2000, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",  # Allow extra fields in environment
        populate_by_name=True,
    )

    @field_validator("GEOCODER_PROVIDER", "MAPBOX_COUNTRY_BIAS")
    @classmethod
    def lowercase(cls, v: str) -> str:
        """Normalize selector and country codes to lower case."""
        return v.strip().lower()

    @field_validator("MAPBOX_PROXIMITY")
    @classmethod
    def validate_proximity(cls, v: str | None) -> str | None:
        """Validate the default proximity as a "lng,lat" pair."""
        if v is None or not v.strip():
            return None
        parts = v.split(",")
        if len(parts) != 2:
            raise ValueError("MAPBOX_PROXIMITY must be formatted as 'lng,lat'")
        lon, lat = (float(p) for p in parts)
        if not (-180 <= lon <= 180 and -90 <= lat <= 90):
            raise ValueError("MAPBOX_PROXIMITY is out of range")
        return f"{lon},{lat}"

    @model_validator(mode="after")
    def validate_origins(self) -> "Settings":
        """Validate CORS origins."""
        if self.cors_origins == ["*"]:
            self.cors_origins = [
                "http://localhost",
                "http://localhost:8000",
                "http://localhost:5173",
            ]
        return self

    @property
    def has_mapbox_token(self) -> bool:
        """Whether a usable (non-placeholder) Mapbox token is configured."""
        token = self.MAPBOX_ACCESS_TOKEN.strip()
        return bool(token) and token != PLACEHOLDER_MAPBOX_TOKEN

    @property
    def use_mapbox(self) -> bool:
        """Mapbox is the active provider only when selected and credentialed."""
        return self.GEOCODER_PROVIDER == "mapbox" and self.has_mapbox_token


# Lazily-created settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the process-wide settings instance.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None
