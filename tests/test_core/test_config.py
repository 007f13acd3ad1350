"""Tests for application configuration settings."""

import os
from unittest.mock import patch

import pytest

from plottr.core.config import Settings, get_settings, reset_settings


class TestGeocoderSettings:
    """Test geocoder provider configuration."""

    def test_should_have_expected_defaults(self):
        """Test defaults match the public provider usage policies."""
        # Arrange & Act
        settings = Settings(_env_file=None)

        # Assert
        assert settings.GEOCODER_PROVIDER == "mapbox"
        assert settings.MAPBOX_COUNTRY_BIAS == "ie"
        assert settings.MAPBOX_PROXIMITY == "-6.2603,53.3498"
        assert settings.NOMINATIM_RATE_LIMIT_MS == 1000
        assert settings.NOMINATIM_MAX_RETRIES == 0
        assert settings.GEOCODING_MAX_RETRIES == 2
        assert settings.GEOCODING_CACHE_TTL == 300
        assert settings.GEOCODING_CACHE_SIZE == 2000

    def test_should_read_token_from_environment(self):
        """Test MAPBOX_ACCESS_TOKEN is read from the environment."""
        with patch.dict(os.environ, {"MAPBOX_ACCESS_TOKEN": "pk.env"}):
            settings = Settings(_env_file=None)

        assert settings.MAPBOX_ACCESS_TOKEN == "pk.env"
        assert settings.has_mapbox_token is True
        assert settings.use_mapbox is True

    def test_should_accept_legacy_token_name(self):
        """Test MAPBOX_TOKEN is accepted as an alias."""
        env = {"MAPBOX_TOKEN": "pk.legacy"}
        with patch.dict(os.environ, env):
            os.environ.pop("MAPBOX_ACCESS_TOKEN", None)
            settings = Settings(_env_file=None)

        assert settings.MAPBOX_ACCESS_TOKEN == "pk.legacy"

    def test_should_treat_placeholder_token_as_missing(self):
        """Test the example placeholder does not count as a credential."""
        settings = Settings(
            _env_file=None, MAPBOX_ACCESS_TOKEN="your_mapbox_access_token_here"
        )

        assert settings.has_mapbox_token is False
        assert settings.use_mapbox is False

    def test_should_not_use_mapbox_when_nominatim_selected(self):
        """Test provider selection wins over a configured token."""
        settings = Settings(
            _env_file=None, GEOCODER_PROVIDER="Nominatim", MAPBOX_ACCESS_TOKEN="pk.x"
        )

        assert settings.GEOCODER_PROVIDER == "nominatim"
        assert settings.use_mapbox is False

    def test_should_lowercase_country_bias(self):
        """Test MAPBOX_COUNTRY_BIAS is normalized."""
        settings = Settings(_env_file=None, MAPBOX_COUNTRY_BIAS=" IE ")
        assert settings.MAPBOX_COUNTRY_BIAS == "ie"

    @pytest.mark.parametrize("value", ["-6.26", "abc,def", "200,53"])
    def test_should_reject_invalid_proximity(self, value):
        """Test MAPBOX_PROXIMITY must be a valid lng,lat pair."""
        with pytest.raises(ValueError):
            Settings(_env_file=None, MAPBOX_PROXIMITY=value)

    def test_should_allow_blank_proximity(self):
        """Test a blank MAPBOX_PROXIMITY disables the default bias."""
        assert Settings(_env_file=None, MAPBOX_PROXIMITY="").MAPBOX_PROXIMITY is None

    def test_should_reject_negative_rate_limit(self):
        """Test NOMINATIM_RATE_LIMIT_MS cannot be negative."""
        with patch.dict(os.environ, {"NOMINATIM_RATE_LIMIT_MS": "-1"}):
            with pytest.raises(ValueError):
                Settings(_env_file=None)


class TestSettingsSingleton:
    """Test the process-wide settings accessor."""

    def test_should_cache_instance(self):
        assert get_settings() is get_settings()

    def test_should_reread_environment_after_reset(self):
        first = get_settings()
        with patch.dict(os.environ, {"GEOCODING_CACHE_TTL": "42"}):
            reset_settings()
            second = get_settings()

        assert second is not first
        assert second.GEOCODING_CACHE_TTL == 42
