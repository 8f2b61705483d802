"""Typed settings loader for the umbrella weather client."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: Literal["dev", "staging", "prod"] = Field(default="dev", alias="APP_ENV")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )

    openweather_api_key: str = Field(alias="OPENWEATHER_API_KEY", repr=False)
    openweather_base_url: str = Field(
        default="http://api.openweathermap.org/data/",
        alias="OPENWEATHER_BASE_URL",
    )
    openweather_api_version: str = Field(default="2.5", alias="OPENWEATHER_API_VERSION")
    weather_language: str = Field(default="en", alias="WEATHER_LANGUAGE")
    weather_units: Literal["metric", "imperial"] = Field(
        default="metric", alias="WEATHER_UNITS"
    )
    weather_timeout_seconds: float = Field(default=15.0, alias="WEATHER_TIMEOUT_SECONDS")
    weather_default_lat: float | None = Field(default=None, alias="WEATHER_DEFAULT_LAT")
    weather_default_lon: float | None = Field(default=None, alias="WEATHER_DEFAULT_LON")
    weather_refresh_seconds: float = Field(default=600.0, alias="WEATHER_REFRESH_SECONDS")

    location_lookup_url: str = Field(
        default="http://ip-api.com/json/",
        alias="LOCATION_LOOKUP_URL",
    )
    location_consent: Literal["undetermined", "granted", "denied"] = Field(
        default="undetermined",
        alias="LOCATION_CONSENT",
    )

    @field_validator("weather_default_lat", "weather_default_lon", mode="before")
    @classmethod
    def empty_string_to_none(cls, value: Any) -> Any:
        """Treat empty env-string values as unset optional coordinates."""
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @model_validator(mode="after")
    def validate_values(self) -> Settings:
        """Validate cross-field constraints."""
        if not self.openweather_api_key.strip():
            raise ValueError("OPENWEATHER_API_KEY must not be empty.")
        if not self.openweather_base_url.endswith("/"):
            raise ValueError("OPENWEATHER_BASE_URL must end with '/'.")
        if not self.openweather_api_version.strip():
            raise ValueError("OPENWEATHER_API_VERSION must not be empty.")
        if not self.weather_language.strip():
            raise ValueError("WEATHER_LANGUAGE must not be empty.")
        if self.weather_timeout_seconds <= 0:
            raise ValueError("WEATHER_TIMEOUT_SECONDS must be > 0.")
        if self.weather_refresh_seconds <= 0:
            raise ValueError("WEATHER_REFRESH_SECONDS must be > 0.")

        has_default_lat = self.weather_default_lat is not None
        has_default_lon = self.weather_default_lon is not None
        if has_default_lat != has_default_lon:
            raise ValueError("WEATHER_DEFAULT_LAT and WEATHER_DEFAULT_LON must be set together.")
        if has_default_lat and not (-90 <= self.weather_default_lat <= 90):
            raise ValueError("WEATHER_DEFAULT_LAT must be between -90 and 90.")
        if has_default_lon and not (-180 <= self.weather_default_lon <= 180):
            raise ValueError("WEATHER_DEFAULT_LON must be between -180 and 180.")
        return self

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for logging (no credentials)."""
        return {
            "app_env": self.app_env,
            "base_url": self.openweather_base_url,
            "api_version": self.openweather_api_version,
            "language": self.weather_language,
            "units": self.weather_units,
            "timeout_seconds": self.weather_timeout_seconds,
            "refresh_seconds": self.weather_refresh_seconds,
            "default_location_set": self.weather_default_lat is not None,
            "location_lookup_url": self.location_lookup_url,
            "location_consent": self.location_consent,
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc
