"""Typed models for normalized weather data."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    """A position on Earth in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(description="Decimal degrees, -90 to 90")
    longitude: float = Field(description="Decimal degrees, -180 to 180")

    def is_valid(self) -> bool:
        return -90 <= self.latitude <= 90 and -180 <= self.longitude <= 180


class WeatherCondition(str, Enum):
    """Simplified weather condition shown to the user."""

    SUNNY = "sunny"
    CLEAR_NIGHT = "clear_night"
    PARTLY_CLOUDY = "partly_cloudy"
    CLOUDY = "cloudy"
    RAIN = "rain"
    SNOW = "snow"
    WIND = "wind"
    EXTREME = "extreme"
    ATMOSPHERE = "atmosphere"


class ForecastPoint(BaseModel):
    """One time-stamped weather snapshot within a forecast series."""

    location_name: str | None = Field(
        default=None, description="City name; set on the first point of a forecast only"
    )
    time: datetime = Field(description="UTC time the point refers to")
    condition: WeatherCondition = Field(description="Classified provider condition code")
    description: str = Field(description="Provider description in the configured language")
    temperature: float = Field(description="Temperature in the configured unit system")
