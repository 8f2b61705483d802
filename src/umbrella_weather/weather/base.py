"""Provider-agnostic weather data source interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from .models import Coordinate, ForecastPoint


class WeatherDataSource(ABC):
    """Builds provider request URLs and parses provider documents."""

    provider_name: str

    @abstractmethod
    def current_weather_url(self, coordinate: Coordinate) -> str:
        """Return the request URL for current conditions at `coordinate`."""

    @abstractmethod
    def forecast_url(self, coordinate: Coordinate) -> str:
        """Return the request URL for a multi-point forecast at `coordinate`."""

    @abstractmethod
    def parse_point(self, document: dict[str, Any]) -> ForecastPoint:
        """Convert a single weather section into a forecast point."""

    @abstractmethod
    def parse_forecast(self, document: dict[str, Any], entries: int) -> list[ForecastPoint]:
        """Convert a forecast document into exactly `entries` points."""
