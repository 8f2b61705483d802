"""Weather provider integrations."""

from .base import WeatherDataSource
from .models import Coordinate, ForecastPoint, WeatherCondition
from .openweather import (
    OpenWeatherDataSource,
    build_request_url,
    classify_condition,
    is_night_hour,
    parse_forecast,
    parse_point,
)

__all__ = [
    "Coordinate",
    "ForecastPoint",
    "OpenWeatherDataSource",
    "WeatherCondition",
    "WeatherDataSource",
    "build_request_url",
    "classify_condition",
    "is_night_hour",
    "parse_forecast",
    "parse_point",
]
