"""OpenWeatherMap (api.openweathermap.org) request building and response parsing."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Literal

from ..config import Settings
from ..exceptions import InsufficientDataError, MalformedResponseError
from .base import WeatherDataSource
from .models import Coordinate, ForecastPoint, WeatherCondition

Operation = Literal["/weather", "/forecast"]
Units = Literal["metric", "imperial"]

DEFAULT_BASE_URL = "http://api.openweathermap.org/data/"
DEFAULT_API_VERSION = "2.5"


def build_request_url(
    *,
    base_url: str,
    api_version: str,
    operation: Operation,
    coordinate: Coordinate,
    api_key: str,
    language: str,
    units: Units,
) -> str:
    """Build an OpenWeatherMap request URL.

    Coordinates are rendered with ``repr(float)`` so integral values keep one
    decimal place (``35.0``), matching what the provider examples use.
    """
    assert -90 <= coordinate.latitude <= 90, "Invalid latitude"
    assert -180 <= coordinate.longitude <= 180, "Invalid longitude"

    lat = repr(float(coordinate.latitude))
    lon = repr(float(coordinate.longitude))
    return (
        f"{base_url}{api_version}{operation}?lat={lat}&lon={lon}"
        f"&APPID={api_key}&lang={language}&units={units}"
    )


def is_night_hour(moment: datetime) -> bool:
    """Fixed-hour day/night cutoff; not a sunrise/sunset calculation."""
    return moment.hour < 7 or moment.hour > 18


def classify_condition(code: int, night: bool = False) -> WeatherCondition | None:
    """Map an OpenWeatherMap condition id to a WeatherCondition.

    See https://openweathermap.org/weather-conditions for the code ranges.
    Codes outside the documented table are programming errors; with
    assertions disabled they classify as ``None``.
    """
    assert 0 < code < 1000, f"Unexpected condition code {code}"

    if 200 <= code <= 531:
        return WeatherCondition.RAIN
    if code == 800:
        return WeatherCondition.CLEAR_NIGHT if night else WeatherCondition.SUNNY
    if 600 <= code <= 622:
        return WeatherCondition.SNOW
    if 700 <= code <= 781:
        return WeatherCondition.ATMOSPHERE
    if code == 801:
        return WeatherCondition.PARTLY_CLOUDY
    if 802 <= code <= 804:
        return WeatherCondition.CLOUDY
    if 900 <= code <= 962:
        return WeatherCondition.EXTREME

    assert False, f"Unexpected condition code {code}"
    return None


def parse_point(
    section: dict[str, Any],
    *,
    is_night: Callable[[datetime], bool] = is_night_hour,
) -> ForecastPoint:
    """Convert one weather section (or a current-weather document) to a point.

    A section looks like::

        {"dt": 1456164000,
         "main": {"temp": 283.02, ...},
         "weather": [{"id": 800, "description": "clear sky", ...}],
         ...}
    """
    timestamp = _as_number(section.get("dt"))
    if timestamp is None:
        raise MalformedResponseError("Weather section missing numeric 'dt'.")
    try:
        time = datetime.fromtimestamp(timestamp, tz=UTC)
        local_time = time.astimezone()
    except (OverflowError, OSError, ValueError) as exc:
        raise MalformedResponseError("Weather section has out-of-range 'dt'.") from exc

    temperature: float | None = None
    main = section.get("main")
    if isinstance(main, dict):
        temperature = _as_number(main.get("temp"))

    description: str | None = None
    condition: WeatherCondition | None = None
    weather = section.get("weather")
    if isinstance(weather, list) and weather and isinstance(weather[0], dict):
        first = weather[0]
        if isinstance(first.get("description"), str):
            description = first["description"]
        code = first.get("id")
        if isinstance(code, int) and not isinstance(code, bool):
            condition = classify_condition(code, night=is_night(local_time))

    if temperature is None or condition is None or description is None:
        raise MalformedResponseError(
            "Weather section incomplete: temperature, condition and description are required."
        )

    return ForecastPoint(
        time=time,
        condition=condition,
        description=description,
        temperature=temperature,
    )


def parse_forecast(
    document: dict[str, Any],
    requested_count: int,
    *,
    is_night: Callable[[datetime], bool] = is_night_hour,
) -> list[ForecastPoint]:
    """Convert a /forecast document into exactly `requested_count` points.

    The city name is attached to the first point only; the provider emits
    location context once per series.
    """
    assert requested_count > 0, "Unexpected number of entries"

    city = document.get("city")
    city_name = city.get("name") if isinstance(city, dict) else None
    if not isinstance(city_name, str):
        raise MalformedResponseError("Forecast document missing 'city.name'.")

    declared_count = document.get("cnt")
    if (
        isinstance(declared_count, int)
        and not isinstance(declared_count, bool)
        and declared_count < requested_count
    ):
        raise InsufficientDataError(
            f"Forecast declares {declared_count} points; {requested_count} requested."
        )

    sections = document.get("list")
    if not isinstance(sections, list):
        raise MalformedResponseError("Forecast document missing 'list' array.")

    points: list[ForecastPoint] = []
    for section in sections:
        if not isinstance(section, dict):
            raise MalformedResponseError("Forecast 'list' contains a non-object entry.")
        points.append(parse_point(section, is_night=is_night))
        if len(points) == requested_count:
            break

    if len(points) < requested_count:
        raise InsufficientDataError(
            f"Forecast contains {len(points)} points; {requested_count} requested."
        )

    points[0] = points[0].model_copy(update={"location_name": city_name})
    return points


def _as_number(value: Any) -> float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


class OpenWeatherDataSource(WeatherDataSource):
    """OpenWeatherMap data source bound to one key, language and unit system."""

    provider_name = "openweathermap"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
        language: str = "en",
        units: Units = "metric",
        is_night: Callable[[datetime], bool] = is_night_hour,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.api_version = api_version
        self.language = language
        self.units = units
        self.is_night = is_night

    @classmethod
    def from_settings(cls, settings: Settings) -> OpenWeatherDataSource:
        return cls(
            api_key=settings.openweather_api_key,
            base_url=settings.openweather_base_url,
            api_version=settings.openweather_api_version,
            language=settings.weather_language,
            units=settings.weather_units,
        )

    def current_weather_url(self, coordinate: Coordinate) -> str:
        return self._url("/weather", coordinate)

    def forecast_url(self, coordinate: Coordinate) -> str:
        return self._url("/forecast", coordinate)

    def parse_point(self, document: dict[str, Any]) -> ForecastPoint:
        return parse_point(document, is_night=self.is_night)

    def parse_forecast(self, document: dict[str, Any], entries: int) -> list[ForecastPoint]:
        return parse_forecast(document, entries, is_night=self.is_night)

    def _url(self, operation: Operation, coordinate: Coordinate) -> str:
        return build_request_url(
            base_url=self.base_url,
            api_version=self.api_version,
            operation=operation,
            coordinate=coordinate,
            api_key=self.api_key,
            language=self.language,
            units=self.units,
        )
