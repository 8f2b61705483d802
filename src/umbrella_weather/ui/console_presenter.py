"""Rich terminal rendering for forecasts and fetch failures."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..controller import ForecastPresenter
from ..weather.models import ForecastPoint, WeatherCondition

CONDITION_LABELS: dict[WeatherCondition, str] = {
    WeatherCondition.SUNNY: "☀ Sunny",
    WeatherCondition.CLEAR_NIGHT: "☾ Clear night",
    WeatherCondition.PARTLY_CLOUDY: "⛅ Partly cloudy",
    WeatherCondition.CLOUDY: "☁ Cloudy",
    WeatherCondition.RAIN: "☂ Rain",
    WeatherCondition.SNOW: "❄ Snow",
    WeatherCondition.WIND: "≋ Windy",
    WeatherCondition.EXTREME: "⚠ Extreme",
    WeatherCondition.ATMOSPHERE: "⚠ Haze/fog",
}

UNIT_SYMBOLS = {"metric": "°C", "imperial": "°F"}

PERMISSION_MESSAGE = (
    "Umbrella needs your approximate location. Set LOCATION_CONSENT=granted, "
    "or pass --lat/--lon."
)


def condition_label(condition: WeatherCondition) -> str:
    return CONDITION_LABELS[condition]


def format_temperature(value: float, units: str = "metric") -> str:
    return f"{value:.1f} {UNIT_SYMBOLS[units]}"


class ConsolePresenter(ForecastPresenter):
    """Prints forecasts as a panel for now plus a table of upcoming slots."""

    def __init__(self, console: Console, *, units: str = "metric") -> None:
        self.console = console
        self.units = units

    def show_forecast(self, forecast: list[ForecastPoint]) -> None:
        current, upcoming = forecast[0], forecast[1:]
        self._print_current(current)

        table = Table(title="Next hours")
        table.add_column("Time")
        table.add_column("Condition")
        table.add_column("Temp", justify="right")
        table.add_column("Description", overflow="fold")
        for point in upcoming:
            table.add_row(
                point.time.astimezone().strftime("%a %H:%M"),
                condition_label(point.condition),
                format_temperature(point.temperature, self.units),
                point.description,
            )
        self.console.print(table)

    def show_current(self, point: ForecastPoint) -> None:
        self._print_current(point)

    def show_network_error(self) -> None:
        self.console.print("[yellow]Check your network access...[/yellow]")

    def show_permission_lost(self) -> None:
        self.console.print(f"[red]Location error:[/red] {PERMISSION_MESSAGE}")

    def _print_current(self, point: ForecastPoint) -> None:
        city = point.location_name or "Your location"
        body = (
            f"{condition_label(point.condition)}\n"
            f"{format_temperature(point.temperature, self.units)}\n"
            f"{point.description}"
        )
        self.console.print(Panel(body, title=city, expand=False))
