"""CLI: locate the user, fetch an OpenWeatherMap forecast and print it."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from rich.console import Console
from rich.prompt import Confirm

from .config import Settings, load_settings
from .controller import RETRY_DELAY_SECONDS, ForecastController
from .exceptions import ConfigError
from .fetcher import WeatherFetcher
from .location.base import LocationSensor
from .location.sensors import FixedLocationSensor, IPLocationSensor
from .location.tracker import LocationTracker
from .log_setup import setup_logger
from .transport import HttpxTransport
from .ui.console_presenter import ConsolePresenter
from .weather.models import Coordinate, ForecastPoint
from .weather.openweather import OpenWeatherDataSource

EXIT_OK = 0
EXIT_CONFIG = 2
EXIT_GAVE_UP = 4
EXIT_PERMISSION = 5

DEFAULT_MAX_FAILURES = 3


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse weather CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Show the weather forecast for your approximate location."
    )
    parser.add_argument("--lat", type=float, default=None, help="Latitude to use.")
    parser.add_argument("--lon", type=float, default=None, help="Longitude to use.")
    parser.add_argument(
        "--current",
        action="store_true",
        help="Show current conditions instead of the forecast.",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep running and refresh every WEATHER_REFRESH_SECONDS.",
    )
    parser.add_argument(
        "--max-failures",
        type=int,
        default=None,
        help="Give up after this many consecutive failed fetches.",
    )
    return parser.parse_args(argv)


class CliPresenter(ConsolePresenter):
    """Console presenter that tracks outcomes so the CLI knows when to exit."""

    def __init__(
        self, console: Console, *, units: str = "metric", max_failures: int | None = None
    ) -> None:
        super().__init__(console, units=units)
        self.max_failures = max_failures
        self.outcome = asyncio.Event()
        self.shown = 0
        self.consecutive_failures = 0
        self.permission_denied = False

    @property
    def gave_up(self) -> bool:
        return (
            self.max_failures is not None and self.consecutive_failures >= self.max_failures
        )

    def show_forecast(self, forecast: list[ForecastPoint]) -> None:
        super().show_forecast(forecast)
        self._shown()

    def show_current(self, point: ForecastPoint) -> None:
        super().show_current(point)
        self._shown()

    def show_permission_lost(self) -> None:
        super().show_permission_lost()
        self.permission_denied = True
        self.outcome.set()

    def fetch_failed(self) -> None:
        self.consecutive_failures += 1
        if self.gave_up:
            self.outcome.set()

    def _shown(self) -> None:
        self.shown += 1
        self.consecutive_failures = 0
        self.outcome.set()


def _resolve_coordinate(args: argparse.Namespace, settings: Settings) -> Coordinate | None:
    if (args.lat is None) != (args.lon is None):
        raise ConfigError("Pass both --lat and --lon, or neither.")
    lat = args.lat if args.lat is not None else settings.weather_default_lat
    lon = args.lon if args.lon is not None else settings.weather_default_lon
    if lat is None or lon is None:
        return None
    if not (-90 <= lat <= 90):
        raise ConfigError(f"Invalid latitude {lat}; expected between -90 and 90.")
    if not (-180 <= lon <= 180):
        raise ConfigError(f"Invalid longitude {lon}; expected between -180 and 180.")
    return Coordinate(latitude=lat, longitude=lon)


def build_sensor(
    coordinate: Coordinate | None,
    settings: Settings,
    logger: logging.Logger,
    console: Console,
) -> LocationSensor:
    if coordinate is not None:
        return FixedLocationSensor(coordinate)
    return IPLocationSensor(
        logger,
        lookup_url=settings.location_lookup_url,
        consent=settings.location_consent,
        prompt=lambda: Confirm.ask(
            "Look up your approximate location from your IP address?", console=console
        ),
        timeout_seconds=settings.weather_timeout_seconds,
    )


def outcome_deadline(settings: Settings, max_failures: int) -> float:
    """Upper bound for a one-shot run: one location lookup plus every fetch and retry."""
    per_attempt = settings.weather_timeout_seconds + RETRY_DELAY_SECONDS
    return settings.weather_timeout_seconds + max_failures * per_attempt


async def _wait_for_outcome(
    presenter: CliPresenter, fetcher: WeatherFetcher, *, timeout: float | None
) -> None:
    """Wait for a presenter outcome or a crashed fetch; TimeoutError if neither."""
    waiters = [
        asyncio.ensure_future(presenter.outcome.wait()),
        asyncio.ensure_future(fetcher.crashed.wait()),
    ]
    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for waiter in waiters:
            waiter.cancel()
    if not done:
        raise TimeoutError


async def run(
    args: argparse.Namespace,
    settings: Settings,
    logger: logging.Logger,
    console: Console,
) -> int:
    """Run the locate -> fetch -> present loop until an exit condition."""
    coordinate = _resolve_coordinate(args, settings)
    max_failures = args.max_failures
    if max_failures is None and not args.watch:
        max_failures = DEFAULT_MAX_FAILURES

    sensor = build_sensor(coordinate, settings, logger, console)
    transport = HttpxTransport(logger, timeout_seconds=settings.weather_timeout_seconds)
    presenter = CliPresenter(console, units=settings.weather_units, max_failures=max_failures)
    fetcher = WeatherFetcher(OpenWeatherDataSource.from_settings(settings), transport, logger)
    tracker = LocationTracker(sensor, logger)
    controller = ForecastController(
        tracker,
        fetcher,
        presenter,
        logger,
        retry_delay_seconds=RETRY_DELAY_SECONDS,
        current_only=args.current,
    )

    deadline = None if args.watch else outcome_deadline(settings, max_failures)
    try:
        controller.start()
        while True:
            try:
                await _wait_for_outcome(
                    presenter,
                    fetcher,
                    timeout=settings.weather_refresh_seconds if args.watch else deadline,
                )
            except TimeoutError:
                if not args.watch:
                    logger.error("No weather outcome within %.0f seconds; giving up", deadline)
                    return EXIT_GAVE_UP
                controller.refresh()
                continue
            fetcher.raise_if_crashed()
            presenter.outcome.clear()
            if presenter.permission_denied:
                return EXIT_PERMISSION
            if presenter.gave_up:
                logger.error(
                    "Giving up after %d consecutive failures", presenter.consecutive_failures
                )
                return EXIT_GAVE_UP
            if not args.watch:
                return EXIT_OK
    finally:
        controller.stop()
        try:
            await fetcher.wait_idle()
        finally:
            transport.close()
            sensor.close()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the `umbrella-weather` command."""
    args = parse_args(argv)
    logger = setup_logger()
    console = Console()

    if args.max_failures is not None and args.max_failures <= 0:
        logger.error("--max-failures must be > 0 when provided.")
        return EXIT_CONFIG

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return EXIT_CONFIG

    logger.setLevel(settings.log_level)
    logger.info("Starting with config %s", settings.safe_summary())

    try:
        return asyncio.run(run(args, settings, logger, console))
    except ConfigError as exc:
        logger.error("Invalid input: %s", exc)
        return EXIT_CONFIG
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
