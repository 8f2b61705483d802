"""Asynchronous forecast retrieval pipeline.

Blocking HTTP work runs in a worker thread; every consumer notification is
delivered on the event loop that issued the request.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any

from .exceptions import (
    ForecastParseError,
    InsufficientDataError,
    NetworkFailureError,
    WeatherProviderError,
)
from .redaction import sanitize_for_logging, sanitize_text
from .transport import JsonTransport
from .weather.base import WeatherDataSource
from .weather.models import Coordinate, ForecastPoint

# Current conditions plus three forecast slots.
FORECAST_ENTRIES = 4


class FailureKind(str, Enum):
    """Why a fetch failed. Consumers currently receive one generic notification."""

    NETWORK = "network"
    MALFORMED_RESPONSE = "malformed_response"
    INSUFFICIENT_DATA = "insufficient_data"


def classify_failure(exc: WeatherProviderError) -> FailureKind:
    if isinstance(exc, InsufficientDataError):
        return FailureKind.INSUFFICIENT_DATA
    if isinstance(exc, ForecastParseError):
        return FailureKind.MALFORMED_RESPONSE
    return FailureKind.NETWORK


class ForecastConsumer(ABC):
    """Receives fetch outcomes on the main event loop."""

    @abstractmethod
    def forecast_ready(self, forecast: list[ForecastPoint]) -> None:
        """Called with exactly FORECAST_ENTRIES points in provider order."""

    @abstractmethod
    def fetch_failed(self) -> None:
        """Called once when a fetch fails for any reason."""

    def current_weather_ready(self, point: ForecastPoint) -> None:
        """Optional: called with the result of `request_current_weather`."""


class WeatherFetcher:
    """Orchestrates request building, network I/O, parsing and delivery.

    The fetcher never retries; the consumer's `fetch_failed` decides that.
    Overlapping requests are not coalesced and in-flight requests are not
    cancelled.
    """

    def __init__(
        self,
        data_source: WeatherDataSource,
        transport: JsonTransport,
        logger: logging.Logger,
        consumer: ForecastConsumer | None = None,
    ) -> None:
        self.data_source = data_source
        self.transport = transport
        self.logger = logger
        self.consumer = consumer
        self.last_failure: FailureKind | None = None
        # First exception that escaped a fetch task (precondition violations).
        self.crash: BaseException | None = None
        self.crashed = asyncio.Event()
        self._tasks: set[asyncio.Task[None]] = set()

    def request_forecast(self, coordinate: Coordinate) -> asyncio.Task[None]:
        """Start a forecast fetch for `coordinate`; must run on the event loop."""
        assert coordinate.is_valid(), f"Invalid coordinate {coordinate}"

        url = self.data_source.forecast_url(coordinate)
        return self._spawn(
            self._fetch(
                url,
                parse=lambda body: self.data_source.parse_forecast(body, FORECAST_ENTRIES),
                deliver=self._deliver_forecast,
            )
        )

    def request_current_weather(self, coordinate: Coordinate) -> asyncio.Task[None]:
        """Start a current-conditions fetch for `coordinate`."""
        assert coordinate.is_valid(), f"Invalid coordinate {coordinate}"

        url = self.data_source.current_weather_url(coordinate)
        return self._spawn(
            self._fetch(url, parse=self.data_source.parse_point, deliver=self._deliver_current)
        )

    async def wait_idle(self) -> None:
        """Wait until every fetch started so far has finished.

        Re-raises the first exception that escaped a fetch task.
        """
        while self._tasks:
            await asyncio.wait(list(self._tasks))
        self.raise_if_crashed()

    def raise_if_crashed(self) -> None:
        if self.crash is not None:
            raise self.crash

    def _spawn(self, coro: Any) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        self.logger.error(
            "Weather fetch task crashed: %s: %s",
            type(exc).__name__,
            exc,
            exc_info=exc,
            extra={"provider": self.data_source.provider_name},
        )
        if self.crash is None:
            self.crash = exc
        self.crashed.set()

    async def _fetch(
        self,
        url: str,
        *,
        parse: Callable[[dict[str, Any]], Any],
        deliver: Callable[[Any], None],
    ) -> None:
        safe_url = sanitize_text(url)
        self.logger.info(
            "Requesting %s",
            safe_url,
            extra={"provider": self.data_source.provider_name, "url": safe_url},
        )
        try:
            body = await asyncio.to_thread(self.transport.get_json, url)
        except NetworkFailureError as exc:
            self._fail(exc)
            return
        try:
            result = parse(body)
        except ForecastParseError as exc:
            self.logger.debug("Rejected document: %s", sanitize_for_logging(body))
            self._fail(exc)
            return
        self.last_failure = None
        deliver(result)

    def _fail(self, exc: WeatherProviderError) -> None:
        kind = classify_failure(exc)
        self.last_failure = kind
        self.logger.warning(
            "Weather fetch from %s failed (%s): %s",
            self.data_source.provider_name,
            kind.value,
            exc,
            extra={"provider": self.data_source.provider_name, "failure_kind": kind.value},
        )
        if self.consumer is not None:
            self.consumer.fetch_failed()

    def _deliver_forecast(self, forecast: list[ForecastPoint]) -> None:
        self.logger.info(
            "Forecast ready: %d points for %s", len(forecast), forecast[0].location_name
        )
        if self.consumer is not None:
            self.consumer.forecast_ready(forecast)

    def _deliver_current(self, point: ForecastPoint) -> None:
        self.logger.info("Current weather ready: %s", point.condition.value)
        if self.consumer is not None:
            self.consumer.current_weather_ready(point)
