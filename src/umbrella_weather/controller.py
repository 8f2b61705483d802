"""Wires location updates to forecast fetches and owns the retry policy."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from .fetcher import FORECAST_ENTRIES, ForecastConsumer, WeatherFetcher
from .location.base import LocationConsumer
from .location.tracker import LocationTracker
from .weather.models import Coordinate, ForecastPoint

RETRY_DELAY_SECONDS = 15.0


class ForecastPresenter(ABC):
    """Presentation boundary for forecast results and failures."""

    @abstractmethod
    def show_forecast(self, forecast: list[ForecastPoint]) -> None:
        """Render current conditions (first point) and the following slots."""

    @abstractmethod
    def show_current(self, point: ForecastPoint) -> None:
        """Render current conditions only."""

    @abstractmethod
    def show_network_error(self) -> None:
        """Tell the user no data could be fetched yet."""

    @abstractmethod
    def show_permission_lost(self) -> None:
        """Tell the user location access is required."""

    def fetch_failed(self) -> None:
        """Called on every failed fetch, after any error message."""


class ForecastController(LocationConsumer, ForecastConsumer):
    """Drives tracker -> fetcher -> presenter and retries failed fetches.

    A failed fetch schedules one retry after RETRY_DELAY_SECONDS with the
    last known coordinate. Fresh activity (refresh or a new location)
    cancels a pending retry so fetches triggered by it do not overlap.
    """

    def __init__(
        self,
        tracker: LocationTracker,
        fetcher: WeatherFetcher,
        presenter: ForecastPresenter,
        logger: logging.Logger,
        *,
        retry_delay_seconds: float = RETRY_DELAY_SECONDS,
        current_only: bool = False,
    ) -> None:
        self.tracker = tracker
        self.fetcher = fetcher
        self.presenter = presenter
        self.logger = logger
        self.retry_delay_seconds = retry_delay_seconds
        self.current_only = current_only
        self.showing_placeholder = True
        self._retry_handle: asyncio.TimerHandle | None = None

        tracker.consumer = self
        fetcher.consumer = self

    @property
    def retry_pending(self) -> bool:
        return self._retry_handle is not None

    def start(self) -> None:
        self.tracker.request_location()

    def stop(self) -> None:
        self._cancel_retry()

    def refresh(self) -> None:
        """Re-fetch for the last known location, or locate first."""
        self._cancel_retry()
        last = self.tracker.last_location
        if last is None:
            self.tracker.request_location()
        else:
            self._request(last)

    # Location notifications

    def location_updated(self, coordinate: Coordinate) -> None:
        self._cancel_retry()
        self._request(coordinate)

    def permission_gained(self) -> None:
        self.tracker.request_location()

    def permission_lost(self) -> None:
        self.presenter.show_permission_lost()

    # Forecast notifications

    def forecast_ready(self, forecast: list[ForecastPoint]) -> None:
        assert len(forecast) == FORECAST_ENTRIES
        self.presenter.show_forecast(forecast)
        self.showing_placeholder = False

    def current_weather_ready(self, point: ForecastPoint) -> None:
        self.presenter.show_current(point)
        self.showing_placeholder = False

    def fetch_failed(self) -> None:
        if self.showing_placeholder:
            self.presenter.show_network_error()
        self.presenter.fetch_failed()
        self._schedule_retry()

    def _request(self, coordinate: Coordinate) -> None:
        if self.current_only:
            self.fetcher.request_current_weather(coordinate)
        else:
            self.fetcher.request_forecast(coordinate)

    def _schedule_retry(self) -> None:
        self._cancel_retry()
        loop = asyncio.get_running_loop()
        self._retry_handle = loop.call_later(self.retry_delay_seconds, self._fire_retry)
        self.logger.info("Retrying in %.0f seconds", self.retry_delay_seconds)

    def _cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

    def _fire_retry(self) -> None:
        self._retry_handle = None
        last = self.tracker.last_location
        if last is None:
            # No fix yet: locating again leads to a fetch via location_updated.
            self.logger.info("Retry fired without a known location; requesting location")
            self.tracker.request_location()
            return
        self.logger.info("Firing postponed request")
        self._request(last)
