"""Location permission and update state machine."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from ..weather.models import Coordinate
from .base import LocationConsumer, LocationSensor
from .models import AuthorizationStatus, LocationFix

# Weather does not change block to block; ask for roughly 3 km precision.
COARSE_ACCURACY_M = 3000.0

# Sensor accuracy/distance filters are unreliable, so updates are also
# throttled by wall-clock time.
MIN_UPDATE_INTERVAL_SECONDS = 10.0


class LocationTracker:
    """Bridges a LocationSensor to a single LocationConsumer.

    Sensor callbacks are expected on the event loop, so the last-location
    fields are mutated without locking.
    """

    def __init__(
        self,
        sensor: LocationSensor,
        logger: logging.Logger,
        consumer: LocationConsumer | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.sensor = sensor
        self.logger = logger
        self.consumer = consumer
        self._clock = clock
        self.last_location: Coordinate | None = None
        self.last_updated: float | None = None

        sensor.desired_accuracy_m = COARSE_ACCURACY_M
        sensor.distance_filter_m = COARSE_ACCURACY_M
        sensor.delegate = self

    def request_location(self) -> None:
        """Ask for permission first if needed, otherwise request a fix."""
        status = self.sensor.authorization_status()
        if status is AuthorizationStatus.NOT_DETERMINED:
            self.logger.info("Location permission undetermined; requesting authorization")
            self.sensor.request_authorization()
        elif status.is_authorized:
            self.logger.debug("Requesting location")
            self.sensor.request_location()
        else:
            self.logger.warning("Location permission %s; cannot request location", status.value)
            if self.consumer is not None:
                self.consumer.permission_lost()

    def on_authorization_changed(self, status: AuthorizationStatus) -> None:
        self.logger.info("Location authorization changed: %s", status.value)
        if self.consumer is None:
            return
        if status.is_refused:
            self.consumer.permission_lost()
        elif status.is_authorized:
            self.consumer.permission_gained()

    def on_location_update(self, fixes: Sequence[LocationFix]) -> None:
        if not fixes:
            self.logger.debug("Empty location batch ignored")
            return
        coordinate = fixes[-1].coordinate

        now = self._clock()
        if self.last_updated is not None and now - self.last_updated < MIN_UPDATE_INTERVAL_SECONDS:
            self.logger.debug("Filtering location update")
            return

        self.last_location = coordinate
        self.last_updated = now
        self.logger.info(
            "Location updated at %s",
            datetime.fromtimestamp(now, tz=UTC).isoformat(),
        )
        if self.consumer is not None:
            self.consumer.location_updated(coordinate)

    def on_location_error(self, error: Exception) -> None:
        self.logger.warning("Location sensor error: %s", error)
