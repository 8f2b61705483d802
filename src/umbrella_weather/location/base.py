"""Location sensor and consumer interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Protocol

from ..weather.models import Coordinate
from .models import AuthorizationStatus, LocationFix


class SensorDelegate(Protocol):
    """Callbacks a sensor delivers on the event loop."""

    def on_authorization_changed(self, status: AuthorizationStatus) -> None: ...

    def on_location_update(self, fixes: Sequence[LocationFix]) -> None: ...

    def on_location_error(self, error: Exception) -> None: ...


class LocationSensor(ABC):
    """Platform position source with a permission model."""

    desired_accuracy_m: float = 0.0
    distance_filter_m: float = 0.0
    delegate: SensorDelegate | None = None

    @abstractmethod
    def authorization_status(self) -> AuthorizationStatus:
        """Return the current permission state."""

    @abstractmethod
    def request_authorization(self) -> None:
        """Ask the user for permission; the answer arrives via the delegate."""

    @abstractmethod
    def request_location(self) -> None:
        """Request a single fix; it arrives via the delegate."""

    def close(self) -> None:
        """Release sensor resources."""


class LocationConsumer:
    """Receives location notifications. Every method is optional."""

    def location_updated(self, coordinate: Coordinate) -> None:
        """A new position passed the update filter."""

    def permission_lost(self) -> None:
        """Location permission is denied or restricted."""

    def permission_gained(self) -> None:
        """Location permission was granted."""
