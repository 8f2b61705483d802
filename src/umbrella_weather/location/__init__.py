"""Location sensing and permission tracking."""

from .base import LocationConsumer, LocationSensor, SensorDelegate
from .models import AuthorizationStatus, LocationFix
from .sensors import FixedLocationSensor, IPLocationSensor
from .tracker import COARSE_ACCURACY_M, MIN_UPDATE_INTERVAL_SECONDS, LocationTracker

__all__ = [
    "COARSE_ACCURACY_M",
    "MIN_UPDATE_INTERVAL_SECONDS",
    "AuthorizationStatus",
    "FixedLocationSensor",
    "IPLocationSensor",
    "LocationConsumer",
    "LocationFix",
    "LocationSensor",
    "LocationTracker",
    "SensorDelegate",
]
