"""Typed models for location sensing."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from ..weather.models import Coordinate


class AuthorizationStatus(str, Enum):
    """Location permission as reported by a sensor."""

    NOT_DETERMINED = "not_determined"
    DENIED = "denied"
    RESTRICTED = "restricted"
    AUTHORIZED_WHEN_IN_USE = "authorized_when_in_use"
    AUTHORIZED_ALWAYS = "authorized_always"

    @property
    def is_authorized(self) -> bool:
        return self in (
            AuthorizationStatus.AUTHORIZED_WHEN_IN_USE,
            AuthorizationStatus.AUTHORIZED_ALWAYS,
        )

    @property
    def is_refused(self) -> bool:
        return self in (AuthorizationStatus.DENIED, AuthorizationStatus.RESTRICTED)


class LocationFix(BaseModel):
    """One position fix delivered by a sensor."""

    coordinate: Coordinate = Field(description="Reported position")
    timestamp: datetime = Field(description="When the sensor produced the fix")
    horizontal_accuracy_m: float | None = Field(
        default=None, description="Accuracy radius in metres, if the sensor reports one"
    )
