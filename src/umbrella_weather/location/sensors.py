"""Concrete location sensors for command-line use."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Literal

import httpx

from ..exceptions import LocationLookupError
from ..redaction import sanitize_text
from ..weather.models import Coordinate
from .base import LocationSensor
from .models import AuthorizationStatus, LocationFix

Consent = Literal["undetermined", "granted", "denied"]

_CONSENT_STATUS: dict[str, AuthorizationStatus] = {
    "undetermined": AuthorizationStatus.NOT_DETERMINED,
    "granted": AuthorizationStatus.AUTHORIZED_WHEN_IN_USE,
    "denied": AuthorizationStatus.DENIED,
}

# IP geolocation is city-level at best.
IP_LOOKUP_ACCURACY_M = 5000.0


class FixedLocationSensor(LocationSensor):
    """Always-authorized sensor that reports one configured coordinate."""

    def __init__(self, coordinate: Coordinate) -> None:
        self.coordinate = coordinate

    def authorization_status(self) -> AuthorizationStatus:
        return AuthorizationStatus.AUTHORIZED_WHEN_IN_USE

    def request_authorization(self) -> None:
        if self.delegate is not None:
            asyncio.get_running_loop().call_soon(
                self.delegate.on_authorization_changed, self.authorization_status()
            )

    def request_location(self) -> None:
        if self.delegate is None:
            return
        fix = LocationFix(
            coordinate=self.coordinate,
            timestamp=datetime.now(UTC),
            horizontal_accuracy_m=0.0,
        )
        asyncio.get_running_loop().call_soon(self.delegate.on_location_update, [fix])


class IPLocationSensor(LocationSensor):
    """Approximate position from an IP geolocation endpoint.

    Permission is modelled on user consent: the lookup reveals the caller's
    address to a third party, so it only runs once consent is granted.
    """

    def __init__(
        self,
        logger: logging.Logger,
        *,
        lookup_url: str,
        consent: Consent = "undetermined",
        prompt: Callable[[], bool] | None = None,
        timeout_seconds: float = 15.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.logger = logger
        self.lookup_url = lookup_url
        self._status = _CONSENT_STATUS[consent]
        self._prompt = prompt
        self._client = client or httpx.Client(
            timeout=timeout_seconds,
            headers={"Accept": "application/json", "User-Agent": "umbrella-weather/0.1"},
        )
        self._tasks: set[asyncio.Task[None]] = set()

    def close(self) -> None:
        for task in self._tasks:
            task.cancel()
        self._client.close()

    def authorization_status(self) -> AuthorizationStatus:
        return self._status

    def request_authorization(self) -> None:
        if self._prompt is None:
            self.logger.warning("No consent prompt configured; location stays undetermined")
            return
        self._spawn(self._ask_consent())

    def request_location(self) -> None:
        self._spawn(self._locate())

    def lookup(self) -> LocationFix:
        """Blocking lookup; runs in a worker thread."""
        try:
            response = self._client.get(self.lookup_url)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise LocationLookupError(
                f"IP location lookup failed at {self.lookup_url}: {sanitize_text(str(exc))}"
            ) from exc
        except ValueError as exc:
            raise LocationLookupError(
                f"IP location lookup returned non-JSON response at {self.lookup_url}."
            ) from exc
        return self._parse_payload(payload)

    @staticmethod
    def _parse_payload(payload: Any) -> LocationFix:
        if not isinstance(payload, dict):
            raise LocationLookupError("IP location payload is not a JSON object.")
        if payload.get("status") == "fail":
            raise LocationLookupError(
                f"IP location lookup refused: {payload.get('message', 'unknown reason')}"
            )
        lat = payload.get("lat", payload.get("latitude"))
        lon = payload.get("lon", payload.get("longitude"))
        if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
            raise LocationLookupError("IP location payload missing numeric lat/lon.")
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise LocationLookupError(f"IP location payload out of range: {lat}, {lon}.")
        return LocationFix(
            coordinate=Coordinate(latitude=float(lat), longitude=float(lon)),
            timestamp=datetime.now(UTC),
            horizontal_accuracy_m=IP_LOOKUP_ACCURACY_M,
        )

    def _spawn(self, coro: Any) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _ask_consent(self) -> None:
        assert self._prompt is not None
        granted = await asyncio.to_thread(self._prompt)
        self._status = (
            AuthorizationStatus.AUTHORIZED_WHEN_IN_USE if granted else AuthorizationStatus.DENIED
        )
        if self.delegate is not None:
            self.delegate.on_authorization_changed(self._status)

    async def _locate(self) -> None:
        try:
            fix = await asyncio.to_thread(self.lookup)
        except LocationLookupError as exc:
            if self.delegate is not None:
                self.delegate.on_location_error(exc)
            return
        if self.delegate is not None:
            self.delegate.on_location_update([fix])
