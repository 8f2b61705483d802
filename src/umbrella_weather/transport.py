"""Blocking JSON-over-HTTP transport used by the fetch pipeline."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from .exceptions import NetworkFailureError
from .redaction import sanitize_text


class JsonTransport(ABC):
    """Issues a GET and returns the decoded JSON object body."""

    @abstractmethod
    def get_json(self, url: str) -> dict[str, Any]:
        """Fetch `url`; raise NetworkFailureError on any transport-level failure."""

    @abstractmethod
    def close(self) -> None:
        """Release transport resources."""


class HttpxTransport(JsonTransport):
    """httpx-backed transport. Safe to call from worker threads."""

    def __init__(
        self,
        logger: logging.Logger,
        *,
        timeout_seconds: float = 15.0,
        user_agent: str = "umbrella-weather/0.1",
        client: httpx.Client | None = None,
    ) -> None:
        self.logger = logger
        self._client = client or httpx.Client(
            timeout=timeout_seconds,
            headers={"Accept": "application/json", "User-Agent": user_agent},
        )

    def __enter__(self) -> HttpxTransport:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def get_json(self, url: str) -> dict[str, Any]:
        safe_url = sanitize_text(url)
        self.logger.debug("GET %s", safe_url, extra={"url": safe_url})
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise NetworkFailureError(
                f"Request failed with status {status} at {safe_url}: "
                f"{sanitize_text(exc.response.text[:300])}",
                status_code=status,
            ) from exc
        except httpx.HTTPError as exc:
            raise NetworkFailureError(
                f"Request failed at {safe_url}: {type(exc).__name__}: {sanitize_text(str(exc))}"
            ) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise NetworkFailureError(
                f"Non-JSON response at {safe_url}.", status_code=response.status_code
            ) from exc

        if not isinstance(payload, dict):
            raise NetworkFailureError(
                f"Unexpected payload type {type(payload).__name__} at {safe_url}.",
                status_code=response.status_code,
            )
        return payload
