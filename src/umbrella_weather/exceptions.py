"""Application exception classes."""


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""


class WeatherProviderError(Exception):
    """Raised when weather provider requests or normalization fail."""


class NetworkFailureError(WeatherProviderError):
    """Raised for transport errors, non-2xx statuses and undecodable bodies."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ForecastParseError(WeatherProviderError):
    """Raised when a provider document cannot be converted to forecast points."""


class MalformedResponseError(ForecastParseError):
    """A structurally required field is missing or has the wrong type."""


class InsufficientDataError(ForecastParseError):
    """The document is valid but holds fewer data points than requested."""


class LocationLookupError(Exception):
    """Raised when a location sensor cannot produce a fix."""
