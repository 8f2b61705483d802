"""Location-aware weather forecast client for OpenWeatherMap."""

__version__ = "0.1.0"
