"""End-to-end tests for the weather CLI with a fake HTTP transport."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import httpx
import pytest
from payloads import forecast_document, weather_section
from rich.console import Console

from umbrella_weather import weather_cli
from umbrella_weather.config import Settings
from umbrella_weather.exceptions import ConfigError, NetworkFailureError
from umbrella_weather.location.sensors import IPLocationSensor
from umbrella_weather.transport import JsonTransport

LOGGER = logging.getLogger("test_weather_cli")


class _FakeTransport(JsonTransport):
    payload: Any = None
    error: Exception | None = None
    instances: list[_FakeTransport] = []

    def __init__(self, logger: logging.Logger, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.urls: list[str] = []
        self.closed = False
        type(self).instances.append(self)

    def get_json(self, url: str) -> dict[str, Any]:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.payload

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_transport(monkeypatch: pytest.MonkeyPatch) -> type[_FakeTransport]:
    transport_cls = type("_Transport", (_FakeTransport,), {"instances": []})
    monkeypatch.setattr(weather_cli, "HttpxTransport", transport_cls)
    return transport_cls


def _settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "OPENWEATHER_API_KEY": "cli-key",
        "WEATHER_DEFAULT_LAT": None,
        "WEATHER_DEFAULT_LON": None,
        "LOCATION_CONSENT": "undetermined",
        "WEATHER_UNITS": "metric",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _run(argv: list[str], settings: Settings) -> tuple[int, str]:
    console = Console(record=True, width=100)
    code = asyncio.run(weather_cli.run(weather_cli.parse_args(argv), settings, LOGGER, console))
    return code, console.export_text()


def test_parse_args_defaults() -> None:
    args = weather_cli.parse_args([])
    assert args.lat is None
    assert args.lon is None
    assert args.current is False
    assert args.watch is False
    assert args.max_failures is None


def test_parse_args_all_flags() -> None:
    args = weather_cli.parse_args(
        ["--lat", "51.5", "--lon", "0.125", "--current", "--watch", "--max-failures", "2"]
    )
    assert (args.lat, args.lon) == (51.5, 0.125)
    assert args.current and args.watch
    assert args.max_failures == 2


def test_forecast_for_fixed_coordinate_is_printed(fake_transport: type[_FakeTransport]) -> None:
    fake_transport.payload = forecast_document()

    code, output = _run(["--lat", "51.5", "--lon", "0.125"], _settings())

    assert code == weather_cli.EXIT_OK
    assert "London" in output
    assert "Next hours" in output
    transport = fake_transport.instances[0]
    assert transport.closed
    assert transport.urls[0].startswith("http://api.openweathermap.org/data/2.5/forecast?")
    assert "lat=51.5&lon=0.125&APPID=cli-key" in transport.urls[0]


def test_current_flag_fetches_current_weather(fake_transport: type[_FakeTransport]) -> None:
    fake_transport.payload = weather_section(temp=12.5, code=500, description="light rain")

    code, output = _run(["--lat", "51.5", "--lon", "0.125", "--current"], _settings())

    assert code == weather_cli.EXIT_OK
    assert "/2.5/weather?" in fake_transport.instances[0].urls[0]
    assert "light rain" in output
    assert "12.5 °C" in output
    assert "Next hours" not in output


def test_default_location_from_settings_is_used(fake_transport: type[_FakeTransport]) -> None:
    fake_transport.payload = forecast_document()
    settings = _settings(WEATHER_DEFAULT_LAT=48.85, WEATHER_DEFAULT_LON=2.35)

    code, _ = _run([], settings)

    assert code == weather_cli.EXIT_OK
    assert "lat=48.85&lon=2.35" in fake_transport.instances[0].urls[0]


def test_gives_up_after_max_failures(fake_transport: type[_FakeTransport]) -> None:
    fake_transport.error = NetworkFailureError("offline")

    code, output = _run(["--lat", "51.5", "--lon", "0.125", "--max-failures", "1"], _settings())

    assert code == weather_cli.EXIT_GAVE_UP
    assert "Check your network access" in output
    assert fake_transport.instances[0].closed


def test_denied_consent_without_coordinate_exits_with_permission_code(
    fake_transport: type[_FakeTransport],
) -> None:
    code, output = _run([], _settings(LOCATION_CONSENT="denied"))

    assert code == weather_cli.EXIT_PERMISSION
    assert "LOCATION_CONSENT=granted" in output
    assert fake_transport.instances[0].urls == []


@pytest.mark.parametrize(
    "argv",
    [
        ["--lat", "51.5"],
        ["--lon", "0.125"],
        ["--lat", "91", "--lon", "0"],
        ["--lat", "0", "--lon", "200"],
    ],
)
def test_resolve_coordinate_rejects_bad_input(argv: list[str]) -> None:
    with pytest.raises(ConfigError):
        weather_cli._resolve_coordinate(weather_cli.parse_args(argv), _settings())


def test_resolve_coordinate_prefers_arguments_over_settings() -> None:
    settings = _settings(WEATHER_DEFAULT_LAT=48.85, WEATHER_DEFAULT_LON=2.35)
    coordinate = weather_cli._resolve_coordinate(
        weather_cli.parse_args(["--lat", "51.5", "--lon", "0.125"]), settings
    )
    assert coordinate is not None
    assert (coordinate.latitude, coordinate.longitude) == (51.5, 0.125)
    assert weather_cli._resolve_coordinate(weather_cli.parse_args([]), _settings()) is None


def test_cli_presenter_counts_consecutive_failures() -> None:
    async def scenario() -> weather_cli.CliPresenter:
        presenter = weather_cli.CliPresenter(Console(record=True), max_failures=2)
        presenter.fetch_failed()
        assert not presenter.gave_up
        presenter.fetch_failed()
        return presenter

    presenter = asyncio.run(scenario())
    assert presenter.gave_up
    assert presenter.outcome.is_set()


def _clear_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in (
        "OPENWEATHER_API_KEY",
        "WEATHER_DEFAULT_LAT",
        "WEATHER_DEFAULT_LON",
        "LOCATION_CONSENT",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_main_without_api_key_returns_config_code(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    _clear_env(monkeypatch, tmp_path)
    assert weather_cli.main(["--lat", "51.5", "--lon", "0.125"]) == weather_cli.EXIT_CONFIG


def test_main_rejects_non_positive_max_failures(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    _clear_env(monkeypatch, tmp_path)
    monkeypatch.setenv("OPENWEATHER_API_KEY", "cli-key")
    assert weather_cli.main(["--max-failures", "0"]) == weather_cli.EXIT_CONFIG


def test_main_reports_half_given_coordinate_as_config_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, fake_transport: type[_FakeTransport]
) -> None:
    _clear_env(monkeypatch, tmp_path)
    monkeypatch.setenv("OPENWEATHER_API_KEY", "cli-key")
    assert weather_cli.main(["--lat", "51.5"]) == weather_cli.EXIT_CONFIG


def test_main_prints_forecast(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    fake_transport: type[_FakeTransport],
    capsys: pytest.CaptureFixture[str],
) -> None:
    _clear_env(monkeypatch, tmp_path)
    monkeypatch.setenv("OPENWEATHER_API_KEY", "cli-key")
    fake_transport.payload = forecast_document()

    assert weather_cli.main(["--lat", "51.5", "--lon", "0.125"]) == weather_cli.EXIT_OK
    assert "London" in capsys.readouterr().out


def test_outcome_deadline_covers_lookup_fetches_and_retries() -> None:
    settings = _settings(WEATHER_TIMEOUT_SECONDS=10)
    assert weather_cli.outcome_deadline(settings, 3) == 10 + 3 * (10 + 15)


def test_failed_ip_lookup_gives_up_instead_of_waiting_forever(
    monkeypatch: pytest.MonkeyPatch, fake_transport: type[_FakeTransport]
) -> None:
    lookups: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        lookups.append(request)
        return httpx.Response(500, text="lookup unavailable")

    def build_sensor(coordinate, settings, logger, console) -> IPLocationSensor:
        return IPLocationSensor(
            logger,
            lookup_url="http://ip-api.test/json/",
            consent=settings.location_consent,
            client=httpx.Client(transport=httpx.MockTransport(handler)),
        )

    monkeypatch.setattr(weather_cli, "build_sensor", build_sensor)
    monkeypatch.setattr(weather_cli, "RETRY_DELAY_SECONDS", 0.01)
    settings = _settings(LOCATION_CONSENT="granted", WEATHER_TIMEOUT_SECONDS=0.05)

    code, _ = _run(["--max-failures", "2"], settings)

    assert code == weather_cli.EXIT_GAVE_UP
    assert len(lookups) == 1
    assert fake_transport.instances[0].urls == []
    assert fake_transport.instances[0].closed


def test_undocumented_condition_code_halts_the_run(
    fake_transport: type[_FakeTransport],
) -> None:
    document = forecast_document()
    document["list"][0]["weather"][0]["id"] = 550
    fake_transport.payload = document

    with pytest.raises(AssertionError, match="550"):
        _run(["--lat", "51.5", "--lon", "0.125"], _settings())
    assert fake_transport.instances[0].closed
