"""Tests for the command-line entry point."""

from __future__ import annotations

import json

import pytest

import headwind.cli as cli
from headwind.contracts.enums import WeatherDataProvider
from headwind.errors import HttpStatusError
from tests.fakes import make_batch

ENV_VARS = [
    "HEADWIND_WEATHER_PROVIDER",
    "OPENWEATHERMAP_API_KEY",
    "HEADWIND_ROUND_LOCATION_KM",
    "HEADWIND_WIND_UNIT",
    "HEADWIND_IMPERIAL",
    "HEADWIND_HTTP_TIMEOUT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    load_settings = cli.load_settings
    monkeypatch.setattr(cli, "load_settings", lambda: load_settings(dotenv=False))


class FakeController:
    instances: list["FakeController"] = []
    error: Exception | None = None

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.requests = []
        FakeController.instances.append(self)

    async def fetch(self, coordinates, settings, profile=None):
        self.requests.append((list(coordinates), settings))
        if FakeController.error is not None:
            raise FakeController.error
        return make_batch(coordinates, provider=WeatherDataProvider(settings.weather_provider))


@pytest.fixture
def controller(monkeypatch):
    FakeController.instances = []
    FakeController.error = None
    monkeypatch.setattr(cli, "ProviderFailoverController", FakeController)
    return FakeController


class TestGradeCommand:
    def test_headwind(self, capsys):
        code = cli.main([
            "grade", "--grade", "2", "--speed", "8", "--wind-speed", "5",
            "--wind-direction", "0", "--mass", "80",
        ])

        assert code == 0
        result = json.loads(capsys.readouterr().out)
        assert result["relative_grade_percent"] == pytest.approx(5.28, abs=0.01)
        assert result["rolling_resistance"] == pytest.approx(80 * 9.80665 * 0.005)

    def test_invalid_input(self, capsys):
        code = cli.main([
            "grade", "--grade", "2", "--speed", "-1", "--wind-speed", "5",
            "--wind-direction", "0", "--mass", "80",
        ])
        assert code == 1
        assert capsys.readouterr().out == ""


class TestFetchCommand:
    def test_prints_batch(self, controller, capsys):
        code = cli.main(["fetch", "--lat", "48.137", "--lon", "11.575"])

        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["provider"] == "open-meteo"
        assert output["locations"][0]["coordinate"]["latitude"] == 48.137

        [instance] = controller.instances
        [(coordinates, settings)] = instance.requests
        assert coordinates[0].longitude == 11.575
        assert instance.kwargs["timeout"] == 30.0

    def test_provider_override(self, controller, capsys):
        code = cli.main(["fetch", "--lat", "48.1", "--lon", "11.5", "--provider", "open-weather-map"])

        assert code == 0
        [(_, settings)] = controller.instances[0].requests
        assert settings.weather_provider == WeatherDataProvider.OPEN_WEATHER_MAP
        assert json.loads(capsys.readouterr().out)["provider"] == "open-weather-map"

    def test_failure_exit_code(self, controller, capsys):
        controller.error = HttpStatusError(500, "boom")
        assert cli.main(["fetch", "--lat", "48.1", "--lon", "11.5"]) == 1
        assert capsys.readouterr().out == ""

    def test_requires_coordinates(self):
        with pytest.raises(SystemExit):
            cli.main(["fetch", "--lat", "48.1"])
