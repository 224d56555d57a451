"""Tests for Headwind contracts."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from headwind import geo
from headwind.contracts import (
    GeoCoordinate,
    HeadingValue,
    HeadwindSettings,
    HeadwindStats,
    NavigationState,
    NoFix,
    NoWeatherData,
    ResistanceForces,
    RouteProjection,
    WeatherBatchResponse,
    WeatherDataProvider,
    WeatherInterpretation,
    WindUnit,
)
from tests.fakes import MUNICH, make_batch, make_sample


class TestGeoCoordinate:
    def test_latitude_range(self):
        with pytest.raises(ValidationError):
            GeoCoordinate(latitude=91, longitude=0)

    def test_store_round_trip(self):
        coordinate = GeoCoordinate(latitude=48.1, longitude=11.5, bearing=90.0)
        assert GeoCoordinate.from_json_bytes(coordinate.to_json_bytes()) == coordinate

    def test_none_fields_are_not_stored(self):
        assert "bearing" not in MUNICH.to_store()


class TestWeatherSample:
    def test_wind_direction_normalized(self):
        assert make_sample(wind_direction=370).wind_direction == pytest.approx(10)
        assert make_sample(wind_direction=-90).wind_direction == pytest.approx(270)

    def test_negative_wind_speed_rejected(self):
        with pytest.raises(ValidationError):
            make_sample(wind_speed=-1)

    @pytest.mark.parametrize(
        "code, expected",
        [
            (0, WeatherInterpretation.CLEAR),
            (2, WeatherInterpretation.CLOUDY),
            (63, WeatherInterpretation.RAINY),
            (75, WeatherInterpretation.SNOWY),
            (53, WeatherInterpretation.DRIZZLE),
            (95, WeatherInterpretation.THUNDERSTORM),
            (42, WeatherInterpretation.UNKNOWN),
        ],
    )
    def test_interpretation(self, code, expected):
        assert make_sample(weather_code=code).interpretation == expected

    def test_batch_round_trip(self):
        batch = make_batch([MUNICH], provider=WeatherDataProvider.OPEN_WEATHER_MAP)
        restored = WeatherBatchResponse.from_json_bytes(batch.to_json_bytes())
        assert restored == batch
        assert restored.provider == "open-weather-map"


class TestSettings:
    def test_defaults(self):
        settings = HeadwindSettings()
        assert settings.weather_provider == WeatherDataProvider.OPEN_METEO
        assert settings.round_location_to == 3
        assert settings.wind_unit == WindUnit.KILOMETERS_PER_HOUR

    def test_forecast_meters_per_hour(self):
        settings = HeadwindSettings(forecasted_km_per_hour=25, forecasted_miles_per_hour=15)
        assert settings.forecast_meters_per_hour() == 25_000
        assert settings.forecast_meters_per_hour(is_imperial=True) == 15 * 1609
        imperial = settings.model_copy(update={"is_imperial": True})
        assert imperial.forecast_meters_per_hour() == 15 * 1609
        assert imperial.forecast_meters_per_hour(is_imperial=False) == 25_000

    def test_speed_must_be_positive(self):
        with pytest.raises(ValidationError):
            HeadwindSettings(forecasted_km_per_hour=0)

    def test_stats_round_trip(self):
        stats = HeadwindStats(
            last_successful_weather_request=1_000,
            last_successful_weather_position=MUNICH,
            last_successful_weather_provider=WeatherDataProvider.OPEN_METEO,
        )
        assert HeadwindStats.from_store(stats.to_store()) == stats


class TestWindUnit:
    @pytest.mark.parametrize(
        "unit, value, expected",
        [
            (WindUnit.KILOMETERS_PER_HOUR, 36.0, 10.0),
            (WindUnit.METERS_PER_SECOND, 7.0, 7.0),
            (WindUnit.MILES_PER_HOUR, 10.0, 4.4704),
            (WindUnit.KNOTS, 10.0, 5.1444),
        ],
    )
    def test_to_meters_per_second(self, unit, value, expected):
        assert unit.to_meters_per_second(value) == pytest.approx(expected, abs=1e-3)


class TestHeadingState:
    @pytest.mark.parametrize(
        "state, expected",
        [(NoFix(), "no fix"), (NoWeatherData(), "no weather"), (HeadingValue(12.0), 12.0)],
    )
    def test_exhaustive_match(self, state, expected):
        match state:
            case NoFix():
                result = "no fix"
            case NoWeatherData():
                result = "no weather"
            case HeadingValue(diff=diff):
                result = diff
        assert result == expected


class TestNavigationAndRoute:
    def test_is_navigating(self):
        assert not NavigationState().is_navigating
        assert not NavigationState(polyline="").is_navigating
        assert NavigationState(polyline=((48.0, 11.0), (48.1, 11.0))).is_navigating

    def test_route_projection(self):
        route = RouteProjection(
            distance_along_route=4_000,
            route_length=10_000,
            polyline=((48.0, 11.0), (48.1, 11.0)),
        )
        assert route.remaining_distance == 6_000
        assert route.point_at_distance(-10).distance_along_route == 0
        assert route.point_at_distance(1e9).distance_along_route == 10_000
        assert route.bearing_at_distance(100) == pytest.approx(0.0, abs=1e-6)

    def test_bearing_at_route_end(self):
        polyline = ((48.0, 11.0), (48.0, 11.1))
        route = RouteProjection(
            distance_along_route=0,
            route_length=geo.line_length_m(polyline),
            polyline=polyline,
        )
        # Eastbound: past the end the last meters of the route still point east
        assert route.bearing_at_distance(route.route_length + 100) == pytest.approx(90.0, abs=0.1)


class TestResistanceForces:
    def test_derived_values(self):
        forces = ResistanceForces(
            air_resistance_no_wind=10.0,
            air_resistance_with_wind=25.0,
            rolling_resistance=4.0,
            gravitational_force=-2.0,
        )
        assert forces.wind_force == 15.0
        assert forces.total == 27.0
