"""OpenWeatherMap One Call 3.0 client.

The API answers for a single point per request. For multi-point requests a
bounded subset of the coordinates is queried concurrently and every other
coordinate borrows the weather of the nearest queried one.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Sequence

import httpx
from pydantic import BaseModel, Field, ValidationError

from headwind.contracts.enums import WeatherDataProvider, WindUnit
from headwind.contracts.geo import GeoCoordinate
from headwind.contracts.settings import HeadwindSettings
from headwind.contracts.telemetry import RiderProfile
from headwind.contracts.weather import WeatherBatchResponse, WeatherForLocation, WeatherSample
from headwind.errors import AuthError, ParseError
from headwind.services.weather.provider import DEFAULT_TIMEOUT, get_json, is_imperial

logger = logging.getLogger(__name__)

BASE_URL = "https://api.openweathermap.org/data/3.0/onecall"
MAX_QUERIED_POINTS = 4


def convert_weather_code(owm_code: int) -> int:
    """Map an OpenWeatherMap condition id onto a WMO weather code."""
    if 200 <= owm_code <= 299:
        return 95  # thunderstorm
    if 300 <= owm_code <= 399:
        return 51  # drizzle
    if 500 <= owm_code <= 599:
        return 61  # rain
    if 600 <= owm_code <= 699:
        return 71  # snow
    if owm_code == 800:
        return 0
    if 801 <= owm_code <= 804:
        return 1
    return 0


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------


class OwmCondition(BaseModel):
    id: int
    main: str | None = None
    description: str | None = None


class OwmPrecipitation(BaseModel):
    one_hour: float = Field(default=0.0, alias="1h")


class OwmCurrent(BaseModel):
    dt: int
    sunrise: int | None = None
    sunset: int | None = None
    temp: float
    pressure: float | None = None
    humidity: float | None = None
    clouds: float | None = None
    wind_speed: float
    wind_deg: float
    wind_gust: float | None = None
    rain: OwmPrecipitation | None = None
    uvi: float | None = None
    weather: list[OwmCondition] = []


class OwmHourly(BaseModel):
    dt: int
    temp: float
    pressure: float | None = None
    humidity: float | None = None
    clouds: float | None = None
    wind_speed: float
    wind_deg: float
    wind_gust: float | None = None
    pop: float | None = None
    rain: OwmPrecipitation | None = None
    uvi: float | None = None
    weather: list[OwmCondition] = []


class OwmLocation(BaseModel):
    lat: float
    lon: float
    timezone: str | None = None
    timezone_offset: int | None = None
    current: OwmCurrent
    hourly: list[OwmHourly] = []


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


def _condition_code(conditions: list[OwmCondition]) -> int:
    return convert_weather_code(conditions[0].id if conditions else 800)


def _time_of_day(epoch: int):
    return datetime.fromtimestamp(epoch, tz=timezone.utc).time()


def _to_celsius(value: float, imperial: bool) -> float:
    return (value - 32) * 5 / 9 if imperial else value


def _current_sample(current: OwmCurrent, wind_unit: WindUnit, imperial: bool) -> WeatherSample:
    wind_speed = wind_unit.to_meters_per_second(current.wind_speed)
    is_night = False
    if current.sunrise is not None and current.sunset is not None:
        is_night = not current.sunrise <= current.dt < current.sunset
    return WeatherSample(
        time=current.dt,
        temperature=_to_celsius(current.temp, imperial),
        relative_humidity=current.humidity,
        precipitation=current.rain.one_hour if current.rain else 0.0,
        cloud_cover=current.clouds,
        surface_pressure=current.pressure,
        sealevel_pressure=current.pressure,
        wind_speed=wind_speed,
        wind_direction=current.wind_deg,
        wind_gusts=wind_unit.to_meters_per_second(current.wind_gust) if current.wind_gust is not None else wind_speed,
        weather_code=_condition_code(current.weather),
        is_forecast=False,
        is_night=is_night,
        uv_index=current.uvi,
    )


def _hourly_sample(
    hour: OwmHourly, current: OwmCurrent, wind_unit: WindUnit, imperial: bool
) -> WeatherSample:
    wind_speed = wind_unit.to_meters_per_second(hour.wind_speed)
    is_night = False
    if current.sunrise is not None and current.sunset is not None:
        # Compared by UTC time of day: forecast hours of later days reuse today's sun times
        t = _time_of_day(hour.dt)
        is_night = t < _time_of_day(current.sunrise) or t > _time_of_day(current.sunset)
    return WeatherSample(
        time=hour.dt,
        temperature=_to_celsius(hour.temp, imperial),
        relative_humidity=hour.humidity,
        precipitation=hour.rain.one_hour if hour.rain else 0.0,
        precipitation_probability=hour.pop * 100 if hour.pop is not None else None,
        cloud_cover=hour.clouds,
        surface_pressure=hour.pressure,
        sealevel_pressure=hour.pressure,
        wind_speed=wind_speed,
        wind_direction=hour.wind_deg,
        wind_gusts=wind_unit.to_meters_per_second(hour.wind_gust) if hour.wind_gust is not None else wind_speed,
        weather_code=_condition_code(hour.weather),
        is_forecast=True,
        is_night=is_night,
        uv_index=hour.uvi,
    )


def _parse_location(data: Any, coordinate: GeoCoordinate, imperial: bool) -> WeatherForLocation:
    wind_unit = WindUnit.MILES_PER_HOUR if imperial else WindUnit.METERS_PER_SECOND
    try:
        location = OwmLocation.model_validate(data)
        return WeatherForLocation(
            current=_current_sample(location.current, wind_unit, imperial),
            coordinate=coordinate,
            forecasts=[_hourly_sample(h, location.current, wind_unit, imperial) for h in location.hourly],
            timezone=location.timezone,
        )
    except ValidationError as exc:
        raise ParseError(f"Invalid OpenWeatherMap response: {exc}") from exc


# ---------------------------------------------------------------------------
# Point selection
# ---------------------------------------------------------------------------


def select_query_indices(count: int) -> list[int]:
    """Indices of the requested coordinates that are actually queried.

    Up to four points are queried as is. Beyond that: the first three plus
    one point near the destination (``n - 3`` from six points on, else the
    last one).
    """
    if count <= MAX_QUERIED_POINTS:
        return list(range(count))
    fourth = count - 3 if count >= 6 else count - 1
    return [0, 1, 2, fourth]


def _separation(a: GeoCoordinate, b: GeoCoordinate) -> float:
    if a.distance_along_route is not None and b.distance_along_route is not None:
        return abs(a.distance_along_route - b.distance_along_route)
    return a.distance_to(b)


def nearest_queried(coordinates: Sequence[GeoCoordinate], queried: Sequence[int]) -> list[int]:
    """For every coordinate, the index of the queried coordinate to take weather from.

    Distance is the route distance delta when both points carry one, else the
    great-circle distance. Ties go to the earliest queried index.
    """
    queried_set = set(queried)
    assignment = []
    for i, coordinate in enumerate(coordinates):
        if i in queried_set:
            assignment.append(i)
            continue
        # min() keeps the first of equal keys, queried is ascending
        assignment.append(min(queried, key=lambda q: _separation(coordinate, coordinates[q])))
    return assignment


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class OpenWeatherMapProvider:
    """Async HTTP client for the OpenWeatherMap One Call API."""

    provider = WeatherDataProvider.OPEN_WEATHER_MAP

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._api_key = api_key
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._timeout = timeout

    async def _fetch_point(self, coordinate: GeoCoordinate, imperial: bool) -> WeatherForLocation:
        params = {
            "lat": coordinate.latitude,
            "lon": coordinate.longitude,
            "appid": self._api_key,
            "exclude": "minutely,daily,alerts",
            "units": "imperial" if imperial else "metric",
        }
        data = await get_json(
            self._client, BASE_URL, label="OpenWeatherMap", params=params, timeout=self._timeout
        )
        return _parse_location(data, coordinate, imperial)

    async def fetch(
        self,
        coordinates: Sequence[GeoCoordinate],
        settings: HeadwindSettings,
        profile: RiderProfile | None = None,
    ) -> WeatherBatchResponse:
        if not coordinates:
            raise ValueError("At least one coordinate is required")
        if not self._api_key:
            raise AuthError(401, "OpenWeatherMap API key is not configured")

        imperial = is_imperial(settings, profile)
        queried = select_query_indices(len(coordinates))
        logger.debug("Querying OpenWeatherMap for %d of %d coordinates", len(queried), len(coordinates))

        results = await asyncio.gather(
            *(self._fetch_point(coordinates[i], imperial) for i in queried)
        )
        by_index = dict(zip(queried, results))

        locations = [
            by_index[source].model_copy(update={"coordinate": coordinate})
            for coordinate, source in zip(coordinates, nearest_queried(coordinates, queried))
        ]
        return WeatherBatchResponse(provider=WeatherDataProvider.OPEN_WEATHER_MAP, locations=locations)
