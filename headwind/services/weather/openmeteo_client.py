"""Open-Meteo forecast client.

One request covers every coordinate: latitudes and longitudes are sent as
comma-separated lists and the API answers with one object for a single
point, an array otherwise. Values are requested in the user's units and
converted to canonical SI units while parsing.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx
from pydantic import BaseModel, ValidationError

from headwind.contracts.enums import PrecipitationUnit, TemperatureUnit, WeatherDataProvider, WindUnit
from headwind.contracts.geo import GeoCoordinate
from headwind.contracts.settings import HeadwindSettings
from headwind.contracts.telemetry import RiderProfile
from headwind.contracts.weather import WeatherBatchResponse, WeatherForLocation, WeatherSample
from headwind.errors import ParseError
from headwind.services.weather.provider import DEFAULT_TIMEOUT, get_json, is_imperial

logger = logging.getLogger(__name__)

BASE_URL = "https://api.open-meteo.com"
MM_PER_INCH = 25.4

_CURRENT_VARS = [
    "surface_pressure",
    "pressure_msl",
    "temperature_2m",
    "relative_humidity_2m",
    "precipitation",
    "weather_code",
    "cloud_cover",
    "wind_speed_10m",
    "wind_direction_10m",
    "wind_gusts_10m",
    "is_day",
]

_HOURLY_VARS = [
    "temperature_2m",
    "precipitation_probability",
    "precipitation",
    "weather_code",
    "wind_speed_10m",
    "wind_direction_10m",
    "wind_gusts_10m",
    "cloud_cover",
    "surface_pressure",
    "pressure_msl",
    "is_day",
    "relative_humidity_2m",
    "uv_index",
]


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------


class OpenMeteoCurrent(BaseModel):
    time: int
    interval: int | None = None
    temperature_2m: float
    relative_humidity_2m: float | None = None
    precipitation: float | None = None
    cloud_cover: float | None = None
    surface_pressure: float | None = None
    pressure_msl: float | None = None
    wind_speed_10m: float
    wind_direction_10m: float
    wind_gusts_10m: float | None = None
    weather_code: int | None = None
    is_day: int = 1


class OpenMeteoHourly(BaseModel):
    time: list[int]
    temperature_2m: list[float | None] = []
    precipitation_probability: list[float | None] = []
    precipitation: list[float | None] = []
    weather_code: list[int | None] = []
    wind_speed_10m: list[float | None] = []
    wind_direction_10m: list[float | None] = []
    wind_gusts_10m: list[float | None] = []
    cloud_cover: list[float | None] = []
    surface_pressure: list[float | None] = []
    pressure_msl: list[float | None] = []
    is_day: list[int | None] = []
    relative_humidity_2m: list[float | None] = []
    uv_index: list[float | None] = []


class OpenMeteoLocation(BaseModel):
    current: OpenMeteoCurrent
    latitude: float
    longitude: float
    timezone: str | None = None
    elevation: float | None = None
    utc_offset_seconds: int | None = None
    hourly: OpenMeteoHourly | None = None


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


class _Units:
    """Converts values from the requested units to canonical SI units."""

    def __init__(self, wind: WindUnit, precipitation: PrecipitationUnit, temperature: TemperatureUnit):
        self.wind = wind
        self.precipitation = precipitation
        self.temperature = temperature

    def wind_speed(self, value: float | None) -> float:
        return self.wind.to_meters_per_second(value or 0.0)

    def millimeters(self, value: float | None) -> float:
        if value is None:
            return 0.0
        if self.precipitation == PrecipitationUnit.INCH:
            return value * MM_PER_INCH
        return value

    def celsius(self, value: float) -> float:
        if self.temperature == TemperatureUnit.FAHRENHEIT:
            return (value - 32) * 5 / 9
        return value


def _at(values: list, index: int) -> Any:
    return values[index] if index < len(values) else None


def _current_sample(current: OpenMeteoCurrent, units: _Units) -> WeatherSample:
    wind_speed = units.wind_speed(current.wind_speed_10m)
    return WeatherSample(
        time=current.time,
        temperature=units.celsius(current.temperature_2m),
        relative_humidity=current.relative_humidity_2m,
        precipitation=units.millimeters(current.precipitation),
        cloud_cover=current.cloud_cover,
        surface_pressure=current.surface_pressure,
        sealevel_pressure=current.pressure_msl,
        wind_speed=wind_speed,
        wind_direction=current.wind_direction_10m,
        wind_gusts=units.wind_speed(current.wind_gusts_10m) if current.wind_gusts_10m is not None else wind_speed,
        weather_code=current.weather_code or 0,
        is_forecast=False,
        is_night=current.is_day == 0,
    )


def _hourly_samples(hourly: OpenMeteoHourly | None, units: _Units) -> list[WeatherSample]:
    if hourly is None:
        return []

    samples: list[WeatherSample] = []
    for i, t in enumerate(hourly.time):
        temperature = _at(hourly.temperature_2m, i)
        wind_speed = _at(hourly.wind_speed_10m, i)
        wind_direction = _at(hourly.wind_direction_10m, i)
        if temperature is None or wind_speed is None or wind_direction is None:
            logger.debug("Skipping incomplete Open-Meteo forecast hour %d", t)
            continue
        gusts = _at(hourly.wind_gusts_10m, i)
        samples.append(
            WeatherSample(
                time=t,
                temperature=units.celsius(temperature),
                relative_humidity=_at(hourly.relative_humidity_2m, i),
                precipitation=units.millimeters(_at(hourly.precipitation, i)),
                precipitation_probability=_at(hourly.precipitation_probability, i),
                cloud_cover=_at(hourly.cloud_cover, i),
                surface_pressure=_at(hourly.surface_pressure, i),
                sealevel_pressure=_at(hourly.pressure_msl, i),
                wind_speed=units.wind_speed(wind_speed),
                wind_direction=wind_direction,
                wind_gusts=units.wind_speed(gusts) if gusts is not None else units.wind_speed(wind_speed),
                weather_code=_at(hourly.weather_code, i) or 0,
                is_forecast=True,
                is_night=_at(hourly.is_day, i) == 0,
                uv_index=_at(hourly.uv_index, i),
            )
        )
    return samples


def _assign_locations(
    coordinates: Sequence[GeoCoordinate], returned: list[OpenMeteoLocation]
) -> list[OpenMeteoLocation]:
    """Returned location for every requested coordinate.

    Positional when the API answered every point, otherwise the nearest
    returned location.
    """
    if len(returned) >= len(coordinates):
        return returned[: len(coordinates)]

    logger.warning(
        "Open-Meteo returned %d locations for %d coordinates, using nearest match",
        len(returned), len(coordinates),
    )
    assigned = []
    for coordinate in coordinates:
        nearest = min(
            returned,
            key=lambda loc: coordinate.distance_to(
                GeoCoordinate(latitude=loc.latitude, longitude=loc.longitude)
            ),
        )
        assigned.append(nearest)
    return assigned


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class OpenMeteoProvider:
    """Async HTTP client for the Open-Meteo forecast API."""

    provider = WeatherDataProvider.OPEN_METEO

    def __init__(self, http_client: httpx.AsyncClient | None = None, timeout: float = DEFAULT_TIMEOUT):
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._timeout = timeout

    @staticmethod
    def build_url(
        coordinates: Sequence[GeoCoordinate],
        wind_unit: WindUnit,
        precipitation_unit: PrecipitationUnit,
        temperature_unit: TemperatureUnit,
    ) -> str:
        lats = ",".join(f"{c.latitude:.6f}" for c in coordinates)
        lons = ",".join(f"{c.longitude:.6f}" for c in coordinates)
        return (
            f"{BASE_URL}/v1/forecast?latitude={lats}&longitude={lons}"
            f"&current={','.join(_CURRENT_VARS)}"
            f"&hourly={','.join(_HOURLY_VARS)}"
            f"&timeformat=unixtime&past_hours=0&forecast_days=1&forecast_hours=12"
            f"&wind_speed_unit={wind_unit.value}"
            f"&precipitation_unit={precipitation_unit.value}"
            f"&temperature_unit={temperature_unit.value}"
        )

    async def fetch(
        self,
        coordinates: Sequence[GeoCoordinate],
        settings: HeadwindSettings,
        profile: RiderProfile | None = None,
    ) -> WeatherBatchResponse:
        if not coordinates:
            raise ValueError("At least one coordinate is required")

        imperial = is_imperial(settings, profile)
        units = _Units(
            wind=WindUnit(settings.wind_unit),
            precipitation=PrecipitationUnit.INCH if imperial else PrecipitationUnit.MILLIMETERS,
            temperature=TemperatureUnit.FAHRENHEIT if imperial else TemperatureUnit.CELSIUS,
        )
        url = self.build_url(coordinates, units.wind, units.precipitation, units.temperature)

        data = await get_json(self._client, url, label="OpenMeteo", timeout=self._timeout)
        return _parse_batch(data, coordinates, units)


def _parse_batch(data: Any, coordinates: Sequence[GeoCoordinate], units: _Units) -> WeatherBatchResponse:
    """Parse an Open-Meteo response (object or array) into a batch."""
    raw_locations = data if isinstance(data, list) else [data]
    try:
        returned = [OpenMeteoLocation.model_validate(item) for item in raw_locations]
        if not returned:
            raise ParseError("Open-Meteo returned no locations")

        locations = [
            WeatherForLocation(
                current=_current_sample(location.current, units),
                coordinate=coordinate,
                forecasts=_hourly_samples(location.hourly, units),
                timezone=location.timezone,
                elevation=location.elevation,
            )
            for coordinate, location in zip(coordinates, _assign_locations(coordinates, returned))
        ]
    except ValidationError as exc:
        raise ParseError(f"Invalid Open-Meteo response: {exc}") from exc

    return WeatherBatchResponse(provider=WeatherDataProvider.OPEN_METEO, locations=locations)
