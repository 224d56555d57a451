"""Weather models — canonical samples, per-location forecasts, provider batches.

Stored at key ``currentForecastsUnified``: the latest successful
``WeatherBatchResponse`` is the authoritative "current + hourly forecast"
record read by every weather consumer.
"""

from pydantic import Field, field_validator

from headwind.contracts.common import HeadwindModel
from headwind.contracts.enums import WeatherDataProvider, WeatherInterpretation
from headwind.contracts.geo import GeoCoordinate


class WeatherSample(HeadwindModel):
    """Canonical weather sample for one point in time, provider independent."""

    time: int = Field(..., description="epoch seconds, UTC")
    temperature: float = Field(..., description="deg C")
    relative_humidity: float | None = Field(default=None, ge=0, le=100)
    precipitation: float = Field(default=0.0, ge=0, description="mm")
    precipitation_probability: float | None = Field(default=None, ge=0, le=100)
    cloud_cover: float | None = Field(default=None, ge=0, le=100)
    surface_pressure: float | None = Field(default=None, description="hPa")
    sealevel_pressure: float | None = Field(default=None, description="hPa")

    wind_speed: float = Field(..., ge=0, description="m/s")
    wind_direction: float = Field(..., description="deg, direction the wind blows FROM")
    wind_gusts: float = Field(..., ge=0, description="m/s")

    weather_code: int = Field(default=0, description="WMO code")
    is_forecast: bool = False
    is_night: bool = False
    uv_index: float | None = Field(default=None, ge=0)

    @field_validator("wind_direction")
    @classmethod
    def normalize_wind_direction(cls, v: float) -> float:
        return v % 360.0

    @property
    def interpretation(self) -> WeatherInterpretation:
        return WeatherInterpretation.from_weather_code(self.weather_code)


class WeatherForLocation(HeadwindModel):
    """Current conditions plus hourly forecast at one coordinate."""

    current: WeatherSample
    coordinate: GeoCoordinate
    forecasts: list[WeatherSample] = Field(
        default_factory=list, description="hourly, ascending time"
    )
    timezone: str | None = None
    elevation: float | None = Field(default=None, description="m")


class WeatherBatchResponse(HeadwindModel):
    """One provider response covering one or more requested coordinates.

    ``locations`` follows the order of the requested coordinates.
    """

    provider: WeatherDataProvider
    locations: list[WeatherForLocation]
    error: str | None = None
