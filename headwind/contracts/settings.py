"""User settings and request statistics.

Stored at keys ``settings`` and ``stats``.
"""

from pydantic import Field

from headwind.contracts.common import HeadwindModel
from headwind.contracts.enums import RoundLocationSetting, WeatherDataProvider, WindUnit
from headwind.contracts.geo import GeoCoordinate

METERS_PER_MILE = 1609


class HeadwindSettings(HeadwindModel):
    """User preferences that influence weather requests."""

    round_location_to: RoundLocationSetting = RoundLocationSetting.KM_3
    weather_provider: WeatherDataProvider = WeatherDataProvider.OPEN_METEO
    open_weather_map_api_key: str = ""
    forecasted_km_per_hour: int = Field(default=20, gt=0)
    forecasted_miles_per_hour: int = Field(default=12, gt=0)
    wind_unit: WindUnit = WindUnit.KILOMETERS_PER_HOUR
    is_imperial: bool = False
    use_magnetometer_for_heading: bool = False

    def forecast_meters_per_hour(self, is_imperial: bool | None = None) -> int:
        """Assumed riding distance per hour, used to place forecast points on the route.

        ``is_imperial`` overrides the settings' own unit preference, e.g. with
        the rider profile's.
        """
        if self.is_imperial if is_imperial is None else is_imperial:
            return self.forecasted_miles_per_hour * METERS_PER_MILE
        return self.forecasted_km_per_hour * 1000


class HeadwindStats(HeadwindModel):
    """Outcome of the latest weather requests, shown instead of raw errors."""

    last_successful_weather_request: int | None = Field(default=None, description="epoch ms")
    last_successful_weather_position: GeoCoordinate | None = None
    last_successful_weather_provider: WeatherDataProvider | None = None
    failed_weather_request: int | None = Field(default=None, description="epoch ms")
    last_failure_was_auth: bool = False
