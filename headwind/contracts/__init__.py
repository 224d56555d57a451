"""Headwind data contracts — Pydantic v2 models for wind estimation on a bike.

Data authority
--------------

**Key-value store** (small persisted state, JSON bytes per key):
- ``GeoCoordinate`` — ``lastKnownPosition``, last valid device fix
- ``WeatherBatchResponse`` — ``currentForecastsUnified``, latest provider batch
- ``HeadwindStats`` — ``stats``, last success / failure timestamps
- ``HeadwindSettings`` — ``settings``, user preferences

**Telemetry bus** (live, never persisted):
- ``LocationSample``, ``RiderProfile``, ``NavigationState``, ride state,
  speed, grade, distance to destination

Calculated (never persisted)
----------------------------
- ``RouteProjection`` — rider position along the navigated route
- ``HeadingState`` — no fix / no weather / signed heading difference
- ``ResistanceForces`` — aerodynamic, rolling and gravitational forces
"""

from headwind.contracts.enums import (
    PrecipitationUnit,
    RideState,
    RoundLocationSetting,
    TemperatureUnit,
    WeatherDataProvider,
    WeatherInterpretation,
    WindUnit,
)
from headwind.contracts.common import HeadwindModel
from headwind.contracts.geo import GeoCoordinate
from headwind.contracts.heading import HeadingState, HeadingValue, NoFix, NoWeatherData
from headwind.contracts.physics import ResistanceForces
from headwind.contracts.route import RouteProjection
from headwind.contracts.settings import HeadwindSettings, HeadwindStats
from headwind.contracts.telemetry import LocationSample, NavigationState, RiderProfile
from headwind.contracts.weather import (
    WeatherBatchResponse,
    WeatherForLocation,
    WeatherSample,
)

__all__ = [
    # Enums
    "PrecipitationUnit",
    "RideState",
    "RoundLocationSetting",
    "TemperatureUnit",
    "WeatherDataProvider",
    "WeatherInterpretation",
    "WindUnit",
    # Common
    "HeadwindModel",
    "GeoCoordinate",
    # Heading
    "HeadingState",
    "HeadingValue",
    "NoFix",
    "NoWeatherData",
    # Domain models
    "ResistanceForces",
    "RouteProjection",
    "HeadwindSettings",
    "HeadwindStats",
    "LocationSample",
    "NavigationState",
    "RiderProfile",
    "WeatherBatchResponse",
    "WeatherForLocation",
    "WeatherSample",
]
