"""Runtime configuration from the environment.

A ``.env`` file in the working directory is loaded first (python-dotenv);
real environment variables take precedence over it.

Variables
---------
- ``HEADWIND_WEATHER_PROVIDER`` — ``open-meteo`` (default) or ``open-weather-map``
- ``OPENWEATHERMAP_API_KEY`` — required for OpenWeatherMap
- ``HEADWIND_ROUND_LOCATION_KM`` — 1, 2, 3 (default) or 5
- ``HEADWIND_FORECAST_KMH`` / ``HEADWIND_FORECAST_MPH`` — assumed riding speed
- ``HEADWIND_WIND_UNIT`` — ``kmh`` (default), ``ms``, ``mph``, ``kn``
- ``HEADWIND_IMPERIAL`` — ``1`` to request imperial units
- ``HEADWIND_DB_PATH`` — SQLite file for persisted state
- ``HEADWIND_HTTP_TIMEOUT`` — seconds, default 30
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from headwind.contracts.enums import RoundLocationSetting, WeatherDataProvider, WindUnit
from headwind.contracts.settings import HeadwindSettings

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".headwind" / "headwind.db"
DEFAULT_HTTP_TIMEOUT = 30.0


@dataclass(frozen=True)
class RuntimeConfig:
    """Process-level configuration that is not a user preference."""

    db_path: Path = DEFAULT_DB_PATH
    http_timeout: float = DEFAULT_HTTP_TIMEOUT


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "0").strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default


def load_settings(dotenv: bool = True) -> HeadwindSettings:
    """Build default user settings from the environment."""
    if dotenv:
        load_dotenv()

    settings = HeadwindSettings()
    updates: dict = {}

    provider = os.environ.get("HEADWIND_WEATHER_PROVIDER")
    if provider:
        try:
            updates["weather_provider"] = WeatherDataProvider(provider)
        except ValueError:
            logger.warning("Unknown weather provider %r, using %s", provider, settings.weather_provider)

    api_key = os.environ.get("OPENWEATHERMAP_API_KEY")
    if api_key:
        updates["open_weather_map_api_key"] = api_key

    round_km = _env_int("HEADWIND_ROUND_LOCATION_KM", settings.round_location_to)
    try:
        updates["round_location_to"] = RoundLocationSetting(round_km)
    except ValueError:
        logger.warning("Unsupported rounding grid %d km, using %d km", round_km, settings.round_location_to)

    wind_unit = os.environ.get("HEADWIND_WIND_UNIT")
    if wind_unit:
        try:
            updates["wind_unit"] = WindUnit(wind_unit)
        except ValueError:
            logger.warning("Unknown wind unit %r, using %s", wind_unit, settings.wind_unit)

    updates["forecasted_km_per_hour"] = _env_int("HEADWIND_FORECAST_KMH", settings.forecasted_km_per_hour)
    updates["forecasted_miles_per_hour"] = _env_int("HEADWIND_FORECAST_MPH", settings.forecasted_miles_per_hour)
    updates["is_imperial"] = _env_flag("HEADWIND_IMPERIAL")

    return HeadwindSettings.model_validate({**settings.model_dump(), **updates})


def load_runtime_config(dotenv: bool = True) -> RuntimeConfig:
    """Read process-level configuration from the environment."""
    if dotenv:
        load_dotenv()

    db_path = Path(os.environ.get("HEADWIND_DB_PATH", str(DEFAULT_DB_PATH)))
    raw_timeout = os.environ.get("HEADWIND_HTTP_TIMEOUT")
    timeout = DEFAULT_HTTP_TIMEOUT
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            logger.warning("Ignoring invalid HEADWIND_HTTP_TIMEOUT=%r", raw_timeout)

    return RuntimeConfig(db_path=db_path, http_timeout=timeout)
