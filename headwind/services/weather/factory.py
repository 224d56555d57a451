"""Construction of concrete weather providers."""

from __future__ import annotations

import httpx

from headwind.contracts.enums import WeatherDataProvider
from headwind.contracts.settings import HeadwindSettings
from headwind.services.weather.openmeteo_client import OpenMeteoProvider
from headwind.services.weather.openweathermap_client import OpenWeatherMapProvider
from headwind.services.weather.provider import DEFAULT_TIMEOUT, WeatherProvider


def make_provider(
    provider: WeatherDataProvider | str,
    settings: HeadwindSettings,
    http_client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> WeatherProvider:
    match WeatherDataProvider(provider):
        case WeatherDataProvider.OPEN_METEO:
            return OpenMeteoProvider(http_client=http_client, timeout=timeout)
        case WeatherDataProvider.OPEN_WEATHER_MAP:
            return OpenWeatherMapProvider(
                settings.open_weather_map_api_key, http_client=http_client, timeout=timeout
            )
