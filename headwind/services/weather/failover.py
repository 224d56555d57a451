"""Provider failover controller.

Open-Meteo is the default provider and the fallback for OpenWeatherMap.
Per request the controller picks:

1. **Daily fallback**: ``fallback_until_date`` is set and today is not
   after it. Use Open-Meteo.
2. **Temporary fallback**: OpenWeatherMap is configured and failed at least
   3 times in a row. Use Open-Meteo for this one request and reset the
   consecutive counter so the next request retries OpenWeatherMap.
3. **Normal**: the configured provider.

Outcomes update the state:

- Open-Meteo success: ``recovered_after_failure = total_failures > 0``.
- OpenWeatherMap failure: both counters +1; with 20 total failures and a
  confirmed recovery the daily fallback starts today.
- OpenWeatherMap success: consecutive counter reset.

All state access goes through one ``asyncio.Lock``; the HTTP request itself
runs outside of it.
"""

from __future__ import annotations

import asyncio
import dataclasses
import functools
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Sequence

import httpx

from headwind.clock import Clock, SystemClock
from headwind.contracts.enums import WeatherDataProvider
from headwind.contracts.geo import GeoCoordinate
from headwind.contracts.settings import HeadwindSettings
from headwind.contracts.telemetry import RiderProfile
from headwind.contracts.weather import WeatherBatchResponse
from headwind.errors import AuthError, ProviderError
from headwind.services.weather.factory import make_provider
from headwind.services.weather.provider import DEFAULT_TIMEOUT, WeatherProvider

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = WeatherDataProvider.OPEN_METEO
FALLBACK_PROVIDER = WeatherDataProvider.OPEN_METEO
MAX_FAILURES_BEFORE_TEMP_FALLBACK = 3
MAX_FAILURES_BEFORE_DAILY_FALLBACK = 20

ProviderFactory = Callable[[WeatherDataProvider, HeadwindSettings], WeatherProvider]


@dataclass
class ProviderFailoverState:
    consecutive_failures: int = 0
    total_failures: int = 0
    recovered_after_failure: bool = False
    fallback_until_date: date | None = None


class ProviderFailoverController:
    """Chooses the provider for every request and tracks its outcome."""

    def __init__(
        self,
        provider_factory: ProviderFactory | None = None,
        clock: Clock | None = None,
        state: ProviderFailoverState | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._provider_factory = provider_factory or functools.partial(
            make_provider, http_client=http_client or httpx.AsyncClient(timeout=timeout), timeout=timeout
        )
        self._clock = clock or SystemClock()
        self._state = state or ProviderFailoverState()
        self._lock = asyncio.Lock()

    async def snapshot(self) -> ProviderFailoverState:
        """Copy of the current state."""
        async with self._lock:
            return dataclasses.replace(self._state)

    async def reset(self) -> None:
        """Forget every failure and end a daily fallback."""
        async with self._lock:
            self._state = ProviderFailoverState()
        logger.info("Weather provider failures reset")

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    async def select_provider(self, settings: HeadwindSettings) -> WeatherDataProvider:
        configured = WeatherDataProvider(settings.weather_provider)
        today = self._clock.today()

        async with self._lock:
            state = self._state
            if state.fallback_until_date is not None and not today > state.fallback_until_date:
                logger.debug("Using daily fallback %s until %s", FALLBACK_PROVIDER.label, state.fallback_until_date)
                return FALLBACK_PROVIDER

            if (
                configured != DEFAULT_PROVIDER
                and state.consecutive_failures >= MAX_FAILURES_BEFORE_TEMP_FALLBACK
            ):
                state.consecutive_failures = 0
                logger.info("Using temporary fallback %s", FALLBACK_PROVIDER.label)
                return FALLBACK_PROVIDER

        return configured

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    async def record_success(self, provider: WeatherDataProvider) -> None:
        async with self._lock:
            state = self._state
            match provider:
                case WeatherDataProvider.OPEN_METEO:
                    state.recovered_after_failure = state.total_failures > 0
                case WeatherDataProvider.OPEN_WEATHER_MAP:
                    state.consecutive_failures = 0

    async def record_failure(self, provider: WeatherDataProvider, error: Exception) -> None:
        if isinstance(error, AuthError):
            logger.error(
                "%s API key invalid or expired (%s). Check OPENWEATHERMAP_API_KEY.",
                provider.label, error,
            )
        else:
            logger.warning("%s weather request failed: %s", provider.label, error)

        if provider == FALLBACK_PROVIDER:
            return

        async with self._lock:
            state = self._state
            state.consecutive_failures += 1
            state.total_failures += 1
            logger.debug(
                "%s failed %d times consecutive, %d total times",
                provider.label, state.consecutive_failures, state.total_failures,
            )
            if (
                state.total_failures >= MAX_FAILURES_BEFORE_DAILY_FALLBACK
                and state.recovered_after_failure
            ):
                state.fallback_until_date = self._clock.today()
                logger.warning(
                    "Activated daily fallback %s until %s",
                    FALLBACK_PROVIDER.label, state.fallback_until_date,
                )

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    async def fetch(
        self,
        coordinates: Sequence[GeoCoordinate],
        settings: HeadwindSettings,
        profile: RiderProfile | None = None,
    ) -> WeatherBatchResponse:
        """Fetch through the selected provider. Provider errors are recorded and re-raised."""
        provider_id = await self.select_provider(settings)
        provider = self._provider_factory(provider_id, settings)

        try:
            response = await provider.fetch(coordinates, settings, profile)
        except ProviderError as exc:
            await self.record_failure(provider_id, exc)
            raise

        await self.record_success(provider_id)
        return response
