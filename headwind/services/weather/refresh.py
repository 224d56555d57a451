"""Weather refresh loop.

Watches settings, device position, rider profile and the navigated route.
Whenever one of them changes (position after a 5 s settle), and at least
once an hour otherwise, weather is fetched for the position and the upcoming
route through the failover controller. The batch and the request statistics
are persisted. Failures are recorded in the statistics and retried after a
minute, forever.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import AsyncIterator

from headwind.clock import Clock, SystemClock
from headwind.contracts.geo import GeoCoordinate
from headwind.contracts.route import RouteProjection
from headwind.contracts.settings import HeadwindSettings
from headwind.contracts.telemetry import RiderProfile
from headwind.contracts.weather import WeatherBatchResponse
from headwind.errors import AuthError, HeadwindError
from headwind.persistence.repositories.settings_repo import SettingsRepository
from headwind.persistence.repositories.stats_repo import StatsRepository
from headwind.persistence.repositories.weather_repo import WeatherRepository
from headwind.services.position import PositionService
from headwind.services.route_projector import RouteProjector, forecast_sample_coordinates
from headwind.services.weather.failover import ProviderFailoverController
from headwind.streams import combine_latest, debounce, distinct_until_changed, repeat_latest
from headwind.telemetry.bus import TelemetryBus

logger = logging.getLogger(__name__)

POSITION_SETTLE_DELAY = 5.0
REFRESH_INTERVAL = 3600.0
RETRY_DELAY = 60.0
SAME_POSITION_M = 1.0

RefreshRequest = tuple[HeadwindSettings, GeoCoordinate | None, RiderProfile, RouteProjection | None]


def _same_position(old: GeoCoordinate | None, new: GeoCoordinate | None) -> bool:
    if old is not None and new is not None:
        return old.distance_to(new) < SAME_POSITION_M
    return old == new


def _request_identity(request: RefreshRequest) -> tuple:
    settings, gps, profile, route = request
    return (
        settings,
        gps.latitude if gps else None,
        gps.longitude if gps else None,
        profile,
        route.polyline if route else None,
    )


class WeatherRefreshService:
    """Keeps the stored weather batch up to date."""

    def __init__(
        self,
        failover: ProviderFailoverController,
        positions: PositionService,
        route_projector: RouteProjector,
        telemetry: TelemetryBus,
        settings: SettingsRepository,
        weather: WeatherRepository,
        stats: StatsRepository,
        clock: Clock | None = None,
        retry_delay: float = RETRY_DELAY,
        refresh_interval: float = REFRESH_INTERVAL,
        settle_delay: float = POSITION_SETTLE_DELAY,
    ):
        self._failover = failover
        self._positions = positions
        self._route_projector = route_projector
        self._telemetry = telemetry
        self._settings = settings
        self._weather = weather
        self._stats = stats
        self._clock = clock or SystemClock()
        self._retry_delay = retry_delay
        self._refresh_interval = refresh_interval
        self._settle_delay = settle_delay
        self._task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _gps(self) -> AsyncIterator[GeoCoordinate | None]:
        positions = distinct_until_changed(
            self._positions.gps_coordinate_stream(), equal=_same_position
        )
        return debounce(positions, self._settle_delay)

    def requests(self) -> AsyncIterator[RefreshRequest]:
        """Refresh triggers: every distinct input combination, repeated hourly."""
        combined = combine_latest(
            self._settings.stream_or_default(),
            self._gps(),
            self._telemetry.rider_profile(),
            self._route_projector.stream(),
        )
        return repeat_latest(
            distinct_until_changed(combined, key=_request_identity), self._refresh_interval
        )

    async def refresh(
        self,
        settings: HeadwindSettings,
        gps: GeoCoordinate | None,
        profile: RiderProfile | None,
        route: RouteProjection | None,
    ) -> WeatherBatchResponse:
        """One fetch for the position and the upcoming route. Raises on failure."""
        logger.debug("Acquired updated gps coordinates: %s", gps)
        if gps is None:
            raise HeadwindError("No GPS coordinates available")

        is_imperial = profile.is_imperial if profile is not None else None
        now = datetime.fromtimestamp(self._clock.now() / 1000)
        if route is not None:
            logger.info("Position on route: %.0f m", route.distance_along_route)
        coordinates = forecast_sample_coordinates(
            gps, route, settings.forecast_meters_per_hour(is_imperial), now
        )

        try:
            response = await self._failover.fetch(coordinates, settings, profile)
        except HeadwindError as exc:
            await self._record_failure(exc)
            raise

        await self._weather.save(response)
        await self._record_success(gps, response)
        logger.info(
            "Got updated weather info from %s for %d locations",
            response.provider, len(response.locations),
        )
        return response

    async def _record_failure(self, error: Exception) -> None:
        try:
            stats = await self._stats.get_or_default()
            await self._stats.save(
                stats.model_copy(update={
                    "failed_weather_request": self._clock.now(),
                    "last_failure_was_auth": isinstance(error, AuthError),
                })
            )
        except Exception:
            logger.exception("Failed to write stats")

    async def _record_success(self, gps: GeoCoordinate, response: WeatherBatchResponse) -> None:
        try:
            stats = await self._stats.get_or_default()
            await self._stats.save(
                stats.model_copy(update={
                    "last_successful_weather_request": self._clock.now(),
                    "last_successful_weather_position": gps,
                    "last_successful_weather_provider": response.provider,
                    "last_failure_was_auth": False,
                })
            )
        except Exception:
            logger.exception("Failed to write stats")

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Refresh until cancelled; any failure restarts the pipeline after a delay."""
        while True:
            try:
                async for settings, gps, profile, route in self.requests():
                    await self.refresh(settings, gps, profile, route)
                return
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Failed to get weather data: %s", exc)
            await asyncio.sleep(self._retry_delay)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="weather-refresh")
        return self._task

    async def stop(self) -> None:
        """Cancel the loop; an in-flight request is abandoned."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
