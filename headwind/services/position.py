"""Device position and heading streams.

``gps_coordinate_stream`` starts with the last known position (or one live
fix), continues with every accurate live fix, snaps each coordinate onto the
configured rounding grid and never goes back to ``None`` once a position has
been seen.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from headwind import geo
from headwind.contracts.geo import GeoCoordinate
from headwind.contracts.heading import HeadingState, HeadingValue, NoFix, NoWeatherData
from headwind.contracts.telemetry import LocationSample
from headwind.contracts.weather import WeatherSample
from headwind.persistence.repositories.position_repo import PositionRepository
from headwind.persistence.repositories.settings_repo import SettingsRepository
from headwind.streams import (
    combine_latest,
    concatenate,
    distinct_until_changed,
    drop_nulls_after_value,
    first,
    switch_map,
    throttle,
)
from headwind.telemetry.bus import TelemetryBus

logger = logging.getLogger(__name__)

MAX_ACCURACY = 500.0
LAST_KNOWN_POSITION_INTERVAL = 60.0
RESUBSCRIBE_DELAY = 1.0


def coordinate_from_sample(sample: LocationSample | None) -> GeoCoordinate | None:
    """Coordinate of a live fix, ``None`` unless it is complete and accurate enough."""
    if sample is None:
        return None
    if sample.latitude is None or sample.longitude is None or sample.accuracy is None:
        return None
    if sample.accuracy >= MAX_ACCURACY:
        return None
    return GeoCoordinate(latitude=sample.latitude, longitude=sample.longitude, bearing=sample.bearing)


def relative_heading(heading: HeadingState, weather: WeatherSample | None) -> HeadingState:
    """Signed difference between the direction of travel and where the wind blows to."""
    match heading:
        case HeadingValue(diff=bearing):
            if weather is None:
                return NoWeatherData()
            wind_bearing = weather.wind_direction + 180
            diff = geo.signed_angle_difference(bearing, wind_bearing)
            logger.debug("Heading %.0f vs wind %.0f => %.0f", bearing, wind_bearing, diff)
            return HeadingValue(diff)
        case NoFix():
            return NoFix()
        case NoWeatherData():
            return NoWeatherData()


class PositionService:
    """Position acquisition on top of the telemetry bus and the GeoPoint store."""

    def __init__(
        self,
        telemetry: TelemetryBus,
        positions: PositionRepository,
        settings: SettingsRepository,
    ):
        self._telemetry = telemetry
        self._positions = positions
        self._settings = settings

    # ------------------------------------------------------------------
    # Coordinates
    # ------------------------------------------------------------------

    async def _initial_position(self) -> AsyncIterator[GeoCoordinate | None]:
        last_known = await self._positions.get()
        if last_known is not None:
            logger.info("Using last known position: %s", last_known)
            yield last_known
            return

        sample = await first(self._telemetry.location(), None)
        coordinate = coordinate_from_sample(sample)
        if coordinate is not None:
            logger.info("No last known position found, fetched initial GPS position")
        else:
            logger.warning("No last known position found, initial GPS position is unavailable")
        yield coordinate

    async def _live_positions(self) -> AsyncIterator[GeoCoordinate]:
        async for sample in self._telemetry.location():
            logger.debug(
                "Received GPS update: lat=%s, lon=%s, accuracy=%s, bearing=%s",
                sample.latitude, sample.longitude, sample.accuracy, sample.bearing,
            )
            coordinate = coordinate_from_sample(sample)
            if coordinate is not None:
                yield coordinate

    async def gps_coordinate_stream(self) -> AsyncIterator[GeoCoordinate | None]:
        """Never-ending stream of rounded device coordinates."""
        positions = concatenate(self._initial_position(), self._live_positions())

        async def rounded() -> AsyncIterator[GeoCoordinate | None]:
            combined = combine_latest(positions, self._settings.stream_or_default())
            async for coordinate, settings in combined:
                if coordinate is None:
                    yield None
                else:
                    yield coordinate.round_to(settings.round_location_to)

        async for coordinate in drop_nulls_after_value(rounded()):
            yield coordinate

    async def update_last_known_position(self) -> None:
        """Persist the latest position at most once a minute. Runs until cancelled."""
        while True:
            try:
                async for coordinate in throttle(self._non_null_positions(), LAST_KNOWN_POSITION_INTERVAL):
                    try:
                        await self._positions.save(coordinate)
                    except Exception:
                        logger.exception("Failed to save last known position")
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Position stream failed")
            await asyncio.sleep(RESUBSCRIBE_DELAY)

    async def _non_null_positions(self) -> AsyncIterator[GeoCoordinate]:
        async for coordinate in self.gps_coordinate_stream():
            if coordinate is not None:
                yield coordinate

    # ------------------------------------------------------------------
    # Heading
    # ------------------------------------------------------------------

    async def _gps_heading(self) -> AsyncIterator[HeadingState]:
        async for coordinate in self.gps_coordinate_stream():
            if coordinate is not None and coordinate.bearing is not None:
                yield HeadingValue(coordinate.bearing)
            else:
                yield NoFix()

    async def _magnetometer_heading(self) -> AsyncIterator[HeadingState]:
        async for heading in self._telemetry.magnetometer_heading():
            yield HeadingValue(heading) if heading is not None else NoFix()

    async def _use_magnetometer(self) -> AsyncIterator[bool]:
        async for settings in self._settings.stream_or_default():
            yield settings.use_magnetometer_for_heading

    def _heading_source(self, use_magnetometer: bool) -> AsyncIterator[HeadingState]:
        if use_magnetometer:
            logger.info("Using magnetometer for heading as per settings")
            return self._magnetometer_heading()
        logger.info("Using GPS bearing for heading as per settings")
        return self._gps_heading()

    def heading_stream(self) -> AsyncIterator[HeadingState]:
        """Absolute heading of the device, from GPS bearing or the magnetometer."""
        return switch_map(distinct_until_changed(self._use_magnetometer()), self._heading_source)

    async def relative_heading_stream(
        self, current_weather: AsyncIterator[WeatherSample | None]
    ) -> AsyncIterator[HeadingState]:
        """Heading relative to the wind, combined with the current weather."""
        async for heading, weather in combine_latest(self.heading_stream(), current_weather):
            yield relative_heading(heading, weather)
