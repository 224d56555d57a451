"""Current weather at the rider's position.

Combines the stored weather batch with the device position. With several
locations in the batch the two closest ones are blended by distance, then
the hourly forecasts are interpolated to the current time. The value is
re-evaluated every minute so it follows the clock between fetches.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterable, AsyncIterator

from headwind.clock import Clock, SystemClock
from headwind.contracts.geo import GeoCoordinate
from headwind.contracts.weather import WeatherBatchResponse, WeatherForLocation, WeatherSample
from headwind.services.weather.interpolation import lerp_locations, lerp_weather_time
from headwind.streams import combine_latest, distinct_until_changed, start_with, switch_map

logger = logging.getLogger(__name__)

REEVALUATE_INTERVAL = 60.0


def weather_for_position(
    batch: WeatherBatchResponse | None, position: GeoCoordinate | None
) -> WeatherForLocation | None:
    """Weather of the batch at *position*, blended from the two closest locations."""
    if batch is None or not batch.locations:
        return None
    if position is None or len(batch.locations) == 1:
        return batch.locations[0]

    ranked = sorted(batch.locations, key=lambda loc: position.distance_to(loc.coordinate))
    first, second = ranked[0], ranked[1]
    d1 = position.distance_to(first.coordinate)
    d2 = position.distance_to(second.coordinate)
    factor = d1 / (d1 + d2) if d1 + d2 > 0 else 0.0

    try:
        return lerp_locations(first, second, min(max(factor, 0.0), 1.0), position)
    except ValueError:
        logger.exception("Cannot blend weather locations, using the closest one")
        return first


def current_weather(
    batch: WeatherBatchResponse | None, position: GeoCoordinate | None, now_ms: int
) -> WeatherSample | None:
    location = weather_for_position(batch, position)
    if location is None:
        return None
    return lerp_weather_time(location.forecasts, location.current, now_ms)


class CurrentWeatherService:
    def __init__(self, clock: Clock | None = None, interval: float = REEVALUATE_INTERVAL):
        self._clock = clock or SystemClock()
        self._interval = interval

    async def _evaluate(
        self, batch: WeatherBatchResponse | None, position: GeoCoordinate | None
    ) -> AsyncIterator[WeatherSample | None]:
        if batch is None or not batch.locations:
            yield None
            return
        while True:
            yield current_weather(batch, position, self._clock.now())
            await asyncio.sleep(self._interval)

    def stream(
        self,
        batches: AsyncIterable[WeatherBatchResponse | None],
        positions: AsyncIterable[GeoCoordinate | None],
    ) -> AsyncIterator[WeatherSample | None]:
        """Current weather, ``None`` while no weather data is stored."""
        combined = distinct_until_changed(combine_latest(batches, start_with(positions, None)))
        return switch_map(combined, lambda pair: self._evaluate(*pair))
