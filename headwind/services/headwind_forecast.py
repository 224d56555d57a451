"""Headwind forecast along the navigated route.

The stored batch holds one location per upcoming riding hour. Each location
contributes the sample for "its" hour; between those points weather and
route distance are interpolated, the route bearing is looked up at the
interpolated distance and the wind is projected onto it.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from headwind import geo
from headwind.contracts.route import RouteProjection
from headwind.contracts.weather import WeatherBatchResponse, WeatherSample
from headwind.services.weather.interpolation import bracket, lerp, lerp_weather

logger = logging.getLogger(__name__)

HEADWIND_SAMPLE_COUNT = 70
FORECAST_HOURS = 12
MAX_PAST_S = 3600
MAX_OFF_ROUTE_FUTURE_S = 6 * 3600


@dataclass(frozen=True)
class ForecastPoint:
    """Weather expected at a point of the route at a given hour."""

    time: int  # epoch s
    distance: float | None  # m along the route
    weather: WeatherSample


@dataclass(frozen=True)
class HeadwindPoint:
    """Headwind at fraction ``t`` of the forecast window.

    ``headwind_speed`` is the wind component against the direction of travel
    in m/s: positive for a headwind, negative for a tailwind.
    """

    t: float
    distance: float
    bearing: float
    wind_diff: float
    headwind_speed: float


def forecast_points(
    batch: WeatherBatchResponse | None,
    route_loaded: bool,
    now_s: int,
    hours: int = FORECAST_HOURS,
) -> list[ForecastPoint]:
    """Hourly forecast points: location ``i`` at forecast hour ``i``.

    Without a route every hour comes from the first location. Samples more
    than an hour old are skipped, as are off-route samples more than six
    hours ahead.
    """
    if batch is None or not batch.locations:
        return []

    points: list[ForecastPoint] = []
    for i in range(hours):
        if route_loaded:
            if i >= len(batch.locations):
                break
            location = batch.locations[i]
        else:
            location = batch.locations[0]

        if i == 0:
            sample = location.current
        elif i < len(location.forecasts):
            sample = location.forecasts[i]
        else:
            logger.debug("No weather data available for forecast index %d", i)
            continue

        distance = location.coordinate.distance_along_route
        if sample.time < now_s - MAX_PAST_S:
            continue
        if distance is None and sample.time > now_s + MAX_OFF_ROUTE_FUTURE_S:
            continue
        points.append(ForecastPoint(time=sample.time, distance=distance, weather=sample))
    return points


def headwind_speed(route_bearing: float, wind_direction: float, wind_speed: float) -> tuple[float, float]:
    """Signed angle between travel and wind bearing, and the headwind component."""
    wind_bearing = wind_direction + 180
    diff = geo.signed_angle_difference(route_bearing, wind_bearing)
    return diff, math.cos(math.radians(diff + 180)) * wind_speed


def headwind_forecast(
    points: list[ForecastPoint],
    route: RouteProjection,
    samples: int = HEADWIND_SAMPLE_COUNT,
) -> list[HeadwindPoint]:
    """Headwind at ``samples`` evenly spaced positions of the forecast window.

    Positions whose brackets coincide or lack a route distance are skipped.
    """
    if not points:
        return []

    fractions = [i / len(points) for i in range(len(points))]
    result: list[HeadwindPoint] = []
    for i in range(samples):
        t = i / samples
        found = bracket(fractions, t)
        if found is None:
            continue
        before, after, local = found
        start, end = points[before], points[after]
        if before == after or start.distance is None or end.distance is None:
            continue

        weather = lerp_weather(start.weather, end.weather, local)
        distance = min(max(lerp(start.distance, end.distance, local), 0.0), route.route_length)
        try:
            bearing = route.bearing_at_distance(distance)
        except ValueError:
            logger.exception("Error calculating bearing along route")
            continue

        diff, speed = headwind_speed(bearing, weather.wind_direction, weather.wind_speed)
        result.append(
            HeadwindPoint(t=t, distance=distance, bearing=bearing, wind_diff=diff, headwind_speed=speed)
        )
    return result
