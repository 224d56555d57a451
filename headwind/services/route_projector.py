"""Projection of the rider onto the navigated route.

Distance along the route is derived from the host's distance-to-destination
signal: ``route_length - distance_to_destination``. Until the first distance
sample of a route arrives the last computed distance is kept.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import AsyncIterator

from headwind import geo
from headwind.contracts.geo import GeoCoordinate
from headwind.contracts.route import RouteProjection
from headwind.contracts.telemetry import NavigationState
from headwind.streams import combine_latest, distinct_until_changed, start_with
from headwind.telemetry.bus import TelemetryBus

logger = logging.getLogger(__name__)

MS_PER_HOUR = 3_600_000
MAX_FORECAST_POINTS = 10
ROUTE_END_MIN_GAP_M = 1_000.0

Polyline = tuple[tuple[float, float], ...]


def decode_route(navigation: NavigationState | None) -> Polyline | None:
    """Polyline vertices of the navigated route, ``None`` when not navigating."""
    if navigation is None or not navigation.is_navigating:
        return None
    if isinstance(navigation.polyline, str):
        try:
            return tuple(geo.decode_polyline(navigation.polyline, precision=5)) or None
        except ValueError:
            logger.exception("Failed to decode route polyline")
            return None
    return tuple(tuple(point) for point in navigation.polyline)


class RouteProjector:
    """Combine navigation state and distance to destination into a projection."""

    def __init__(self, telemetry: TelemetryBus | None = None):
        self._telemetry = telemetry
        self._last_distance_along_route = 0.0
        self._last_polyline: Polyline | None = None

    def project(
        self, polyline: Polyline | None, distance_to_destination: float | None
    ) -> RouteProjection | None:
        """Projection for one (polyline, distance) pair; ``None`` when not navigating."""
        if not polyline:
            return None

        length = geo.line_length_m(polyline)
        if polyline != self._last_polyline:
            self._last_distance_along_route = 0.0

        if distance_to_destination is not None:
            distance_along_route = length - distance_to_destination
        else:
            distance_along_route = self._last_distance_along_route

        self._last_distance_along_route = distance_along_route
        self._last_polyline = polyline

        logger.debug(
            "Route with %d points, length %.0f m, distance along route %.0f m",
            len(polyline), length, distance_along_route,
        )
        return RouteProjection(
            distance_along_route=distance_along_route,
            route_length=length,
            polyline=polyline,
        )

    async def stream(self) -> AsyncIterator[RouteProjection | None]:
        if self._telemetry is None:
            raise RuntimeError("RouteProjector.stream() requires a telemetry bus")

        async def polylines() -> AsyncIterator[Polyline | None]:
            async for navigation in self._telemetry.navigation():
                yield decode_route(navigation)

        distances = distinct_until_changed(
            start_with(self._telemetry.distance_to_destination(), None)
        )
        combined = combine_latest(distinct_until_changed(polylines()), distances)
        async for polyline, distance_to_destination in combined:
            yield self.project(polyline, distance_to_destination)


def forecast_sample_coordinates(
    position: GeoCoordinate,
    route: RouteProjection | None,
    meters_per_hour: float,
    now: datetime,
) -> list[GeoCoordinate]:
    """Coordinates to request weather for.

    The current position, then the route positions reached at every upcoming
    full hour at ``meters_per_hour`` (at most 10 coordinates in total), then
    the route end if it lies more than 1 km past the last of those.
    """
    if route is None:
        return [position]

    start_of_hour = now.replace(minute=0, second=0, microsecond=0)
    ms_since_full_hour = (now - start_of_hour).total_seconds() * 1000
    ms_to_next_full_hour = MS_PER_HOUR - ms_since_full_hour
    distance_to_next_full_hour = min(
        max(ms_to_next_full_hour / MS_PER_HOUR * meters_per_hour, 0.0), meters_per_hour
    )

    coordinates = [position]
    current = route.distance_along_route + distance_to_next_full_hour
    last_requested = route.distance_along_route

    while current < route.route_length and len(coordinates) < MAX_FORECAST_POINTS:
        coordinates.append(route.point_at_distance(current))
        last_requested = current
        if meters_per_hour <= 0:
            break
        current += meters_per_hour

    if route.route_length > last_requested + ROUTE_END_MIN_GAP_M:
        coordinates.append(route.point_at_distance(route.route_length))

    return coordinates
