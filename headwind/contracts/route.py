"""RouteProjection — where the rider is on the currently navigated route.

**Calculated**, never persisted: recomputed on every distance-to-destination
or polyline update and discarded when navigation stops.
"""

from pydantic import ConfigDict, Field

from headwind import geo
from headwind.contracts.common import HeadwindModel
from headwind.contracts.geo import GeoCoordinate

BEARING_LOOKAHEAD_M = 5.0


class RouteProjection(HeadwindModel):
    """Rider position along the route polyline."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    distance_along_route: float = Field(..., description="m")
    route_length: float = Field(..., ge=0, description="m")
    polyline: tuple[tuple[float, float], ...] = Field(
        ..., min_length=1, description="(lat, lon) vertices"
    )

    @property
    def remaining_distance(self) -> float:
        return max(0.0, self.route_length - self.distance_along_route)

    def point_at_distance(self, distance: float) -> GeoCoordinate:
        """Coordinate at *distance* meters from the route start (clamped)."""
        clamped = min(max(distance, 0.0), self.route_length)
        lat, lon = geo.point_along(self.polyline, clamped)
        return GeoCoordinate(latitude=lat, longitude=lon, distance_along_route=clamped)

    def bearing_at_distance(self, distance: float) -> float:
        """Direction of travel at *distance*, from the point there to 5 m further."""
        # Near the end of the route the last 5 m give the direction
        distance = min(max(distance, 0.0), max(self.route_length - BEARING_LOOKAHEAD_M, 0.0))
        here = geo.point_along(self.polyline, distance)
        ahead = geo.point_along(self.polyline, distance + BEARING_LOOKAHEAD_M)
        return geo.initial_bearing(here[0], here[1], ahead[0], ahead[1])
