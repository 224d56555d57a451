"""GeoCoordinate — a device or route position, optionally with bearing.

Stored at key ``lastKnownPosition`` (last valid device fix) and embedded in
weather responses and stats.
"""

from pydantic import ConfigDict, Field

from headwind import geo
from headwind.contracts.common import HeadwindModel


class GeoCoordinate(HeadwindModel):
    """WGS84 coordinate.

    ``bearing`` is the device heading when the coordinate comes from a GPS
    fix. ``distance_along_route`` is set for coordinates sampled along the
    upcoming route.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    bearing: float | None = Field(default=None, description="deg")
    distance_along_route: float | None = Field(default=None, description="m")

    def round_to(self, grid_km: float) -> "GeoCoordinate":
        """Snap onto the rounding grid. Idempotent."""
        lat, lon = geo.round_to_grid(self.latitude, self.longitude, grid_km)
        return self.model_copy(update={"latitude": lat, "longitude": lon})

    def distance_to(self, other: "GeoCoordinate") -> float:
        """Great-circle distance in meters."""
        return geo.haversine_m(self.latitude, self.longitude, other.latitude, other.longitude)
