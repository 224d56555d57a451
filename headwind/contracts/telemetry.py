"""Samples published by the host device telemetry bus."""

from pydantic import ConfigDict, Field

from headwind.contracts.common import HeadwindModel


class LocationSample(HeadwindModel):
    """Raw GPS fix as reported by the device."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    latitude: float | None = None
    longitude: float | None = None
    bearing: float | None = Field(default=None, description="deg")
    accuracy: float | None = Field(default=None, description="m, lower is better")


class RiderProfile(HeadwindModel):
    """Rider profile: weight and preferred unit system."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    weight_kg: float = 70.0
    is_imperial: bool = False


class NavigationState(HeadwindModel):
    """Host navigation state.

    ``polyline`` is ``None`` when no route is being navigated. It is either
    a precision-5 encoded polyline or a list of (lat, lon) vertices.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    polyline: str | tuple[tuple[float, float], ...] | None = None

    @property
    def is_navigating(self) -> bool:
        return bool(self.polyline)
