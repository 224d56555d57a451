"""Resistance forces acting on a rider. Calculated, never persisted."""

from pydantic import ConfigDict, Field

from headwind.contracts.common import HeadwindModel


class ResistanceForces(HeadwindModel):
    """Decomposed resistance forces, all in Newtons.

    ``air_resistance_with_wind - air_resistance_no_wind`` is the force added
    (positive) or removed (negative) by the wind.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    air_resistance_no_wind: float = Field(..., description="N")
    air_resistance_with_wind: float = Field(..., description="N")
    rolling_resistance: float = Field(..., ge=0, description="N")
    gravitational_force: float = Field(..., description="N, negative downhill")

    @property
    def wind_force(self) -> float:
        return self.air_resistance_with_wind - self.air_resistance_no_wind

    @property
    def total(self) -> float:
        return self.air_resistance_with_wind + self.rolling_resistance + self.gravitational_force
