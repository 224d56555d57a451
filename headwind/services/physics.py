"""Relative grade and resistance forces on a rider.

Closed-form model of the forces a rider works against:

- aerodynamic drag ``0.5 * rho * CdA * v * |v|`` on the air speed ``v``
  (ground speed plus the wind component along the direction of travel),
- rolling resistance ``m * g * Crr``,
- gravity along the slope ``m * g * grade``.

The *relative grade* is the windless slope that would cost the same effort
as the actual slope plus the current wind.

Wind direction here is relative to the direction of travel:
0 = direct headwind, 90 = crosswind from the right, 180 = direct tailwind.

Invalid input never raises: ``estimate_relative_grade`` returns NaN and
``estimate_resistance_forces`` returns ``None``.
"""

from __future__ import annotations

import logging
import math

from headwind.contracts.physics import ResistanceForces
from headwind.errors import InvalidInput

logger = logging.getLogger(__name__)

DEFAULT_GRAVITY = 9.80665  # m/s^2
DEFAULT_AIR_DENSITY = 1.225  # kg/m^3, sea level at 15 deg C
DEFAULT_CDA = 0.4  # m^2
DEFAULT_CRR = 0.005
DEFAULT_BIKE_WEIGHT = 10.0  # kg
DEFAULT_RIDER_WEIGHT = 70.0  # kg
MIN_RIDER_WEIGHT = 30.0
MAX_RIDER_WEIGHT = 300.0


def _validate(
    rider_speed: float,
    wind_speed: float,
    total_mass: float,
    cda: float,
    air_density: float,
    g: float,
    crr: float = 0.0,
) -> None:
    if total_mass <= 0 or g <= 0:
        raise InvalidInput(f"mass and g must be positive (mass={total_mass}, g={g})")
    if rider_speed < 0 or wind_speed < 0:
        raise InvalidInput(f"speeds must be non-negative (rider={rider_speed}, wind={wind_speed})")
    if air_density < 0 or cda < 0 or crr < 0:
        raise InvalidInput(
            f"air density, CdA and Crr must be non-negative "
            f"(rho={air_density}, cda={cda}, crr={crr})"
        )


def _air_speed(rider_speed: float, wind_speed: float, wind_direction: float) -> float:
    return rider_speed + wind_speed * math.cos(math.radians(wind_direction))


def _drag(aero_factor: float, speed: float) -> float:
    # Signed so drag always opposes the relative air motion
    return aero_factor * speed * abs(speed)


def estimate_resistance_forces(
    actual_grade: float,
    rider_speed: float,
    wind_speed: float,
    wind_direction: float,
    total_mass: float,
    cda: float = DEFAULT_CDA,
    crr: float = DEFAULT_CRR,
    air_density: float = DEFAULT_AIR_DENSITY,
    g: float = DEFAULT_GRAVITY,
) -> ResistanceForces | None:
    """Decompose the resistance forces acting on the rider.

    Parameters
    ----------
    actual_grade:
        Road grade as a fraction (0.05 for 5 %).
    rider_speed:
        Ground speed in m/s.
    wind_speed:
        Ground wind speed in m/s.
    wind_direction:
        Wind direction relative to the direction of travel, degrees
        (0 = headwind).
    total_mass:
        Rider plus bike, kg.

    Returns
    -------
    ``ResistanceForces`` in Newtons, or ``None`` for invalid input.
    """
    try:
        _validate(rider_speed, wind_speed, total_mass, cda, air_density, g, crr)
    except InvalidInput as exc:
        logger.warning("Invalid resistance force input: %s", exc)
        return None

    aero_factor = 0.5 * air_density * cda
    air_speed = _air_speed(rider_speed, wind_speed, wind_direction)

    return ResistanceForces(
        air_resistance_no_wind=_drag(aero_factor, rider_speed),
        air_resistance_with_wind=_drag(aero_factor, air_speed),
        rolling_resistance=total_mass * g * crr,
        gravitational_force=total_mass * g * actual_grade,
    )


def estimate_relative_grade(
    actual_grade: float,
    rider_speed: float,
    wind_speed: float,
    wind_direction: float,
    total_mass: float,
    cda: float = DEFAULT_CDA,
    air_density: float = DEFAULT_AIR_DENSITY,
    g: float = DEFAULT_GRAVITY,
) -> float:
    """Equivalent windless grade (fraction), or NaN for invalid input.

    Without movement and without wind the actual grade is returned unchanged.
    """
    try:
        _validate(rider_speed, wind_speed, total_mass, cda, air_density, g)
    except InvalidInput as exc:
        logger.warning("Invalid relative grade input: %s", exc)
        return math.nan

    if rider_speed == 0 and wind_speed == 0:
        return actual_grade

    gravitational_factor = total_mass * g
    if gravitational_factor == 0:
        return actual_grade

    aero_factor = 0.5 * air_density * cda
    air_speed = _air_speed(rider_speed, wind_speed, wind_direction)
    drag_difference = _drag(aero_factor, air_speed) - _drag(aero_factor, rider_speed)

    return actual_grade + drag_difference / gravitational_factor


def update_accumulated_wind_elevation(
    previous: float,
    relative_grade: float,
    actual_grade: float,
    rider_speed: float,
    delta_time: float,
) -> float:
    """Add the elevation the wind made the rider climb during *delta_time* seconds.

    Only a headwind (relative grade above the actual grade) adds to the
    total; a NaN relative grade leaves it unchanged.
    """
    if math.isnan(relative_grade) or delta_time <= 0 or rider_speed <= 0:
        return previous
    return previous + max(0.0, relative_grade - actual_grade) * rider_speed * delta_time


def total_mass_from_profile(weight_kg: float, bike_weight_kg: float = DEFAULT_BIKE_WEIGHT) -> float:
    """Rider weight plus bike weight; implausible rider weights fall back to 70 kg."""
    if not MIN_RIDER_WEIGHT <= weight_kg <= MAX_RIDER_WEIGHT:
        logger.warning("Invalid rider weight %s kg, defaulting to %s kg", weight_kg, DEFAULT_RIDER_WEIGHT)
        weight_kg = DEFAULT_RIDER_WEIGHT
    return weight_kg + bike_weight_kg
