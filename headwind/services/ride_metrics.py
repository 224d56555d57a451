"""Live ride metrics derived from the wind.

Relative grade and resistance forces are recomputed whenever the relative
heading, ride speed, road grade, wind speed or rider mass change, throttled
to the refresh interval. The wind elevation gain accumulates once per second
and restarts whenever the ride goes back to idle.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator

from headwind.contracts.enums import RideState
from headwind.contracts.heading import HeadingState, HeadingValue
from headwind.contracts.physics import ResistanceForces
from headwind.contracts.weather import WeatherSample
from headwind.services.physics import (
    estimate_relative_grade,
    estimate_resistance_forces,
    total_mass_from_profile,
    update_accumulated_wind_elevation,
)
from headwind.streams import combine_latest, distinct_until_changed, throttle
from headwind.telemetry.bus import TelemetryBus

logger = logging.getLogger(__name__)

REFRESH_INTERVAL = 1.0
ELEVATION_SAMPLE_INTERVAL = 1.0


@dataclass(frozen=True)
class RideInputs:
    wind_direction: float  # deg relative to travel, 0 = headwind
    speed: float  # m/s
    wind_speed: float  # m/s
    actual_grade: float  # fraction
    total_mass: float  # kg


@dataclass(frozen=True)
class RelativeGradeReading:
    relative_grade: float
    actual_grade: float
    rider_speed: float


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


async def _wind_directions(headings: AsyncIterable[HeadingState]) -> AsyncIterator[float]:
    # The heading diff points to where the wind blows; +180 turns it into
    # the direction it comes from relative to travel.
    async for heading in headings:
        match heading:
            case HeadingValue(diff=diff):
                yield diff + 180


async def _speeds(telemetry: TelemetryBus) -> AsyncIterator[float]:
    async for speed in telemetry.speed():
        yield speed if speed is not None else 0.0


async def _grades(telemetry: TelemetryBus) -> AsyncIterator[float]:
    async for grade in telemetry.grade():
        if grade is not None:
            yield grade / 100.0


async def _masses(telemetry: TelemetryBus) -> AsyncIterator[float]:
    async for profile in telemetry.rider_profile():
        yield total_mass_from_profile(profile.weight_kg)


async def _wind_speeds(weather: AsyncIterable[WeatherSample | None]) -> AsyncIterator[float]:
    async for sample in weather:
        if sample is not None:
            yield sample.wind_speed


async def _as_inputs(combined: AsyncIterable[tuple]) -> AsyncIterator[RideInputs]:
    async for wind_direction, speed, wind_speed, grade, mass in combined:
        yield RideInputs(
            wind_direction=wind_direction,
            speed=speed,
            wind_speed=wind_speed,
            actual_grade=grade,
            total_mass=mass,
        )


def ride_inputs(
    telemetry: TelemetryBus,
    headings: AsyncIterable[HeadingState],
    weather: AsyncIterable[WeatherSample | None],
    interval: float = REFRESH_INTERVAL,
) -> AsyncIterator[RideInputs]:
    """Latest estimator inputs, distinct and throttled to *interval* seconds."""
    combined = combine_latest(
        _wind_directions(headings),
        _speeds(telemetry),
        _wind_speeds(weather),
        _grades(telemetry),
        _masses(telemetry),
    )
    return throttle(distinct_until_changed(_as_inputs(combined)), interval)


# ---------------------------------------------------------------------------
# Streams
# ---------------------------------------------------------------------------


async def relative_grade_stream(
    telemetry: TelemetryBus,
    headings: AsyncIterable[HeadingState],
    weather: AsyncIterable[WeatherSample | None],
    interval: float = REFRESH_INTERVAL,
) -> AsyncIterator[RelativeGradeReading]:
    """Relative grade as a fraction; NaN when the inputs are invalid."""
    async for inputs in ride_inputs(telemetry, headings, weather, interval):
        relative = estimate_relative_grade(
            actual_grade=inputs.actual_grade,
            rider_speed=inputs.speed,
            wind_speed=inputs.wind_speed,
            wind_direction=inputs.wind_direction,
            total_mass=inputs.total_mass,
        )
        logger.debug("Relative grade %.4f (actual %.4f)", relative, inputs.actual_grade)
        yield RelativeGradeReading(
            relative_grade=relative, actual_grade=inputs.actual_grade, rider_speed=inputs.speed
        )


async def resistance_forces_stream(
    telemetry: TelemetryBus,
    headings: AsyncIterable[HeadingState],
    weather: AsyncIterable[WeatherSample | None],
    interval: float = REFRESH_INTERVAL,
) -> AsyncIterator[ResistanceForces]:
    """Decomposed resistance forces. Invalid inputs produce no value."""
    async for inputs in ride_inputs(telemetry, headings, weather, interval):
        forces = estimate_resistance_forces(
            actual_grade=inputs.actual_grade,
            rider_speed=inputs.speed,
            wind_speed=inputs.wind_speed,
            wind_direction=inputs.wind_direction,
            total_mass=inputs.total_mass,
        )
        if forces is not None:
            yield forces


# ---------------------------------------------------------------------------
# Wind elevation gain
# ---------------------------------------------------------------------------


class WindElevationGainAccumulator:
    """Elevation the wind made the rider climb since the ride left idle.

    One writer at a time: updates and resets share a lock.
    """

    def __init__(self, sample_interval: float = ELEVATION_SAMPLE_INTERVAL):
        self._sample_interval = sample_interval
        self._value = 0.0
        self._lock = asyncio.Lock()

    async def value(self) -> float:
        async with self._lock:
            return self._value

    async def reset(self) -> None:
        async with self._lock:
            self._value = 0.0

    async def add(self, reading: RelativeGradeReading, delta_time: float) -> float:
        async with self._lock:
            self._value = update_accumulated_wind_elevation(
                self._value,
                reading.relative_grade,
                reading.actual_grade,
                reading.rider_speed,
                delta_time,
            )
            return self._value

    async def reset_on_idle(self, ride_states: AsyncIterable[RideState]) -> None:
        """Reset whenever the ride state changes to idle."""
        async for state in distinct_until_changed(ride_states):
            if RideState(state) == RideState.IDLE:
                logger.debug("Ride is idle, resetting wind elevation gain")
                await self.reset()

    async def accumulate(self, readings: AsyncIterable[RelativeGradeReading]) -> AsyncIterator[float]:
        """Running total, sampled once per interval."""
        async for reading in throttle(readings, self._sample_interval):
            yield await self.add(reading, self._sample_interval)

    async def stream(
        self,
        ride_states: AsyncIterable[RideState],
        readings: AsyncIterable[RelativeGradeReading],
    ) -> AsyncIterator[float]:
        """Accumulate *readings* while resetting on idle transitions."""
        resetter = asyncio.create_task(self.reset_on_idle(ride_states))
        try:
            async for total in self.accumulate(readings):
                yield total
        finally:
            resetter.cancel()
            await asyncio.gather(resetter, return_exceptions=True)
