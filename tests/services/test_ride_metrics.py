"""Tests for the live ride metric streams."""

from __future__ import annotations

import asyncio
import math

import pytest

from headwind.contracts.enums import RideState
from headwind.contracts.heading import HeadingValue, NoFix
from headwind.contracts.telemetry import RiderProfile
from headwind.services.physics import DEFAULT_CRR, DEFAULT_GRAVITY
from headwind.services.ride_metrics import (
    RelativeGradeReading,
    RideInputs,
    WindElevationGainAccumulator,
    relative_grade_stream,
    resistance_forces_stream,
    ride_inputs,
)
from headwind.streams import Broadcast
from tests.fakes import make_sample, take

HEADWIND_READING = RelativeGradeReading(relative_grade=0.05, actual_grade=0.02, rider_speed=10.0)


@pytest.fixture
def riding(telemetry):
    telemetry.publish_speed(8.0)
    telemetry.publish_grade(2.0)
    return telemetry


async def from_list(values):
    for value in values:
        yield value


class TestRideInputs:
    async def test_combines_latest_inputs(self, riding):
        # Travelling against the direction the wind blows towards
        headings = Broadcast(initial=HeadingValue(-180.0))
        weather = Broadcast(initial=make_sample(wind_speed=5.0))

        [inputs] = await take(ride_inputs(riding, headings.subscribe(), weather.subscribe(), 0.01), 1)

        assert inputs == RideInputs(
            wind_direction=0.0, speed=8.0, wind_speed=5.0, actual_grade=0.02, total_mass=80.0
        )

    async def test_waits_for_heading_and_weather(self, riding):
        headings = Broadcast(initial=NoFix())
        weather = Broadcast(initial=None)
        stream = ride_inputs(riding, headings.subscribe(), weather.subscribe(), 0.01)

        task = asyncio.create_task(take(stream, 1))
        await asyncio.sleep(0.05)
        assert not task.done()

        headings.publish(HeadingValue(0.0))
        weather.publish(make_sample(wind_speed=3.0))
        [inputs] = await task
        assert inputs.wind_direction == 180.0
        assert inputs.wind_speed == 3.0


class TestRelativeGradeStream:
    async def test_headwind(self, riding):
        headings = Broadcast(initial=HeadingValue(-180.0))
        weather = Broadcast(initial=make_sample(wind_speed=5.0))

        [reading] = await take(
            relative_grade_stream(riding, headings.subscribe(), weather.subscribe(), 0.01), 1
        )

        assert reading.relative_grade == pytest.approx(0.0528, abs=0.001)
        assert reading.actual_grade == pytest.approx(0.02)
        assert reading.rider_speed == 8.0

    async def test_tailwind(self, riding):
        headings = Broadcast(initial=HeadingValue(0.0))
        weather = Broadcast(initial=make_sample(wind_speed=5.0))

        [reading] = await take(
            relative_grade_stream(riding, headings.subscribe(), weather.subscribe(), 0.01), 1
        )

        assert reading.relative_grade == pytest.approx(0.0028, abs=0.001)

    async def test_invalid_mass_is_replaced(self, riding):
        riding.publish_rider_profile(RiderProfile(weight_kg=0.0))
        headings = Broadcast(initial=HeadingValue(90.0))
        weather = Broadcast(initial=make_sample(wind_speed=5.0))

        [reading] = await take(
            relative_grade_stream(riding, headings.subscribe(), weather.subscribe(), 0.01), 1
        )
        assert not math.isnan(reading.relative_grade)


class TestResistanceForcesStream:
    async def test_forces(self, riding):
        headings = Broadcast(initial=HeadingValue(-180.0))
        weather = Broadcast(initial=make_sample(wind_speed=5.0))

        [forces] = await take(
            resistance_forces_stream(riding, headings.subscribe(), weather.subscribe(), 0.01), 1
        )

        assert forces.rolling_resistance == pytest.approx(80 * DEFAULT_GRAVITY * DEFAULT_CRR)
        assert forces.gravitational_force == pytest.approx(80 * DEFAULT_GRAVITY * 0.02)
        assert forces.wind_force > 0


class TestWindElevationGainAccumulator:
    async def test_add(self):
        accumulator = WindElevationGainAccumulator()
        assert await accumulator.add(HEADWIND_READING, 1.0) == pytest.approx(0.3)
        assert await accumulator.value() == pytest.approx(0.3)

    async def test_invalid_reading_is_ignored(self):
        accumulator = WindElevationGainAccumulator()
        await accumulator.add(HEADWIND_READING, 1.0)
        nan_reading = RelativeGradeReading(relative_grade=math.nan, actual_grade=0.02, rider_speed=10.0)
        assert await accumulator.add(nan_reading, 1.0) == pytest.approx(0.3)

    async def test_resets_when_ride_becomes_idle(self):
        accumulator = WindElevationGainAccumulator()
        states = Broadcast(initial=RideState.RECORDING)
        resetter = asyncio.create_task(accumulator.reset_on_idle(states.subscribe()))
        try:
            await asyncio.sleep(0.01)
            await accumulator.add(HEADWIND_READING, 1.0)
            states.publish(RideState.PAUSED)
            await asyncio.sleep(0.01)
            assert await accumulator.value() == pytest.approx(0.3)

            states.publish(RideState.IDLE)
            await asyncio.wait_for(self.until_zero(accumulator), 1.0)
        finally:
            resetter.cancel()
            await asyncio.gather(resetter, return_exceptions=True)

    @staticmethod
    async def until_zero(accumulator):
        while await accumulator.value() != 0.0:
            await asyncio.sleep(0.005)

    async def test_accumulate_samples_per_interval(self):
        accumulator = WindElevationGainAccumulator(sample_interval=0.5)
        [total] = await take(accumulator.accumulate(from_list([HEADWIND_READING])), 1)
        assert total == pytest.approx(0.15)

    async def test_stream(self):
        accumulator = WindElevationGainAccumulator()
        states = Broadcast(initial=RideState.RECORDING)
        assert await take(accumulator.stream(states.subscribe(), from_list([HEADWIND_READING])), 1) == [
            pytest.approx(0.3)
        ]
