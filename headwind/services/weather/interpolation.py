"""Interpolation of discrete weather samples into a continuous signal.

Scalars are blended linearly, wind direction along the shorter arc and
categorical fields (weather code, day / night, forecast flag) are taken
from whichever sample is closer.
"""

from __future__ import annotations

import math
from typing import Sequence

from headwind.contracts.weather import WeatherForLocation, WeatherSample


def lerp(start: float, end: float, factor: float) -> float:
    return start + (end - start) * factor


def lerp_nullable(start: float | None, end: float | None, factor: float) -> float | None:
    """Linear interpolation where a missing side yields the other side."""
    if start is None:
        return end
    if end is None:
        return start
    return lerp(start, end, factor)


def lerp_angle(start: float, end: float, factor: float) -> float:
    """Interpolate between two angles in degrees along the shorter arc.

    The result is in [0, 360): ``lerp_angle(350, 10, 0.5) == 0``.
    """
    start %= 360.0
    end %= 360.0

    diff = end - start
    if diff > 180.0:
        diff -= 360.0
    elif diff < -180.0:
        diff += 360.0

    return (start + diff * factor) % 360.0


def lerp_weather(start: WeatherSample, end: WeatherSample, factor: float) -> WeatherSample:
    closest = start if factor < 0.5 else end

    return WeatherSample(
        time=int(lerp(start.time, end.time, factor)),
        temperature=lerp(start.temperature, end.temperature, factor),
        relative_humidity=lerp_nullable(start.relative_humidity, end.relative_humidity, factor),
        precipitation=lerp(start.precipitation, end.precipitation, factor),
        precipitation_probability=lerp_nullable(
            start.precipitation_probability, end.precipitation_probability, factor
        ),
        cloud_cover=lerp_nullable(start.cloud_cover, end.cloud_cover, factor),
        surface_pressure=lerp_nullable(start.surface_pressure, end.surface_pressure, factor),
        sealevel_pressure=lerp_nullable(start.sealevel_pressure, end.sealevel_pressure, factor),
        wind_speed=lerp(start.wind_speed, end.wind_speed, factor),
        wind_direction=lerp_angle(start.wind_direction, end.wind_direction, factor),
        wind_gusts=lerp(start.wind_gusts, end.wind_gusts, factor),
        weather_code=closest.weather_code,
        is_forecast=closest.is_forecast,
        is_night=closest.is_night,
        uv_index=lerp_nullable(start.uv_index, end.uv_index, factor),
    )


def bracket(fractions: Sequence[float], t: float) -> tuple[int, int, float] | None:
    """Indices of the samples around ``t`` and the local fraction between them.

    With ``N`` samples the brackets are ``floor(N * t)`` and ``ceil(N * t)``
    clamped to the available indices. The local fraction re-maps ``t`` from
    the brackets' own positions onto [0, 1]. Returns ``None`` for no samples.
    """
    count = len(fractions)
    if count == 0:
        return None

    before = min(max(math.floor(count * t), 0), count - 1)
    after = min(max(math.ceil(count * t), 0), count - 1)
    if before == after:
        return before, after, 0.0

    span = fractions[after] - fractions[before]
    if span <= 0:
        return before, before, 0.0
    local = (t - fractions[before]) / span
    return before, after, min(max(local, 0.0), 1.0)


def interpolate_along(samples: Sequence[tuple[float, WeatherSample]], t: float) -> WeatherSample | None:
    """Weather at position ``t`` in [0, 1] of an ordered ``(fraction, sample)`` list.

    When both brackets are the same sample it is returned unmodified; values
    are never extrapolated past the first or last sample.
    """
    found = bracket([fraction for fraction, _ in samples], t)
    if found is None:
        return None

    before, after, local = found
    if before == after:
        return samples[before][1]
    return lerp_weather(samples[before][1], samples[after][1], local)


def lerp_weather_time(
    forecasts: Sequence[WeatherSample] | None,
    current: WeatherSample,
    now_ms: int,
) -> WeatherSample:
    """Weather at ``now_ms`` from the hourly forecasts surrounding it.

    Starts from the last forecast before now (or the current conditions),
    ends at the first forecast at or after now.
    """
    forecasts = forecasts or []
    upcoming = next((f for f in forecasts if f.time * 1000 >= now_ms), None)
    previous = next((f for f in reversed(forecasts) if f.time * 1000 < now_ms), None)

    start = previous or current
    end = upcoming or start

    span = abs(end.time - start.time) * 1000
    factor = (now_ms - start.time * 1000) / span if span > 0 else 0.0
    return lerp_weather(start, end, min(max(factor, 0.0), 1.0))


def lerp_locations(
    first: WeatherForLocation,
    second: WeatherForLocation,
    factor: float,
    coordinate,
) -> WeatherForLocation:
    """Blend the weather of two locations, forecast hour by forecast hour."""
    if len(first.forecasts) != len(second.forecasts):
        raise ValueError(
            f"Mismatched forecast lengths: {len(first.forecasts)} != {len(second.forecasts)}"
        )

    return WeatherForLocation(
        current=lerp_weather(first.current, second.current, factor),
        coordinate=coordinate,
        forecasts=[
            lerp_weather(a, b, factor) for a, b in zip(first.forecasts, second.forecasts)
        ],
        timezone=first.timezone,
        elevation=lerp_nullable(first.elevation, second.elevation, factor),
    )
