"""HeadingState — closed union of "no fix", "no weather" and a heading value.

Consumers match exhaustively::

    match state:
        case NoFix():
            ...
        case NoWeatherData():
            ...
        case HeadingValue(diff=diff):
            ...
"""

from dataclasses import dataclass
from typing import TypeAlias


@dataclass(frozen=True)
class NoFix:
    """No usable GPS fix (or no bearing on the fix)."""


@dataclass(frozen=True)
class NoWeatherData:
    """A fix is present but no weather data is available for it."""


@dataclass(frozen=True)
class HeadingValue:
    """Heading in degrees.

    Straight from the device it is the absolute bearing; after combining
    with weather it is the signed difference between the direction of travel
    and the direction the wind blows towards, in [-180, 180).
    """

    diff: float


HeadingState: TypeAlias = NoFix | NoWeatherData | HeadingValue
