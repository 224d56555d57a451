"""Enumerations shared across all Headwind contracts."""

from enum import Enum


class WeatherDataProvider(str, Enum):
    """Remote weather provider. OPEN_METEO is the default and the fallback."""
    OPEN_METEO = "open-meteo"
    OPEN_WEATHER_MAP = "open-weather-map"

    @property
    def label(self) -> str:
        match self:
            case WeatherDataProvider.OPEN_METEO:
                return "OpenMeteo"
            case WeatherDataProvider.OPEN_WEATHER_MAP:
                return "OpenWeatherMap"


class WindUnit(str, Enum):
    """Wind speed unit; the value is the Open-Meteo ``wind_speed_unit`` code."""
    KILOMETERS_PER_HOUR = "kmh"
    METERS_PER_SECOND = "ms"
    MILES_PER_HOUR = "mph"
    KNOTS = "kn"

    @property
    def meters_per_second(self) -> float:
        """Size of one unit in m/s."""
        match self:
            case WindUnit.KILOMETERS_PER_HOUR:
                return 1 / 3.6
            case WindUnit.METERS_PER_SECOND:
                return 1.0
            case WindUnit.MILES_PER_HOUR:
                return 0.44704
            case WindUnit.KNOTS:
                return 1852 / 3600

    def to_meters_per_second(self, value: float) -> float:
        return value * self.meters_per_second


class PrecipitationUnit(str, Enum):
    MILLIMETERS = "mm"
    INCH = "inch"


class TemperatureUnit(str, Enum):
    CELSIUS = "celsius"
    FAHRENHEIT = "fahrenheit"


class RoundLocationSetting(int, Enum):
    """Size in km of the grid GPS coordinates are rounded to."""
    KM_1 = 1
    KM_2 = 2
    KM_3 = 3
    KM_5 = 5


class RideState(str, Enum):
    """Ride state reported by the host device."""
    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"


class WeatherInterpretation(str, Enum):
    """Coarse interpretation of WMO weather codes."""
    CLEAR = "clear"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    SNOWY = "snowy"
    DRIZZLE = "drizzle"
    THUNDERSTORM = "thunderstorm"
    UNKNOWN = "unknown"

    @classmethod
    def from_weather_code(cls, code: int | None) -> "WeatherInterpretation":
        # WMO weather interpretation codes (WW)
        match code:
            case 0:
                return cls.CLEAR
            case 1 | 2 | 3:
                return cls.CLOUDY
            case 45 | 48 | 61 | 63 | 65 | 66 | 67 | 80 | 81 | 82:
                return cls.RAINY
            case 71 | 73 | 75 | 77 | 85 | 86:
                return cls.SNOWY
            case 51 | 53 | 55 | 56 | 57:
                return cls.DRIZZLE
            case 95 | 96 | 99:
                return cls.THUNDERSTORM
            case _:
                return cls.UNKNOWN
