"""Great-circle helpers: distance, bearing, destination, polyline walking.

All distances in meters, all angles in degrees.
"""

from __future__ import annotations

import math
from typing import Sequence

EARTH_RADIUS_M = 6_371_008.8
METERS_PER_DEGREE_LATITUDE = 111_320.0

LatLon = tuple[float, float]


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters."""
    la1, lo1 = math.radians(lat1), math.radians(lon1)
    la2, lo2 = math.radians(lat2), math.radians(lon2)
    dlat = la2 - la1
    dlon = lo2 - lo1
    a = math.sin(dlat / 2) ** 2 + math.cos(la1) * math.cos(la2) * math.sin(dlon / 2) ** 2
    return 2 * math.asin(min(1.0, math.sqrt(a))) * EARTH_RADIUS_M


def initial_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial great-circle bearing from point 1 to point 2, in (-180, 180]."""
    la1, la2 = math.radians(lat1), math.radians(lat2)
    dlon = math.radians(lon2 - lon1)
    x = math.sin(dlon) * math.cos(la2)
    y = math.cos(la1) * math.sin(la2) - math.sin(la1) * math.cos(la2) * math.cos(dlon)
    return math.degrees(math.atan2(x, y))


def destination(lat: float, lon: float, bearing_deg: float, distance_m: float) -> LatLon:
    """Point reached travelling *distance_m* from (lat, lon) on *bearing_deg*."""
    delta = distance_m / EARTH_RADIUS_M
    theta = math.radians(bearing_deg)
    la1, lo1 = math.radians(lat), math.radians(lon)
    la2 = math.asin(
        math.sin(la1) * math.cos(delta) + math.cos(la1) * math.sin(delta) * math.cos(theta)
    )
    lo2 = lo1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(la1),
        math.cos(delta) - math.sin(la1) * math.sin(la2),
    )
    return math.degrees(la2), (math.degrees(lo2) + 540) % 360 - 180


def signed_angle_difference(angle1: float, angle2: float) -> float:
    """Signed difference ``angle1 - angle2`` normalized to [-180, 180)."""
    return ((angle1 - angle2 + 180) % 360) - 180


def line_length_m(points: Sequence[LatLon]) -> float:
    """Length of a polyline following great circles between vertices."""
    return sum(
        haversine_m(a[0], a[1], b[0], b[1]) for a, b in zip(points, points[1:])
    )


def point_along(points: Sequence[LatLon], distance_m: float) -> LatLon:
    """Point at *distance_m* along the polyline.

    Distances before the start return the first vertex; distances past the
    end return the last vertex.
    """
    if not points:
        raise ValueError("Empty polyline")
    if distance_m <= 0:
        return points[0]

    travelled = 0.0
    for a, b in zip(points, points[1:]):
        segment = haversine_m(a[0], a[1], b[0], b[1])
        if segment > 0 and travelled + segment >= distance_m:
            remaining = distance_m - travelled
            return destination(a[0], a[1], initial_bearing(a[0], a[1], b[0], b[1]), remaining)
        travelled += segment

    return points[-1]


def decode_polyline(encoded: str, precision: int = 5) -> list[LatLon]:
    """Decode an encoded polyline (Google algorithm) into (lat, lon) pairs."""
    factor = 10 ** precision
    coordinates: list[LatLon] = []
    index = lat = lon = 0

    while index < len(encoded):
        deltas = []
        for _ in range(2):
            shift = result = 0
            while True:
                if index >= len(encoded):
                    raise ValueError("Truncated polyline")
                byte = ord(encoded[index]) - 63
                index += 1
                result |= (byte & 0x1F) << shift
                shift += 5
                if byte < 0x20:
                    break
            deltas.append(~(result >> 1) if result & 1 else result >> 1)
        lat += deltas[0]
        lon += deltas[1]
        coordinates.append((lat / factor, lon / factor))

    return coordinates


def round_to_grid(lat: float, lon: float, grid_km: float) -> LatLon:
    """Snap a position onto a grid of roughly *grid_km* x *grid_km* cells.

    The longitude step is derived from the already-snapped latitude so that
    snapping a snapped point is a no-op.
    """
    if grid_km <= 0:
        return lat, lon

    lat_step = grid_km * 1000 / METERS_PER_DEGREE_LATITUDE
    rounded_lat = round(lat / lat_step) * lat_step
    rounded_lat = max(-90.0, min(90.0, rounded_lat))

    cos_lat = max(math.cos(math.radians(rounded_lat)), 0.01)
    lon_step = lat_step / cos_lat
    rounded_lon = round(lon / lon_step) * lon_step
    rounded_lon = max(-180.0, min(180.0, rounded_lon))
    return rounded_lat, rounded_lon
