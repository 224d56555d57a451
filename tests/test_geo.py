"""Tests for great-circle helpers, polyline decoding and grid rounding."""

from __future__ import annotations

import pytest

from headwind import geo
from headwind.contracts.geo import GeoCoordinate


class TestDistanceAndBearing:
    def test_haversine_one_degree_latitude(self):
        assert geo.haversine_m(48.0, 11.0, 49.0, 11.0) == pytest.approx(111_195, rel=1e-3)

    def test_haversine_same_point(self):
        assert geo.haversine_m(48.0, 11.0, 48.0, 11.0) == 0.0

    @pytest.mark.parametrize(
        "lat2, lon2, expected",
        [(49.0, 11.0, 0.0), (48.0, 12.0, 90.0), (47.0, 11.0, 180.0), (48.0, 10.0, -90.0)],
    )
    def test_initial_bearing(self, lat2, lon2, expected):
        assert geo.initial_bearing(48.0, 11.0, lat2, lon2) == pytest.approx(expected, abs=0.5)

    def test_destination_round_trip(self):
        lat, lon = geo.destination(48.0, 11.0, 45.0, 10_000)
        assert geo.haversine_m(48.0, 11.0, lat, lon) == pytest.approx(10_000, rel=1e-6)
        assert geo.initial_bearing(48.0, 11.0, lat, lon) == pytest.approx(45.0, abs=0.01)


class TestSignedAngleDifference:
    @pytest.mark.parametrize(
        "a, b, expected",
        [(10, 350, 20), (350, 10, -20), (0, 180, -180), (180, 0, -180), (90, 90, 0), (0, 360, 0)],
    )
    def test_range(self, a, b, expected):
        assert geo.signed_angle_difference(a, b) == pytest.approx(expected)


class TestPolyline:
    def test_decode_reference_polyline(self):
        points = geo.decode_polyline("_p~iF~ps|U_ulLnnqC_mqNvxq`@")
        assert points == [
            pytest.approx((38.5, -120.2)),
            pytest.approx((40.7, -120.95)),
            pytest.approx((43.252, -126.453)),
        ]

    def test_decode_truncated_polyline(self):
        with pytest.raises(ValueError):
            geo.decode_polyline("_p~iF~ps|U_")

    def test_line_length(self):
        assert geo.line_length_m([(48.0, 11.0), (48.1, 11.0), (48.2, 11.0)]) == pytest.approx(
            geo.haversine_m(48.0, 11.0, 48.2, 11.0), rel=1e-9
        )

    def test_point_along_clamps(self):
        points = [(48.0, 11.0), (48.1, 11.0)]
        assert geo.point_along(points, -5) == (48.0, 11.0)
        assert geo.point_along(points, 1e9) == (48.1, 11.0)

    def test_point_along_midpoint(self):
        points = [(48.0, 11.0), (48.1, 11.0)]
        half = geo.line_length_m(points) / 2
        lat, lon = geo.point_along(points, half)
        assert lat == pytest.approx(48.05, abs=1e-6)
        assert lon == pytest.approx(11.0, abs=1e-9)

    def test_point_along_empty(self):
        with pytest.raises(ValueError):
            geo.point_along([], 10)


class TestRounding:
    @pytest.mark.parametrize("lat, lon", [(48.137, 11.575), (-33.87, 151.21), (0.0, 0.0), (64.1, -21.9)])
    def test_rounding_to_2km_is_idempotent(self, lat, lon):
        once = GeoCoordinate(latitude=lat, longitude=lon).round_to(2)
        twice = once.round_to(2)
        assert twice.latitude == once.latitude
        assert twice.longitude == once.longitude

    def test_rounding_moves_at_most_half_a_cell(self):
        coordinate = GeoCoordinate(latitude=48.137, longitude=11.575)
        assert coordinate.distance_to(coordinate.round_to(3)) < 3_000

    def test_rounding_keeps_bearing(self):
        coordinate = GeoCoordinate(latitude=48.137, longitude=11.575, bearing=42.0)
        assert coordinate.round_to(1).bearing == 42.0
