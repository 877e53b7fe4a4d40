"""Haversine distance in statute miles."""
import math

import pytest

from loadhunt.services.geo.distance import EARTH_RADIUS_MILES, haversine_miles


@pytest.mark.unit
class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_miles(41.85, -87.65, 41.85, -87.65) == 0.0

    def test_along_meridian_matches_arc_length(self):
        # 1 degree of latitude = R * pi / 180
        expected = EARTH_RADIUS_MILES * math.pi / 180
        assert haversine_miles(40.0, -87.65, 41.0, -87.65) == pytest.approx(expected, rel=1e-9)

    def test_symmetric(self):
        a = haversine_miles(41.85, -87.65, 43.0389, -87.9065)
        b = haversine_miles(43.0389, -87.9065, 41.85, -87.65)
        assert a == pytest.approx(b, rel=1e-12)

    def test_chicago_to_milwaukee(self):
        assert haversine_miles(41.85, -87.65, 43.0389, -87.9065) == pytest.approx(83.2, abs=1.0)
