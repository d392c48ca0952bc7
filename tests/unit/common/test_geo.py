"""
Geographic utility tests

Great-circle distance and destination-point calculations.
"""

import math
import pytest
from hypothesis import given, strategies as st
from geoalert.common.geo import (
    EARTH_RADIUS_KM,
    destination_point,
    distance,
    haversine_distance,
    validate_coordinates,
)
from geoalert.core.models import Coordinate

latitudes = st.floats(min_value=-90, max_value=90, allow_nan=False, allow_infinity=False)
longitudes = st.floats(min_value=-180, max_value=180, allow_nan=False, allow_infinity=False)
coordinates = st.builds(Coordinate, latitude=latitudes, longitude=longitudes)


class TestHaversine:
    """Haversine distance"""

    def test_sydney_to_melbourne(self):
        d = haversine_distance(-33.8688, 151.2093, -37.8136, 144.9631)
        assert abs(d - 713) <= 1

    def test_same_point_is_zero(self):
        assert haversine_distance(-33.8688, 151.2093, -33.8688, 151.2093) == 0

    def test_quarter_meridian(self):
        d = haversine_distance(0, 0, 90, 0)
        assert d == pytest.approx(math.pi / 2 * EARTH_RADIUS_KM)

    def test_antipodal_points_do_not_fail(self):
        d = haversine_distance(0, 0, 0, 180)
        assert d == pytest.approx(math.pi * EARTH_RADIUS_KM)

    @given(a=coordinates)
    def test_distance_to_self_is_zero(self, a):
        assert distance(a, a) == 0

    @given(a=coordinates, b=coordinates)
    def test_distance_is_symmetric_and_non_negative(self, a, b):
        d_ab = distance(a, b)
        d_ba = distance(b, a)
        assert d_ab >= 0
        assert d_ab == pytest.approx(d_ba, abs=1e-6)
        assert d_ab <= math.pi * EARTH_RADIUS_KM + 1e-6


class TestDestinationPoint:
    """Spherical destination point"""

    def test_zero_distance_returns_origin(self):
        origin = Coordinate(latitude=-33.8688, longitude=151.2093)
        dest = destination_point(origin, 1.0, 0.0)
        assert dest.latitude == pytest.approx(origin.latitude)
        assert dest.longitude == pytest.approx(origin.longitude)

    def test_due_north_moves_latitude_only(self):
        origin = Coordinate(latitude=-35.0, longitude=149.0)
        dest = destination_point(origin, 0.0, 111.19)
        assert dest.latitude == pytest.approx(-34.0, abs=0.01)
        assert dest.longitude == pytest.approx(149.0, abs=1e-9)

    def test_longitude_wraps_at_antimeridian(self):
        origin = Coordinate(latitude=0.0, longitude=179.9)
        dest = destination_point(origin, math.pi / 2, 50.0)
        assert -180 <= dest.longitude <= 180
        assert dest.longitude < 0

    @given(origin=st.builds(Coordinate,
                            latitude=st.floats(min_value=-80, max_value=80),
                            longitude=longitudes),
           bearing=st.floats(min_value=0, max_value=2 * math.pi),
           d=st.floats(min_value=0, max_value=500))
    def test_travelled_distance_matches(self, origin, bearing, d):
        dest = destination_point(origin, bearing, d)
        assert distance(origin, dest) == pytest.approx(d, abs=1e-3)


class TestValidateCoordinates:
    """Coordinate range checks"""

    def test_valid(self):
        assert validate_coordinates(-33.8688, 151.2093)
        assert validate_coordinates(90, -180)

    def test_out_of_range(self):
        assert not validate_coordinates(91, 0)
        assert not validate_coordinates(0, -181)

    def test_non_finite(self):
        assert not validate_coordinates(float("nan"), 0)
        assert not validate_coordinates(0, float("inf"))
