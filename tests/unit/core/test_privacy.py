"""
Location privacy tests

Coordinate fuzzing bounds and the per-requester disclosure policy.
"""

import random
import pytest
from hypothesis import given, strategies as st
from geoalert.common.geo import distance
from geoalert.core.models import Coordinate
from geoalert.core.privacy import approximate, fuzz, resolve_for_requester

SYDNEY = Coordinate(latitude=-33.8688, longitude=151.2093)


class _EdgeRandom(random.Random):
    """Always draws the upper bound of a uniform range."""

    def __init__(self, fraction):
        super().__init__(0)
        self.fraction = fraction

    def random(self):
        return self.fraction

    def uniform(self, a, b):
        return b


class TestFuzz:
    """Random displacement within a radius"""

    @given(lat=st.floats(min_value=-80, max_value=80),
           lon=st.floats(min_value=-180, max_value=180),
           radius=st.floats(min_value=0, max_value=50),
           seed=st.integers(min_value=0, max_value=2**32 - 1))
    def test_never_exceeds_radius(self, lat, lon, radius, seed):
        c = Coordinate(latitude=lat, longitude=lon)
        fuzzed = fuzz(c, radius, random.Random(seed))
        assert distance(c, fuzzed) <= radius

    @given(lat=st.floats(min_value=-80, max_value=80),
           lon=st.floats(min_value=-180, max_value=180),
           radius=st.floats(min_value=0, max_value=50),
           bearing=st.floats(min_value=0, max_value=1, exclude_max=True))
    def test_full_radius_draw_stays_inside(self, lat, lon, radius, bearing):
        c = Coordinate(latitude=lat, longitude=lon)
        fuzzed = fuzz(c, radius, _EdgeRandom(bearing))
        assert distance(c, fuzzed) <= radius

    def test_produces_varying_points(self):
        points = {(p.latitude, p.longitude) for p in (fuzz(SYDNEY, 5.0) for _ in range(20))}
        assert len(points) > 1

    def test_seeded_source_is_reproducible(self):
        a = fuzz(SYDNEY, 5.0, random.Random(42))
        b = fuzz(SYDNEY, 5.0, random.Random(42))
        assert a == b

    def test_zero_radius_keeps_point(self):
        fuzzed = fuzz(SYDNEY, 0.0, random.Random(1))
        assert distance(SYDNEY, fuzzed) == pytest.approx(0.0, abs=1e-9)

    def test_negative_radius_rejected(self):
        with pytest.raises(ValueError):
            fuzz(SYDNEY, -1.0)

    def test_approximate_carries_radius(self):
        approx = approximate(SYDNEY, 5.0, random.Random(7))
        assert approx.radius_km == 5.0
        assert distance(SYDNEY, approx.coordinates) <= 5.0


class TestResolveForRequester:
    """Disclosure projection"""

    @pytest.fixture
    def anonymized(self, record_factory):
        approx = approximate(SYDNEY, 5.0, random.Random(3))
        return record_factory("owner", anonymized=True, approximate_location=approx)

    def test_owner_sees_raw_record(self, record_factory, anonymized):
        private = record_factory("owner", is_private=True)
        assert resolve_for_requester(private, "owner") is private
        assert resolve_for_requester(anonymized, "owner") is anonymized

    def test_private_hidden_from_others(self, record_factory):
        private = record_factory("owner", is_private=True)
        assert resolve_for_requester(private, "stranger") is None
        assert resolve_for_requester(private, None) is None

    def test_private_wins_over_anonymized(self, record_factory):
        approx = approximate(SYDNEY, 5.0, random.Random(3))
        record = record_factory("owner", is_private=True, anonymized=True, approximate_location=approx)
        assert resolve_for_requester(record, "stranger") is None

    def test_anonymized_shows_approximation(self, anonymized):
        seen = resolve_for_requester(anonymized, "stranger")
        assert seen.coordinates == anonymized.approximate_location.coordinates
        assert seen.street is None
        assert seen.suburb is None
        assert seen.city == anonymized.city

    def test_projection_does_not_touch_stored_record(self, anonymized):
        resolve_for_requester(anonymized, "stranger")
        assert anonymized.coordinates == SYDNEY
        assert anonymized.street == "1 George St"

    def test_public_record_unchanged(self, record_factory):
        record = record_factory("owner")
        assert resolve_for_requester(record, "stranger") is record

    def test_anonymized_requires_approximation(self, record_factory):
        with pytest.raises(ValueError):
            record_factory("owner", anonymized=True)
