"""
Tests for great-circle distance and coordinate validation

Tests covering:
- Identity and symmetry
- Known city-centre distance in miles
- Antipodal points stay finite
- Coordinate range / type validation
- Radius guidance labels and coverage area
"""

import math

import pytest

from core.proximity import (
    Coordinate,
    InvalidCoordinateError,
    InvalidInputError,
    EARTH_RADIUS_MILES,
    coverage_area_sq_miles,
    describe_distance,
    distance_miles,
)
from core.proximity.distance import WIDEST_CONTEXT


# =============================================================================
# Test: Distance Calculation
# =============================================================================

class TestDistanceMiles:
    """Tests for the haversine distance."""

    def test_identical_points_are_zero(self, origin):
        assert distance_miles(origin, origin) == 0.0

    def test_symmetric(self, origin):
        other = Coordinate(40.7128, -74.0060)
        assert distance_miles(origin, other) == pytest.approx(distance_miles(other, origin))

    def test_central_london_pair(self, origin):
        """Trafalgar area to the City of London is about 1.6 miles."""
        city = Coordinate(51.5155, -0.0922)
        assert distance_miles(origin, city) == pytest.approx(1.63, abs=0.05)

    def test_one_degree_of_latitude(self):
        a = Coordinate(10.0, 20.0)
        b = Coordinate(11.0, 20.0)
        assert distance_miles(a, b) == pytest.approx(EARTH_RADIUS_MILES * math.pi / 180)

    def test_antipodal_points_finite(self):
        a = Coordinate(0.0, 0.0)
        b = Coordinate(0.0, 180.0)
        distance = distance_miles(a, b)
        assert math.isfinite(distance)
        assert distance == pytest.approx(math.pi * EARTH_RADIUS_MILES)

    def test_crosses_antimeridian(self):
        a = Coordinate(0.0, 179.9)
        b = Coordinate(0.0, -179.9)
        # 0.2 degrees of longitude at the equator, not 359.8
        assert distance_miles(a, b) == pytest.approx(0.2 * EARTH_RADIUS_MILES * math.pi / 180)

    def test_non_negative(self, origin):
        for lat, lng in ((-33.8688, 151.2093), (35.6762, 139.6503), (-90.0, 0.0)):
            assert distance_miles(origin, Coordinate(lat, lng)) >= 0


# =============================================================================
# Test: Coordinate Validation
# =============================================================================

class TestCoordinate:
    """Tests for Coordinate construction and parsing."""

    @pytest.mark.parametrize("lat,lng", [
        (90.5, 0.0),
        (-91.0, 0.0),
        (0.0, 180.01),
        (0.0, -181.0),
        (float("nan"), 0.0),
        (0.0, float("inf")),
    ])
    def test_out_of_range_rejected(self, lat, lng):
        with pytest.raises(InvalidCoordinateError):
            Coordinate(lat, lng)

    def test_boundaries_accepted(self):
        Coordinate(90.0, 180.0)
        Coordinate(-90.0, -180.0)

    def test_non_numeric_rejected(self):
        with pytest.raises(InvalidCoordinateError):
            Coordinate("51.5", 0.0)
        with pytest.raises(InvalidCoordinateError):
            Coordinate(True, 0.0)

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            Coordinate(100.0, 0.0)
        assert issubclass(InvalidCoordinateError, InvalidInputError)

    def test_parse_numeric_strings(self):
        coord = Coordinate.parse("51.5074", "-0.1278")
        assert coord == Coordinate(51.5074, -0.1278)

    @pytest.mark.parametrize("lat,lng", [
        (None, -0.1278),
        (51.5, None),
        ("north", 0.0),
        (float("nan"), 0.0),
        (95.0, 0.0),
        ([51.5], 0.0),
    ])
    def test_parse_returns_none_for_unusable_values(self, lat, lng):
        assert Coordinate.parse(lat, lng) is None

    def test_to_dict(self):
        assert Coordinate(1.5, 2.5).to_dict() == {"latitude": 1.5, "longitude": 2.5}


# =============================================================================
# Test: Distance Context
# =============================================================================

class TestDistanceContext:
    """Tests for radius guidance and coverage area."""

    def test_walking_distance(self):
        assert describe_distance(0.5).startswith("Walking/cycling")
        assert describe_distance(1.0).startswith("Walking/cycling")

    def test_local_area(self):
        assert "local area" in describe_distance(5)

    def test_same_town(self):
        assert "same town" in describe_distance(7.5)

    def test_regional(self):
        assert describe_distance(50).startswith("Regional")
        assert describe_distance(100).startswith("Wide area")

    def test_beyond_widest_band(self):
        assert describe_distance(250) == WIDEST_CONTEXT

    def test_coverage_area(self):
        assert coverage_area_sq_miles(2) == pytest.approx(4 * math.pi)
        assert coverage_area_sq_miles(5) == pytest.approx(78.54, abs=0.01)
