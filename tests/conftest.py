"""
Shared fixtures for the nearby search engine tests.
"""

import math
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.proximity import Coordinate, Listing, ListingKind, EARTH_RADIUS_MILES


# Central London
ORIGIN_LAT = 51.5074
ORIGIN_LNG = -0.1278

# Along a meridian one degree of latitude is a fixed distance
MILES_PER_DEGREE_LAT = EARTH_RADIUS_MILES * math.pi / 180


def north_of_origin(miles: float) -> Coordinate:
    """Point the given distance due north of the origin."""
    return Coordinate(ORIGIN_LAT + miles / MILES_PER_DEGREE_LAT, ORIGIN_LNG)


@pytest.fixture
def origin():
    """Search origin for deterministic tests."""
    return Coordinate(ORIGIN_LAT, ORIGIN_LNG)


@pytest.fixture
def make_listing():
    """Factory fixture for creating listings."""
    def _create(
        listing_id: str = "L1",
        miles: float = None,
        price: float = 1500,
        listing_kind: ListingKind = ListingKind.RENT,
        bedrooms: int = 2,
        **kwargs,
    ) -> Listing:
        if miles is not None:
            kwargs["coordinates"] = north_of_origin(miles)
        return Listing(
            id=listing_id,
            price=price,
            listing_kind=listing_kind,
            bedrooms=bedrooms,
            **kwargs,
        )
    return _create
