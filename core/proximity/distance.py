"""
Great-circle distance in statute miles.

The whole package works in miles; there is deliberately no kilometre
variant, so a radius and a distance can always be compared directly.
"""

import math

from .models import Coordinate


# Earth radius in statute miles
EARTH_RADIUS_MILES = 3959.0

# Radius guidance bands (upper bound in miles, label)
DISTANCE_CONTEXTS = (
    (1.0, "Walking/cycling distance - your immediate neighborhood"),
    (5.0, "Short drive or bike ride - local area"),
    (10.0, "Quick commute - same town/city"),
    (25.0, "Reasonable commute - nearby towns"),
    (50.0, "Regional search - neighboring cities"),
    (100.0, "Wide area - covers multiple cities"),
)
WIDEST_CONTEXT = "State/regional level search - very large area"


def distance_miles(a: Coordinate, b: Coordinate) -> float:
    """
    Calculate distance between two points in miles using Haversine formula.

    Symmetric in its arguments and exactly 0.0 for identical points.

    Args:
        a: First point
        b: Second point

    Returns:
        Distance in miles
    """
    lat1_rad = math.radians(a.latitude)
    lat2_rad = math.radians(b.latitude)
    dlat = math.radians(b.latitude - a.latitude)
    dlon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    )
    # Rounding can push antipodal points fractionally above 1
    c = 2 * math.asin(math.sqrt(min(1.0, h)))

    return EARTH_RADIUS_MILES * c


def describe_distance(miles: float) -> str:
    """Human-readable guidance for a search radius."""
    for upper, label in DISTANCE_CONTEXTS:
        if miles <= upper:
            return label
    return WIDEST_CONTEXT


def coverage_area_sq_miles(radius_miles: float) -> float:
    """Area covered by a circular search of the given radius."""
    return math.pi * radius_miles ** 2
