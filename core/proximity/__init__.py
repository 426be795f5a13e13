"""
Proximity engine

Haversine distance, radius search, preference filtering and
recommendation scoring over marketplace listings. All distances
are statute miles.
"""

from .models import (
    Coordinate,
    Listing,
    ListingKind,
    PriceRange,
    UserPreferences,
    SearchResult,
    InvalidInputError,
    InvalidCoordinateError,
    InvalidRadiusError,
    InvalidPreferencesError,
)
from .distance import (
    EARTH_RADIUS_MILES,
    distance_miles,
    describe_distance,
    coverage_area_sq_miles,
)
from .search import (
    ProximitySearch,
    validate_radius,
    DEFAULT_RADIUS_MILES,
    MAX_RADIUS_MILES,
)
from .filters import PreferenceFilter
from .scoring import (
    RecommendationScorer,
    ScoringWeights,
    ScoreBreakdown,
    NEUTRAL_SCORE,
    SortOrder,
    sort_results,
)

__all__ = [
    # Models
    "Coordinate",
    "Listing",
    "ListingKind",
    "PriceRange",
    "UserPreferences",
    "SearchResult",
    # Errors
    "InvalidInputError",
    "InvalidCoordinateError",
    "InvalidRadiusError",
    "InvalidPreferencesError",
    # Distance
    "EARTH_RADIUS_MILES",
    "distance_miles",
    "describe_distance",
    "coverage_area_sq_miles",
    # Search
    "ProximitySearch",
    "validate_radius",
    "DEFAULT_RADIUS_MILES",
    "MAX_RADIUS_MILES",
    # Filtering & scoring
    "PreferenceFilter",
    "RecommendationScorer",
    "ScoringWeights",
    "ScoreBreakdown",
    "NEUTRAL_SCORE",
    "SortOrder",
    "sort_results",
]
