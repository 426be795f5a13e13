"""
Nearby Search Engine - Core Business Logic

This module provides the nearby search pipeline:
1. Origin resolution (request, location provider, last known fix)
2. Listing store normalisation (Supabase / JSON)
3. Radius search (haversine, miles)
4. Preference filtering (AND across criteria)
5. Recommendation scoring & ranking (0-100)
6. Proximity alerts

plus the affordability calculator that feeds the price criterion.
"""

from .proximity import (
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
    ProximitySearch,
    PreferenceFilter,
    RecommendationScorer,
    ScoringWeights,
    SortOrder,
    sort_results,
    distance_miles,
    describe_distance,
    coverage_area_sq_miles,
)

# Affordability
from .affordability import (
    AffordabilityEngine,
    AffordabilityMode,
    BuyAffordability,
    CreditTier,
    FinancialProfile,
    IncomeType,
    InvalidFinancialProfileError,
    RentAffordability,
)

# Collaborators
from .location import (
    FixedLocationProvider,
    LastKnownLocation,
    LastKnownLocations,
    LocationError,
    LocationPermissionDenied,
    LocationTimeout,
    LocationUnavailable,
)
from .alerts import (
    NotifiedListings,
    NotifiedListingsByUser,
    ProximityAlert,
    collect_proximity_alerts,
)
from .repository import ListingStoreError

# Nearby pipeline
from .nearby import NearbySearchService, NearbySearchOutcome, LocationMatch

__all__ = [
    # Proximity engine
    "Coordinate",
    "Listing",
    "ListingKind",
    "PriceRange",
    "UserPreferences",
    "SearchResult",
    "InvalidInputError",
    "InvalidCoordinateError",
    "InvalidRadiusError",
    "InvalidPreferencesError",
    "ProximitySearch",
    "PreferenceFilter",
    "RecommendationScorer",
    "ScoringWeights",
    "SortOrder",
    "sort_results",
    "distance_miles",
    "describe_distance",
    "coverage_area_sq_miles",
    # Affordability
    "AffordabilityEngine",
    "AffordabilityMode",
    "BuyAffordability",
    "CreditTier",
    "FinancialProfile",
    "IncomeType",
    "InvalidFinancialProfileError",
    "RentAffordability",
    # Collaborators
    "FixedLocationProvider",
    "LastKnownLocation",
    "LastKnownLocations",
    "LocationError",
    "LocationPermissionDenied",
    "LocationTimeout",
    "LocationUnavailable",
    "NotifiedListings",
    "NotifiedListingsByUser",
    "ProximityAlert",
    "collect_proximity_alerts",
    "ListingStoreError",
    # Nearby pipeline
    "NearbySearchService",
    "NearbySearchOutcome",
    "LocationMatch",
]
