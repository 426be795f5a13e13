"""
Nearby Search Service - Integrated Proximity Pipeline

Wires the proximity engine to its collaborators:
origin resolution -> listing store -> radius search -> preference filter
-> recommendation ranking -> proximity alerts.

The engine itself stays pure; every piece of state (stores, cached
location, alert history) is injected here and keyed by user.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from .alerts import (
    NotifiedListings,
    NotifiedListingsByUser,
    ProximityAlert,
    collect_proximity_alerts,
)
from .location import LastKnownLocation, LastKnownLocations, LocationError, LocationProvider
from .proximity import (
    Coordinate,
    InvalidInputError,
    Listing,
    PreferenceFilter,
    PriceRange,
    ProximitySearch,
    RecommendationScorer,
    SearchResult,
    UserPreferences,
    SortOrder,
    sort_results,
    coverage_area_sq_miles,
    describe_distance,
    distance_miles,
    validate_radius,
    DEFAULT_RADIUS_MILES,
    MAX_RADIUS_MILES,
)
from .repository import ListingRepository, PreferenceRepository


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

# Location text search returns at most this many matches
LOCATION_SEARCH_LIMIT = 10

# Where the search origin came from
ORIGIN_REQUEST = "request"
ORIGIN_PROVIDER = "provider"
ORIGIN_LAST_KNOWN = "last_known"


@dataclass
class NearbySearchOutcome:
    """
    Result of one nearby search.

    `origin` is None when no location could be resolved; `results` is then
    empty and `location_error` carries the user-facing reason.
    """
    origin: Optional[Coordinate]
    radius_miles: float
    results: List[SearchResult] = field(default_factory=list)
    alerts: List[ProximityAlert] = field(default_factory=list)
    origin_source: Optional[str] = None
    location_error: Optional[str] = None
    preferences_applied: bool = False

    @property
    def distance_context(self) -> str:
        return describe_distance(self.radius_miles)

    @property
    def coverage_area_sq_miles(self) -> float:
        return coverage_area_sq_miles(self.radius_miles)

    @property
    def total_results(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict:
        return {
            "origin": self.origin.to_dict() if self.origin else None,
            "origin_source": self.origin_source,
            "location_error": self.location_error,
            "radius_miles": self.radius_miles,
            "distance_context": self.distance_context,
            "coverage_area_sq_miles": round(self.coverage_area_sq_miles, 1),
            "preferences_applied": self.preferences_applied,
            "total_results": self.total_results,
            "results": [r.to_dict() for r in self.results],
            "alerts": [a.to_dict() for a in self.alerts],
        }


@dataclass(frozen=True)
class LocationMatch:
    """A text-search hit; distance is None when either end has no location."""
    listing: Listing
    distance_miles: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "listing": self.listing.to_dict(),
            "distance_miles": (
                None if self.distance_miles is None else round(self.distance_miles, 3)
            ),
        }


class NearbySearchService:
    """
    Nearby search pipeline over injected stores and location sources.

    Cached location fixes and alert history are kept per user; a request
    without a user id neither reads nor writes them.

    Usage:
        service = NearbySearchService(JsonListingRepository("listings.json"))
        outcome = service.nearby(origin=Coordinate(51.5074, -0.1278), radius_miles=2)
    """

    def __init__(
        self,
        listing_repository: ListingRepository,
        preference_repository: Optional[PreferenceRepository] = None,
        location_provider: Optional[LocationProvider] = None,
        last_known_locations: Optional[LastKnownLocations] = None,
        notified_listings: Optional[NotifiedListingsByUser] = None,
        scorer: Optional[RecommendationScorer] = None,
        default_radius_miles: float = DEFAULT_RADIUS_MILES,
        max_radius_miles: float = MAX_RADIUS_MILES,
    ):
        self.listings = listing_repository
        self.preferences = preference_repository
        self.location_provider = location_provider
        self.last_known = LastKnownLocations() if last_known_locations is None else last_known_locations
        self.notified = NotifiedListingsByUser() if notified_listings is None else notified_listings
        self.search = ProximitySearch(max_radius_miles)
        self.filter = PreferenceFilter()
        self.scorer = RecommendationScorer() if scorer is None else scorer
        self.default_radius_miles = validate_radius(default_radius_miles, max_radius_miles)

    def last_known_for(self, user_id: Optional[str]) -> Optional[LastKnownLocation]:
        """The user's location cache; anonymous callers have none."""
        if not user_id:
            return None
        return self.last_known.for_user(user_id)

    def resolve_origin(
        self,
        origin: Optional[Coordinate] = None,
        user_id: Optional[str] = None,
    ) -> tuple[Optional[Coordinate], Optional[str], Optional[str]]:
        """
        Pick the search origin.

        Order: explicit coordinate, then the location provider, then the
        user's own cached fix. A resolved origin is cached for that user.

        Returns:
            (origin, source, error message); origin is None if nothing resolved
        """
        cache = self.last_known_for(user_id)

        if origin is not None:
            if cache is not None:
                cache.set(origin)
            return origin, ORIGIN_REQUEST, None

        error = None
        if self.location_provider is not None:
            try:
                fix = self.location_provider.current()
            except LocationError as e:
                logger.info("Location provider failed: %s", e.user_message)
                error = e.user_message
            else:
                if cache is not None:
                    cache.set(fix)
                return fix, ORIGIN_PROVIDER, None

        cached = cache.get() if cache is not None else None
        if cached is not None:
            return cached, ORIGIN_LAST_KNOWN, None

        return None, None, error or "Location not available"

    def load_preferences(self, user_id: Optional[str]) -> Optional[UserPreferences]:
        if not user_id or self.preferences is None:
            return None
        return self.preferences.get(user_id)

    def nearby(
        self,
        origin: Optional[Coordinate] = None,
        radius_miles: Optional[float] = None,
        user_id: Optional[str] = None,
        preferences: Optional[UserPreferences] = None,
        price_range: Optional[PriceRange] = None,
        limit: Optional[int] = None,
        alerts: bool = False,
        sort: SortOrder = SortOrder.SCORE,
    ) -> NearbySearchOutcome:
        """
        Run the nearby pipeline.

        Args:
            origin: Explicit search origin (else provider / user's last known)
            radius_miles: Search radius (default: configured default)
            user_id: Owner of the stored preferences, location and alerts
            preferences: Explicit preferences, taking precedence over stored ones
            price_range: Replaces the preference price criterion (affordability)
            limit: Keep only the first N results after ordering
            alerts: Raise proximity alerts for very close listings
            sort: Result order; match score by default

        Returns:
            NearbySearchOutcome

        Raises:
            InvalidRadiusError: If the radius is outside the accepted range
            InvalidInputError: If the limit is negative or the user id unsafe
            ListingStoreError: If the listing or preference store failed
        """
        radius = validate_radius(
            self.default_radius_miles if radius_miles is None else radius_miles,
            self.search.max_radius_miles,
        )
        if limit is not None and limit < 0:
            raise InvalidInputError(f"limit must be non-negative, got {limit}")

        resolved, source, error = self.resolve_origin(origin, user_id)
        if resolved is None:
            return NearbySearchOutcome(
                origin=None, radius_miles=radius, location_error=error,
            )

        prefs = preferences if preferences is not None else self.load_preferences(user_id)
        if price_range is not None:
            prefs = (prefs or UserPreferences()).with_price_range(price_range)

        candidates = self.listings.list_listings()
        in_range = self.search.search(resolved, candidates, radius)
        matching = self.filter.filter(in_range, prefs)
        ranked = self.scorer.rank(matching, prefs)
        if sort != SortOrder.SCORE:
            ranked = sort_results(ranked, sort)
        if limit is not None:
            ranked = ranked[:limit]

        logger.info(
            "Nearby search: %d candidates, %d in %.1f mi, %d after filtering",
            len(candidates), len(in_range), radius, len(matching),
        )

        raised = []
        if alerts:
            # Anonymous callers have no history, so every close listing alerts
            notified = self.notified.for_user(user_id) if user_id else NotifiedListings()
            raised = collect_proximity_alerts(ranked, notified)

        return NearbySearchOutcome(
            origin=resolved,
            radius_miles=radius,
            results=ranked,
            alerts=raised,
            origin_source=source,
            preferences_applied=prefs is not None and not prefs.is_empty,
        )

    def location_search(
        self,
        query: str,
        origin: Optional[Coordinate] = None,
        limit: int = LOCATION_SEARCH_LIMIT,
        user_id: Optional[str] = None,
    ) -> List[LocationMatch]:
        """
        Find listings whose title or address contains the query.

        With an origin (explicit or the user's last known) matches are
        ordered by distance, listings without coordinates last; otherwise
        store order.
        """
        if limit < 0:
            raise InvalidInputError(f"limit must be non-negative, got {limit}")
        needle = (query or "").strip().casefold()
        if not needle:
            return []

        if origin is None:
            cache = self.last_known_for(user_id)
            origin = cache.get() if cache is not None else None

        matches = []
        for listing in self.listings.list_listings():
            haystack = (listing.title, listing.address, listing.city, listing.postcode)
            if not any(needle in field_.casefold() for field_ in haystack if field_):
                continue
            distance = None
            if origin is not None and listing.coordinates is not None:
                distance = distance_miles(origin, listing.coordinates)
            matches.append(LocationMatch(listing=listing, distance_miles=distance))

        if origin is not None:
            matches.sort(key=lambda m: (
                math.inf if m.distance_miles is None else m.distance_miles,
                m.listing.id,
            ))
        return matches[:limit]
