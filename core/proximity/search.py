"""
Proximity Search

Radius cutoff and distance ordering over a candidate listing set:
- Listings without coordinates are excluded (location unknown)
- A listing id appears at most once (first occurrence wins)
- Radius is validated, never clamped
- Ascending distance, ties broken by listing id
"""

import logging
import math
from typing import List, Optional, Sequence

from .distance import distance_miles
from .models import (
    Coordinate,
    InvalidInputError,
    InvalidRadiusError,
    Listing,
    SearchResult,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

# Accepted radius range (miles)
MIN_RADIUS_EXCLUSIVE = 0.0
MAX_RADIUS_MILES = 500.0

# Radius used when the caller does not choose one
DEFAULT_RADIUS_MILES = 5.0


def validate_radius(radius_miles: float, max_radius_miles: float = MAX_RADIUS_MILES) -> float:
    """
    Reject a radius outside (0, max_radius_miles].

    Raises:
        InvalidRadiusError: If the radius is not a finite number in range
    """
    if isinstance(radius_miles, bool) or not isinstance(radius_miles, (int, float)):
        raise InvalidRadiusError(f"radius must be a number, got {radius_miles!r}")
    if not math.isfinite(radius_miles):
        raise InvalidRadiusError(f"radius must be finite, got {radius_miles!r}")
    if radius_miles <= MIN_RADIUS_EXCLUSIVE:
        raise InvalidRadiusError(f"radius must be greater than 0, got {radius_miles}")
    if radius_miles > max_radius_miles:
        raise InvalidRadiusError(
            f"radius must be at most {max_radius_miles:g} miles, got {radius_miles}"
        )
    return float(radius_miles)


class ProximitySearch:
    """
    Finds listings within a radius of an origin.

    Stateless apart from the configured radius ceiling; safe to share
    between threads and requests.
    """

    def __init__(self, max_radius_miles: float = MAX_RADIUS_MILES):
        """
        Initialize search with a radius ceiling.

        Args:
            max_radius_miles: Largest radius accepted by `search`
        """
        if not math.isfinite(max_radius_miles) or max_radius_miles <= 0:
            raise InvalidRadiusError(f"max radius must be positive, got {max_radius_miles}")
        self._max_radius_miles = float(max_radius_miles)

    @property
    def max_radius_miles(self) -> float:
        return self._max_radius_miles

    def search(
        self,
        origin: Coordinate,
        candidates: Sequence[Listing],
        radius_miles: float,
        limit: Optional[int] = None,
    ) -> List[SearchResult]:
        """
        Rank candidates within the radius by distance.

        Args:
            origin: The user's location
            candidates: Listings to consider
            radius_miles: Inclusive cutoff in miles
            limit: Keep only the first N results after ordering

        Returns:
            SearchResults sorted by (distance, listing id)

        Raises:
            InvalidRadiusError: If radius is outside (0, max_radius_miles]
        """
        radius = validate_radius(radius_miles, self._max_radius_miles)
        if limit is not None and limit < 0:
            raise InvalidInputError(f"limit must be non-negative, got {limit}")

        results = []
        seen: set = set()
        skipped = duplicates = 0
        for listing in candidates:
            if listing.id in seen:
                duplicates += 1
                continue
            seen.add(listing.id)
            if listing.coordinates is None:
                skipped += 1
                continue
            distance = distance_miles(origin, listing.coordinates)
            if distance <= radius:
                results.append(SearchResult(listing=listing, distance_miles=distance))

        if skipped:
            logger.debug("Excluded %d listings without coordinates", skipped)
        if duplicates:
            logger.warning("Ignored %d duplicate listing ids", duplicates)

        results.sort(key=lambda r: (r.distance_miles, r.listing.id))

        if limit is not None:
            results = results[:limit]
        return results

    def within(
        self,
        origin: Coordinate,
        candidates: Sequence[Listing],
        radius_miles: float,
    ) -> List[Listing]:
        """Listings within the radius, nearest first, without annotation."""
        return [r.listing for r in self.search(origin, candidates, radius_miles)]
