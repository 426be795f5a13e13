"""
Preference Filters

Applies a user's stored criteria to a candidate set:
- Price range (inclusive on both ends)
- Bedroom count (membership)
- Property type (listing kind or dwelling type)
- Noise ceiling, walkability and transit floors (missing scores never disqualify)
- Lifestyle tags (any overlap)
- City (membership, case-insensitive)

A candidate must pass ALL specified criteria. Unspecified criteria
impose no constraint.
"""

from typing import Callable, List, Optional, Sequence, TypeVar, Union

from .models import Listing, SearchResult, UserPreferences


Candidate = TypeVar("Candidate", Listing, SearchResult)

Predicate = Callable[[Listing], bool]


def _listing_of(candidate: Union[Listing, SearchResult]) -> Listing:
    if isinstance(candidate, SearchResult):
        return candidate.listing
    return candidate


class PreferenceFilter:
    """
    Narrows listings or search results to those matching UserPreferences.

    Output preserves input order and shape: listings in, listings out;
    search results in, search results out.
    """

    def filter(
        self,
        candidates: Sequence[Candidate],
        prefs: Optional[UserPreferences],
    ) -> List[Candidate]:
        """
        Keep candidates satisfying every specified criterion.

        Args:
            candidates: Listings or SearchResults
            prefs: Criteria, or None when the user has never set any

        Returns:
            Subset of candidates in their original order
        """
        if prefs is None:
            return list(candidates)

        predicates = self.predicates_for(prefs)
        if not predicates:
            return list(candidates)

        return [
            c for c in candidates
            if all(p(_listing_of(c)) for p in predicates)
        ]

    def matches(self, listing: Listing, prefs: Optional[UserPreferences]) -> bool:
        """Whether a single listing satisfies the preferences."""
        if prefs is None:
            return True
        return all(p(listing) for p in self.predicates_for(prefs))

    def predicates_for(self, prefs: UserPreferences) -> List[Predicate]:
        """One predicate per specified criterion."""
        predicates: List[Predicate] = []

        if prefs.price_range is not None:
            price_range = prefs.price_range
            predicates.append(lambda l: price_range.contains(l.price))

        if prefs.bedroom_counts:
            # Unknown bedroom count never matches an explicit count
            predicates.append(
                lambda l: l.bedrooms is not None and l.bedrooms in prefs.bedroom_counts
            )

        if prefs.property_types:
            predicates.append(lambda l: self._matches_type(l, prefs.property_types))

        if prefs.max_noise_level is not None:
            ceiling = prefs.max_noise_level
            predicates.append(lambda l: l.noise_level is None or l.noise_level <= ceiling)

        if prefs.min_walkability is not None:
            floor_ = prefs.min_walkability
            predicates.append(
                lambda l: l.walkability_score is None or l.walkability_score >= floor_
            )

        if prefs.min_transit_score is not None:
            transit_floor = prefs.min_transit_score
            predicates.append(
                lambda l: l.transit_score is None or l.transit_score >= transit_floor
            )

        if prefs.preferred_lifestyle_tags:
            predicates.append(
                lambda l: not l.lifestyle_tags.isdisjoint(prefs.preferred_lifestyle_tags)
            )

        if prefs.cities:
            predicates.append(lambda l: l.city.strip().casefold() in prefs.cities)

        return predicates

    @staticmethod
    def _matches_type(listing: Listing, accepted) -> bool:
        if listing.listing_kind.value in accepted:
            return True
        return bool(listing.property_type) and listing.property_type.casefold() in accepted
