"""
Recommendation scoring for nearby search results.

Weighted additive model. Each component contributes only when its inputs
are present; an absent criterion adds zero rather than a penalty:

- Distance (25): <= 1 mile 25, <= 3 miles 15, <= 5 miles 5
- Lifestyle overlap (25): share of preferred tags the listing carries
- Walkability (20): listing walkability, when the user set a minimum
- Price proximity (15): closeness to the preferred range midpoint
- Investment potential (15): listing investment score

The sum is rounded half up and clamped to 0-100.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from .models import SearchResult, UserPreferences


# =============================================================================
# Configuration Constants
# =============================================================================

# Distance bands: (upper bound in miles, points on the standard 25-point scale)
DISTANCE_BANDS = (
    (1.0, 25),
    (3.0, 15),
    (5.0, 5),
)
DISTANCE_SCALE = 25

# Score returned when the user has no stored preferences
NEUTRAL_SCORE = 50

MIN_SCORE = 0
MAX_SCORE = 100


@dataclass(frozen=True)
class ScoringWeights:
    """Maximum points per component."""
    distance: float = 25.0
    lifestyle: float = 25.0
    walkability: float = 20.0
    price: float = 15.0
    investment: float = 15.0


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-component points before rounding and clamping."""
    distance: float = 0.0
    lifestyle: Optional[float] = None
    walkability: Optional[float] = None
    price: Optional[float] = None
    investment: Optional[float] = None

    @property
    def raw_total(self) -> float:
        return sum(
            v for v in (
                self.distance, self.lifestyle, self.walkability, self.price, self.investment
            )
            if v is not None
        )

    def to_dict(self) -> dict:
        return {
            "distance": round(self.distance, 2),
            "lifestyle": None if self.lifestyle is None else round(self.lifestyle, 2),
            "walkability": None if self.walkability is None else round(self.walkability, 2),
            "price": None if self.price is None else round(self.price, 2),
            "investment": None if self.investment is None else round(self.investment, 2),
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    """Round and bound a raw total to the 0-100 scale."""
    return max(MIN_SCORE, min(MAX_SCORE, _round_half_up(value)))


class RecommendationScorer:
    """
    Computes a 0-100 match score for a search result.

    Weights default to the standard model; custom weights are accepted
    but the final score stays within 0-100 whatever they are.
    """

    def __init__(self, weights: ScoringWeights = DEFAULT_WEIGHTS):
        self._weights = weights

    @property
    def weights(self) -> ScoringWeights:
        return self._weights

    def score(self, result: SearchResult, prefs: Optional[UserPreferences]) -> int:
        """
        Score a single result.

        Args:
            result: Distance-annotated listing
            prefs: User criteria, or None if never configured

        Returns:
            Integer score in [0, 100]
        """
        if prefs is None:
            return NEUTRAL_SCORE
        return clamp_score(self.breakdown(result, prefs).raw_total)

    def breakdown(self, result: SearchResult, prefs: UserPreferences) -> ScoreBreakdown:
        """Component points for a result, None for components not applicable."""
        listing = result.listing
        w = self._weights

        lifestyle = None
        if prefs.preferred_lifestyle_tags:
            overlap = listing.lifestyle_tags & prefs.preferred_lifestyle_tags
            lifestyle = w.lifestyle * len(overlap) / len(prefs.preferred_lifestyle_tags)

        walkability = None
        if prefs.min_walkability is not None and listing.walkability_score is not None:
            walkability = w.walkability * listing.walkability_score / 100

        price = None
        if prefs.price_range is not None:
            price = w.price * self._price_closeness(listing.price, prefs.price_range.midpoint)

        investment = None
        if listing.investment_score is not None:
            investment = w.investment * listing.investment_score / 100

        return ScoreBreakdown(
            distance=self._distance_points(result.distance_miles),
            lifestyle=lifestyle,
            walkability=walkability,
            price=price,
            investment=investment,
        )

    def rank(
        self,
        results: Sequence[SearchResult],
        prefs: Optional[UserPreferences],
    ) -> List[SearchResult]:
        """
        Score results and order them by fit.

        Returns:
            New SearchResults with match_score set, sorted by score
            descending, then distance, then listing id
        """
        scored = [r.with_score(self.score(r, prefs)) for r in results]
        return sorted(
            scored,
            key=lambda r: (-r.match_score, r.distance_miles, r.listing.id),
        )

    def _distance_points(self, miles: float) -> float:
        for upper, points in DISTANCE_BANDS:
            if miles <= upper:
                return self._weights.distance * points / DISTANCE_SCALE
        return 0.0

    @staticmethod
    def _price_closeness(price: float, midpoint: float) -> float:
        # A 0-0 range has no scale: only a free listing sits on the midpoint
        if midpoint <= 0:
            return 1.0 if price == 0 else 0.0
        return max(0.0, 1 - abs(price - midpoint) / midpoint)


# =============================================================================
# Result Ordering
# =============================================================================


class SortOrder(Enum):
    """How ranked results are presented."""
    SCORE = "score"
    DISTANCE = "distance"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    WALKABILITY = "walkability"
    INVESTMENT = "investment"

    @classmethod
    def from_string(cls, value: str) -> Optional["SortOrder"]:
        """Convert string to SortOrder, case-insensitive. 'price-asc' == 'price_asc'."""
        normalised = value.lower().strip().replace("-", "_")
        for member in cls:
            if member.value == normalised:
                return member
        return None


def sort_results(
    results: Sequence[SearchResult],
    order: SortOrder = SortOrder.SCORE,
) -> List[SearchResult]:
    """
    Order results for display.

    Listings without walkability or investment scores sort after scored
    ones. Every order falls back to distance, then listing id.
    """
    def tail(r: SearchResult):
        return (r.distance_miles, r.listing.id)

    if order == SortOrder.DISTANCE:
        key = tail
    elif order == SortOrder.PRICE_ASC:
        key = lambda r: (r.listing.price, *tail(r))
    elif order == SortOrder.PRICE_DESC:
        key = lambda r: (-r.listing.price, *tail(r))
    elif order == SortOrder.WALKABILITY:
        key = lambda r: (_descending_or_last(r.listing.walkability_score), *tail(r))
    elif order == SortOrder.INVESTMENT:
        key = lambda r: (_descending_or_last(r.listing.investment_score), *tail(r))
    else:
        key = lambda r: (-(r.match_score or 0), *tail(r))
    return sorted(results, key=key)


def _descending_or_last(value: Optional[int]) -> tuple:
    return (1, 0) if value is None else (0, -value)
