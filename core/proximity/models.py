"""
Data models for the Nearby Search engine.

Defines the value types shared by proximity search, preference filtering
and recommendation scoring. All distances are statute miles.
"""

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Iterable, Optional


# =============================================================================
# Errors
# =============================================================================


class InvalidInputError(ValueError):
    """Input rejected at the boundary of the function that received it."""


class InvalidCoordinateError(InvalidInputError):
    """Latitude/longitude missing, non-finite or out of range."""


class InvalidRadiusError(InvalidInputError):
    """Search radius outside the accepted range."""


class InvalidPreferencesError(InvalidInputError):
    """Preference criteria that cannot be satisfied by construction."""


# =============================================================================
# Value Types
# =============================================================================


@dataclass(frozen=True)
class Coordinate:
    """
    A point on the Earth's surface in decimal degrees.

    Validated at construction so the distance calculator never sees
    an out-of-range or non-finite value.
    """
    latitude: float
    longitude: float

    def __post_init__(self):
        for name, value, bound in (
            ("latitude", self.latitude, 90.0),
            ("longitude", self.longitude, 180.0),
        ):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidCoordinateError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise InvalidCoordinateError(f"{name} must be finite, got {value!r}")
            if not -bound <= value <= bound:
                raise InvalidCoordinateError(
                    f"{name} must be between -{bound:g} and {bound:g}, got {value!r}"
                )

    @classmethod
    def parse(cls, latitude, longitude) -> Optional["Coordinate"]:
        """
        Build a Coordinate from loosely typed values.

        Returns None when either value is missing, not numeric, non-finite
        or out of range. Used at store boundaries where a bad coordinate
        means "location unknown", not an error.
        """
        if latitude is None or longitude is None:
            return None
        try:
            return cls(float(latitude), float(longitude))
        except (TypeError, ValueError):
            return None

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


class ListingKind(Enum):
    """Whether a listing is let monthly or sold once."""
    RENT = "rent"
    SALE = "sale"

    @classmethod
    def from_string(cls, value: str) -> Optional["ListingKind"]:
        """Convert string to ListingKind, case-insensitive. 'buy' means SALE."""
        normalised = value.lower().strip()
        if normalised == "buy":
            return cls.SALE
        for member in cls:
            if member.value == normalised:
                return member
        return None


def _normalise_tags(tags: Iterable[str]) -> FrozenSet[str]:
    return frozenset(t.strip().casefold() for t in tags if t and t.strip())


def _check_score(name: str, value: Optional[int]) -> None:
    if value is not None and not 0 <= value <= 100:
        raise InvalidInputError(f"{name} must be between 0 and 100, got {value}")


@dataclass(frozen=True)
class Listing:
    """
    The searchable unit.

    `coordinates` is None when the listing has not been geocoded; such a
    listing never takes part in distance-based results.
    """
    # Required fields
    id: str
    price: float  # Per month if RENT, one-time if SALE
    listing_kind: ListingKind
    bedrooms: Optional[int]  # None when the record does not say
    coordinates: Optional[Coordinate] = None

    # Lifestyle data (0-100 where present)
    lifestyle_tags: FrozenSet[str] = field(default_factory=frozenset)
    walkability_score: Optional[int] = None
    transit_score: Optional[int] = None
    noise_level: Optional[int] = None  # 0 = quiet, 100 = very noisy
    investment_score: Optional[int] = None

    # Descriptive
    title: str = ""
    property_type: str = ""  # house, apartment, condo, townhouse
    address: str = ""
    city: str = ""
    postcode: str = ""

    def __post_init__(self):
        if not self.id:
            raise InvalidInputError("id is required")
        if isinstance(self.price, bool) or not isinstance(self.price, (int, float)):
            raise InvalidInputError(f"price must be a number, got {self.price!r}")
        if not math.isfinite(self.price) or self.price < 0:
            raise InvalidInputError(f"price must be finite and non-negative, got {self.price}")
        if self.bedrooms is not None and self.bedrooms < 0:
            raise InvalidInputError(f"bedrooms must be non-negative, got {self.bedrooms}")
        _check_score("walkability_score", self.walkability_score)
        _check_score("transit_score", self.transit_score)
        _check_score("noise_level", self.noise_level)
        _check_score("investment_score", self.investment_score)
        # Frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "lifestyle_tags", _normalise_tags(self.lifestyle_tags))

    @property
    def has_location(self) -> bool:
        return self.coordinates is not None

    @property
    def location_label(self) -> str:
        """Address and city for display, or a placeholder."""
        parts = [p for p in (self.address, self.city) if p]
        return ", ".join(parts) if parts else "Location not specified"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "id": self.id,
            "title": self.title,
            "price": self.price,
            "listing_kind": self.listing_kind.value,
            "property_type": self.property_type,
            "bedrooms": self.bedrooms,
            "coordinates": self.coordinates.to_dict() if self.coordinates else None,
            "address": self.address,
            "city": self.city,
            "postcode": self.postcode,
            "lifestyle_tags": sorted(self.lifestyle_tags),
            "walkability_score": self.walkability_score,
            "transit_score": self.transit_score,
            "noise_level": self.noise_level,
            "investment_score": self.investment_score,
        }


@dataclass(frozen=True)
class PriceRange:
    """Inclusive price bounds."""
    minimum: float
    maximum: float

    def __post_init__(self):
        if self.minimum < 0 or self.maximum < 0:
            raise InvalidPreferencesError("price range bounds must be non-negative")
        if self.minimum > self.maximum:
            raise InvalidPreferencesError(
                f"price range minimum {self.minimum} exceeds maximum {self.maximum}"
            )

    @property
    def midpoint(self) -> float:
        return (self.minimum + self.maximum) / 2

    def contains(self, price: float) -> bool:
        return self.minimum <= price <= self.maximum


@dataclass(frozen=True)
class UserPreferences:
    """
    Criteria used to filter and score listings.

    Every empty set or None field means "no constraint" on that dimension.
    """
    price_range: Optional[PriceRange] = None
    bedroom_counts: FrozenSet[int] = field(default_factory=frozenset)
    property_types: FrozenSet[str] = field(default_factory=frozenset)
    max_noise_level: Optional[int] = None
    min_walkability: Optional[int] = None
    preferred_lifestyle_tags: FrozenSet[str] = field(default_factory=frozenset)
    min_transit_score: Optional[int] = None
    cities: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        if any(b < 0 for b in self.bedroom_counts):
            raise InvalidPreferencesError("bedroom counts must be non-negative")
        for name in ("max_noise_level", "min_walkability", "min_transit_score"):
            value = getattr(self, name)
            if value is not None and not 0 <= value <= 100:
                raise InvalidPreferencesError(f"{name} must be between 0 and 100, got {value}")
        object.__setattr__(self, "bedroom_counts", frozenset(self.bedroom_counts))
        object.__setattr__(self, "property_types", _normalise_tags(self.property_types))
        object.__setattr__(
            self, "preferred_lifestyle_tags", _normalise_tags(self.preferred_lifestyle_tags)
        )
        object.__setattr__(self, "cities", _normalise_tags(self.cities))

    @property
    def is_empty(self) -> bool:
        """True when no criterion is specified."""
        return (
            self.price_range is None
            and not self.bedroom_counts
            and not self.property_types
            and self.max_noise_level is None
            and self.min_walkability is None
            and not self.preferred_lifestyle_tags
            and self.min_transit_score is None
            and not self.cities
        )

    def with_price_range(self, price_range: Optional[PriceRange]) -> "UserPreferences":
        """Copy with the price criterion replaced (e.g. by an affordability ceiling)."""
        return replace(self, price_range=price_range)


@dataclass(frozen=True)
class SearchResult:
    """
    A listing annotated with its distance from the search origin.

    Created fresh for every search and never mutated; scoring produces
    a new instance through `with_score`.
    """
    listing: Listing
    distance_miles: float
    match_score: Optional[int] = None

    def with_score(self, score: int) -> "SearchResult":
        return replace(self, match_score=score)

    def to_dict(self) -> dict:
        return {
            "listing": self.listing.to_dict(),
            "distance_miles": round(self.distance_miles, 3),
            "match_score": self.match_score,
        }
