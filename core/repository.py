"""
Listing and preference stores

Adapters over the hosted Postgres backend (Supabase) and local JSON files.
Every legacy record shape is normalised here, at the store boundary, so the
proximity engine only ever sees canonical Listing / UserPreferences values:

- `location` as a plain address string or as a structured object
- coordinates as `latitude`/`longitude` columns, a `coordinates` object
  (`lat`/`lng` or `latitude`/`longitude`) or nested under `location`
- listing type spelt rent/lease/sale/buy, under several keys
- lifestyle scores flat or nested under `lifestyleScores`
- noise level as a number or a word (quiet / moderate / noisy)

A record without usable coordinates keeps `coordinates=None`; it is never
placed at (0, 0).
"""

from __future__ import annotations

import json
import logging
import math
import re
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol, Sequence

from supabase import Client, create_client

from core.proximity.models import (
    Coordinate,
    InvalidInputError,
    Listing,
    ListingKind,
    PriceRange,
    UserPreferences,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

PROPERTIES_TABLE = "properties"
PREFERENCES_TABLE = "user_preferences"

# Word noise levels mapped onto the 0-100 scale
NOISE_WORDS = (
    ("quiet", 25),
    ("moderate", 50),
    ("noisy", 75),
    ("busy", 75),
)

# Boolean amenity columns surfaced as lifestyle tags
AMENITY_TAGS = {
    "near_park": "near park",
    "near_school": "near school",
}

_SAFE_USER_ID = re.compile(r"[A-Za-z0-9_.@-]+")


class ListingStoreError(Exception):
    """The listing or preference store could not be read."""


def validate_user_id(user_id: Optional[str]) -> str:
    """
    Check a user id is safe to use as a file name.

    Raises:
        InvalidInputError: If the id is empty or holds path characters
    """
    if not _SAFE_USER_ID.fullmatch(user_id or ""):
        raise InvalidInputError(f"Invalid user id: {user_id!r}")
    return user_id


# =============================================================================
# Field Coercion
# =============================================================================


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _as_int(value: Any) -> Optional[int]:
    number = _as_float(value)
    if number is None:
        return None
    return int(number)


def _as_score(value: Any) -> Optional[int]:
    """0-100 score, or None when missing or out of range."""
    score = _as_int(value)
    if score is None or not 0 <= score <= 100:
        return None
    return score


def _noise_level(value: Any) -> Optional[int]:
    if isinstance(value, str):
        lowered = value.lower()
        for word, level in NOISE_WORDS:
            if word in lowered:
                return level
    return _as_score(value)


def _listing_kind(row: dict[str, Any]) -> ListingKind:
    """Rent unless a type field says otherwise, as the marketplace stores it."""
    for key in ("listing_kind", "listingType", "listing_type", "type", "property_type"):
        value = row.get(key)
        if not isinstance(value, str) or not value.strip():
            continue
        lowered = value.lower()
        if "rent" in lowered or "lease" in lowered:
            return ListingKind.RENT
        if "sale" in lowered or "buy" in lowered:
            return ListingKind.SALE
    return ListingKind.RENT


def _dwelling_type(row: dict[str, Any]) -> str:
    """Dwelling type (house, apartment, ...) when the type field holds one."""
    for key in ("dwelling_type", "propertyType", "type", "property_type"):
        value = row.get(key)
        if isinstance(value, str) and value.strip():
            lowered = value.strip().lower()
            if not any(word in lowered for word in ("rent", "lease", "sale", "buy")):
                return lowered
    return ""


def _coordinates(row: dict[str, Any]) -> Optional[Coordinate]:
    candidates: list[Any] = [row.get("coordinates")]
    location = row.get("location")
    if isinstance(location, dict):
        candidates.append(location.get("coordinates"))

    for coords in candidates:
        if isinstance(coords, dict):
            parsed = Coordinate.parse(
                coords.get("lat", coords.get("latitude")),
                coords.get("lng", coords.get("longitude")),
            )
            if parsed is not None:
                return parsed

    return Coordinate.parse(row.get("latitude"), row.get("longitude"))


def _address_parts(row: dict[str, Any]) -> tuple[str, str, str]:
    location = row.get("location")
    if isinstance(location, dict):
        address = location.get("address") or ""
        city = location.get("city") or row.get("city") or ""
        postcode = location.get("postcode") or row.get("postcode") or ""
    else:
        address = location if isinstance(location, str) else (row.get("address") or "")
        city = row.get("city") or ""
        postcode = row.get("postcode") or ""
    return str(address).strip(), str(city).strip(), str(postcode).strip()


def _lifestyle_tags(row: dict[str, Any]) -> set[str]:
    tags: set[str] = set()
    for key in ("lifestyle_tags", "lifestyleTags"):
        value = row.get(key)
        if isinstance(value, (list, tuple, set)):
            tags.update(str(t) for t in value if t)

    vibe = row.get("neighborhoodVibe")
    if isinstance(vibe, dict) and isinstance(vibe.get("tags"), list):
        tags.update(str(t) for t in vibe["tags"] if t)

    for column, tag in AMENITY_TAGS.items():
        if row.get(column) is True:
            tags.add(tag)
    return tags


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


# =============================================================================
# Record -> Domain
# =============================================================================


def listing_from_record(row: dict[str, Any]) -> Optional[Listing]:
    """
    Normalise a stored listing record.

    Args:
        row: Database row or JSON object in any supported shape

    Returns:
        Listing, or None if the record lacks an id or a valid price, or
        carries an unusable bedroom count
        (rejection is logged)
    """
    listing_id = row.get("id")
    if listing_id is None or str(listing_id).strip() == "":
        logger.warning("Rejected listing record without id")
        return None
    listing_id = str(listing_id)

    price = _as_float(row.get("price"))
    if price is None or price < 0:
        logger.warning("Rejected listing %s: invalid price %r", listing_id, row.get("price"))
        return None

    # Missing bedrooms stay unknown; a present but unusable count rejects the record
    raw_bedrooms = row.get("bedrooms")
    bedrooms = _as_int(raw_bedrooms)
    if raw_bedrooms is not None and (bedrooms is None or bedrooms < 0):
        logger.warning("Rejected listing %s: invalid bedrooms %r", listing_id, raw_bedrooms)
        return None

    scores = row.get("lifestyleScores") if isinstance(row.get("lifestyleScores"), dict) else {}
    vibe = row.get("neighborhoodVibe") if isinstance(row.get("neighborhoodVibe"), dict) else {}
    address, city, postcode = _address_parts(row)

    coordinates = _coordinates(row)
    if coordinates is None:
        logger.debug("Listing %s has no usable coordinates", listing_id)

    try:
        return Listing(
            id=listing_id,
            price=price,
            listing_kind=_listing_kind(row),
            bedrooms=bedrooms,
            coordinates=coordinates,
            lifestyle_tags=frozenset(_lifestyle_tags(row)),
            walkability_score=_as_score(_first_present(
                row.get("walkability_score"), row.get("walkability"), scores.get("walkScore"),
            )),
            transit_score=_as_score(_first_present(
                row.get("transit_score"), row.get("transitScore"), scores.get("transitScore"),
            )),
            noise_level=_noise_level(_first_present(
                row.get("noise_level"), row.get("noiseLevel"), vibe.get("noiseLevel"),
            )),
            investment_score=_as_score(_first_present(
                row.get("investment_score"), row.get("investmentScore"),
            )),
            title=str(row.get("title") or "").strip(),
            property_type=_dwelling_type(row),
            address=address,
            city=city,
            postcode=postcode,
        )
    except InvalidInputError as e:
        logger.warning("Rejected listing %s: %s", listing_id, e)
        return None


def listings_from_records(rows: Iterable[dict[str, Any]]) -> list[Listing]:
    """Normalise many records, dropping rejected ones and repeated ids."""
    listings = []
    seen: set[str] = set()
    for row in rows:
        if not isinstance(row, dict):
            logger.warning("Rejected non-object listing record: %r", type(row).__name__)
            continue
        listing = listing_from_record(row)
        if listing is None:
            continue
        if listing.id in seen:
            logger.warning("Dropped duplicate listing record %s", listing.id)
            continue
        seen.add(listing.id)
        listings.append(listing)
    return listings


def preferences_from_record(doc: dict[str, Any]) -> UserPreferences:
    """
    Normalise a stored preferences document.

    Accepts the marketplace shape (`priceRange: [min, max]`, `bedrooms`,
    `propertyTypes`, `city`,
    `lifestyle.{maxNoiseLevel,minWalkability,minTransitScore,preferredVibes}`)
    and the canonical snake_case shape written by `preferences_to_record`.

    Raises:
        InvalidPreferencesError: If the document holds contradictory criteria
    """
    lifestyle = doc.get("lifestyle") if isinstance(doc.get("lifestyle"), dict) else {}

    price_range = None
    raw_range = _first_present(doc.get("price_range"), doc.get("priceRange"))
    if isinstance(raw_range, (list, tuple)) and len(raw_range) == 2:
        low, high = _as_float(raw_range[0]), _as_float(raw_range[1])
    elif isinstance(raw_range, dict):
        low, high = _as_float(raw_range.get("min")), _as_float(raw_range.get("max"))
    else:
        low = high = None
    if low is not None and high is not None:
        price_range = PriceRange(low, high)

    raw_bedrooms = _first_present(doc.get("bedroom_counts"), doc.get("bedrooms"))
    if isinstance(raw_bedrooms, (list, tuple, set)):
        bedroom_counts = {b for b in (_as_int(v) for v in raw_bedrooms) if b is not None}
    elif _as_int(raw_bedrooms) is not None:
        bedroom_counts = {_as_int(raw_bedrooms)}
    else:
        bedroom_counts = set()

    raw_types = _first_present(
        doc.get("property_types"), doc.get("propertyTypes"), doc.get("propertyType"),
    )
    property_types = {str(t) for t in raw_types or [] if t} if isinstance(raw_types, (list, tuple, set)) else set()

    raw_tags = _first_present(
        doc.get("preferred_lifestyle_tags"), lifestyle.get("preferredVibes"),
    )
    tags = {str(t) for t in raw_tags or [] if t} if isinstance(raw_tags, (list, tuple, set)) else set()

    raw_cities = _first_present(doc.get("cities"), doc.get("city"))
    if isinstance(raw_cities, str):
        raw_cities = [raw_cities]
    cities = {str(c) for c in raw_cities or [] if c} if isinstance(raw_cities, (list, tuple, set)) else set()

    return UserPreferences(
        price_range=price_range,
        bedroom_counts=frozenset(bedroom_counts),
        property_types=frozenset(property_types),
        max_noise_level=_as_int(_first_present(
            doc.get("max_noise_level"), lifestyle.get("maxNoiseLevel"),
        )),
        min_walkability=_as_int(_first_present(
            doc.get("min_walkability"), lifestyle.get("minWalkability"),
        )),
        preferred_lifestyle_tags=frozenset(tags),
        min_transit_score=_as_int(_first_present(
            doc.get("min_transit_score"), doc.get("minTransitScore"),
            lifestyle.get("minTransitScore"),
        )),
        cities=frozenset(cities),
    )


def preferences_to_record(prefs: UserPreferences) -> dict[str, Any]:
    """Canonical document form of UserPreferences."""
    return {
        "price_range": (
            [prefs.price_range.minimum, prefs.price_range.maximum]
            if prefs.price_range else None
        ),
        "bedroom_counts": sorted(prefs.bedroom_counts),
        "property_types": sorted(prefs.property_types),
        "max_noise_level": prefs.max_noise_level,
        "min_walkability": prefs.min_walkability,
        "preferred_lifestyle_tags": sorted(prefs.preferred_lifestyle_tags),
        "min_transit_score": prefs.min_transit_score,
        "cities": sorted(prefs.cities),
    }


# =============================================================================
# Store Interfaces
# =============================================================================


class ListingRepository(Protocol):
    def list_listings(self) -> list[Listing]:
        """All searchable listings. Raises ListingStoreError on failure."""
        ...


class PreferenceRepository(Protocol):
    def get(self, user_id: str) -> Optional[UserPreferences]:
        """Stored preferences, or None if the user never set any."""
        ...


# =============================================================================
# In-memory / JSON Stores
# =============================================================================


class StaticListingRepository:
    """Listing store over an already-loaded sequence."""

    def __init__(self, listings: Sequence[Listing]):
        self._listings = list(listings)

    def list_listings(self) -> list[Listing]:
        return list(self._listings)


class JsonListingRepository:
    """
    Listing store backed by a JSON file.

    The file holds either a list of records or {"listings": [...]}.
    A missing file is an empty store.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def list_listings(self) -> list[Listing]:
        if not self._path.exists():
            logger.info("Listings file %s not found; store is empty", self._path)
            return []
        try:
            data = json.loads(self._path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            raise ListingStoreError(f"Could not read listings from {self._path}: {e}") from e

        records = data.get("listings", []) if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise ListingStoreError(f"Listings file {self._path} does not hold a list")
        return listings_from_records(records)


class JsonPreferenceRepository:
    """Preference store with one JSON document per user under a directory."""

    def __init__(self, directory: str | Path):
        self._directory = Path(directory)

    def _path_for(self, user_id: str) -> Path:
        return self._directory / f"{validate_user_id(user_id)}.json"

    def get(self, user_id: str) -> Optional[UserPreferences]:
        path = self._path_for(user_id)
        if not path.exists():
            return None
        try:
            doc = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            raise ListingStoreError(f"Could not read preferences for {user_id}: {e}") from e
        if not isinstance(doc, dict):
            raise ListingStoreError(f"Preferences for {user_id} are not an object")
        return preferences_from_record(doc)

    def save(self, user_id: str, prefs: UserPreferences) -> None:
        path = self._path_for(user_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(preferences_to_record(prefs), indent=2))


# =============================================================================
# Supabase Stores
# =============================================================================


def create_supabase_client(url: Optional[str], key: Optional[str]) -> Client:
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required.")
    return create_client(url, key)


class SupabaseListingRepository:
    """Listing store over the marketplace `properties` table."""

    def __init__(
        self,
        url: Optional[str] = None,
        service_role_key: Optional[str] = None,
        client: Optional[Client] = None,
    ) -> None:
        self.client = client or create_supabase_client(url, service_role_key)

    def list_listings(self) -> list[Listing]:
        try:
            rows = self.client.table(PROPERTIES_TABLE).select("*").execute().data or []
        except Exception as exc:
            raise ListingStoreError(f"Could not fetch {PROPERTIES_TABLE}: {exc}") from exc
        return listings_from_records(rows)

    def get_listing(self, listing_id: str) -> Optional[Listing]:
        try:
            rows = (
                self.client.table(PROPERTIES_TABLE)
                .select("*")
                .eq("id", listing_id)
                .limit(1)
                .execute()
                .data
                or []
            )
        except Exception as exc:
            raise ListingStoreError(f"Could not fetch listing {listing_id}: {exc}") from exc
        return listing_from_record(rows[0]) if rows else None


class SupabasePreferenceRepository:
    """Preference store over the `user_preferences` table (one JSON column per user)."""

    def __init__(
        self,
        url: Optional[str] = None,
        service_role_key: Optional[str] = None,
        client: Optional[Client] = None,
    ) -> None:
        self.client = client or create_supabase_client(url, service_role_key)

    def get(self, user_id: str) -> Optional[UserPreferences]:
        try:
            rows = (
                self.client.table(PREFERENCES_TABLE)
                .select("preferences")
                .eq("user_id", user_id)
                .limit(1)
                .execute()
                .data
                or []
            )
        except Exception as exc:
            raise ListingStoreError(f"Could not fetch preferences for {user_id}: {exc}") from exc
        if not rows or not isinstance(rows[0].get("preferences"), dict):
            return None
        return preferences_from_record(rows[0]["preferences"])

    def save(self, user_id: str, prefs: UserPreferences) -> None:
        self.client.table(PREFERENCES_TABLE).upsert(
            {"user_id": user_id, "preferences": preferences_to_record(prefs)},
            on_conflict="user_id",
        ).execute()
