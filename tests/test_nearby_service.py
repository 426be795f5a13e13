"""
Tests for NearbySearchService

Tests covering:
1. Origin resolution: request, provider (cached), the user's own last known, none
2. Search -> filter -> rank pipeline, sort orders, limits
3. Stored vs explicit preferences, affordability price range
4. Store failures propagate
5. Location text search
"""

from __future__ import annotations

import pytest

from core.location import (
    FixedLocationProvider,
    LastKnownLocations,
    LocationPermissionDenied,
    LocationTimeout,
)
from core.nearby import (
    ORIGIN_LAST_KNOWN,
    ORIGIN_PROVIDER,
    ORIGIN_REQUEST,
    NearbySearchService,
)
from core.proximity import (
    Coordinate,
    InvalidInputError,
    InvalidRadiusError,
    NEUTRAL_SCORE,
    PriceRange,
    SortOrder,
    UserPreferences,
)
from core.repository import ListingStoreError, StaticListingRepository

from conftest import north_of_origin


# =============================================================================
# Test Doubles
# =============================================================================


class FailingProvider:
    def __init__(self, error):
        self.error = error

    def current(self):
        raise self.error


class DictPreferenceRepository:
    def __init__(self, stored=None):
        self.stored = stored or {}

    def get(self, user_id):
        return self.stored.get(user_id)


class BrokenListingRepository:
    def list_listings(self):
        raise ListingStoreError("database offline")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def listings(make_listing):
    return [
        make_listing(
            "studio", miles=0.3, price=1100, bedrooms=0, title="Riverside Studio",
            city="London", postcode="SE1 9PX", lifestyle_tags={"quiet"},
        ),
        make_listing(
            "two-bed", miles=2.0, price=1600, bedrooms=2, title="Two Bed Maisonette",
            city="London", walkability_score=85, investment_score=70,
        ),
        make_listing(
            "family", miles=4.5, price=2400, bedrooms=3, title="Family House",
            city="Croydon", lifestyle_tags={"schools", "quiet"},
        ),
        make_listing("remote", miles=30, price=900, bedrooms=2, title="Country Cottage"),
        make_listing("unmapped", price=1000, bedrooms=1, title="London Flat", city="London"),
    ]


@pytest.fixture
def make_service(listings):
    """Factory fixture for services over the standard listing set."""
    def _create(**kwargs) -> NearbySearchService:
        kwargs.setdefault("listing_repository", StaticListingRepository(listings))
        return NearbySearchService(**kwargs)
    return _create


# =============================================================================
# Test: Origin Resolution
# =============================================================================


class TestOriginResolution:
    def test_explicit_origin(self, make_service, origin):
        outcome = make_service().nearby(origin=origin)

        assert outcome.origin == origin
        assert outcome.origin_source == ORIGIN_REQUEST

    def test_explicit_origin_becomes_users_last_known(self, make_service, origin):
        locations = LastKnownLocations()
        make_service(last_known_locations=locations).nearby(origin=origin, user_id="alice")

        assert locations.for_user("alice").get() == origin
        assert locations.for_user("bob").get() is None

    def test_anonymous_origin_is_not_cached(self, make_service, origin):
        service = make_service()
        service.nearby(origin=origin)

        outcome = service.nearby()
        assert outcome.origin is None
        assert outcome.results == []

    def test_provider_fix_is_cached_for_user(self, make_service, origin):
        locations = LastKnownLocations()
        service = make_service(
            location_provider=FixedLocationProvider(origin), last_known_locations=locations,
        )
        outcome = service.nearby(user_id="alice")

        assert outcome.origin_source == ORIGIN_PROVIDER
        assert locations.for_user("alice").get() == origin

    def test_provider_failure_falls_back_to_users_last_known(self, make_service, origin):
        locations = LastKnownLocations()
        locations.for_user("alice").set(origin)
        service = make_service(
            location_provider=FailingProvider(LocationTimeout()), last_known_locations=locations,
        )
        outcome = service.nearby(user_id="alice")

        assert outcome.origin == origin
        assert outcome.origin_source == ORIGIN_LAST_KNOWN
        assert outcome.total_results > 0

    def test_other_users_fix_is_never_used(self, make_service, origin):
        service = make_service()
        service.nearby(origin=origin, user_id="alice")

        outcome = service.nearby(user_id="bob")
        assert outcome.origin is None
        assert outcome.location_error == "Location not available"

    def test_per_user_fixes_persist_to_directory(self, make_service, origin, tmp_path):
        make_service(last_known_locations=LastKnownLocations(str(tmp_path))).nearby(
            origin=origin, user_id="alice",
        )

        outcome = make_service(last_known_locations=LastKnownLocations(str(tmp_path))).nearby(
            user_id="alice",
        )
        assert outcome.origin == origin
        assert outcome.origin_source == ORIGIN_LAST_KNOWN
        assert (tmp_path / "alice.json").exists()

    def test_unsafe_user_id_rejected(self, make_service, origin):
        with pytest.raises(InvalidInputError):
            make_service().nearby(origin=origin, user_id="../alice")

    def test_no_location_returns_empty_outcome(self, make_service):
        service = make_service(location_provider=FailingProvider(LocationPermissionDenied()))
        outcome = service.nearby()

        assert outcome.origin is None
        assert outcome.results == []
        assert "permission denied" in outcome.location_error.lower()

    def test_no_location_never_reads_store(self):
        service = NearbySearchService(BrokenListingRepository())
        outcome = service.nearby()
        assert outcome.origin is None
        assert outcome.location_error == "Location not available"


# =============================================================================
# Test: Pipeline
# =============================================================================


class TestNearbyPipeline:
    def test_default_radius(self, make_service, origin):
        outcome = make_service().nearby(origin=origin)

        assert outcome.radius_miles == 5.0
        assert {r.listing.id for r in outcome.results} == {"studio", "two-bed", "family"}

    def test_without_preferences_neutral_scores_by_distance(self, make_service, origin):
        outcome = make_service().nearby(origin=origin, radius_miles=50)

        assert [r.listing.id for r in outcome.results] == ["studio", "two-bed", "family", "remote"]
        assert all(r.match_score == NEUTRAL_SCORE for r in outcome.results)
        assert not outcome.preferences_applied

    def test_explicit_preferences_filter_and_rank(self, make_service, origin):
        prefs = UserPreferences(bedroom_counts={2, 3})
        outcome = make_service().nearby(origin=origin, preferences=prefs)

        # two-bed: 15 + 10.5 investment = 25.5 -> 26; family: 5
        assert [r.listing.id for r in outcome.results] == ["two-bed", "family"]
        assert [r.match_score for r in outcome.results] == [26, 5]
        assert outcome.preferences_applied

    def test_stored_preferences_by_user(self, make_service, origin):
        repo = DictPreferenceRepository({"u1": UserPreferences(preferred_lifestyle_tags={"quiet"})})
        outcome = make_service(preference_repository=repo).nearby(origin=origin, user_id="u1")
        assert [r.listing.id for r in outcome.results] == ["studio", "family"]

    def test_explicit_preferences_override_stored(self, make_service, origin):
        repo = DictPreferenceRepository({"u1": UserPreferences(bedroom_counts={0})})
        outcome = make_service(preference_repository=repo).nearby(
            origin=origin, user_id="u1", preferences=UserPreferences(bedroom_counts={3}),
        )
        assert [r.listing.id for r in outcome.results] == ["family"]

    def test_unknown_user_has_no_preferences(self, make_service, origin):
        outcome = make_service(preference_repository=DictPreferenceRepository()).nearby(
            origin=origin, user_id="ghost",
        )
        assert outcome.total_results == 3

    def test_affordability_price_range(self, make_service, origin):
        outcome = make_service().nearby(origin=origin, price_range=PriceRange(440, 1200))
        assert [r.listing.id for r in outcome.results] == ["studio"]

    def test_limit(self, make_service, origin):
        outcome = make_service().nearby(origin=origin, limit=1)
        assert [r.listing.id for r in outcome.results] == ["studio"]

    def test_negative_limit_rejected(self, make_service, origin):
        with pytest.raises(InvalidInputError):
            make_service().nearby(origin=origin, radius_miles=50, limit=-1)

    def test_zero_limit_returns_no_results(self, make_service, origin):
        assert make_service().nearby(origin=origin, limit=0).results == []

    def test_city_preference(self, make_service, origin):
        outcome = make_service().nearby(origin=origin, preferences=UserPreferences(cities={"Croydon"}))
        assert [r.listing.id for r in outcome.results] == ["family"]

    @pytest.mark.parametrize("order,expected", [
        (SortOrder.DISTANCE, ["studio", "two-bed", "family"]),
        (SortOrder.PRICE_ASC, ["studio", "two-bed", "family"]),
        (SortOrder.PRICE_DESC, ["family", "two-bed", "studio"]),
        (SortOrder.WALKABILITY, ["two-bed", "studio", "family"]),
        (SortOrder.INVESTMENT, ["two-bed", "studio", "family"]),
    ])
    def test_sort_orders(self, make_service, origin, order, expected):
        outcome = make_service().nearby(origin=origin, sort=order)
        assert [r.listing.id for r in outcome.results] == expected

    def test_limit_applies_after_sort(self, make_service, origin):
        outcome = make_service().nearby(origin=origin, sort=SortOrder.PRICE_DESC, limit=1)
        assert [r.listing.id for r in outcome.results] == ["family"]
        assert outcome.results[0].match_score == NEUTRAL_SCORE

    def test_invalid_radius_rejected_before_search(self, make_service, origin):
        with pytest.raises(InvalidRadiusError):
            make_service().nearby(origin=origin, radius_miles=0)

    def test_configured_ceiling(self, make_service, origin):
        service = make_service(max_radius_miles=10, default_radius_miles=2)
        assert service.nearby(origin=origin).radius_miles == 2
        with pytest.raises(InvalidRadiusError):
            service.nearby(origin=origin, radius_miles=20)

    def test_store_failure_propagates(self, origin):
        service = NearbySearchService(BrokenListingRepository())
        with pytest.raises(ListingStoreError):
            service.nearby(origin=origin)

    def test_alerts_only_when_requested(self, make_service, origin):
        service = make_service()
        assert service.nearby(origin=origin, user_id="alice").alerts == []

        outcome = service.nearby(origin=origin, user_id="alice", alerts=True)
        assert [a.listing_id for a in outcome.alerts] == ["studio"]
        assert service.nearby(origin=origin, user_id="alice", alerts=True).alerts == []

    def test_alert_history_is_per_user(self, make_service, origin):
        service = make_service()
        service.nearby(origin=origin, user_id="alice", alerts=True)

        outcome = service.nearby(origin=origin, user_id="bob", alerts=True)
        assert [a.listing_id for a in outcome.alerts] == ["studio"]

    def test_anonymous_alerts_have_no_history(self, make_service, origin):
        service = make_service()
        assert len(service.nearby(origin=origin, alerts=True).alerts) == 1
        assert len(service.nearby(origin=origin, alerts=True).alerts) == 1

    def test_to_dict(self, make_service, origin):
        data = make_service().nearby(origin=origin, radius_miles=2.5).to_dict()

        assert data["origin"] == origin.to_dict()
        assert data["distance_context"].startswith("Short drive")
        assert data["coverage_area_sq_miles"] == pytest.approx(19.6)
        assert data["total_results"] == len(data["results"]) == 2


# =============================================================================
# Test: Location Search
# =============================================================================


class TestLocationSearch:
    def test_blank_query(self, make_service):
        assert make_service().location_search("   ") == []

    def test_matches_city_case_insensitive(self, make_service):
        matches = make_service().location_search("LONDON")
        assert [m.listing.id for m in matches] == ["studio", "two-bed", "unmapped"]
        assert all(m.distance_miles is None for m in matches)

    def test_matches_postcode_and_title(self, make_service):
        service = make_service()
        assert [m.listing.id for m in service.location_search("se1")] == ["studio"]
        assert [m.listing.id for m in service.location_search("cottage")] == ["remote"]

    def test_sorted_by_distance_with_unmapped_last(self, make_service):
        here = north_of_origin(2.1)
        matches = make_service().location_search("london", origin=here)

        assert [m.listing.id for m in matches] == ["two-bed", "studio", "unmapped"]
        assert matches[0].distance_miles == pytest.approx(0.1, abs=0.01)
        assert matches[2].distance_miles is None

    def test_uses_users_last_known_location(self, make_service, origin):
        locations = LastKnownLocations()
        locations.for_user("alice").set(Coordinate(origin.latitude, origin.longitude))
        service = make_service(last_known_locations=locations)

        matches = service.location_search("london", user_id="alice")
        assert matches[0].listing.id == "studio"
        assert matches[0].distance_miles == pytest.approx(0.3, abs=0.01)

        anonymous = service.location_search("london")
        assert all(m.distance_miles is None for m in anonymous)

    def test_negative_limit_rejected(self, make_service):
        with pytest.raises(InvalidInputError):
            make_service().location_search("london", limit=-1)

    def test_limit(self, make_listing):
        many = [make_listing(f"l{i:02d}", title=f"Flat {i}") for i in range(15)]
        service = NearbySearchService(StaticListingRepository(many))

        assert len(service.location_search("flat")) == 10
        assert len(service.location_search("flat", limit=3)) == 3
