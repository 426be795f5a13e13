"""
FastAPI application for the nearby search engine.

JSON API over the proximity pipeline and the affordability calculator.
Production deployment configuration via environment variables.
"""

import logging
import os
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core import (
    AffordabilityEngine,
    AffordabilityMode,
    Coordinate,
    CreditTier,
    FinancialProfile,
    IncomeType,
    InvalidCoordinateError,
    InvalidFinancialProfileError,
    InvalidInputError,
    InvalidPreferencesError,
    LastKnownLocations,
    ListingStoreError,
    NearbySearchService,
    NotifiedListingsByUser,
    PreferenceFilter,
    PriceRange,
    SortOrder,
    UserPreferences,
)
from core.repository import (
    JsonListingRepository,
    JsonPreferenceRepository,
    ListingRepository,
    PreferenceRepository,
    SupabaseListingRepository,
    SupabasePreferenceRepository,
    listings_from_records,
)
from utils import Config, format_currency, format_miles, format_percent


logger = logging.getLogger(__name__)


# =============================================================================
# Environment Configuration
# =============================================================================

# Production mode detection
IS_PRODUCTION = os.getenv("RAILWAY_ENVIRONMENT") is not None or os.getenv("PRODUCTION", "").lower() == "true"

# CORS configuration - locked down for production
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else []
if not ALLOWED_ORIGINS and not IS_PRODUCTION:
    # Development fallback only
    ALLOWED_ORIGINS = ["http://localhost:8000", "http://127.0.0.1:8000"]

VERSION = "0.1.0"


# =============================================================================
# Request Models
# =============================================================================


class PreferencesInput(BaseModel):
    """Search criteria; omitted fields do not constrain results."""
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    bedrooms: List[int] = []
    property_types: List[str] = []
    max_noise_level: Optional[int] = None
    min_walkability: Optional[int] = None
    lifestyle_tags: List[str] = []
    min_transit_score: Optional[int] = None
    cities: List[str] = []

    def to_domain(self) -> UserPreferences:
        if (self.price_min is None) != (self.price_max is None):
            raise InvalidPreferencesError("price_min and price_max must be given together")
        price_range = None
        if self.price_min is not None:
            price_range = PriceRange(self.price_min, self.price_max)
        return UserPreferences(
            price_range=price_range,
            bedroom_counts=frozenset(self.bedrooms),
            property_types=frozenset(self.property_types),
            max_noise_level=self.max_noise_level,
            min_walkability=self.min_walkability,
            preferred_lifestyle_tags=frozenset(self.lifestyle_tags),
            min_transit_score=self.min_transit_score,
            cities=frozenset(self.cities),
        )


class NearbyRequest(BaseModel):
    """Request body for a nearby search."""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius_miles: Optional[float] = None
    user_id: Optional[str] = None
    preferences: Optional[PreferencesInput] = None
    limit: Optional[int] = None
    alerts: bool = False
    sort: str = SortOrder.SCORE.value


class AffordabilityRequest(BaseModel):
    """Request body for the affordability calculator."""
    income: float
    income_type: str = "monthly"
    monthly_debts: float = 0.0
    credit_tier: str = "good"
    down_payment_percent: int = 20
    mode: str = "rent"


class FilterRequest(BaseModel):
    """Listing records plus criteria to filter them by."""
    listings: List[dict]
    preferences: Optional[PreferencesInput] = None


# =============================================================================
# Helpers
# =============================================================================


def request_origin(latitude: Optional[float], longitude: Optional[float]) -> Optional[Coordinate]:
    """Origin from optional request fields; both or neither must be present."""
    if latitude is None and longitude is None:
        return None
    if latitude is None or longitude is None:
        raise InvalidCoordinateError("latitude and longitude must be given together")
    return Coordinate(latitude, longitude)


def parse_sort(value: str) -> SortOrder:
    order = SortOrder.from_string(value)
    if order is None:
        choices = ", ".join(s.value for s in SortOrder)
        raise InvalidInputError(f"Unknown sort order {value!r}; expected one of {choices}")
    return order


def parse_profile(body: AffordabilityRequest) -> FinancialProfile:
    credit_tier = CreditTier.from_string(body.credit_tier)
    if credit_tier is None:
        raise InvalidFinancialProfileError(f"Unknown credit tier: {body.credit_tier}")
    try:
        income_type = IncomeType(body.income_type.lower())
        mode = AffordabilityMode(body.mode.lower())
    except ValueError as e:
        raise InvalidFinancialProfileError(str(e)) from e

    return FinancialProfile(
        income=body.income,
        monthly_debt_obligations=body.monthly_debts,
        credit_tier=credit_tier,
        down_payment_percent=body.down_payment_percent,
        income_type=income_type,
        mode=mode,
    )


def build_listing_repository(config: Config) -> ListingRepository:
    if config.uses_supabase:
        return SupabaseListingRepository(config.supabase_url, config.supabase_key)
    return JsonListingRepository(config.resolved_listings_path)


def build_preference_repository(config: Config) -> PreferenceRepository:
    if config.uses_supabase:
        return SupabasePreferenceRepository(config.supabase_url, config.supabase_key)
    return JsonPreferenceRepository(config.preferences_dir)


def create_app(
    config: Optional[Config] = None,
    listing_repository: Optional[ListingRepository] = None,
    preference_repository: Optional[PreferenceRepository] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or Config.load()

    app = FastAPI(
        title="Nearby Search Engine",
        description="Proximity search, preference matching and affordability for property listings",
        version=VERSION,
        docs_url=None if IS_PRODUCTION else "/docs",
        redoc_url=None if IS_PRODUCTION else "/redoc",
        openapi_url=None if IS_PRODUCTION else "/openapi.json",
        debug=config.debug and not IS_PRODUCTION,
    )

    # Healthcheck endpoints first: no dependencies, no IO
    @app.get("/", include_in_schema=False)
    def root():
        return {"status": "ok"}

    @app.get("/health", include_in_schema=False)
    def health():
        return {"status": "healthy"}

    if ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(ListingStoreError)
    async def store_error_handler(request: Request, exc: ListingStoreError):
        logger.error("Listing store failure on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": "Listing store unavailable"})

    service = NearbySearchService(
        listing_repository=listing_repository or build_listing_repository(config),
        preference_repository=preference_repository or build_preference_repository(config),
        last_known_locations=LastKnownLocations(str(config.last_locations_dir)),
        notified_listings=NotifiedListingsByUser(str(config.notified_listings_dir)),
        default_radius_miles=config.default_radius_miles,
        max_radius_miles=config.max_radius_miles,
    )
    affordability = AffordabilityEngine()
    preference_filter = PreferenceFilter()

    logger.info("Nearby search engine configured: %s", config.to_dict())

    @app.post("/api/nearby")
    def nearby(body: NearbyRequest):
        """
        Listings near the given location, ranked by fit.

        Without coordinates the user's own last known location is used.
        Returns the outcome with `origin: null` and a `location_error`
        when no location is available, always so for anonymous requests.
        """
        outcome = service.nearby(
            origin=request_origin(body.latitude, body.longitude),
            radius_miles=body.radius_miles,
            user_id=body.user_id,
            preferences=body.preferences.to_domain() if body.preferences else None,
            limit=body.limit,
            alerts=body.alerts,
            sort=parse_sort(body.sort),
        )
        payload = outcome.to_dict()
        payload["radius_label"] = format_miles(outcome.radius_miles)
        return payload

    @app.get("/api/location-search")
    def location_search(
        q: str = "",
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        limit: int = 10,
        user_id: Optional[str] = None,
    ):
        """Listings whose title or address contains `q`, nearest first when located."""
        matches = service.location_search(
            q, origin=request_origin(lat, lng), limit=limit, user_id=user_id,
        )
        return {
            "query": q,
            "total": len(matches),
            "results": [m.to_dict() for m in matches],
        }

    @app.post("/api/affordability")
    def calculate_affordability(body: AffordabilityRequest):
        """
        Price ceiling for the given finances.

        `result` is null when income is zero or negative.
        """
        profile = parse_profile(body)
        result = affordability.calculate(profile)
        if result is None:
            return {"mode": profile.mode.value, "result": None}

        ceiling = (
            result.max_monthly_rent
            if profile.mode == AffordabilityMode.RENT
            else result.max_property_price
        )
        payload = {
            "mode": profile.mode.value,
            "result": result.to_dict(),
            "summary": f"Up to {format_currency(ceiling, config.currency)}",
        }
        if profile.mode == AffordabilityMode.BUY:
            payload["rate_label"] = format_percent(result.annual_interest_rate * 100)
        return payload

    @app.post("/api/filter")
    def filter_listings(body: FilterRequest):
        """Apply preference criteria to posted listing records."""
        listings = listings_from_records(body.listings)
        prefs = body.preferences.to_domain() if body.preferences else None
        matching = preference_filter.filter(listings, prefs)
        return {
            "received": len(body.listings),
            "valid": len(listings),
            "total": len(matching),
            "results": [listing.to_dict() for listing in matching],
        }

    @app.get("/api/health")
    async def api_health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": VERSION,
            "environment": "production" if IS_PRODUCTION else "development",
            "listing_store": config.listing_store,
        }

    return app


# Create app instance for uvicorn
app = create_app()
