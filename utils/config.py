"""
Configuration management.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # Search
    default_radius_miles: float = field(
        default_factory=lambda: float(os.getenv("DEFAULT_RADIUS_MILES", "5.0"))
    )
    max_radius_miles: float = field(
        default_factory=lambda: float(os.getenv("MAX_RADIUS_MILES", "500.0"))
    )

    # Listing store: "json" (local file) or "supabase"
    listing_store: str = field(default_factory=lambda: os.getenv("LISTING_STORE", "json").lower())
    supabase_url: Optional[str] = field(default_factory=lambda: os.getenv("SUPABASE_URL"))
    supabase_key: Optional[str] = field(
        default_factory=lambda: os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    )

    # Display
    currency: str = field(default_factory=lambda: os.getenv("CURRENCY", "GBP").upper())

    # Data
    data_dir: str = field(default_factory=lambda: os.getenv("DATA_DIR", "./data"))
    listings_path: Optional[str] = field(default_factory=lambda: os.getenv("LISTINGS_PATH"))

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    @property
    def resolved_listings_path(self) -> Path:
        """Listings JSON file, defaulting to data_dir/listings.json."""
        if self.listings_path:
            return Path(self.listings_path)
        return Path(self.data_dir) / "listings.json"

    @property
    def last_locations_dir(self) -> Path:
        """One last-known location file per user."""
        return Path(self.data_dir) / "locations"

    @property
    def notified_listings_dir(self) -> Path:
        """One alert history file per user."""
        return Path(self.data_dir) / "notified"

    @property
    def preferences_dir(self) -> Path:
        return Path(self.data_dir) / "preferences"

    @property
    def uses_supabase(self) -> bool:
        return self.listing_store == "supabase"

    def to_dict(self) -> dict:
        """Convert config to dictionary. Secrets are never included."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "log_level": self.log_level,
            "default_radius_miles": self.default_radius_miles,
            "max_radius_miles": self.max_radius_miles,
            "listing_store": self.listing_store,
            "currency": self.currency,
            "supabase_configured": bool(self.supabase_url and self.supabase_key),
            "data_dir": self.data_dir,
            "listings_path": str(self.resolved_listings_path),
        }
