"""
Proximity alerts

Announces listings the user is standing close to, once per listing.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from core.proximity.models import SearchResult
from core.repository import validate_user_id


logger = logging.getLogger(__name__)


# Results this close trigger an alert (miles)
ALERT_RADIUS_MILES = 0.5


@dataclass(frozen=True)
class ProximityAlert:
    """A listing close enough to notify the user about."""
    listing_id: str
    title: str
    distance_miles: float
    created_at: datetime

    @property
    def message(self) -> str:
        name = self.title or f"Listing {self.listing_id}"
        return f"{name} is {self.distance_miles:.2f} miles away"

    def to_dict(self) -> dict:
        return {
            "listing_id": self.listing_id,
            "title": self.title,
            "distance_miles": round(self.distance_miles, 3),
            "message": self.message,
            "created_at": self.created_at.isoformat(),
        }


class NotifiedListings:
    """
    Set of listing ids the user has already been alerted about.

    Uses JSON file persistence when a path is given, memory otherwise.
    """

    def __init__(self, persist_path: Optional[str] = None):
        self._ids: set[str] = set()
        self._persist_path = Path(persist_path) if persist_path else None

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def __contains__(self, listing_id: str) -> bool:
        return listing_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def add_all(self, listing_ids: Iterable[str]) -> None:
        before = len(self._ids)
        self._ids.update(listing_ids)
        if len(self._ids) != before:
            self._save_to_file()

    def reset(self) -> None:
        self._ids.clear()
        self._save_to_file()

    def _save_to_file(self) -> None:
        if not self._persist_path:
            return
        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        self._persist_path.write_text(json.dumps(sorted(self._ids), indent=2))

    def _load_from_file(self) -> None:
        try:
            data = json.loads(self._persist_path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load notified listings: %s", e)
            return
        if isinstance(data, list):
            self._ids = {str(item) for item in data}


class NotifiedListingsByUser:
    """
    One alert tracker per user.

    With a directory, each user's tracker persists to
    `<directory>/<user_id>.json`; otherwise trackers live in memory.
    """

    def __init__(self, directory: Optional[str] = None):
        self._directory = Path(directory) if directory else None
        self._in_memory: dict[str, NotifiedListings] = {}

    def for_user(self, user_id: str) -> NotifiedListings:
        user_id = validate_user_id(user_id)
        if self._directory is not None:
            return NotifiedListings(str(self._directory / f"{user_id}.json"))
        if user_id not in self._in_memory:
            self._in_memory[user_id] = NotifiedListings()
        return self._in_memory[user_id]


def collect_proximity_alerts(
    results: Iterable[SearchResult],
    notified: NotifiedListings,
    alert_radius_miles: float = ALERT_RADIUS_MILES,
    now: Optional[datetime] = None,
) -> list[ProximityAlert]:
    """
    Alerts for results within the alert radius not yet announced.

    Marks the alerted listings as notified so each one alerts once.

    Args:
        results: Distance-annotated search results
        notified: Tracker of previously announced listings
        alert_radius_miles: Alert threshold in miles
        now: Timestamp for the alerts (default: utcnow)

    Returns:
        New alerts, nearest first
    """
    created_at = now or datetime.utcnow()
    alerts = [
        ProximityAlert(
            listing_id=r.listing.id,
            title=r.listing.title,
            distance_miles=r.distance_miles,
            created_at=created_at,
        )
        for r in sorted(results, key=lambda r: (r.distance_miles, r.listing.id))
        if r.distance_miles <= alert_radius_miles and r.listing.id not in notified
    ]
    notified.add_all(a.listing_id for a in alerts)
    if alerts:
        logger.info("Raised %d proximity alerts", len(alerts))
    return alerts
