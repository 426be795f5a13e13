"""
Location collaborators

The device location request and the cached last-known fix, kept outside
the search engine so the engine itself holds no mutable state.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

from core.proximity.models import Coordinate
from core.repository import validate_user_id


logger = logging.getLogger(__name__)


# =============================================================================
# Errors
# =============================================================================


class LocationError(Exception):
    """The location provider could not supply a position."""

    user_message = "Unable to retrieve location"


class LocationPermissionDenied(LocationError):
    user_message = "Location permission denied. Please enable location services."


class LocationUnavailable(LocationError):
    user_message = "Location information unavailable."


class LocationTimeout(LocationError):
    user_message = "Location request timed out."


# =============================================================================
# Provider Interface
# =============================================================================


class LocationProvider(Protocol):
    """Anything that can report the user's current position."""

    def current(self) -> Coordinate:
        """
        Return the current position.

        Raises:
            LocationError: subclass describing why no position is available
        """
        ...


class FixedLocationProvider:
    """Provider reporting a known coordinate, e.g. one posted by the client."""

    def __init__(self, coordinate: Optional[Coordinate]):
        self._coordinate = coordinate

    def current(self) -> Coordinate:
        if self._coordinate is None:
            raise LocationUnavailable("no coordinate supplied")
        return self._coordinate


# =============================================================================
# Last Known Location
# =============================================================================


class LastKnownLocation:
    """
    Cache of the most recent successful location fix.

    Uses JSON file persistence when a path is given, memory otherwise.
    """

    def __init__(self, persist_path: Optional[str] = None):
        """
        Initialize cache.

        Args:
            persist_path: Path to JSON file for persistence
        """
        self._persist_path = Path(persist_path) if persist_path else None
        self._coordinate: Optional[Coordinate] = None
        self._recorded_at: Optional[datetime] = None

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def get(self) -> Optional[Coordinate]:
        """Last stored coordinate, or None if none recorded."""
        return self._coordinate

    @property
    def recorded_at(self) -> Optional[datetime]:
        return self._recorded_at

    def set(self, coordinate: Coordinate) -> None:
        """Record a new fix, replacing the previous one."""
        self._coordinate = coordinate
        self._recorded_at = datetime.utcnow()
        self._save_to_file()

    def clear(self) -> None:
        self._coordinate = None
        self._recorded_at = None
        if self._persist_path and self._persist_path.exists():
            self._persist_path.unlink()

    def _save_to_file(self) -> None:
        """Persist data to file."""
        if not self._persist_path or self._coordinate is None:
            return

        data = {
            "latitude": self._coordinate.latitude,
            "longitude": self._coordinate.longitude,
            "recorded_at": self._recorded_at.isoformat() if self._recorded_at else None,
        }
        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        self._persist_path.write_text(json.dumps(data, indent=2))

    def _load_from_file(self) -> None:
        """Load data from file. A corrupt cache is treated as empty."""
        try:
            data = json.loads(self._persist_path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load last known location: %s", e)
            return
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed last known location file %s", self._persist_path)
            return

        self._coordinate = Coordinate.parse(data.get("latitude"), data.get("longitude"))
        recorded_at = data.get("recorded_at")
        if self._coordinate is not None and recorded_at:
            try:
                self._recorded_at = datetime.fromisoformat(recorded_at)
            except ValueError:
                self._recorded_at = None


class LastKnownLocations:
    """
    One last-known fix per user.

    With a directory, each user's fix lives in `<directory>/<user_id>.json`
    and is read afresh for every lookup. Without one, fixes are held in
    memory for the life of this object.
    """

    def __init__(self, directory: Optional[str] = None):
        self._directory = Path(directory) if directory else None
        self._in_memory: dict[str, LastKnownLocation] = {}

    def for_user(self, user_id: str) -> LastKnownLocation:
        """
        The cache belonging to `user_id`.

        Raises:
            InvalidInputError: If the user id is not a safe file name
        """
        user_id = validate_user_id(user_id)
        if self._directory is not None:
            return LastKnownLocation(str(self._directory / f"{user_id}.json"))
        if user_id not in self._in_memory:
            self._in_memory[user_id] = LastKnownLocation()
        return self._in_memory[user_id]
