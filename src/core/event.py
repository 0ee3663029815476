"""Event data models and feed normalization - Pure functions.

This module turns raw USGS GeoJSON feed records into typed Event objects.
All functions are pure with no side effects.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


DEFAULT_PLACE = "Unknown location"
DEFAULT_KIND = "earthquake"
DEFAULT_STATUS = "automatic"


@dataclass(frozen=True)
class Position:
    """Geographic position of an event.

    Attributes:
        longitude: Epicenter longitude, degrees in [-180, 180]
        latitude: Epicenter latitude, degrees in [-90, 90]
        depth_km: Hypocenter depth in kilometers
    """
    longitude: float
    latitude: float
    depth_km: float = 0.0

    @property
    def lng_lat(self) -> tuple[float, float]:
        """Return (longitude, latitude), the order GeoJSON and map APIs use."""
        return (self.longitude, self.latitude)


@dataclass(frozen=True)
class Event:
    """Immutable earthquake event.

    Attributes:
        id: Unique event ID within the feed
        position: Epicenter position and depth
        magnitude: Event magnitude (0.0 when the feed omits it)
        time_occurred: Event timestamp (UTC)
        place: Human-readable location description
        kind: Event type from the feed (e.g., 'earthquake', 'quarry blast')
        status: Review status from the feed ('automatic' or 'reviewed')
        detail_url: USGS event detail page
        title: Feed-provided title (e.g., 'M 2.5 - 10km NE of Aguanga, CA')
    """
    id: str
    position: Position
    magnitude: float
    time_occurred: datetime
    place: str
    kind: str = DEFAULT_KIND
    status: str = DEFAULT_STATUS
    detail_url: str = ""
    title: str = ""

    @property
    def longitude(self) -> float:
        return self.position.longitude

    @property
    def latitude(self) -> float:
        return self.position.latitude

    @property
    def depth_km(self) -> float:
        return self.position.depth_km


@dataclass(frozen=True)
class FeedSnapshot:
    """One normalized feed response.

    Attributes:
        events: Valid events, in feed order
        generated: When the feed was generated upstream (None if absent)
        dropped: Number of records that failed normalization
    """
    events: tuple[Event, ...] = field(default_factory=tuple)
    generated: datetime | None = None
    dropped: int = 0


def _epoch_ms_to_datetime(value: Any) -> datetime | None:
    """Convert USGS epoch milliseconds to a UTC datetime, None if invalid."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _finite_float(value: Any) -> float | None:
    """Return value as a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def normalize_event(feature: Any) -> Event | None:
    """Normalize a single GeoJSON feature into an Event.

    Pure function. Missing magnitude and depth default to 0; coordinates are
    taken verbatim. Records without a numeric longitude/latitude or a valid
    timestamp are dropped.

    Args:
        feature: GeoJSON feature dict from the USGS feed

    Returns:
        Event object or None if the record is unusable
    """
    if not isinstance(feature, dict):
        return None

    props = feature.get("properties") or {}
    geometry = feature.get("geometry") or {}
    coords = geometry.get("coordinates") or []

    if not isinstance(props, dict) or not isinstance(coords, (list, tuple)):
        return None

    if len(coords) < 2:
        return None

    longitude = _finite_float(coords[0])
    latitude = _finite_float(coords[1])
    if longitude is None or latitude is None:
        return None

    depth_km = _finite_float(coords[2]) if len(coords) > 2 else None

    time_occurred = _epoch_ms_to_datetime(props.get("time"))
    if time_occurred is None:
        return None

    magnitude = _finite_float(props.get("mag"))
    if magnitude is None:
        magnitude = 0.0

    place = props.get("place") or DEFAULT_PLACE
    title = props.get("title") or f"M {magnitude:.1f} - {place}"

    return Event(
        id=str(feature.get("id", "")),
        position=Position(
            longitude=longitude,
            latitude=latitude,
            depth_km=depth_km if depth_km is not None else 0.0,
        ),
        magnitude=magnitude,
        time_occurred=time_occurred,
        place=place,
        kind=props.get("type") or DEFAULT_KIND,
        status=props.get("status") or DEFAULT_STATUS,
        detail_url=props.get("url") or "",
        title=title,
    )


def normalize_feed(geojson: dict[str, Any]) -> FeedSnapshot:
    """Normalize a USGS GeoJSON FeatureCollection.

    Pure function: drops invalid features and keeps feed order, which the
    stable magnitude sort in the filter pipeline relies on.

    Args:
        geojson: Full GeoJSON FeatureCollection from the USGS feed

    Returns:
        FeedSnapshot with valid events and the count of dropped records
    """
    if not isinstance(geojson, dict):
        return FeedSnapshot()

    features = geojson.get("features") or []
    metadata = geojson.get("metadata") or {}

    events = []
    dropped = 0

    for feature in features:
        event = normalize_event(feature)
        if event is None:
            dropped += 1
        else:
            events.append(event)

    return FeedSnapshot(
        events=tuple(events),
        generated=_epoch_ms_to_datetime(metadata.get("generated")),
        dropped=dropped,
    )
