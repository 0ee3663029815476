"""GeoJSON feature projection - Pure functions.

This module converts the working set into the GeoJSON FeatureCollection fed
to the map's clustering source. Feature properties are a narrow, explicit
projection of Event: only what layer paint expressions and popups read.
"""

import math
from dataclasses import asdict, dataclass
from typing import Any, Iterable

from src.core.event import Event


@dataclass(frozen=True)
class FeatureProperties:
    """Properties carried by each point feature.

    Attributes:
        id: Event ID, used by consumers to look the event up again
        magnitude: Drives point radius/color interpolation
        title: Popup heading
        description: Popup body
        place: Location description
        time: Event time as epoch milliseconds
        url: Event detail page
    """
    id: str
    magnitude: float
    title: str
    description: str
    place: str
    time: int
    url: str


def format_description(event: Event) -> str:
    """Format the popup body for an event.

    Pure function.
    """
    return (
        f"{event.place} | Depth {event.depth_km:.1f} km | "
        f"{event.time_occurred.strftime('%Y-%m-%d %H:%M')} UTC"
    )


def has_valid_position(event: Event) -> bool:
    """Check that an event has a finite longitude/latitude.

    Pure function. The normalizer already drops unusable coordinates; this
    guards events constructed elsewhere.
    """
    lon = event.longitude
    lat = event.latitude
    if not (isinstance(lon, (int, float)) and isinstance(lat, (int, float))):
        return False
    return math.isfinite(lon) and math.isfinite(lat)


def event_properties(event: Event) -> FeatureProperties:
    """Project an Event onto the feature properties.

    Pure function.
    """
    return FeatureProperties(
        id=event.id,
        magnitude=event.magnitude,
        title=event.title or f"M {event.magnitude:.1f} - {event.place}",
        description=format_description(event),
        place=event.place,
        time=int(event.time_occurred.timestamp() * 1000),
        url=event.detail_url,
    )


def event_to_feature(event: Event) -> dict[str, Any]:
    """Convert an Event to a GeoJSON Point feature.

    Pure function.
    """
    return {
        "type": "Feature",
        "id": event.id,
        "properties": asdict(event_properties(event)),
        "geometry": {
            "type": "Point",
            "coordinates": [event.longitude, event.latitude],
        },
    }


def build_feature_collection(events: Iterable[Event]) -> dict[str, Any]:
    """Build the FeatureCollection for a working set.

    Pure function. Events without a usable position are skipped.

    Args:
        events: Working set

    Returns:
        GeoJSON FeatureCollection dict
    """
    return {
        "type": "FeatureCollection",
        "features": [
            event_to_feature(e) for e in events
            if has_valid_position(e)
        ],
    }
