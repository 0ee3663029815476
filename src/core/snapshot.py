"""Map snapshot configuration - Pure functions.

This module decides what a static snapshot of the working set looks like:
one magnitude-colored marker per event. The actual image generation (I/O)
is handled by the shell layer.
"""

from dataclasses import dataclass, field
from typing import Iterable

from src.core.event import Event
from src.core.features import has_valid_position
from src.core.styles import get_magnitude_color, get_magnitude_size


# View used when there is nothing to draw
WORLD_CENTER = (0.0, 0.0)
WORLD_ZOOM = 1


@dataclass(frozen=True)
class SnapshotMarker:
    """One marker on a snapshot.

    Attributes:
        longitude: Marker longitude
        latitude: Marker latitude
        color: Hex fill color
        radius: Radius in pixels
    """
    longitude: float
    latitude: float
    color: str
    radius: int


@dataclass(frozen=True)
class SnapshotConfig:
    """Immutable configuration for a static map image.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        markers: Markers in drawing order (last drawn on top)
        zoom: Zoom level, None to fit all markers
        center: (longitude, latitude), None to fit all markers
    """
    width: int
    height: int
    markers: tuple[SnapshotMarker, ...] = field(default_factory=tuple)
    zoom: int | None = None
    center: tuple[float, float] | None = None


def get_zoom_level(magnitude: float) -> int:
    """Determine zoom for a single-event snapshot based on magnitude.

    Pure function. Larger earthquakes get zoomed out to show more context.

    Args:
        magnitude: Earthquake magnitude

    Returns:
        Zoom level (1-18)
    """
    if magnitude >= 7.0:
        return 7  # Wide view for major earthquakes
    elif magnitude >= 6.0:
        return 8
    elif magnitude >= 5.0:
        return 9
    elif magnitude >= 4.0:
        return 10
    return 11  # Closer view for smaller earthquakes


def create_marker(event: Event) -> SnapshotMarker:
    """Pure function."""
    return SnapshotMarker(
        longitude=event.longitude,
        latitude=event.latitude,
        color=get_magnitude_color(event.magnitude),
        radius=get_magnitude_size(event.magnitude),
    )


def create_snapshot_config(
    events: Iterable[Event],
    width: int = 800,
    height: int = 400,
) -> SnapshotConfig:
    """Create snapshot configuration for a working set.

    Pure function. Markers are ordered smallest magnitude first so the
    strongest events are drawn on top. A single event is centered with a
    magnitude-based zoom; several are fitted; none shows the whole world.

    Args:
        events: Working set (any order)
        width: Image width in pixels (default: 800)
        height: Image height in pixels (default: 400)

    Returns:
        SnapshotConfig with all parameters set
    """
    drawable = [e for e in events if has_valid_position(e)]
    ordered = sorted(drawable, key=lambda e: e.magnitude)
    markers = tuple(create_marker(e) for e in ordered)

    if not markers:
        return SnapshotConfig(
            width=width,
            height=height,
            zoom=WORLD_ZOOM,
            center=WORLD_CENTER,
        )

    if len(markers) == 1:
        only = ordered[0]
        return SnapshotConfig(
            width=width,
            height=height,
            markers=markers,
            zoom=get_zoom_level(only.magnitude),
            center=only.position.lng_lat,
        )

    return SnapshotConfig(width=width, height=height, markers=markers)
