"""Pointer interaction geometry - Pure functions.

This module classifies what a pointer gesture hit and where the camera
should move when a cluster is activated. The subscription of handlers on
the live map is handled by the shell.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence


# Zoom increment used when the source cannot report an expansion zoom
DEFAULT_ZOOM_INCREMENT = 2

# Upper bound for any zoom requested by a cluster activation
MAX_ACTIVATE_ZOOM = 16


class HitKind(Enum):
    """What a pointer gesture landed on."""
    CLUSTER = "cluster"
    POINT = "point"
    MISS = "miss"


@dataclass(frozen=True)
class CameraTarget:
    """Camera move requested by a cluster activation.

    Attributes:
        center: (longitude, latitude) to center on
        zoom: Target zoom level
    """
    center: tuple[float, float]
    zoom: float


def is_cluster_feature(feature: dict[str, Any]) -> bool:
    """Check if a rendered feature is an aggregated cluster.

    Pure function.
    """
    props = feature.get("properties") or {}
    return bool(props.get("cluster")) or "point_count" in props


def classify_hit(
    cluster_features: Sequence[dict[str, Any]],
    point_features: Sequence[dict[str, Any]],
) -> HitKind:
    """Classify a gesture from the features rendered under the pointer.

    Pure function. Clusters take precedence since they draw over points.
    Only features carrying cluster properties count as a cluster hit.
    """
    if any(is_cluster_feature(f) for f in cluster_features):
        return HitKind.CLUSTER
    if point_features:
        return HitKind.POINT
    return HitKind.MISS


def feature_coordinates(feature: dict[str, Any]) -> tuple[float, float] | None:
    """Get (longitude, latitude) of a Point feature, None if unavailable.

    Pure function.
    """
    geometry = feature.get("geometry") or {}
    if geometry.get("type") != "Point":
        return None

    coords = geometry.get("coordinates") or []
    if len(coords) < 2:
        return None

    try:
        return (float(coords[0]), float(coords[1]))
    except (TypeError, ValueError):
        return None


def cluster_camera_target(
    feature: dict[str, Any],
    current_zoom: float,
    expansion_zoom: float | None = None,
    zoom_increment: float = DEFAULT_ZOOM_INCREMENT,
    max_zoom: float = MAX_ACTIVATE_ZOOM,
) -> CameraTarget | None:
    """Compute the camera move for an activated cluster.

    Pure function. Uses the source-reported expansion zoom when known,
    otherwise steps in from the current zoom. The result never exceeds
    max_zoom.

    Args:
        feature: Rendered cluster feature
        current_zoom: Map zoom at the time of the click
        expansion_zoom: Zoom at which the cluster breaks apart, if known
        zoom_increment: Step used when expansion_zoom is unknown
        max_zoom: Cap for the target zoom

    Returns:
        CameraTarget, or None if the feature has no point coordinate
    """
    center = feature_coordinates(feature)
    if center is None:
        return None

    if expansion_zoom is None:
        zoom = current_zoom + zoom_increment
    else:
        zoom = expansion_zoom

    return CameraTarget(center=center, zoom=min(zoom, max_zoom))
