"""Layer and source specifications - Pure functions.

This module builds the clustering source spec and the three layer specs
(cluster circles, cluster count labels, individual points) installed on the
map. The actual installation (I/O against the map) is handled by the shell.

Paint thresholds are product-level constants, not correctness-critical.
"""

from dataclasses import dataclass
from typing import Any


SOURCE_ID = "earthquake-source"
CLUSTER_LAYER_ID = "earthquake-clusters"
CLUSTER_COUNT_LAYER_ID = "earthquake-cluster-count"
POINT_LAYER_ID = "earthquake-unclustered"

# Cluster tiers by contained point count: (min count, color, radius)
CLUSTER_TIERS: tuple[tuple[int, str, int], ...] = (
    (0, "#6366f1", 20),
    (10, "#8b5cf6", 30),
    (30, "#ec4899", 40),
)

# Point stops by magnitude: (magnitude, color, radius)
MAGNITUDE_STOPS: tuple[tuple[float, str, int], ...] = (
    (0, "#6b7280", 8),
    (1, "#10b981", 10),
    (3, "#f59e0b", 14),
    (5, "#dc2626", 18),
)


@dataclass(frozen=True)
class LayerIds:
    """Identifiers of the map resources owned by the cluster layer manager.

    Attributes:
        source: Clustering GeoJSON source
        clusters: Aggregated cluster circle layer
        cluster_count: Cluster count label layer
        points: Individual (unclustered) point layer
    """
    source: str = SOURCE_ID
    clusters: str = CLUSTER_LAYER_ID
    cluster_count: str = CLUSTER_COUNT_LAYER_ID
    points: str = POINT_LAYER_ID

    @property
    def layers(self) -> tuple[str, str, str]:
        """Layer ids in removal order (label, cluster circles, points)."""
        return (self.cluster_count, self.clusters, self.points)


def get_magnitude_color(magnitude: float) -> str:
    """Get hex color for a magnitude, matching the point layer stops.

    Pure function. Used by renderers that cannot evaluate paint expressions.
    """
    if magnitude >= 5:
        return "#dc2626"  # red
    elif magnitude >= 3:
        return "#f59e0b"  # amber
    elif magnitude >= 1:
        return "#10b981"  # green
    return "#6b7280"  # gray


def get_magnitude_size(magnitude: float) -> int:
    """Get marker radius in pixels for a magnitude.

    Pure function.
    """
    if magnitude >= 5:
        return 18
    elif magnitude >= 3:
        return 14
    elif magnitude >= 1:
        return 10
    return 8


def build_source_spec(
    data: dict[str, Any],
    cluster_radius: int,
    cluster_max_zoom: int,
) -> dict[str, Any]:
    """Build the clustering GeoJSON source specification.

    Pure function.
    """
    return {
        "type": "geojson",
        "data": data,
        "cluster": True,
        "clusterRadius": cluster_radius,
        "clusterMaxZoom": cluster_max_zoom,
    }


def _cluster_step(index: int) -> list[Any]:
    """Build a 'step' expression over point_count for one tier column."""
    expression: list[Any] = ["step", ["get", "point_count"], CLUSTER_TIERS[0][index]]
    for tier in CLUSTER_TIERS[1:]:
        expression.extend([tier[0], tier[index]])
    return expression


def _magnitude_interpolation(index: int) -> list[Any]:
    """Build a linear 'interpolate' expression over magnitude."""
    expression: list[Any] = ["interpolate", ["linear"], ["get", "magnitude"]]
    for stop in MAGNITUDE_STOPS:
        expression.extend([stop[0], stop[index]])
    return expression


def build_cluster_layer(ids: LayerIds) -> dict[str, Any]:
    """Pure function."""
    return {
        "id": ids.clusters,
        "type": "circle",
        "source": ids.source,
        "filter": ["has", "point_count"],
        "paint": {
            "circle-color": _cluster_step(1),
            "circle-radius": _cluster_step(2),
            "circle-stroke-width": 2,
            "circle-stroke-color": "#ffffff",
        },
    }


def build_cluster_count_layer(ids: LayerIds) -> dict[str, Any]:
    """Pure function."""
    return {
        "id": ids.cluster_count,
        "type": "symbol",
        "source": ids.source,
        "filter": ["has", "point_count"],
        "layout": {
            "text-field": "{point_count_abbreviated}",
            "text-size": 14,
            "text-font": ["Open Sans Regular"],
        },
        "paint": {
            "text-color": "#ffffff",
        },
    }


def build_point_layer(ids: LayerIds) -> dict[str, Any]:
    """Pure function."""
    return {
        "id": ids.points,
        "type": "circle",
        "source": ids.source,
        "filter": ["!", ["has", "point_count"]],
        "paint": {
            "circle-color": _magnitude_interpolation(1),
            "circle-radius": _magnitude_interpolation(2),
            "circle-stroke-width": 2,
            "circle-stroke-color": "#ffffff",
            "circle-opacity": 0.85,
        },
    }


def build_layers(ids: LayerIds) -> list[dict[str, Any]]:
    """Build all layer specs in installation order.

    Pure function. Cluster circles go first so their labels draw on top.
    """
    return [
        build_cluster_layer(ids),
        build_cluster_count_layer(ids),
        build_point_layer(ids),
    ]
