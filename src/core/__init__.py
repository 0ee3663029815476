"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Feed normalization
- Filter pipeline (working set derivation)
- GeoJSON feature projection
- Layer/source specifications
- Hit classification and camera targets

All functions here are deterministic and have no I/O.
"""

from src.core.event import Event, normalize_feed
from src.core.filters import FilterParameters, filter_events, summarize
from src.core.features import build_feature_collection
from src.core.styles import LayerIds, build_layers, build_source_spec
from src.core.interaction import classify_hit, cluster_camera_target

__all__ = [
    # Event
    "Event",
    "normalize_feed",
    # Filters
    "FilterParameters",
    "filter_events",
    "summarize",
    # Features
    "build_feature_collection",
    # Styles
    "LayerIds",
    "build_layers",
    "build_source_spec",
    # Interaction
    "classify_hit",
    "cluster_camera_target",
]
