"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- USGS feed client (HTTP)
- Cluster layer manager (map mutation)
- Snapshot client (tile fetching, image rendering)
- Configuration loading (environment/files)

Keep this layer thin and simple. All business logic should be in core.
"""

from src.shell.usgs_client import USGSClient
from src.shell.cluster_layer import ClusterLayerManager
from src.shell.snapshot_client import SnapshotClient
from src.shell.config_loader import load_config

__all__ = [
    "USGSClient",
    "ClusterLayerManager",
    "SnapshotClient",
    "load_config",
]
