"""Snapshot Client - Imperative Shell.

This module renders static PNG snapshots of the working set using
OpenStreetMap tiles. All I/O is contained here; marker and view selection
is in the core module.
"""

import io
import logging
from dataclasses import dataclass

from staticmap import StaticMap, CircleMarker

from src.core.snapshot import SnapshotConfig


logger = logging.getLogger(__name__)


DEFAULT_TILE_URL = "https://tile.openstreetmap.org/{z}/{x}/{y}.png"

# White ring drawn under each marker for contrast against the basemap
OUTLINE_WIDTH = 2


@dataclass
class SnapshotResult:
    """Result of snapshot generation.

    Attributes:
        success: Whether the image was generated successfully
        image_bytes: PNG image data if successful
        marker_count: Number of events drawn
        error: Error message if failed
    """
    success: bool
    image_bytes: bytes | None = None
    marker_count: int = 0
    error: str | None = None


class SnapshotClient:
    """Client for rendering static map snapshots.

    This is part of the imperative shell - it handles I/O (fetching map tiles
    and rendering images).
    """

    def __init__(self, tile_url: str | None = None) -> None:
        """Initialize snapshot client.

        Args:
            tile_url: Custom tile URL template. Defaults to OpenStreetMap.
        """
        self.tile_url = tile_url or DEFAULT_TILE_URL

    def render(self, config: SnapshotConfig) -> SnapshotResult:
        """Render a snapshot image.

        This method performs I/O (fetches map tiles from tile server).

        Args:
            config: Snapshot configuration from core module

        Returns:
            SnapshotResult with image bytes or error
        """
        logger.info(
            "Rendering snapshot with %d markers",
            len(config.markers),
        )

        try:
            static_map = StaticMap(
                config.width,
                config.height,
                url_template=self.tile_url,
            )

            for marker in config.markers:
                # (lon, lat) order for staticmap
                coordinate = (marker.longitude, marker.latitude)
                static_map.add_marker(
                    CircleMarker(coordinate, "white", marker.radius + OUTLINE_WIDTH)
                )
                static_map.add_marker(
                    CircleMarker(coordinate, marker.color, marker.radius)
                )

            image = static_map.render(zoom=config.zoom, center=config.center)

            buffer = io.BytesIO()
            image.save(buffer, format="PNG")
            image_bytes = buffer.getvalue()

            logger.info(
                "Rendered snapshot: %d bytes",
                len(image_bytes),
            )

            return SnapshotResult(
                success=True,
                image_bytes=image_bytes,
                marker_count=len(config.markers),
            )

        except Exception as e:
            logger.error("Failed to render snapshot: %s", str(e))
            return SnapshotResult(
                success=False,
                error=str(e),
            )
