"""USGS Feed Client - Imperative Shell.

This module handles HTTP communication with the USGS real-time GeoJSON
summary feeds. All I/O is contained here; normalization is in the core module.
"""

import logging
from typing import Any

import requests

from src.core.config import DEFAULT_FEED_URL


logger = logging.getLogger(__name__)


# USGS summary feed base URL; feeds are named {magnitude}_{period}.geojson
USGS_FEED_BASE = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary"

FEED_PERIODS = ("hour", "day", "week", "month")

# Default timeout for feed requests (seconds)
DEFAULT_TIMEOUT = 30


def build_feed_url(period: str = "day", magnitude: str = "all") -> str:
    """Build a summary feed URL.

    Args:
        period: One of 'hour', 'day', 'week', 'month'
        magnitude: 'all', '1.0', '2.5', '4.5' or 'significant'

    Returns:
        Feed URL

    Raises:
        ValueError: If period is not a known feed period
    """
    if period not in FEED_PERIODS:
        raise ValueError(f"Unknown feed period '{period}', expected one of {FEED_PERIODS}")
    return f"{USGS_FEED_BASE}/{magnitude}_{period}.geojson"


class USGSClient:
    """Client for polling the USGS earthquake summary feed.

    This is part of the imperative shell - it handles HTTP I/O.
    """

    def __init__(
        self,
        feed_url: str = DEFAULT_FEED_URL,
        timeout: int = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize USGS client.

        Args:
            feed_url: GeoJSON summary feed URL
            timeout: Request timeout in seconds
            session: Optional requests session (connection reuse across polls)
        """
        self.feed_url = feed_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_feed(self) -> dict[str, Any]:
        """Fetch the current feed contents.

        This method performs HTTP I/O.

        Returns:
            Raw GeoJSON FeatureCollection from USGS

        Raises:
            requests.RequestException: If the request fails
            ValueError: If the response body is not JSON
        """
        logger.info(
            "Fetching earthquake feed from USGS",
            extra={"feed_url": self.feed_url},
        )

        response = self.session.get(self.feed_url, timeout=self.timeout)
        response.raise_for_status()

        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected feed payload type: {type(data).__name__}")

        count = data.get("metadata", {}).get("count", len(data.get("features", [])))

        logger.info(
            "Fetched %d feed records from USGS",
            count,
        )

        return data
