"""Earthquake API - FastAPI service for the dashboard's consumer views.

Read-only endpoints serving the working set (table), its GeoJSON projection
(map clients without the layer manager), summary stats (header cards) and a
static snapshot image. Feed data is cached for one polling interval.
"""

import logging
import time
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel

from src.core.event import Event
from src.core.features import build_feature_collection, format_description
from src.core.filters import (
    ALL_REGIONS,
    DEFAULT_TIME_WINDOW,
    FilterParameters,
    WorkingSet,
    filter_events,
    summarize,
)
from src.core.snapshot import create_snapshot_config
from src.orchestrator import FeedStatus, Orchestrator
from src.shell.config_loader import load_config

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Earthquake API",
    description="Serves the filtered USGS earthquake working set to dashboard views",
    version="1.0.0",
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:3001",
    ],
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)


# ===== Response Models =====

class EventResponse(BaseModel):
    id: str
    title: str
    magnitude: float
    place: str
    time: str
    longitude: float
    latitude: float
    depth_km: float
    type: str
    status: str
    url: str
    description: str


class FiltersResponse(BaseModel):
    min_magnitude: float
    time_window: str
    region: str


class StatsResponse(BaseModel):
    total: int
    max_magnitude: float
    average_magnitude: float
    recent_count: int


# ===== Feed Cache =====

_orchestrator: Orchestrator | None = None
_refreshed_at: float = 0


def _get_orchestrator() -> Orchestrator:
    """Get or create the orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = Orchestrator(load_config())
        logger.info("Orchestrator initialized for feed: %s", _orchestrator.config.feed_url)
    return _orchestrator


def _is_cache_valid(orchestrator: Orchestrator) -> bool:
    """Check if the cached feed is younger than one polling interval."""
    if orchestrator.status is not FeedStatus.OK:
        return False
    elapsed = time.time() - _refreshed_at
    return elapsed < orchestrator.config.polling_interval_seconds


def _invalidate_cache() -> None:
    global _refreshed_at
    _refreshed_at = 0


def _fresh_orchestrator() -> Orchestrator:
    """Return the orchestrator, refreshing the feed if the cache expired.

    Raises:
        HTTPException: 502 if the feed never loaded
    """
    global _refreshed_at

    orchestrator = _get_orchestrator()

    if not _is_cache_valid(orchestrator):
        result = orchestrator.refresh()
        if result.success:
            _refreshed_at = time.time()

    if orchestrator.status is FeedStatus.UNAVAILABLE:
        raise HTTPException(status_code=502, detail="Failed to fetch earthquake data")

    return orchestrator


def _event_to_dict(event: Event) -> dict[str, Any]:
    """Convert Event to API response format."""
    return EventResponse(
        id=event.id,
        title=event.title,
        magnitude=event.magnitude,
        place=event.place,
        time=event.time_occurred.isoformat(),
        longitude=event.longitude,
        latitude=event.latitude,
        depth_km=event.depth_km,
        type=event.kind,
        status=event.status,
        url=event.detail_url,
        description=format_description(event),
    ).model_dump()


def _filters_from_query(min_magnitude: float, time_window: str, region: str) -> FilterParameters:
    return FilterParameters(
        min_magnitude=min_magnitude,
        time_window=time_window,
        region=region,
    )


def _working_set(orchestrator: Orchestrator, params: FilterParameters) -> WorkingSet:
    """Filter the cached events for one request without touching shared state."""
    return filter_events(orchestrator.events, params)


def _feed_info(orchestrator: Orchestrator) -> dict[str, Any]:
    last_updated = orchestrator.last_updated
    return {
        "status": orchestrator.status.value,
        "last_updated": last_updated.isoformat() if last_updated else None,
    }


# ===== Public Endpoints =====

@app.get("/api/events")
async def get_events(
    min_magnitude: float = Query(default=0.0, ge=0),
    time_window: str = Query(default=DEFAULT_TIME_WINDOW),
    region: str = Query(default=ALL_REGIONS),
    limit: int | None = Query(default=None, ge=1, le=1000),
):
    """Get the working set, largest magnitude first."""
    orchestrator = _fresh_orchestrator()
    params = _filters_from_query(min_magnitude, time_window, region)
    working_set = _working_set(orchestrator, params)
    if limit is not None:
        working_set = working_set[:limit]

    return {
        "filters": FiltersResponse(
            min_magnitude=params.min_magnitude,
            time_window=params.time_window,
            region=params.region,
        ).model_dump(),
        "events": [_event_to_dict(e) for e in working_set],
        "count": len(working_set),
        "feed": _feed_info(orchestrator),
    }


@app.get("/api/events/geojson")
async def get_events_geojson(
    min_magnitude: float = Query(default=0.0, ge=0),
    time_window: str = Query(default=DEFAULT_TIME_WINDOW),
    region: str = Query(default=ALL_REGIONS),
):
    """Get the working set as a GeoJSON FeatureCollection."""
    orchestrator = _fresh_orchestrator()
    params = _filters_from_query(min_magnitude, time_window, region)
    return build_feature_collection(_working_set(orchestrator, params))


@app.get("/api/stats")
async def get_stats(
    min_magnitude: float = Query(default=0.0, ge=0),
    time_window: str = Query(default=DEFAULT_TIME_WINDOW),
    region: str = Query(default=ALL_REGIONS),
):
    """Get summary numbers for the working set."""
    orchestrator = _fresh_orchestrator()
    params = _filters_from_query(min_magnitude, time_window, region)
    stats = summarize(_working_set(orchestrator, params))

    return {
        "stats": StatsResponse(
            total=stats.total,
            max_magnitude=stats.max_magnitude,
            average_magnitude=stats.average_magnitude,
            recent_count=stats.recent_count,
        ).model_dump(),
        "feed": _feed_info(orchestrator),
    }


@app.get("/api/snapshot.png")
async def get_snapshot(
    min_magnitude: float = Query(default=0.0, ge=0),
    time_window: str = Query(default=DEFAULT_TIME_WINDOW),
    region: str = Query(default=ALL_REGIONS),
):
    """Render the working set as a static PNG map."""
    orchestrator = _fresh_orchestrator()
    params = _filters_from_query(min_magnitude, time_window, region)
    config = create_snapshot_config(
        _working_set(orchestrator, params),
        width=orchestrator.config.snapshot_width,
        height=orchestrator.config.snapshot_height,
    )
    result = orchestrator.snapshot_client.render(config)

    if not result.success or result.image_bytes is None:
        raise HTTPException(status_code=502, detail="Failed to render snapshot")

    return Response(content=result.image_bytes, media_type="image/png")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8080")))
