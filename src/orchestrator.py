"""Orchestrator - Wires Functional Core and Imperative Shell.

This module coordinates the flow of data between the pure functional
core and the I/O-performing shell components:

    USGS feed -> normalize -> filter -> cluster layer manager -> consumers

It also acts as the refresh scheduler: poll() re-enters the pipeline on a
timer, and set_filters() re-enters it when the user changes a filter.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

import requests

from src.core.config import Config
from src.core.event import Event, FeedSnapshot, normalize_feed
from src.core.filters import FilterParameters, WorkingSet, WorkingSetStats, summarize
from src.core.snapshot import create_snapshot_config
from src.shell.cluster_layer import ClusterLayerManager
from src.shell.map_handle import MapHandle
from src.shell.snapshot_client import SnapshotClient, SnapshotResult
from src.shell.usgs_client import USGSClient


logger = logging.getLogger(__name__)


WorkingSetListener = Callable[[WorkingSet], None]


class FeedStatus(Enum):
    """Freshness of the data shown to the user."""
    LOADING = "loading"          # no refresh attempted yet
    OK = "ok"                    # last refresh succeeded
    STALE = "stale"              # last refresh failed, showing previous data
    UNAVAILABLE = "unavailable"  # every refresh so far failed


@dataclass
class RefreshResult:
    """Result of one feed refresh.

    Attributes:
        events_fetched: Valid events in the feed
        events_dropped: Feed records that failed normalization
        working_set_size: Events left after filtering
        generated: Upstream feed generation time
        errors: Any errors that occurred
    """
    events_fetched: int
    events_dropped: int
    working_set_size: int
    generated: datetime | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Returns True if no errors occurred."""
        return len(self.errors) == 0

    @property
    def summary(self) -> str:
        """Human-readable summary of the refresh."""
        return (
            f"Fetched {self.events_fetched} events, "
            f"{self.events_dropped} dropped, "
            f"{self.working_set_size} in working set"
        )


class Orchestrator:
    """Coordinates feed refreshes, filter changes and the map layer.

    This class wires together:
    - USGS client (fetches the feed)
    - Core functions (normalization, filtering, stats, snapshot config)
    - Cluster layer manager (owns the map's source/layers)
    - Snapshot client (renders static images)
    - Working set listeners (table, chart and other consumer views)
    """

    def __init__(
        self,
        config: Config,
        usgs_client: USGSClient | None = None,
        snapshot_client: SnapshotClient | None = None,
        layer_manager: ClusterLayerManager | None = None,
    ) -> None:
        """Initialize orchestrator with configuration.

        Args:
            config: Application configuration
            usgs_client: USGS client (created if not provided)
            snapshot_client: Snapshot client (created if not provided)
            layer_manager: Cluster layer manager (created if not provided)
        """
        self.config = config
        self.usgs_client = usgs_client or USGSClient(
            feed_url=config.feed_url,
            timeout=config.request_timeout_seconds,
        )
        self.snapshot_client = snapshot_client or SnapshotClient()
        self.layer_manager = layer_manager or ClusterLayerManager(
            config=config.cluster,
            filters=config.default_filters,
        )

        self._snapshot: FeedSnapshot | None = None
        self._status = FeedStatus.LOADING
        self._listeners: list[WorkingSetListener] = []

    @property
    def status(self) -> FeedStatus:
        return self._status

    @property
    def filters(self) -> FilterParameters:
        return self.layer_manager.filters

    @property
    def working_set(self) -> WorkingSet:
        return self.layer_manager.working_set

    @property
    def events(self) -> tuple[Event, ...]:
        """Unfiltered events from the last successful refresh."""
        return self._snapshot.events if self._snapshot else ()

    @property
    def last_updated(self) -> datetime | None:
        """Generation time of the last successfully fetched feed."""
        return self._snapshot.generated if self._snapshot else None

    def subscribe(self, listener: WorkingSetListener) -> Callable[[], None]:
        """Register a consumer of the working set.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def attach_map(self, map_handle: MapHandle) -> None:
        self.layer_manager.attach_to_map(map_handle)

    def detach_map(self) -> None:
        self.layer_manager.detach()

    def _notify(self, working_set: WorkingSet) -> None:
        for listener in list(self._listeners):
            try:
                listener(working_set)
            except Exception:
                logger.exception("Working set listener failed")

    def refresh(self, now: datetime | None = None) -> RefreshResult:
        """Fetch the feed and push a new working set everywhere.

        If the feed is unreachable the previous working set stays in place.

        Returns:
            RefreshResult with details of what happened
        """
        try:
            geojson = self.usgs_client.fetch_feed()
        except (requests.RequestException, ValueError) as e:
            error_msg = f"Failed to fetch feed: {e}"
            logger.error(error_msg)
            self._status = FeedStatus.STALE if self._snapshot else FeedStatus.UNAVAILABLE
            return RefreshResult(
                events_fetched=0,
                events_dropped=0,
                working_set_size=len(self.working_set),
                generated=self.last_updated,
                errors=[error_msg],
            )

        snapshot = normalize_feed(geojson)
        if snapshot.dropped:
            logger.warning("Dropped %d malformed feed records", snapshot.dropped)

        self._snapshot = snapshot
        self._status = FeedStatus.OK

        working_set = self.layer_manager.update_events(snapshot.events, now=now)
        self._notify(working_set)

        result = RefreshResult(
            events_fetched=len(snapshot.events),
            events_dropped=snapshot.dropped,
            working_set_size=len(working_set),
            generated=snapshot.generated,
        )
        logger.info("Refresh complete: %s", result.summary)
        return result

    def set_filters(
        self,
        params: FilterParameters | None = None,
        now: datetime | None = None,
        **changes: Any,
    ) -> WorkingSet:
        """Apply new filters, either a full snapshot or partial changes.

        Partial changes are merged into the current filters.
        """
        if params is None:
            params = self.filters.with_changes(**changes)
        elif changes:
            params = params.with_changes(**changes)

        working_set = self.layer_manager.update_filters(params, now=now)
        logger.info(
            "Filters changed: min_magnitude=%s time_window=%s region=%s (%d events)",
            params.min_magnitude,
            params.time_window,
            params.region,
            len(working_set),
        )
        self._notify(working_set)
        return working_set

    def stats(self, now: datetime | None = None) -> WorkingSetStats:
        return summarize(self.working_set, now=now)

    def render_snapshot(self) -> SnapshotResult:
        """Render the current working set to a PNG."""
        config = create_snapshot_config(
            self.working_set,
            width=self.config.snapshot_width,
            height=self.config.snapshot_height,
        )
        return self.snapshot_client.render(config)

    def poll(
        self,
        iterations: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> list[RefreshResult]:
        """Refresh on a fixed interval.

        Args:
            iterations: Number of refreshes, None to run until interrupted
            sleep: Sleep function (injectable for tests)

        Returns:
            Results of every refresh performed (empty when running unbounded)
        """
        results: list[RefreshResult] = []
        count = 0

        while iterations is None or count < iterations:
            result = self.refresh()
            if iterations is not None:
                results.append(result)
            count += 1
            if iterations is not None and count >= iterations:
                break
            sleep(self.config.polling_interval_seconds)

        return results
