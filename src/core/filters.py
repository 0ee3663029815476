"""Filter pipeline - Pure functions.

This module derives the working set (the filtered, magnitude-sorted event
sequence shared by the map, table and chart) from the current events and
filter parameters. All functions are pure with no side effects.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from src.core.event import Event


ALL_REGIONS = "all"

# Recognized time windows; anything else falls back to DEFAULT_TIME_WINDOW
TIME_WINDOWS: dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "6h": timedelta(hours=6),
    "12h": timedelta(hours=12),
    "24h": timedelta(hours=24),
}
DEFAULT_TIME_WINDOW = "24h"

# "Recent" counter shown next to the dashboard totals
RECENT_WINDOW = timedelta(hours=1)

WorkingSet = tuple[Event, ...]


@dataclass(frozen=True)
class FilterParameters:
    """Snapshot of the user-selected filters.

    Attributes:
        min_magnitude: Minimum magnitude to keep (inclusive)
        time_window: One of '1h', '6h', '12h', '24h'
        region: Place substring to match, or 'all'
    """
    min_magnitude: float = 0.0
    time_window: str = DEFAULT_TIME_WINDOW
    region: str = ALL_REGIONS

    def with_changes(self, **changes: Any) -> "FilterParameters":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


@dataclass(frozen=True)
class WorkingSetStats:
    """Summary numbers for a working set.

    Attributes:
        total: Number of events
        max_magnitude: Largest magnitude (0 when empty)
        average_magnitude: Mean magnitude (0 when empty)
        recent_count: Events within the last hour
    """
    total: int
    max_magnitude: float
    average_magnitude: float
    recent_count: int


def window_duration(time_window: str) -> timedelta:
    """Map a time window label to its duration.

    Pure function. Unrecognized labels fall back to 24 hours.
    """
    return TIME_WINDOWS.get(time_window, TIME_WINDOWS[DEFAULT_TIME_WINDOW])


def matches_magnitude(event: Event, params: FilterParameters) -> bool:
    """Pure function."""
    return event.magnitude >= params.min_magnitude


def matches_time_window(event: Event, params: FilterParameters, now: datetime) -> bool:
    """Check if the event happened inside the selected window.

    Pure function. The cutoff itself is inclusive.
    """
    cutoff = now - window_duration(params.time_window)
    return event.time_occurred >= cutoff


def matches_region(event: Event, params: FilterParameters) -> bool:
    """Check if the event's place contains the region, case-insensitively.

    Pure function. 'all' (or an empty region) matches everything.
    """
    region = (params.region or "").lower()
    if not region or region == ALL_REGIONS:
        return True
    return region in event.place.lower()


def filter_events(
    events: Iterable[Event],
    params: FilterParameters,
    now: datetime | None = None,
) -> WorkingSet:
    """Compute the working set for the given filters.

    Pure function. All predicates are ANDed, then the result is sorted by
    magnitude, largest first. Python's sort is stable, so events with equal
    magnitude keep their feed order.

    Args:
        events: Events from the latest feed snapshot
        params: Filter parameters snapshot
        now: Reference time for the window (defaults to current UTC time)

    Returns:
        Working set as an immutable tuple
    """
    if now is None:
        now = datetime.now(timezone.utc)

    kept = [
        e for e in events
        if matches_magnitude(e, params)
        and matches_time_window(e, params, now)
        and matches_region(e, params)
    ]

    return tuple(sorted(kept, key=lambda e: e.magnitude, reverse=True))


def summarize(working_set: WorkingSet, now: datetime | None = None) -> WorkingSetStats:
    """Compute dashboard summary numbers for a working set.

    Pure function.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    if not working_set:
        return WorkingSetStats(
            total=0,
            max_magnitude=0.0,
            average_magnitude=0.0,
            recent_count=0,
        )

    magnitudes = [e.magnitude for e in working_set]
    recent_cutoff = now - RECENT_WINDOW

    return WorkingSetStats(
        total=len(working_set),
        max_magnitude=max(magnitudes),
        average_magnitude=sum(magnitudes) / len(magnitudes),
        recent_count=sum(1 for e in working_set if e.time_occurred >= recent_cutoff),
    )
