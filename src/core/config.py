"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field

from src.core.filters import TIME_WINDOWS, DEFAULT_TIME_WINDOW, FilterParameters
from src.core.interaction import DEFAULT_ZOOM_INCREMENT, MAX_ACTIVATE_ZOOM


# USGS real-time summary feed (all magnitudes, past day)
DEFAULT_FEED_URL = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/all_day.geojson"

# Highest zoom level the map engine renders
MAX_MAP_ZOOM = 24


@dataclass(frozen=True)
class ClusterConfig:
    """Clustering and cluster-activation settings.

    Attributes:
        cluster_radius: Radius of each cluster in pixels
        cluster_max_zoom: Max zoom at which points are still clustered
        zoom_increment: Zoom step on cluster click when no expansion zoom is known
        max_activate_zoom: Cap for any zoom requested by a cluster click
        leaf_limit: Max leaves fetched when expanding a cluster
    """
    cluster_radius: int = 50
    cluster_max_zoom: int = 14
    zoom_increment: float = DEFAULT_ZOOM_INCREMENT
    max_activate_zoom: float = MAX_ACTIVATE_ZOOM
    leaf_limit: int = 100


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        feed_url: USGS GeoJSON summary feed URL
        polling_interval_seconds: How often to refresh the feed
        request_timeout_seconds: HTTP timeout for feed requests
        default_filters: Filters applied before the user changes anything
        cluster: Clustering settings for the map layer
        snapshot_width: Width of rendered map snapshots in pixels
        snapshot_height: Height of rendered map snapshots in pixels
    """
    feed_url: str = DEFAULT_FEED_URL
    polling_interval_seconds: int = 60
    request_timeout_seconds: int = 30
    default_filters: FilterParameters = field(default_factory=FilterParameters)
    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    snapshot_width: int = 800
    snapshot_height: int = 400


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def _find_similar_names(name: str, candidates: set[str], threshold: float = 0.6) -> list[str]:
    """Find similar names using simple similarity metric.

    Pure function.

    Args:
        name: Name to match
        candidates: Available names
        threshold: Minimum similarity (0-1)

    Returns:
        Similar names sorted by similarity (best first)
    """
    def similarity(a: str, b: str) -> float:
        """Simple case-insensitive substring similarity."""
        a_lower, b_lower = a.lower(), b.lower()
        if a_lower == b_lower:
            return 1.0
        if a_lower in b_lower or b_lower in a_lower:
            return 0.8
        # Count common characters
        common = sum(1 for c in a_lower if c in b_lower)
        return common / max(len(a), len(b))

    scored = [(c, similarity(name, c)) for c in candidates]
    matches = [(c, s) for c, s in scored if s >= threshold]
    matches.sort(key=lambda x: x[1], reverse=True)

    return [c for c, _ in matches]


def validate_filters(params: FilterParameters, field_name: str) -> list[ValidationError]:
    """Validate a filter parameters snapshot.

    Pure function. An unknown time window is only a warning since the
    filter pipeline falls back to 24h.
    """
    errors = []

    if params.min_magnitude < 0:
        errors.append(ValidationError(
            field=f"{field_name}.min_magnitude",
            message=f"Minimum magnitude must be >= 0, got {params.min_magnitude}",
        ))

    if params.time_window not in TIME_WINDOWS:
        similar = _find_similar_names(params.time_window, set(TIME_WINDOWS))
        if similar:
            message = (
                f"Unknown time window '{params.time_window}'. "
                f"Did you mean '{similar[0]}'? Falling back to {DEFAULT_TIME_WINDOW}"
            )
        else:
            message = (
                f"Unknown time window '{params.time_window}', "
                f"falling back to {DEFAULT_TIME_WINDOW}"
            )
        errors.append(ValidationError(
            field=f"{field_name}.time_window",
            message=message,
            severity="warning",
        ))

    return errors


def validate_cluster(cluster: ClusterConfig, field_name: str) -> list[ValidationError]:
    """Validate clustering settings.

    Pure function.
    """
    errors = []

    if cluster.cluster_radius <= 0:
        errors.append(ValidationError(
            field=f"{field_name}.cluster_radius",
            message=f"Cluster radius must be positive, got {cluster.cluster_radius}",
        ))

    if not 0 <= cluster.cluster_max_zoom <= MAX_MAP_ZOOM:
        errors.append(ValidationError(
            field=f"{field_name}.cluster_max_zoom",
            message=f"Cluster max zoom {cluster.cluster_max_zoom} out of range [0, {MAX_MAP_ZOOM}]",
        ))

    if cluster.zoom_increment <= 0:
        errors.append(ValidationError(
            field=f"{field_name}.zoom_increment",
            message=f"Zoom increment must be positive, got {cluster.zoom_increment}",
        ))

    if cluster.leaf_limit <= 0:
        errors.append(ValidationError(
            field=f"{field_name}.leaf_limit",
            message=f"Leaf limit must be positive, got {cluster.leaf_limit}",
        ))

    # Clicking a cluster could never zoom far enough to break it apart
    if cluster.max_activate_zoom <= cluster.cluster_max_zoom:
        errors.append(ValidationError(
            field=f"{field_name}.max_activate_zoom",
            message=(
                f"max_activate_zoom ({cluster.max_activate_zoom}) <= "
                f"cluster_max_zoom ({cluster.cluster_max_zoom})"
            ),
            severity="warning",
        ))

    return errors


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    if not config.feed_url.startswith(("http://", "https://")):
        errors.append(ValidationError(
            field="feed_url",
            message=f"Feed URL must be http(s), got '{config.feed_url}'",
        ))

    if config.polling_interval_seconds <= 0:
        errors.append(ValidationError(
            field="polling_interval_seconds",
            message=f"Polling interval must be positive, got {config.polling_interval_seconds}",
        ))

    if config.request_timeout_seconds <= 0:
        errors.append(ValidationError(
            field="request_timeout_seconds",
            message=f"Request timeout must be positive, got {config.request_timeout_seconds}",
        ))

    if config.snapshot_width <= 0 or config.snapshot_height <= 0:
        errors.append(ValidationError(
            field="snapshot",
            message=f"Snapshot size must be positive, got {config.snapshot_width}x{config.snapshot_height}",
        ))

    errors.extend(validate_filters(config.default_filters, "default_filters"))
    errors.extend(validate_cluster(config.cluster, "cluster"))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
