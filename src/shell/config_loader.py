"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (Config, ClusterConfig) are defined in src/core/config.py
to avoid information leakage between layers.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from src.core.config import ClusterConfig, Config, DEFAULT_FEED_URL, validate_config
from src.core.filters import ALL_REGIONS, DEFAULT_TIME_WINDOW, FilterParameters
from src.shell.usgs_client import build_feed_url


logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "config/config.yaml"


def _resolve_value(value: Any) -> Any:
    """Resolve a ${VAR} environment placeholder.

    Args:
        value: Value to resolve

    Returns:
        Environment value, or the original value if not a placeholder or unset
    """
    if not isinstance(value, str):
        return value

    if value.startswith("${") and value.endswith("}"):
        var_name = value[2:-1]
        env_value = os.environ.get(var_name)
        if env_value:
            return env_value
        logger.warning("Environment variable %s not set", var_name)

    return value


def _parse_filters(data: dict[str, Any]) -> FilterParameters:
    """Parse default filter parameters from config data."""
    return FilterParameters(
        min_magnitude=float(_resolve_value(data.get("min_magnitude", 0.0))),
        time_window=str(_resolve_value(data.get("time_window", DEFAULT_TIME_WINDOW))),
        region=str(_resolve_value(data.get("region", ALL_REGIONS))),
    )


def _parse_cluster(data: dict[str, Any]) -> ClusterConfig:
    """Parse clustering settings from config data."""
    defaults = ClusterConfig()
    return ClusterConfig(
        cluster_radius=int(data.get("cluster_radius", defaults.cluster_radius)),
        cluster_max_zoom=int(data.get("cluster_max_zoom", defaults.cluster_max_zoom)),
        zoom_increment=float(data.get("zoom_increment", defaults.zoom_increment)),
        max_activate_zoom=float(data.get("max_activate_zoom", defaults.max_activate_zoom)),
        leaf_limit=int(data.get("leaf_limit", defaults.leaf_limit)),
    )


def _parse_feed_url(data: dict[str, Any]) -> str:
    """Resolve the feed URL from an explicit URL or a feed period."""
    if "feed_url" in data:
        return str(_resolve_value(data["feed_url"]))
    if "feed_period" in data:
        return build_feed_url(
            period=str(data["feed_period"]),
            magnitude=str(data.get("feed_magnitude", "all")),
        )
    return DEFAULT_FEED_URL


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only env var expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object

    Raises:
        ValueError: If the configuration has critical errors
    """
    snapshot = data.get("snapshot") or {}

    config = Config(
        feed_url=_parse_feed_url(data),
        polling_interval_seconds=int(data.get("polling_interval_seconds", 60)),
        request_timeout_seconds=int(data.get("request_timeout_seconds", 30)),
        default_filters=_parse_filters(data.get("filters") or {}),
        cluster=_parse_cluster(data.get("cluster") or {}),
        snapshot_width=int(snapshot.get("width", 800)),
        snapshot_height=int(snapshot.get("height", 400)),
    )

    result = validate_config(config)
    for warning in result.warnings:
        logger.warning("Config warning in %s: %s", warning.field, warning.message)
    if not result.valid:
        messages = "; ".join(f"{e.field}: {e.message}" for e in result.critical_errors)
        raise ValueError(f"Invalid configuration: {messages}")

    return config


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
        ValueError: If the configuration has critical errors
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH)

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return Config()

    config = load_config_from_dict(data)

    logger.info(
        "Loaded config: feed %s, polling every %ds, cluster radius %d",
        config.feed_url,
        config.polling_interval_seconds,
        config.cluster.cluster_radius,
    )

    return config


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        FEED_URL: GeoJSON feed URL
        POLLING_INTERVAL_SECONDS: Seconds between feed refreshes
        MIN_MAGNITUDE: Default minimum magnitude filter
        TIME_WINDOW: Default time window filter (1h, 6h, 12h, 24h)
        REGION: Default region filter
        CLUSTER_RADIUS: Cluster radius in pixels
        CLUSTER_MAX_ZOOM: Max zoom at which points cluster

    Returns:
        Config object from environment
    """
    data: dict[str, Any] = {
        "filters": {},
        "cluster": {},
    }

    if os.environ.get("FEED_URL"):
        data["feed_url"] = os.environ["FEED_URL"]
    if os.environ.get("POLLING_INTERVAL_SECONDS"):
        data["polling_interval_seconds"] = os.environ["POLLING_INTERVAL_SECONDS"]

    if os.environ.get("MIN_MAGNITUDE"):
        data["filters"]["min_magnitude"] = os.environ["MIN_MAGNITUDE"]
    if os.environ.get("TIME_WINDOW"):
        data["filters"]["time_window"] = os.environ["TIME_WINDOW"]
    if os.environ.get("REGION"):
        data["filters"]["region"] = os.environ["REGION"]

    if os.environ.get("CLUSTER_RADIUS"):
        data["cluster"]["cluster_radius"] = os.environ["CLUSTER_RADIUS"]
    if os.environ.get("CLUSTER_MAX_ZOOM"):
        data["cluster"]["cluster_max_zoom"] = os.environ["CLUSTER_MAX_ZOOM"]

    return load_config_from_dict(data)
