"""Polling Entry Point.

This module provides the process entry point. It's a thin wrapper that
loads configuration and lets the orchestrator poll the feed.
"""

import argparse
import logging
import os
import sys

from src.core.config import Config
from src.orchestrator import Orchestrator
from src.shell.config_loader import load_config, load_config_from_env


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _get_config(config_path: str | None = None) -> Config:
    """Load configuration from file or environment."""
    config_path = config_path or os.environ.get("CONFIG_PATH")

    if config_path:
        return load_config(config_path)
    elif os.environ.get("FEED_URL") or os.environ.get("MIN_MAGNITUDE"):
        # Simple env-based config
        return load_config_from_env()
    else:
        # Try default config path
        return load_config()


def run_monitor(
    config: Config,
    iterations: int | None = None,
    snapshot_path: str | None = None,
) -> int:
    """Poll the feed and log the working set after each refresh.

    Args:
        config: Application configuration
        iterations: Number of refreshes, None to run until interrupted
        snapshot_path: Write a PNG of the final working set here

    Returns:
        Process exit code
    """
    orchestrator = Orchestrator(config)

    def log_top_events(working_set):
        for event in working_set[:5]:
            logger.info("M%.1f %s", event.magnitude, event.place)

    orchestrator.subscribe(log_top_events)

    try:
        results = orchestrator.poll(iterations=iterations)
    except KeyboardInterrupt:
        logger.info("Stopped by user")
        return 0

    stats = orchestrator.stats()
    logger.info(
        "Working set: %d events, max M%.1f, avg M%.1f, %d in the last hour",
        stats.total,
        stats.max_magnitude,
        stats.average_magnitude,
        stats.recent_count,
    )

    if snapshot_path:
        snapshot = orchestrator.render_snapshot()
        if snapshot.success and snapshot.image_bytes:
            with open(snapshot_path, "wb") as f:
                f.write(snapshot.image_bytes)
            logger.info("Wrote snapshot to %s", snapshot_path)
        else:
            logger.error("Snapshot failed: %s", snapshot.error)

    if results and not results[-1].success:
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Poll the USGS earthquake feed")
    parser.add_argument("--config", help="Path to YAML config file")
    parser.add_argument(
        "--iterations",
        type=int,
        default=None,
        help="Number of refreshes (default: run until interrupted)",
    )
    parser.add_argument("--snapshot", help="Write a PNG snapshot of the working set")
    args = parser.parse_args(argv)

    try:
        config = _get_config(args.config)
    except ValueError as e:
        logger.error("%s", e)
        return 2

    return run_monitor(config, iterations=args.iterations, snapshot_path=args.snapshot)


if __name__ == "__main__":
    sys.exit(main())
