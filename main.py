"""Process Entry Point - Root Module.

This is the root-level entry point for running the feed poller.
It imports from the src package.
"""

import sys

from src.main import main, run_monitor

__all__ = [
    "main",
    "run_monitor",
]


if __name__ == "__main__":
    sys.exit(main())
