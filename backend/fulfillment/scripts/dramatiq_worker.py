#!/usr/bin/env python
"""Dramatiq worker entry point."""

import os
import shutil
import sys

import structlog

from fulfillment.logging import setup_logging

setup_logging()
logger = structlog.get_logger(__name__)


def main() -> None:
    """Start Dramatiq workers for the fulfillment task modules."""
    # Exec into dramatiq CLI with any additional args
    # sys.argv[0] is this script, pass the rest to dramatiq
    dramatiq_path = shutil.which("dramatiq")
    if dramatiq_path is None:
        logger.error("Dramatiq executable not found in PATH")
        sys.exit(1)

    logger.info("Starting notification workers")
    os.execv(dramatiq_path, [dramatiq_path, "fulfillment.tasks", "--queues", "notifications", *sys.argv[1:]])


if __name__ == "__main__":
    main()
