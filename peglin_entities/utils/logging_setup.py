"""Loguru sink configuration for batch runs.

Extraction runs are usually launched from a terminal and leave a log file behind
so that per-asset warnings can be inspected after the batch has finished.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from loguru import logger

from peglin_entities.utils.config import LoggingConfig

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
)


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Replace Loguru's default sink with the configured console/file sinks."""
    config = config or LoggingConfig()
    # Allow developers to opt out while debugging.
    if os.getenv("PEGLIN_DISABLE_LOG_RECONFIG") == "1":
        return

    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=config.level)

    if config.file:
        target = Path(config.file)
        target.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(target),
            level=config.level,
            rotation=config.rotation,
            retention=config.retention,
            compression="zip",
        )
