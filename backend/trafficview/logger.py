"""
Logging Setup

Module loggers share one stream handler configured at startup.
Messages keep short tag prefixes ([WS], [BROADCAST], [STORE]) so the
console output stays greppable.
"""

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure the root trafficview logger

    Args:
        level: Log level name (default: LOG_LEVEL env var or INFO)
    """
    global _configured

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger("trafficview")
    root.setLevel(getattr(logging, level_name, logging.INFO))

    if not _configured:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a module logger under the trafficview namespace"""
    if not name.startswith("trafficview"):
        name = f"trafficview.{name}"
    return logging.getLogger(name)
