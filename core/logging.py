"""
Unified Logging Configuration

This module sets up a centralized logging system for the gateway.
All modules should import and use the logger from this module instead of
using print() statements.

Usage:
    from core.logging import logger, get_logger

    logger.info("Gateway started")

    log = get_logger(__name__)
    log.warning("Origin unreachable")

Log Levels (from most to least verbose):
    DEBUG    - Cache hits, background revalidation results, origin requests
    INFO     - Lifecycle events (install, activate, partitions deleted)
    WARNING  - Recovered failures (origin offline, precache entry skipped)
    ERROR    - Failures that reach the caller (pass-through origin errors)
    CRITICAL - Startup failures

Configuration:
    Log level is controlled by the LOG_LEVEL setting in .env file.
"""

import logging
import sys
from typing import Optional


def setup_logging(
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    include_timestamp: bool = True,
    include_module: bool = True
) -> logging.Logger:
    """
    Configure and return the application logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string (uses default if None)
        include_timestamp: Include timestamp in log messages
        include_module: Include logger name in log messages

    Returns:
        logging.Logger: Configured logger instance

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Gateway started")
        2024-01-01 12:00:00 [INFO] tradejournal Gateway started
    """
    if log_format is None:
        format_parts = []

        if include_timestamp:
            format_parts.append("%(asctime)s")

        format_parts.append("[%(levelname)s]")

        if include_module:
            format_parts.append("%(name)s")

        format_parts.append("%(message)s")

        log_format = " ".join(format_parts)

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True
    )

    logger = logging.getLogger("tradejournal")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    return logger


# ============================================
# Initialize Logger with Settings
# ============================================

try:
    from core.config import settings
    log_level = settings.log_level if hasattr(settings, 'log_level') else "INFO"
except ImportError:
    log_level = "INFO"

logger = setup_logging(log_level=log_level)


# ============================================
# Convenience Functions
# ============================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module or component.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        logging.Logger: Logger instance under the "tradejournal" namespace

    Example:
        # In services/offline_cache.py:
        logger = get_logger(__name__)  # "tradejournal.services.offline_cache"
    """
    return logging.getLogger(f"tradejournal.{name}")


# ============================================
# Log Helper Functions
# ============================================

def log_network_request(method: str, url: str, status: Optional[int] = None, response_time: Optional[float] = None) -> None:
    """
    Log an origin request with consistent formatting.

    Args:
        method: HTTP method
        url: Full origin URL
        status: HTTP status code, if a response was received
        response_time: Response time in seconds (optional)

    Example:
        >>> log_network_request("GET", "http://localhost:5000/favicon.png", 200, 0.012)
        [DEBUG] Origin: GET http://localhost:5000/favicon.png | Status: 200 | Time: 0.012s
    """
    status_str = f" | Status: {status}" if status is not None else ""
    time_str = f" | Time: {response_time:.3f}s" if response_time else ""
    logger.debug(f"Origin: {method} {url}{status_str}{time_str}")


def log_cache_event(partition: str, event: str, key: Optional[str] = None, details: Optional[str] = None) -> None:
    """
    Log a cache partition event with consistent formatting.

    Args:
        partition: Partition name
        event: Event type (e.g., "hit", "put", "evict", "deleted")
        key: Request identity (optional)
        details: Additional details (optional)

    Example:
        >>> log_cache_event("trading-journal-runtime-v2", "put", "GET /favicon.png")
        [DEBUG] Cache: trading-journal-runtime-v2 put | Key: GET /favicon.png
    """
    key_str = f" | Key: {key}" if key else ""
    details_str = f" | {details}" if details else ""

    level = logging.INFO if event == "deleted" else logging.DEBUG
    logger.log(level, f"Cache: {partition} {event}{key_str}{details_str}")


logger.debug("Logging system initialized")
