"""
Core Utilities Package

This package contains utility functions and helpers used throughout the application.

Modules:
    - time: UTC timestamp helpers for cache entry ages
"""

from core.utils.time import current_utc_datetime, seconds_since

__all__ = ["current_utc_datetime", "seconds_since"]
