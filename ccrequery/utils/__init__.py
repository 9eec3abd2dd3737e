"""Shared utilities and infrastructure.

This module contains common utilities used throughout the application.
"""

from __future__ import annotations

from ccrequery.utils.exceptions import (
    CCRQError,
    ConfigurationError,
    DHTLookupError,
    NetworkError,
    RequeryError,
    ValidationError,
)
from ccrequery.utils.logging_config import get_logger, setup_logging
from ccrequery.utils.metrics import RequeryMetrics
from ccrequery.utils.time import Clock

__all__ = [
    # Exceptions
    "CCRQError",
    # Time
    "Clock",
    "ConfigurationError",
    "DHTLookupError",
    "NetworkError",
    "RequeryError",
    # Metrics
    "RequeryMetrics",
    "ValidationError",
    # Logging
    "get_logger",
    "setup_logging",
]
