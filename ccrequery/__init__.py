"""ccrequery - requery scheduling for stalled peer-to-peer downloads."""

from __future__ import annotations

__version__ = "0.1.0"

from ccrequery.config.config import Config, ConfigManager, get_config, init_config
from ccrequery.requery import (
    QueryOutcome,
    QueryType,
    RequerySupervisor,
    activated_broadcast_policy,
    requery_disabled,
)
from ccrequery.utils import exceptions, logging_config, metrics

__all__ = [
    "Config",
    "ConfigManager",
    "QueryOutcome",
    "QueryType",
    "RequerySupervisor",
    "__version__",
    "activated_broadcast_policy",
    "exceptions",
    "get_config",
    "init_config",
    "logging_config",
    "metrics",
    "requery_disabled",
]
