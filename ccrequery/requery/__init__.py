"""Requery scheduling for stalled downloads.

This package decides whether, when and how a download re-issues broadcast
queries and DHT alternate-location lookups.
"""

from __future__ import annotations

from ccrequery.requery.adapters import (
    AsyncDHTLookupFactory,
    MessageCountProbe,
    TaskLookupHandle,
)
from ccrequery.requery.models import (
    BroadcastState,
    DHTState,
    QueryOutcome,
    QueryType,
    RequerySnapshot,
    RequeryTimings,
)
from ccrequery.requery.policy import (
    SendPolicy,
    activated_broadcast_policy,
    policy_from_config,
    requery_disabled,
)
from ccrequery.requery.stability import ConnectionStabilityGate
from ccrequery.requery.supervisor import (
    CONNECT_RETRY_DELAY,
    REQUERY_COOLDOWN,
    RequerySupervisor,
)

__all__ = [
    "CONNECT_RETRY_DELAY",
    "REQUERY_COOLDOWN",
    "AsyncDHTLookupFactory",
    "BroadcastState",
    "ConnectionStabilityGate",
    "DHTState",
    "MessageCountProbe",
    "QueryOutcome",
    "QueryType",
    "RequerySnapshot",
    "RequerySupervisor",
    "RequeryTimings",
    "SendPolicy",
    "TaskLookupHandle",
    "activated_broadcast_policy",
    "policy_from_config",
    "requery_disabled",
]
