from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class QueryType(str, Enum):
    """Requery mechanisms that can be active for a download."""

    BROADCAST = "broadcast"
    DHT = "dht"


class BroadcastState(str, Enum):
    """One-shot broadcast track: NOT_SENT -> SENT."""

    NOT_SENT = "not_sent"
    SENT = "sent"


class DHTState(str, Enum):
    """Re-enterable DHT track: IDLE -> LOOKUP_IN_FLIGHT -> IDLE."""

    IDLE = "idle"
    LOOKUP_IN_FLIGHT = "lookup_in_flight"


class QueryOutcome(str, Enum):
    """What a send attempt did.

    Only DISPATCHED, DECLINED and LOOKUP_STARTED change supervisor state.
    """

    NOT_ALLOWED = "not_allowed"
    ALREADY_SENT = "already_sent"
    PENDING_CONNECTIONS = "pending_connections"
    DECLINED = "declined"
    DISPATCHED = "dispatched"
    LOOKUP_STARTED = "lookup_started"
    LOOKUP_IN_FLIGHT = "lookup_in_flight"
    NO_LOOKUP_FACTORY = "no_lookup_factory"
    SEND_IN_PROGRESS = "send_in_progress"
    CLOSED = "closed"


@dataclass(frozen=True)
class RequeryTimings:
    """Cooldown and retry durations in seconds."""

    cooldown: float = 300.0
    connect_retry_delay: float = 0.75


@dataclass(frozen=True)
class RequerySnapshot:
    """Point-in-time view of a supervisor's scheduling state."""

    download_key: bytes
    activated: bool
    broadcast_state: BroadcastState
    dht_state: DHTState
    last_query_type: QueryType | None
    last_query_sent_at: float | None
    dht_queries_issued: int
    time_left: float
    waiting: bool
    closed: bool = False

    @property
    def sent_broadcast_query(self) -> bool:
        return self.broadcast_state is BroadcastState.SENT

    @property
    def dht_lookup_in_flight(self) -> bool:
        return self.dht_state is DHTState.LOOKUP_IN_FLIGHT
