from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

from ccrequery.requery.models import QueryType

LookupDoneCallback = Callable[[bool], None]


@runtime_checkable
class CancelableHandle(Protocol):
    """Handle to an in-flight lookup that can be shut down early."""

    def shutdown(self) -> None: ...


@runtime_checkable
class RequeryListenerProtocol(Protocol):
    """Download-side listener that builds queries and observes lookup progress."""

    def build_query(self) -> Any | None: ...

    def on_lookup_started(self, query_type: QueryType, estimated_wait: float) -> None: ...

    def on_lookup_pending(self, query_type: QueryType, retry_delay: float) -> None: ...

    def on_lookup_finished(self, query_type: QueryType) -> None: ...


@runtime_checkable
class QueryDispatcherProtocol(Protocol):
    """Fire-and-forget network sender for broadcast queries."""

    def submit(self, query: Any) -> None: ...


@runtime_checkable
class ConnectionProbeProtocol(Protocol):
    """Read-only view of live connection message counts."""

    def count_connections_with_at_least(self, n: int) -> int: ...

    def total_active_connection_messages(self) -> int: ...


@runtime_checkable
class DHTLookupFactoryProtocol(Protocol):
    """Starts DHT alternate-location lookups for a download key."""

    def start_lookup(
        self, key: bytes, on_done: LookupDoneCallback
    ) -> CancelableHandle: ...
