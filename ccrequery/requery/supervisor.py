"""Requery scheduling for a single download.

The supervisor keeps track of which supplemental queries have been sent for
a stalled download, when they were sent and how long to wait for results.
It never sleeps or retries on its own: the host polls ``send_query()`` and
``is_waiting_for_results()`` on its own schedule, and the DHT lookup reports
back through ``handle_alt_loc_search_done()`` from whatever thread it runs on.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from ccrequery.config.config import get_observability_config, get_requery_config
from ccrequery.requery.models import (
    BroadcastState,
    DHTState,
    QueryOutcome,
    QueryType,
    RequerySnapshot,
    RequeryTimings,
)
from ccrequery.requery.policy import SendPolicy, policy_from_config, requery_disabled
from ccrequery.requery.stability import ConnectionStabilityGate
from ccrequery.utils.metrics import RequeryMetrics
from ccrequery.utils.time import Clock

if TYPE_CHECKING:  # pragma: no cover
    from ccrequery.models import RequeryConfig
    from ccrequery.requery.types import (
        CancelableHandle,
        ConnectionProbeProtocol,
        DHTLookupFactoryProtocol,
        QueryDispatcherProtocol,
        RequeryListenerProtocol,
    )

REQUERY_COOLDOWN = 300.0
CONNECT_RETRY_DELAY = 0.75

# Occupies the handle slot while start_lookup() runs
_STARTING = object()

logger = logging.getLogger(__name__)


class RequerySupervisor:
    """Decides whether, when and how a download re-issues source queries."""

    def __init__(
        self,
        download_key: bytes,
        listener: RequeryListenerProtocol,
        dispatcher: QueryDispatcherProtocol,
        stability: ConnectionStabilityGate,
        *,
        lookup_factory: DHTLookupFactoryProtocol | None = None,
        policy: SendPolicy = requery_disabled,
        timings: RequeryTimings | None = None,
        clock: Clock | None = None,
        metrics: RequeryMetrics | None = None,
    ) -> None:
        """Initialize the supervisor for one download.

        Args:
            download_key: Content key (info hash / URN) the DHT lookup searches for
            listener: Builds broadcast queries and observes lookup progress
            dispatcher: Sends broadcast queries to the network
            stability: Connection-stability gate consulted before broadcasting
            lookup_factory: Starts DHT lookups; DHT requeries are unavailable without it
            policy: Decides whether a requery may be sent right now
            timings: Cooldown and connect-retry durations
            clock: Time source for cooldown arithmetic
            metrics: Optional outcome counters

        """
        self.download_key = download_key
        self._listener = listener
        self._dispatcher = dispatcher
        self._stability = stability
        self._lookup_factory = lookup_factory
        self._policy = policy
        self._timings = timings or RequeryTimings(REQUERY_COOLDOWN, CONNECT_RETRY_DELAY)
        self._clock = clock or Clock()
        self._metrics = metrics
        self._label = download_key.hex()[:16]

        self._lock = threading.Lock()
        self._activated = False
        self._broadcast_state = BroadcastState.NOT_SENT
        self._broadcast_in_progress = False
        self._last_query_type: QueryType | None = None
        self._last_query_sent_at: float | None = None
        self._dht_queries_issued = 0
        self._dht_lookup: CancelableHandle | object | None = None
        self._closed = False

    @classmethod
    def from_config(
        cls,
        download_key: bytes,
        listener: RequeryListenerProtocol,
        dispatcher: QueryDispatcherProtocol,
        probe: ConnectionProbeProtocol,
        *,
        config: RequeryConfig | None = None,
        lookup_factory: DHTLookupFactoryProtocol | None = None,
        clock: Clock | None = None,
        metrics: RequeryMetrics | None = None,
        enable_metrics: bool | None = None,
    ) -> RequerySupervisor:
        """Build a supervisor whose thresholds, timings and policy come from config.

        Without explicit ``metrics`` the supervisor gets its own
        ``RequeryMetrics`` when ``enable_metrics`` is true; left as None it
        follows ``observability.enable_metrics`` of the global configuration.
        """
        if config is None:
            config = get_requery_config()
        if metrics is None:
            if enable_metrics is None:
                enable_metrics = get_observability_config().enable_metrics
            if enable_metrics:
                metrics = RequeryMetrics()
        return cls(
            download_key,
            listener,
            dispatcher,
            ConnectionStabilityGate.from_config(probe, config),
            lookup_factory=lookup_factory,
            policy=policy_from_config(config),
            timings=RequeryTimings(
                cooldown=config.cooldown_seconds,
                connect_retry_delay=config.connect_retry_delay,
            ),
            clock=clock,
            metrics=metrics,
        )

    # State accessors

    @property
    def metrics(self) -> RequeryMetrics | None:
        return self._metrics

    @property
    def activated(self) -> bool:
        return self._activated

    @property
    def sent_broadcast_query(self) -> bool:
        return self._broadcast_state is BroadcastState.SENT

    @property
    def dht_queries_issued(self) -> int:
        return self._dht_queries_issued

    @property
    def dht_lookup_in_flight(self) -> bool:
        with self._lock:
            return self._holds_dht_handle()

    def get_last_query_type(self) -> QueryType | None:
        """Return the mechanism of the last query sent, or None before any."""
        return self._last_query_type

    def get_time_left_in_query(self) -> float:
        """Return seconds left in the current query's cooldown.

        Negative once the cooldown has elapsed. Before any query is sent
        this returns 0.0.
        """
        with self._lock:
            return self._time_left_locked()

    def is_waiting_for_results(self) -> bool:
        """Return True while the last query is still inside its cooldown.

        A DHT query also needs its lookup to be outstanding.
        """
        return self.snapshot().waiting

    def snapshot(self) -> RequerySnapshot:
        """Return a consistent view of the scheduling state."""
        with self._lock:
            return self._snapshot_locked()

    # Gating

    def can_send_query_after_activate(self) -> bool:
        """True if a requery could still be triggered by activation."""
        return not self.sent_broadcast_query

    def can_send_query_now(self) -> bool:
        """Return True if the send policy allows a requery right now."""
        return self._policy(self.snapshot())

    def activate(self) -> None:
        """Allow activated requeries to begin."""
        with self._lock:
            if self._activated:
                return
            self._activated = True
        logger.info("REQUERY: activated for %s", self._label)

    # Sending

    def send_query(self) -> QueryOutcome:
        """Send a broadcast requery, if allowed.

        Refused with ``LOOKUP_IN_FLIGHT`` while a DHT lookup is outstanding.
        """
        if not self.can_send_query_now():
            logger.debug("Tried to send query for %s, but cannot do it now", self._label)
            return self._record(QueryType.BROADCAST, QueryOutcome.NOT_ALLOWED)

        with self._lock:
            if self._closed:
                return self._record(QueryType.BROADCAST, QueryOutcome.CLOSED)
            # last_query_type stays DHT while a lookup is outstanding
            lookup_out = self._dht_lookup is not None
            claimed = not (
                lookup_out
                or self._broadcast_state is BroadcastState.SENT
                or self._broadcast_in_progress
            )
            if claimed:
                self._broadcast_in_progress = True

        if lookup_out:
            logger.debug(
                "Not sending a broadcast requery for %s while a DHT lookup is out",
                self._label,
            )
            return self._record(QueryType.BROADCAST, QueryOutcome.LOOKUP_IN_FLIGHT)
        if not claimed:
            logger.debug(
                "Can send a query now for %s, but the broadcast slot is used",
                self._label,
            )
            return self._record(QueryType.BROADCAST, QueryOutcome.ALREADY_SENT)

        try:
            return self._record(QueryType.BROADCAST, self._send_broadcast_query())
        finally:
            with self._lock:
                self._broadcast_in_progress = False

    def _send_broadcast_query(self) -> QueryOutcome:
        if not self._stability.is_stable():
            logger.debug(
                "Tried to send a broadcast requery for %s, but no stable connections",
                self._label,
            )
            self._listener.on_lookup_pending(
                QueryType.BROADCAST, self._timings.connect_retry_delay
            )
            return QueryOutcome.PENDING_CONNECTIONS

        query = self._listener.build_query()
        if query is None:
            with self._lock:
                self._broadcast_state = BroadcastState.SENT
            logger.debug("No broadcast requery to send for %s", self._label)
            self._listener.on_lookup_finished(QueryType.BROADCAST)
            return QueryOutcome.DECLINED

        self._dispatcher.submit(query)
        with self._lock:
            self._broadcast_state = BroadcastState.SENT
            self._last_query_type = QueryType.BROADCAST
            self._last_query_sent_at = self._clock.monotonic()
        logger.info("REQUERY: Sent a broadcast requery for %s", self._label)
        self._listener.on_lookup_started(QueryType.BROADCAST, self._timings.cooldown)
        return QueryOutcome.DISPATCHED

    def send_dht_query(self) -> QueryOutcome:
        """Start a DHT alternate-location lookup unless one is already out.

        The supervisor does not cap how many lookups a download makes;
        hosts read ``dht_queries_issued`` to apply their own limit.
        """
        if self._lookup_factory is None:
            return self._record(QueryType.DHT, QueryOutcome.NO_LOOKUP_FACTORY)

        with self._lock:
            if self._closed:
                return self._record(QueryType.DHT, QueryOutcome.CLOSED)
            if self._dht_lookup is not None:
                return self._record(QueryType.DHT, QueryOutcome.LOOKUP_IN_FLIGHT)
            if self._broadcast_in_progress:
                return self._record(QueryType.DHT, QueryOutcome.SEND_IN_PROGRESS)
            self._dht_lookup = _STARTING

        try:
            handle = self._lookup_factory.start_lookup(
                self.download_key, self.handle_alt_loc_search_done
            )
        except BaseException:
            with self._lock:
                if self._dht_lookup is _STARTING:
                    self._dht_lookup = None
            raise

        with self._lock:
            closed = self._closed
            held = False
            if not closed:
                self._dht_queries_issued += 1
                self._last_query_type = QueryType.DHT
                self._last_query_sent_at = self._clock.monotonic()
                # Still _STARTING unless the lookup already completed
                if self._dht_lookup is _STARTING:
                    self._dht_lookup = handle
                    held = True

        if closed:
            logger.debug("Supervisor for %s closed during lookup start", self._label)
            handle.shutdown()
            return self._record(QueryType.DHT, QueryOutcome.CLOSED)

        if held and self._metrics is not None:
            self._metrics.dht_lookup_started()
        logger.info(
            "REQUERY: Started DHT lookup #%d for %s",
            self._dht_queries_issued,
            self._label,
        )
        self._listener.on_lookup_started(QueryType.DHT, self._timings.cooldown)
        return self._record(QueryType.DHT, QueryOutcome.LOOKUP_STARTED)

    # Lookup lifecycle

    def handle_alt_loc_search_done(self, success: bool) -> None:
        """Record the end of the outstanding DHT lookup.

        The lookup counts as finished either way: results being found does
        not mean the download will use them.
        """
        with self._lock:
            took = self._dht_lookup
            self._dht_lookup = None

        if took is not None and took is not _STARTING and self._metrics is not None:
            self._metrics.dht_lookup_ended()
        logger.info(
            "REQUERY: DHT lookup finished for %s (success=%s)", self._label, success
        )
        self._listener.on_lookup_finished(QueryType.DHT)

    def clean_up(self) -> None:
        """Cancel any outstanding DHT lookup and release its handle."""
        with self._lock:
            self._closed = True
            took = self._dht_lookup
            self._dht_lookup = None

        # A lookup mid-start is shut down by send_dht_query() once it returns
        if took is None or took is _STARTING:
            return
        if self._metrics is not None:
            self._metrics.dht_lookup_ended()
        logger.debug("Shutting down outstanding DHT lookup for %s", self._label)
        took.shutdown()  # type: ignore[union-attr]

    # Internals (call with self._lock held)

    def _holds_dht_handle(self) -> bool:
        return self._dht_lookup is not None and self._dht_lookup is not _STARTING

    def _time_left_locked(self) -> float:
        if self._last_query_sent_at is None:
            return 0.0
        elapsed = self._clock.monotonic() - self._last_query_sent_at
        return self._timings.cooldown - elapsed

    def _snapshot_locked(self) -> RequerySnapshot:
        time_left = self._time_left_locked()
        holds_handle = self._holds_dht_handle()
        if self._last_query_type is None:
            waiting = False
        elif self._last_query_type is QueryType.DHT:
            waiting = holds_handle and time_left > 0
        else:
            waiting = time_left > 0
        return RequerySnapshot(
            download_key=self.download_key,
            activated=self._activated,
            broadcast_state=self._broadcast_state,
            dht_state=DHTState.LOOKUP_IN_FLIGHT if holds_handle else DHTState.IDLE,
            last_query_type=self._last_query_type,
            last_query_sent_at=self._last_query_sent_at,
            dht_queries_issued=self._dht_queries_issued,
            time_left=time_left,
            waiting=waiting,
            closed=self._closed,
        )

    def _record(self, query_type: QueryType, outcome: QueryOutcome) -> QueryOutcome:
        if self._metrics is not None:
            self._metrics.record_outcome(query_type.value, outcome.value)
        return outcome
