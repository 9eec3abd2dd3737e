"""Fakes for the requery supervisor's collaborators."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from ccrequery.requery.models import QueryType, RequeryTimings
from ccrequery.requery.policy import activated_broadcast_policy
from ccrequery.requery.stability import ConnectionStabilityGate
from ccrequery.requery.supervisor import RequerySupervisor

DOWNLOAD_KEY = bytes.fromhex("0123456789abcdef0123456789abcdef01234567")


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.current = start

    def now(self) -> float:
        return self.current

    def monotonic(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class RecordingListener:
    def __init__(self, query: Any | None = "query") -> None:
        self.query = query
        self.build_calls = 0
        self.started: list[tuple[QueryType, float]] = []
        self.pending: list[tuple[QueryType, float]] = []
        self.finished: list[QueryType] = []

    def build_query(self) -> Any | None:
        self.build_calls += 1
        return self.query

    def on_lookup_started(self, query_type: QueryType, estimated_wait: float) -> None:
        self.started.append((query_type, estimated_wait))

    def on_lookup_pending(self, query_type: QueryType, retry_delay: float) -> None:
        self.pending.append((query_type, retry_delay))

    def on_lookup_finished(self, query_type: QueryType) -> None:
        self.finished.append(query_type)


class RecordingDispatcher:
    def __init__(self, error: Exception | None = None) -> None:
        self.submitted: list[Any] = []
        self.error = error
        self.during_submit: Callable[[], None] | None = None

    def submit(self, query: Any) -> None:
        if self.error is not None:
            raise self.error
        if self.during_submit is not None:
            self.during_submit()
        self.submitted.append(query)


class FakeProbe:
    def __init__(self, counts: list[int] | None = None) -> None:
        self.counts = list(counts or [])
        self.calls = 0

    def count_connections_with_at_least(self, n: int) -> int:
        self.calls += 1
        return sum(1 for c in self.counts if c >= n)

    def total_active_connection_messages(self) -> int:
        self.calls += 1
        return sum(self.counts)


class FakeHandle:
    def __init__(self) -> None:
        self.shutdown_calls = 0

    def shutdown(self) -> None:
        self.shutdown_calls += 1


class FakeLookupFactory:
    """Records lookups; can complete synchronously or run a hook mid-start."""

    def __init__(self) -> None:
        self.handles: list[FakeHandle] = []
        self.callbacks: list[Callable[[bool], None]] = []
        self.keys: list[bytes] = []
        self.complete_immediately: bool | None = None
        self.during_start: Callable[[], None] | None = None
        self.error: Exception | None = None

    def start_lookup(self, key: bytes, on_done: Callable[[bool], None]) -> FakeHandle:
        if self.error is not None:
            raise self.error
        self.keys.append(key)
        self.callbacks.append(on_done)
        if self.during_start is not None:
            self.during_start()
        if self.complete_immediately is not None:
            on_done(self.complete_immediately)
        handle = FakeHandle()
        self.handles.append(handle)
        return handle


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def lookup_factory() -> FakeLookupFactory:
    return FakeLookupFactory()


@pytest.fixture
def make_supervisor(clock, listener, dispatcher, probe, lookup_factory):
    """Build a supervisor wired to the recording fakes.

    Defaults to the activation policy and a gate forced stable so tests opt
    into the disabled policy or a real stability check explicitly.
    """

    def _make(**overrides: Any) -> RequerySupervisor:
        forced_stable = overrides.pop("assume_stable", True)
        kwargs: dict[str, Any] = {
            "lookup_factory": lookup_factory,
            "policy": activated_broadcast_policy,
            "timings": RequeryTimings(cooldown=300.0, connect_retry_delay=0.75),
            "clock": clock,
        }
        kwargs.update(overrides)
        stability = kwargs.pop(
            "stability",
            ConnectionStabilityGate(probe, assume_stable_for_testing=forced_stable),
        )
        return RequerySupervisor(
            DOWNLOAD_KEY,
            kwargs.pop("listener", listener),
            kwargs.pop("dispatcher", dispatcher),
            stability,
            **kwargs,
        )

    return _make
