"""Bridges between the thread-safe supervisor and asyncio network components.

``AsyncDHTLookupFactory`` runs DHT alternate-location lookups as tasks on an
event loop and reports completion through the supervisor's callback.
``MessageCountProbe`` turns per-connection message counts into the probe the
stability gate reads.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Iterable,
    Protocol,
    Union,
    runtime_checkable,
)

from ccrequery.requery.tasks import TaskSupervisor
from ccrequery.requery.types import LookupDoneCallback
from ccrequery.utils.exceptions import DHTLookupError

if TYPE_CHECKING:  # pragma: no cover
    from ccrequery.models import RequeryConfig

logger = logging.getLogger(__name__)

SourcesCallback = Callable[[bytes, list[tuple[str, int]]], None]
_LookupFuture = Union[asyncio.Task[Any], concurrent.futures.Future[Any]]


@runtime_checkable
class DHTClientProtocol(Protocol):
    """DHT client surface used for alternate-location lookups."""

    async def get_peers(
        self, info_hash: bytes, max_peers: int = 50
    ) -> list[tuple[str, int]]: ...


class TaskLookupHandle:
    """Cancelable handle over a lookup task, safe to shut down from any thread."""

    def __init__(self, future: _LookupFuture, loop: asyncio.AbstractEventLoop):
        self._future = future
        self._loop = loop
        self._shut_down = False

    @property
    def done(self) -> bool:
        return self._future.done()

    def shutdown(self) -> None:
        if self._shut_down or self._future.done():
            return
        self._shut_down = True

        if isinstance(self._future, concurrent.futures.Future):
            # Propagates to the task on its own loop
            self._future.cancel()
            return
        if self._loop.is_closed():
            return
        try:
            in_loop = asyncio.get_running_loop() is self._loop
        except RuntimeError:
            in_loop = False
        if in_loop:
            self._future.cancel()
        else:
            self._loop.call_soon_threadsafe(self._future.cancel)


class AsyncDHTLookupFactory:
    """Starts DHT lookups as tasks on an event loop."""

    def __init__(
        self,
        dht_client: DHTClientProtocol,
        loop: asyncio.AbstractEventLoop,
        *,
        max_peers: int = 50,
        timeout: float = 60.0,
        on_sources: SourcesCallback | None = None,
        tasks: TaskSupervisor | None = None,
    ) -> None:
        """Initialize the factory.

        Args:
            dht_client: Client whose ``get_peers`` performs the lookup
            loop: Event loop the lookups run on
            max_peers: Maximum sources requested per lookup
            timeout: Seconds before a lookup counts as failed
            on_sources: Receives the sources a lookup found, before completion is reported
            tasks: Supervisor tracking the lookup tasks

        """
        self._dht_client = dht_client
        self._loop = loop
        self._max_peers = max_peers
        self._timeout = timeout
        self._on_sources = on_sources
        self._tasks = tasks or TaskSupervisor()

    @classmethod
    def from_config(
        cls,
        dht_client: DHTClientProtocol,
        loop: asyncio.AbstractEventLoop,
        config: RequeryConfig,
        *,
        on_sources: SourcesCallback | None = None,
        tasks: TaskSupervisor | None = None,
    ) -> AsyncDHTLookupFactory:
        """Build a factory using the configured lookup timeout and peer limit."""
        return cls(
            dht_client,
            loop,
            max_peers=config.dht_max_peers,
            timeout=config.dht_lookup_timeout,
            on_sources=on_sources,
            tasks=tasks,
        )

    def start_lookup(self, key: bytes, on_done: LookupDoneCallback) -> TaskLookupHandle:
        """Schedule a lookup for ``key``; ``on_done`` receives the success flag.

        ``on_done`` is not called when the lookup is cancelled through its handle.
        """
        if self._loop.is_closed():
            msg = "Cannot start DHT lookup on a closed event loop"
            raise DHTLookupError(msg, details={"key": key.hex()})

        try:
            in_loop = asyncio.get_running_loop() is self._loop
        except RuntimeError:
            in_loop = False

        coro = self._lookup(key, on_done)
        if in_loop:
            task = self._tasks.create_task(coro, name=f"dht_lookup_{key.hex()[:16]}")
            return TaskLookupHandle(task, self._loop)
        return TaskLookupHandle(
            asyncio.run_coroutine_threadsafe(coro, self._loop), self._loop
        )

    async def _lookup(self, key: bytes, on_done: LookupDoneCallback) -> None:
        current = asyncio.current_task()
        if current is not None and current not in self._tasks.tasks:
            self._tasks.adopt(current)

        label = key.hex()[:16]
        try:
            peers = await asyncio.wait_for(
                self._dht_client.get_peers(key, max_peers=self._max_peers),
                timeout=self._timeout,
            )
        except asyncio.CancelledError:
            logger.debug("DHT lookup for %s cancelled", label)
            raise
        except asyncio.TimeoutError:
            logger.warning(
                "DHT lookup for %s timed out after %.1fs", label, self._timeout
            )
            on_done(False)
            return
        except Exception:
            logger.warning("DHT lookup for %s failed", label, exc_info=True)
            on_done(False)
            return

        peers = list(peers or [])
        logger.debug("DHT lookup for %s found %d source(s)", label, len(peers))
        if peers and self._on_sources is not None:
            try:
                self._on_sources(key, peers)
            except Exception:
                logger.warning(
                    "Handling sources from DHT lookup for %s failed", label, exc_info=True
                )
        on_done(bool(peers))

    def cancel_all(self) -> None:
        """Cancel every lookup still running."""
        self._tasks.cancel_all()

    async def aclose(self, timeout: float = 5.0) -> None:
        """Cancel running lookups and wait for them to unwind."""
        self._tasks.cancel_all()
        await self._tasks.wait_all_cancelled(timeout=timeout)


class MessageCountProbe:
    """Connection probe over per-connection message counts.

    ``source`` returns the message count of every active connection each
    time it is called, so the probe always reads live numbers.
    """

    def __init__(self, source: Callable[[], Iterable[int]]):
        self._source = source

    @classmethod
    def from_counts(cls, counts: Iterable[int]) -> MessageCountProbe:
        """Build a probe over a fixed set of counts."""
        frozen = tuple(counts)
        return cls(lambda: frozen)

    def count_connections_with_at_least(self, n: int) -> int:
        return sum(1 for count in self._source() if count >= n)

    def total_active_connection_messages(self) -> int:
        return sum(self._source())
