"""Offline synchronization engine.

This module provides:
- OfflineSync: Owns the local store, the offline request counter and the
  replay of queued requests

Every cache/queue write happens in one store transaction. The in-memory
``offline_requests`` counter is updated under the engine lock together
with the durable write it reflects, so it always matches the queue as
seen by observers, and a drain can never slip between a commit and its
counter update.

Store faults are logged, broadcast on the event bus and raised to the
caller as TransactionAbort. The engine itself never stops working
because of them: counters keep their last value until the store is
usable again.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from typing import TYPE_CHECKING, Any

from hyperoffline.client import events
from hyperoffline.client.api import ResourceContext
from hyperoffline.client.netstatus import Netstatus
from hyperoffline.client.offline import OfflineContext
from hyperoffline.client.resource import ConfigCallback, is_offline_only
from hyperoffline.client.store import LocalStore, StoreError, TransactionAbort
from hyperoffline.client.sync.listener import ReplayOnReconnect
from hyperoffline.client.sync.replay import ReplayError, ReplayStrategy, SequentialReplay
from hyperoffline.core.types import ReplayState

if TYPE_CHECKING:
    from collections.abc import Iterator

    from hyperoffline.client.resource import PendingRequest, Resource
    from hyperoffline.core.config import OfflineConfig

logger = logging.getLogger(__name__)


class OfflineSync:
    """Synchronization engine behind offline-capable contexts.

    Usage:
        sync = OfflineSync.from_config(config)
        context = sync.context_for()
        resource = context.get("https://api.example.com/notes/1")
        context.http_get(resource)   # network, or cache when offline
        ...
        sync.netstatus.set_status("online")  # replays queued requests
    """

    def __init__(
        self,
        store: LocalStore,
        context: ResourceContext,
        netstatus: Netstatus | None = None,
        event_bus: events.EventBus | None = None,
        replay_requests: ReplayStrategy | None = None,
        auto_replay: bool = True,
    ) -> None:
        """Initialize the engine and open the store.

        Args:
            store: Local store (opened here if needed).
            context: Network context used for replay.
            netstatus: Connectivity source (default: online).
            event_bus: Bus receiving store and replay events.
            replay_requests: Replay policy (default: SequentialReplay).
            auto_replay: Replay queued requests on every transition to online.
        """
        self._store = store
        self._context = context
        self.netstatus = netstatus or Netstatus()
        self.events = event_bus or events.EventBus()
        self._replay_requests: ReplayStrategy = replay_requests or SequentialReplay(context)

        self._lock = threading.RLock()
        self._replay_lock = threading.Lock()
        self._offline_requests = 0
        self._state = ReplayState.IDLE

        self._open()

        self._listener: ReplayOnReconnect | None = None
        if auto_replay:
            self._listener = ReplayOnReconnect(self)
            self._listener.start()

    @classmethod
    def from_config(cls, config: OfflineConfig, **kwargs: Any) -> OfflineSync:
        """Create an engine with a store and network context from configuration."""
        return cls(LocalStore(config.store_path), ResourceContext.from_config(config), **kwargs)

    def _open(self) -> None:
        try:
            self._store.open()
            count = self._store.count_pending()
        except StoreError as e:
            self._report(e)
            return
        with self._lock:
            self._offline_requests = count
        if count:
            logger.info("Offline store has %d pending requests", count)

    def close(self) -> None:
        """Stop listening for reconnections and close the store and context."""
        if self._listener:
            self._listener.stop()
            self._listener = None
        self._store.close()
        self._context.close()

    # === Error reporting ===

    def _report(self, error: StoreError) -> None:
        """Log and broadcast a store fault."""
        message = str(error)
        if "locked" in message.lower():
            logger.warning("Offline store is blocked: %s", message)
            self.events.publish(events.STORE_BLOCKED, {"message": message})
        else:
            logger.error("Offline store error: %s", message)
            self.events.publish(events.STORE_ERROR, {"message": message})

    @contextlib.contextmanager
    def _guarded(self) -> Iterator[None]:
        try:
            yield
        except StoreError as e:
            self._report(e)
            raise TransactionAbort(str(e)) from e

    # === Properties ===

    @property
    def store(self) -> LocalStore:
        return self._store

    @property
    def context(self) -> ResourceContext:
        """Network context used for replay."""
        return self._context

    @property
    def busy_requests(self) -> int:
        """Number of network requests in flight."""
        return self._context.busy_requests

    @property
    def offline_requests(self) -> int:
        """Number of requests waiting in the offline queue."""
        with self._lock:
            return self._offline_requests

    @property
    def state(self) -> ReplayState:
        """Current replay state."""
        return self._state

    @property
    def replay_requests(self) -> ReplayStrategy:
        """Policy called with the drained requests after coming online."""
        return self._replay_requests

    @replay_requests.setter
    def replay_requests(self, strategy: ReplayStrategy) -> None:
        self._replay_requests = strategy

    def context_for(self, context: ResourceContext | None = None) -> OfflineContext:
        """Wrap a resource context (default: the engine's) for offline use."""
        return OfflineContext(self, context)

    # === Cache and queue writes ===

    def load_cached(self, resource: Resource) -> bool:
        """Apply the cached snapshot of a resource, if any.

        The resource is marked synchronized at the current local time,
        since no round-trip to the server happened.

        Returns:
            True if a cache entry was found.
        """
        with self._guarded():
            entry = self._store.get(resource.uri)
        if entry is None:
            logger.debug("No cached entry for %s", resource.uri)
            return False
        resource.update(entry.data, entry.links)
        self._context.mark_synced(resource, time.time())
        return True

    def persist_synced(self, resources: list[Resource], sync_time: float | None) -> None:
        """Store or remove cache entries to match a sync marker.

        A truthy sync time upserts each resource's entry; a falsy one
        removes it (removing an absent entry is a no-op).
        """
        with self._guarded(), self._store.transaction() as store:
            for resource in resources:
                if sync_time:
                    store.put(resource.uri, resource.to_entry())
                else:
                    store.delete(resource.uri)

    def queue_put(self, resource: Resource) -> None:
        """Record an offline PUT: queue it and update the cache atomically."""
        network = not is_offline_only(resource.uri)
        with self._lock:
            with self._guarded(), self._store.transaction() as store:
                if network:
                    store.enqueue(resource.put_request())
                store.put(resource.uri, resource.to_entry())
            if network:
                self._offline_requests += 1
        logger.debug("Stored offline PUT for %s (queued=%s)", resource.uri, network)

    def queue_delete(self, resource: Resource) -> None:
        """Record an offline DELETE: queue it and drop the cache entry atomically."""
        network = not is_offline_only(resource.uri)
        with self._lock:
            with self._guarded(), self._store.transaction() as store:
                if network:
                    store.enqueue(resource.delete_request())
                store.delete(resource.uri)
            if network:
                self._offline_requests += 1
        logger.debug("Stored offline DELETE for %s (queued=%s)", resource.uri, network)

    def queue_post(
        self,
        resource: Resource,
        data: Any,
        headers: dict[str, str] | None = None,
        config_callback: ConfigCallback | None = None,
    ) -> PendingRequest:
        """Record an offline POST to a resource.

        Returns:
            The queued request, with its sequence id.
        """
        request = resource.post_request(data, headers, config_callback)
        with self._lock:
            with self._guarded():
                self._store.enqueue(request)
            self._offline_requests += 1
        logger.debug("Stored offline POST for %s (id=%s)", resource.uri, request.id)
        return request

    # === Queries ===

    def get_offline_posts(self, resource: Resource) -> list[PendingRequest]:
        """Queued POST requests for a resource, in queue order."""
        with self._guarded():
            return self._store.find_requests(resource.uri, "post")

    def pending_requests(self) -> list[PendingRequest]:
        """All queued requests, in queue order, without removing them."""
        with self._guarded():
            return self._store.list_requests()

    # === Replay ===

    def drain(self) -> list[PendingRequest]:
        """Atomically take every queued request and reset the counter."""
        with self._lock:
            with self._guarded():
                requests = self._store.drain_all()
            self._offline_requests = 0
        return requests

    def replay(self) -> int:
        """Drain the queue and replay it through the replay policy.

        Replays never overlap. Requests drained but not replayed because
        of a failure are not restored to the queue.

        Returns:
            Number of requests replayed.

        Raises:
            TransactionAbort: If the queue could not be drained.
            ReplayError: If the replay policy failed.
        """
        with self._replay_lock:
            self._state = ReplayState.DRAINING
            try:
                requests = self.drain()
            except TransactionAbort:
                self._state = ReplayState.FAILED
                raise

            self._state = ReplayState.REPLAYING
            if requests:
                logger.info("Replaying %d offline requests", len(requests))
            try:
                self._replay_requests(requests)
            except Exception as e:
                self._state = ReplayState.FAILED
                # A foreign exception says nothing about how far the policy got
                if isinstance(e, ReplayError):
                    error = e
                    replayed: int | None = e.replayed
                    dropped: int | None = len(requests) - e.replayed
                else:
                    error = ReplayError(str(e))
                    replayed = dropped = None
                self.events.publish(
                    events.REPLAY_FAILED,
                    {"message": str(error), "replayed": replayed, "dropped": dropped},
                )
                if error is e:
                    raise
                raise error from e

            self._state = ReplayState.IDLE
            if requests:
                logger.info("Replayed %d offline requests", len(requests))
                self.events.publish(events.REPLAY_DONE, {"count": len(requests)})
            return len(requests)

    # === Offline-only resources ===

    def get_and_clear_offline_resources(self) -> OfflineContext:
        """Move every offline-only cached resource into a new context.

        The entries are removed from the store in the same transaction,
        so they are never seen again by the cache or the network.

        Returns:
            A new offline context holding the extracted resources.
        """
        offline = OfflineContext(self, self._context.fork())
        with self._guarded(), self._store.transaction() as store:
            for uri, entry in store.iterate_offline_only():
                offline.get(uri).update(entry.data, entry.links)
                store.delete(uri)
        logger.info("Extracted %d offline-only resources", len(offline.resources))
        return offline

    # === Recovery ===

    def reinitialize(self) -> None:
        """Destroy and recreate the store, dropping all cache and queue rows.

        Raises:
            StoreError: If the store could not be recreated.
        """
        with self._lock:
            try:
                self._store.reset()
            except StoreError as e:
                self._report(e)
                raise
            self._offline_requests = 0
        logger.warning("Offline store reinitialized; cached resources and queued requests discarded")
