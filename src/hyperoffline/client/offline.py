"""Offline-capable resource context.

This module provides:
- OfflineContext: Wraps a ResourceContext and routes each operation to
  the network or to the local store

Routing is decided when an operation starts:

    use_local_store(resource) = netstatus.offline or is_offline_only(resource)

Online operations on network resources go straight to the wrapped
context, and their result is written to the cache. Everything else is
served from the cache, and mutations of network resources are queued
for replay.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from hyperoffline.client.resource import is_offline_only

if TYPE_CHECKING:
    import httpx

    from hyperoffline.client.api import ResourceContext
    from hyperoffline.client.resource import ConfigCallback, PendingRequest, Resource
    from hyperoffline.client.sync.engine import OfflineSync
    from hyperoffline.client.sync.replay import ReplayStrategy

logger = logging.getLogger(__name__)


class OfflineContext:
    """Resource context that keeps working while disconnected.

    Exposes the same operations as ResourceContext, plus the offline
    queue accessors of the engine it is bound to.
    """

    def __init__(self, sync: OfflineSync, context: ResourceContext | None = None) -> None:
        """Initialize the offline context.

        Args:
            sync: Engine holding the local store and offline queue.
            context: Network context to wrap (default: the engine's).
        """
        self._sync = sync
        self._context = context if context is not None else sync.context

    @staticmethod
    def is_offline_only(resource: Resource) -> bool:
        """Check whether a resource has no server counterpart."""
        return is_offline_only(resource.uri)

    def use_local_store(self, resource: Resource) -> bool:
        """Check whether an operation on the resource must be served locally."""
        return self._sync.netstatus.offline or is_offline_only(resource.uri)

    @property
    def context(self) -> ResourceContext:
        return self._context

    @property
    def resources(self) -> dict[str, Resource]:
        """Resources tracked by the wrapped context, by URI."""
        return self._context.resources

    def get(self, uri: str) -> Resource:
        """Get the resource for a URI, creating it if needed."""
        return self._context.get(uri)

    # === Operations ===

    def http_get(self, resource: Resource) -> Resource:
        """Load a resource from the network, or from the cache when offline.

        A resource with no cache entry is returned unchanged.
        """
        if self.use_local_store(resource):
            self._sync.load_cached(resource)
            return resource
        self._context.http_get(resource)
        self._sync.persist_synced([resource], resource.sync_time)
        return resource

    def http_put(self, resource: Resource) -> Resource:
        """Save a resource to the network, or queue the PUT when offline."""
        if self.use_local_store(resource):
            self._sync.queue_put(resource)
            return resource
        self._context.http_put(resource)
        self._sync.persist_synced([resource], resource.sync_time)
        return resource

    def http_delete(self, resource: Resource) -> Resource:
        """Delete a resource on the network, or queue the DELETE when offline.

        Either way the resource ends up unmarked as synchronized.
        """
        if self.use_local_store(resource):
            self._sync.queue_delete(resource)
            self._context.resources.pop(resource.uri, None)
            self.mark_synced(resource, None)
            return resource
        self._context.http_delete(resource)
        self._sync.persist_synced([resource], None)
        return resource

    def http_post(
        self,
        resource: Resource,
        data: Any,
        headers: dict[str, str] | None = None,
        config_callback: ConfigCallback | None = None,
    ) -> httpx.Response | None:
        """POST to a resource, or queue the POST when offline.

        Returns:
            The HTTP response, or None if the request was queued.
        """
        if self.use_local_store(resource):
            self._sync.queue_post(resource, data, headers, config_callback)
            return None
        return self._context.http_post(resource, data, headers, config_callback)

    def mark_synced(
        self,
        resources: Resource | list[Resource],
        sync_time: float | None,
    ) -> Resource | list[Resource]:
        """Mark resources as synchronized and save them for offline use.

        A falsy sync time removes the resources from the cache instead.
        """
        items = resources if isinstance(resources, list) else [resources]
        self._sync.persist_synced(items, sync_time)
        return self._context.mark_synced(resources, sync_time)

    # === Engine accessors ===

    @property
    def busy_requests(self) -> int:
        """Number of network requests in flight."""
        return self._context.busy_requests

    @property
    def offline_requests(self) -> int:
        """Number of requests waiting in the offline queue."""
        return self._sync.offline_requests

    def get_offline_posts(self, resource: Resource) -> list[PendingRequest]:
        """Queued POST requests for a resource."""
        return self._sync.get_offline_posts(resource)

    def get_and_clear_offline_resources(self) -> OfflineContext:
        """Move offline-only cached resources into a new context."""
        return self._sync.get_and_clear_offline_resources()

    def reinitialize(self) -> None:
        """Discard all cached resources and queued requests."""
        self._sync.reinitialize()

    @property
    def replay_requests(self) -> ReplayStrategy:
        """Policy used to replay queued requests after coming online."""
        return self._sync.replay_requests

    @replay_requests.setter
    def replay_requests(self, strategy: ReplayStrategy) -> None:
        self._sync.replay_requests = strategy
