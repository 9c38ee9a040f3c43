"""HTTP resource context for hypermedia APIs.

This module provides:
- ResourceContext: Tracks resources by URI and performs network operations
- APIError and subclasses: Errors raised for failed HTTP responses

The context counts in-flight requests (busy_requests) and marks
resources as synchronized after successful reads and writes.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import httpx

from hyperoffline.client.resource import ConfigCallback, PendingRequest, Resource

if TYPE_CHECKING:
    from hyperoffline.core.config import OfflineConfig

logger = logging.getLogger(__name__)

ResourceFactory = Callable[[str, "ResourceContext"], Resource]


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed."""


class ConflictError(APIError):
    """Version conflict detected."""


class NotFoundError(APIError):
    """Resource not found."""


def _error_detail(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or default
    if isinstance(body, dict):
        return str(body.get("detail", default))
    return default


class ResourceContext:
    """Network-backed context for hypermedia resources.

    Each URI maps to a single Resource instance for the lifetime of the
    context. Requests are sent with a shared httpx client.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        resource_factory: ResourceFactory = Resource,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        verify_ssl: bool = True,
    ) -> None:
        """Initialize the resource context.

        Args:
            client: Existing httpx client to share (not closed by this context).
            resource_factory: Callable creating a resource from (uri, context).
            timeout: Request timeout in seconds, for an owned client.
            headers: Default headers, for an owned client.
            verify_ssl: Whether to verify SSL certificates, for an owned client.
        """
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=timeout,
            headers=headers,
            verify=verify_ssl,
        )
        self._resource_factory = resource_factory
        self.resources: dict[str, Resource] = {}
        self._busy_requests = 0
        self._busy_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: OfflineConfig) -> ResourceContext:
        """Create a context using the HTTP settings of a configuration."""
        return cls(
            timeout=config.timeout,
            headers=config.headers,
            verify_ssl=config.verify_ssl,
        )

    def close(self) -> None:
        """Close the HTTP client if this context created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> ResourceContext:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    @property
    def busy_requests(self) -> int:
        """Number of HTTP requests currently in flight."""
        return self._busy_requests

    def get(self, uri: str) -> Resource:
        """Get the resource for a URI, creating it if needed."""
        resource = self.resources.get(uri)
        if resource is None:
            resource = self._resource_factory(uri, self)
            self.resources[uri] = resource
        return resource

    def fork(self) -> ResourceContext:
        """Create an empty context sharing this context's HTTP client."""
        return ResourceContext(client=self._client, resource_factory=self._resource_factory)

    @contextmanager
    def _busy(self) -> Iterator[None]:
        with self._busy_lock:
            self._busy_requests += 1
        try:
            yield
        finally:
            with self._busy_lock:
                self._busy_requests -= 1

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 401:
            raise AuthenticationError("Invalid or expired credentials", 401)
        if response.status_code == 404:
            raise NotFoundError("Resource not found", 404)
        if response.status_code == 409:
            raise ConflictError(_error_detail(response, "Conflict"), 409)
        if response.status_code >= 400:
            raise APIError(_error_detail(response, "Unknown error"), response.status_code)
        return response

    # === Transport ===

    def send(self, request: PendingRequest) -> httpx.Response:
        """Send a request descriptor over the network.

        Args:
            request: The request to perform.

        Returns:
            The HTTP response.

        Raises:
            APIError: If the server answers with an error status.
            httpx.HTTPError: If the request could not be sent.
        """
        kwargs: dict[str, Any] = {"headers": request.headers}
        if isinstance(request.data, (str, bytes)):
            kwargs["content"] = request.data
        elif request.data is not None:
            kwargs["json"] = request.data

        logger.debug("%s %s", request.method.upper(), request.url)
        with self._busy():
            response = self._client.request(request.method.upper(), request.url, **kwargs)
        return self._handle_response(response)

    # === Resource operations ===

    def http_get(self, resource: Resource) -> Resource:
        """Perform a HTTP GET request and update the resource.

        A ``_links`` member of the response body becomes the resource links.

        Args:
            resource: Resource to load.

        Returns:
            The updated resource.
        """
        with self._busy():
            response = self._client.get(resource.uri, headers={"Accept": "application/json"})
        body = self._handle_response(response).json()
        links: dict[str, Any] = {}
        if isinstance(body, dict):
            links = body.pop("_links", None) or {}
        else:
            body = {"value": body}
        resource.update(body, links)
        self.mark_synced(resource, time.time())
        return resource

    def http_put(self, resource: Resource) -> Resource:
        """Perform a HTTP PUT request with the resource state."""
        self.send(resource.put_request())
        self.mark_synced(resource, time.time())
        return resource

    def http_delete(self, resource: Resource) -> Resource:
        """Perform a HTTP DELETE request and mark the resource as unsynchronized."""
        self.send(resource.delete_request())
        self.resources.pop(resource.uri, None)
        self.mark_synced(resource, None)
        return resource

    def http_post(
        self,
        resource: Resource,
        data: Any,
        headers: dict[str, str] | None = None,
        config_callback: ConfigCallback | None = None,
    ) -> httpx.Response:
        """Perform a HTTP POST request to the resource.

        Args:
            resource: Target resource.
            data: Request body.
            headers: Request headers.
            config_callback: Optional function that adjusts the request.

        Returns:
            The HTTP response.
        """
        return self.send(resource.post_request(data, headers, config_callback))

    def mark_synced(
        self,
        resources: Resource | list[Resource],
        sync_time: float | None,
    ) -> Resource | list[Resource]:
        """Mark resources as synchronized at a given time.

        Args:
            resources: A resource or a list of resources.
            sync_time: Timestamp of the synchronization, or None to unmark.

        Returns:
            The resources argument.
        """
        items = resources if isinstance(resources, list) else [resources]
        for resource in items:
            resource.sync_time = sync_time or None
        return resources
