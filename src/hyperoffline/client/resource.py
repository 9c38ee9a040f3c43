"""Hypermedia resources and their persisted forms.

This module provides:
- Resource: In-memory hypermedia resource (URI, data, links, sync marker)
- CacheEntry: Persisted snapshot of a resource's data and links
- PendingRequest: Replayable descriptor of a mutating request
- is_offline_only: Tell local-only URIs from network addresses
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from hyperoffline.core.types import RequestMethod

if TYPE_CHECKING:
    from hyperoffline.client.api import ResourceContext

JSON_CONTENT_TYPE = "application/json"
NETWORK_SCHEMES = ("http://", "https://")


def is_offline_only(uri: str) -> bool:
    """Check whether a URI names purely local state.

    Args:
        uri: Resource URI.

    Returns:
        True if the URI is not an absolute http(s) address.
    """
    return not uri.startswith(NETWORK_SCHEMES)


def _loads(value: str | bytes | None) -> Any:
    if value is None or isinstance(value, bytes):
        return value
    return json.loads(value)


def _dumps(value: Any) -> str | bytes | None:
    # Raw bodies are stored as BLOBs, everything else as JSON text
    if value is None or isinstance(value, bytes):
        return value
    return json.dumps(value)


@dataclass
class PendingRequest:
    """A mutating request deferred while offline.

    Attributes:
        method: One of "put", "delete" or "post".
        url: Target URL.
        data: Request body (bytes or JSON-serialisable), if any.
        headers: Request headers, if any.
        id: Queue sequence number, assigned by the store.
    """

    method: str
    url: str
    data: Any = None
    headers: dict[str, str] | None = None
    id: int | None = None

    def __post_init__(self) -> None:
        """Normalize and validate the method."""
        self.method = RequestMethod(self.method.lower()).value

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> PendingRequest:
        """Create PendingRequest from database row."""
        return cls(
            id=row["id"],
            method=row["method"],
            url=row["url"],
            data=_loads(row["data"]),
            headers=_loads(row["headers"]),
        )

    def to_row(self) -> tuple[str, str, str | bytes | None, str | None]:
        """Serialize for insertion (method, url, data, headers).

        Raises:
            TypeError: If the body or headers are neither bytes nor JSON-serialisable.
        """
        return (self.method, self.url, _dumps(self.data), _dumps(self.headers))

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary, omitting unset fields.

        A raw bytes body is decoded as UTF-8 for display.
        """
        result: dict[str, Any] = {"method": self.method, "url": self.url}
        if self.id is not None:
            result["id"] = self.id
        if isinstance(self.data, bytes):
            result["data"] = self.data.decode("utf-8", errors="replace")
        elif self.data is not None:
            result["data"] = self.data
        if self.headers is not None:
            result["headers"] = self.headers
        return result


@dataclass
class CacheEntry:
    """Persisted snapshot of a resource, keyed by URI."""

    uri: str
    data: dict[str, Any] = field(default_factory=dict)
    links: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> CacheEntry:
        """Create CacheEntry from database row."""
        return cls(
            uri=row["uri"],
            data=json.loads(row["data"]),
            links=json.loads(row["links"]),
        )


ConfigCallback = Callable[[PendingRequest], PendingRequest]


class Resource:
    """An addressable unit of hypermedia state.

    Resources are created and tracked by a ResourceContext, one instance
    per URI. ``sync_time`` holds the epoch time of the last
    synchronization, or None when the resource was never synced or has
    been unmarked.
    """

    def __init__(self, uri: str, context: ResourceContext | None = None) -> None:
        self.uri = uri
        self.context = context
        self.data: dict[str, Any] = {}
        self.links: dict[str, Any] = {}
        self.sync_time: float | None = None

    def __repr__(self) -> str:
        return f"Resource({self.uri!r}, synced={self.synced})"

    @property
    def synced(self) -> bool:
        """True if the resource has been marked synchronized."""
        return self.sync_time is not None

    @property
    def offline_only(self) -> bool:
        """True if the resource has no server counterpart."""
        return is_offline_only(self.uri)

    def update(self, data: dict[str, Any], links: dict[str, Any] | None = None) -> Resource:
        """Replace the resource state.

        Args:
            data: New payload.
            links: New links map.

        Returns:
            The resource itself.
        """
        self.data = dict(data or {})
        self.links = dict(links or {})
        return self

    def to_entry(self) -> CacheEntry:
        """Snapshot the resource for the local store."""
        return CacheEntry(uri=self.uri, data=dict(self.data), links=dict(self.links))

    # === Request descriptors ===

    def put_request(self) -> PendingRequest:
        """Describe a PUT of the current resource state."""
        return PendingRequest(
            method=RequestMethod.PUT,
            url=self.uri,
            data=dict(self.data),
            headers={"Content-Type": JSON_CONTENT_TYPE},
        )

    def delete_request(self) -> PendingRequest:
        """Describe a DELETE of the resource."""
        return PendingRequest(method=RequestMethod.DELETE, url=self.uri)

    def post_request(
        self,
        data: Any,
        headers: dict[str, str] | None = None,
        config_callback: ConfigCallback | None = None,
    ) -> PendingRequest:
        """Describe a POST to the resource.

        The config callback is applied immediately, since only the
        resulting descriptor can be persisted.

        Args:
            data: Request body.
            headers: Request headers.
            config_callback: Optional function that adjusts the request.

        Returns:
            The request descriptor.
        """
        request = PendingRequest(
            method=RequestMethod.POST,
            url=self.uri,
            data=data,
            headers=dict(headers or {}),
        )
        if config_callback is not None:
            request = config_callback(request)
        return request
