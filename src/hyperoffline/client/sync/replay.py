"""Replay of offline requests after reconnection.

This module provides:
- ReplayStrategy: Signature of a pluggable replay policy
- SequentialReplay: Default policy, one request at a time in queue order
- ReplayError: Raised when a replayed request fails

Requests are drained from the queue before replay, so a failure drops
the requests that were not replayed yet (at-most-once delivery).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

import httpx

from hyperoffline.client.api import APIError
from hyperoffline.client.resource import PendingRequest

if TYPE_CHECKING:
    from hyperoffline.client.api import ResourceContext

logger = logging.getLogger(__name__)

ReplayStrategy = Callable[[list[PendingRequest]], None]


class ReplayError(Exception):
    """A replayed request failed and the replay was abandoned.

    Attributes:
        request: The request that failed, if known.
        replayed: Number of requests sent successfully before the failure.
    """

    def __init__(
        self,
        message: str,
        request: PendingRequest | None = None,
        replayed: int = 0,
    ) -> None:
        super().__init__(message)
        self.request = request
        self.replayed = replayed


class SequentialReplay:
    """Replay requests one after the other through a resource context.

    Each request completes before the next is sent, so two queued
    mutations of the same resource keep their order.
    """

    def __init__(self, context: ResourceContext) -> None:
        self._context = context

    def __call__(self, requests: list[PendingRequest]) -> None:
        for replayed, request in enumerate(requests):
            try:
                self._context.send(request)
            except (APIError, httpx.HTTPError) as e:
                logger.error(
                    "Replay of %s %s failed after %d/%d requests: %s",
                    request.method.upper(),
                    request.url,
                    replayed,
                    len(requests),
                    e,
                )
                raise ReplayError(str(e), request=request, replayed=replayed) from e
