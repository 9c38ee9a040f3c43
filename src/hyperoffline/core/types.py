"""Shared types for hyperoffline.

This module defines enums used by the offline context, the sync engine
and the connectivity source.
"""

from __future__ import annotations

from enum import Enum


class ConnectivityStatus(str, Enum):
    """Network status broadcast by the connectivity source."""

    ONLINE = "online"
    OFFLINE = "offline"


class ReplayState(str, Enum):
    """State of the offline request replay.

    A replay goes IDLE -> DRAINING -> REPLAYING and ends in IDLE on
    success or FAILED when a replayed request errors. A later trigger
    starts again from either end state.
    """

    IDLE = "idle"
    DRAINING = "draining"
    REPLAYING = "replaying"
    FAILED = "failed"


class RequestMethod(str, Enum):
    """HTTP methods that can be queued while offline."""

    PUT = "put"
    DELETE = "delete"
    POST = "post"
