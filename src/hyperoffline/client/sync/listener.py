"""Replay of the offline queue on reconnection.

This module provides:
- ReplayOnReconnect: Netstatus subscriber that replays queued requests
  whenever the status becomes online
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from hyperoffline.client.store import StoreError
from hyperoffline.client.sync.replay import ReplayError
from hyperoffline.core.types import ConnectivityStatus

if TYPE_CHECKING:
    from hyperoffline.client.sync.engine import OfflineSync

logger = logging.getLogger(__name__)


class ReplayOnReconnect:
    """Trigger OfflineSync.replay() on every transition to online.

    Failures are logged and left to the next transition or a manual
    replay; the engine has already broadcast them.
    """

    def __init__(self, sync: OfflineSync) -> None:
        self._sync = sync
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def listening(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        """Subscribe to the engine's connectivity source."""
        if self._unsubscribe is None:
            self._unsubscribe = self._sync.netstatus.subscribe(self.on_status)

    def stop(self) -> None:
        """Unsubscribe from the connectivity source."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_status(self, status: ConnectivityStatus) -> None:
        if status is not ConnectivityStatus.ONLINE:
            return
        try:
            self._sync.replay()
        except ReplayError as e:
            logger.warning("Offline replay stopped after %d requests: %s", e.replayed, e)
        except StoreError as e:
            logger.warning("Offline replay could not drain the queue: %s", e)
