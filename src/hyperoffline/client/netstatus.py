"""Connectivity status for offline-capable contexts.

This module provides:
- Netstatus: Current online/offline status with change notifications
- NetworkProbe: Background thread that polls a health URL to drive Netstatus

Architecture:
    NetworkProbe ─set_status─► Netstatus ─notify─► ReplayOnReconnect ─► OfflineSync

Netstatus only notifies subscribers when the status actually changes.
Handlers run on the thread that changed the status.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

import httpx

from hyperoffline.core.config import DEFAULT_PROBE_INTERVAL
from hyperoffline.core.types import ConnectivityStatus

logger = logging.getLogger(__name__)

StatusHandler = Callable[[ConnectivityStatus], None]


class Netstatus:
    """Online/offline status with subscriptions."""

    def __init__(self, status: ConnectivityStatus = ConnectivityStatus.ONLINE) -> None:
        self._status = ConnectivityStatus(status)
        self._lock = threading.Lock()
        self._handlers: list[StatusHandler] = []

    @property
    def status(self) -> ConnectivityStatus:
        """Current connectivity status."""
        return self._status

    @property
    def online(self) -> bool:
        return self._status is ConnectivityStatus.ONLINE

    @property
    def offline(self) -> bool:
        return self._status is ConnectivityStatus.OFFLINE

    def set_status(self, status: ConnectivityStatus | str) -> bool:
        """Set the status and notify subscribers if it changed.

        Args:
            status: New status ("online" or "offline").

        Returns:
            True if the status changed.
        """
        status = ConnectivityStatus(status)
        with self._lock:
            if status is self._status:
                return False
            self._status = status
            handlers = list(self._handlers)

        logger.info("Network status changed: %s", status.value)
        for handler in handlers:
            try:
                handler(status)
            except Exception as e:
                logger.error("Netstatus handler failed: %s", e)
        return True

    def subscribe(self, handler: StatusHandler) -> Callable[[], None]:
        """Register a handler called with the new status on every change.

        Returns:
            A function that removes the handler.
        """
        with self._lock:
            self._handlers.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe


class NetworkProbe:
    """Poll a health URL and report reachability to a Netstatus.

    Usage:
        probe = NetworkProbe(netstatus, "https://api.example.com/health")
        probe.start()
        # ...
        probe.stop()
    """

    def __init__(
        self,
        netstatus: Netstatus,
        url: str,
        interval: float = DEFAULT_PROBE_INTERVAL,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the probe.

        Args:
            netstatus: Status to update.
            url: Health URL; any 2xx answer means online.
            interval: Seconds between checks.
            timeout: Timeout of a single check, for an owned client.
            client: Existing httpx client to use (not closed by the probe).
        """
        self._netstatus = netstatus
        self._url = url
        self._interval = interval
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        """Check if the probe thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def check(self) -> bool:
        """Check whether the health URL is reachable.

        Returns:
            True if the URL answered with a 2xx status.
        """
        try:
            response = self._client.get(self._url)
        except httpx.HTTPError as e:
            logger.debug("Probe of %s failed: %s", self._url, e)
            return False
        return response.is_success

    def poll_once(self) -> ConnectivityStatus:
        """Run one check and update the status."""
        status = ConnectivityStatus.ONLINE if self.check() else ConnectivityStatus.OFFLINE
        self._netstatus.set_status(status)
        return status

    def start(self) -> None:
        """Start polling in a background thread."""
        if self.running:
            logger.warning("NetworkProbe already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="NetworkProbe",
            daemon=True,
        )
        self._thread.start()
        logger.info("NetworkProbe started (checking %s every %.0fs)", self._url, self._interval)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop polling and close the owned HTTP client."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
        if self._owns_client:
            self._client.close()
        logger.info("NetworkProbe stopped")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(self._interval)
