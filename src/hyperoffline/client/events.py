"""Simple pub/sub event bus for offline store notifications.

Store faults can happen outside any caller's control (for example while
opening the database at startup), so they are broadcast here for
background observers such as a status banner.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Event = dict[str, Any]
Handler = Callable[[Event], None]

STORE_ERROR = "offlinecache:error"
STORE_BLOCKED = "offlinecache:blocked"
REPLAY_DONE = "offlinecache:replayed"
REPLAY_FAILED = "offlinecache:replay-failed"


class EventBus:
    """In-process event bus with topic routing."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Subscribe a handler to a topic ("*" for all).

        Returns:
            A function that removes the subscription.
        """
        with self._lock:
            self._subscribers[topic].append(handler)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._subscribers.get(topic, [])
                if handler in handlers:
                    handlers.remove(handler)

        return unsubscribe

    def publish(self, topic: str, event: Event | None = None) -> None:
        """Publish an event to a topic."""
        payload: Event = {"topic": topic, **(event or {})}
        handlers: list[Handler] = []
        with self._lock:
            handlers.extend(self._subscribers.get(topic, []))
            handlers.extend(self._subscribers.get("*", []))
        for handler in handlers:
            try:
                handler(payload)
            except Exception as exc:
                logger.error("EventBus handler failed for topic '%s': %s", topic, exc)
