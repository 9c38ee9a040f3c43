"""Offline synchronization engine.

Architecture:
    OfflineContext → OfflineSync → LocalStore
                          ↑
    Netstatus → ReplayOnReconnect (on "online": drain + replay)

Components:
- **OfflineSync**: Cache/queue transactions, offline request counter,
  replay, offline-only extraction, reinitialization
- **SequentialReplay**: Default replay policy (one request at a time)
- **ReplayOnReconnect**: Replays the queue when connectivity returns
"""

from hyperoffline.client.sync.engine import OfflineSync
from hyperoffline.client.sync.listener import ReplayOnReconnect
from hyperoffline.client.sync.replay import (
    ReplayError,
    ReplayStrategy,
    SequentialReplay,
)

__all__ = [
    "OfflineSync",
    "ReplayError",
    "ReplayOnReconnect",
    "ReplayStrategy",
    "SequentialReplay",
]
