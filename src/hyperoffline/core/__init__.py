"""Core module - Shared configuration and types."""

from hyperoffline.core.config import OfflineConfig
from hyperoffline.core.types import ConnectivityStatus, ReplayState, RequestMethod

__all__ = [
    # Config
    "OfflineConfig",
    # Types
    "ConnectivityStatus",
    "ReplayState",
    "RequestMethod",
]
