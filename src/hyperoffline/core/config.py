"""Configuration for hyperoffline.

This module defines the configuration shared by the resource context,
the local store and the network probe.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_TIMEOUT = 30.0
DEFAULT_PROBE_INTERVAL = 5.0


@dataclass
class OfflineConfig:
    """Configuration for an offline-capable resource context.

    Attributes:
        store_path: Path of the SQLite database holding cached resources
            and queued requests.
        timeout: HTTP request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
        headers: Default headers sent with every request.
        probe_url: Optional health URL polled to detect connectivity.
        probe_interval: Seconds between probe attempts.
    """

    store_path: Path
    timeout: float = DEFAULT_TIMEOUT
    verify_ssl: bool = True
    headers: dict[str, str] = field(default_factory=dict)
    probe_url: str | None = None
    probe_interval: float = DEFAULT_PROBE_INTERVAL

    def __post_init__(self) -> None:
        """Normalize the store path and validate the probe interval."""
        self.store_path = Path(self.store_path).expanduser()
        if self.probe_interval <= 0:
            raise ValueError("probe_interval must be positive")

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_store: Path) -> OfflineConfig:
        """Create configuration from a JSON config dictionary.

        Args:
            data: Parsed config file contents.
            default_store: Store path used when none is configured.

        Returns:
            OfflineConfig with unspecified fields set to defaults.
        """
        return cls(
            store_path=Path(data.get("store_path") or default_store),
            timeout=float(data.get("timeout", DEFAULT_TIMEOUT)),
            verify_ssl=bool(data.get("verify_ssl", True)),
            headers=dict(data.get("headers") or {}),
            probe_url=data.get("probe_url"),
            probe_interval=float(data.get("probe_interval", DEFAULT_PROBE_INTERVAL)),
        )
