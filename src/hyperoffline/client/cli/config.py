"""Configuration utilities for the hyperoffline CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from hyperoffline.core.config import OfflineConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_config_dir() -> Path:
    """Get the configuration directory for hyperoffline.

    Returns:
        Path to ~/.hyperoffline or equivalent.
    """
    return Path.home() / ".hyperoffline"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, object]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def load_offline_config(store_path: Path | None = None) -> OfflineConfig:
    """Build the offline configuration from the config file.

    Args:
        store_path: Store path overriding the configured one.

    Returns:
        OfflineConfig (store defaults to ~/.hyperoffline/offline.db).
    """
    data = load_config()
    if store_path is not None:
        data["store_path"] = str(store_path)
    return OfflineConfig.from_dict(data, default_store=get_config_dir() / "offline.db")


def setup_logging(verbose: bool = False) -> None:
    """Send hyperoffline logs to stderr.

    Args:
        verbose: Log debug messages instead of warnings and errors only.
    """
    root_logger = logging.getLogger("hyperoffline")
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root_logger.propagate = False
