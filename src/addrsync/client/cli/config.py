"""Configuration utilities for the addrsync CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
from pathlib import Path

DEFAULT_SERVER_URL = "http://localhost:8000"


def get_config_dir() -> Path:
    """Get the configuration directory for addrsync.

    Returns:
        Path to ~/.addrsync or equivalent.
    """
    return Path.home() / ".addrsync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def get_state_db_path() -> Path:
    """Get the path to the LOCAL store database."""
    return get_config_dir() / "state.db"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_owner() -> str | None:
    """Get the current owner identity.

    Returns:
        Username if configured, None otherwise.
    """
    return load_config().get("username") or None


def get_server_url() -> str:
    """Get the REMOTE server URL (configured or default)."""
    return load_config().get("server_url") or DEFAULT_SERVER_URL
