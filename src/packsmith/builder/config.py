"""Locating, loading and writing ``packsmith.json``."""

import json
from pathlib import Path

from pyvider.telemetry import logger

from .exceptions import ConfigError
from .models import AddonConfig

CONFIG_FILENAME = "packsmith.json"


def find_project_root(start_path: Path | None = None) -> Path | None:
    """Finds the nearest directory at or above ``start_path`` holding a config file."""
    current = (start_path or Path.cwd()).resolve()
    while True:
        if (current / CONFIG_FILENAME).is_file():
            return current
        if current.parent == current:
            return None
        current = current.parent


def load_config(config_path: Path) -> AddonConfig | None:
    """
    Loads an addon configuration.

    Returns None when the file does not exist so callers can fall back to the
    built-in defaults. A file that exists but cannot be read or parsed is an error.
    """
    if not config_path.exists():
        return None

    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read {config_path}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Failed to parse {config_path}: {e}") from e

    config = AddonConfig.from_dict(data)
    logger.debug(f"Loaded configuration from {config_path}", projects=len(config.projects))
    return config


def write_config(config_path: Path, config: AddonConfig) -> None:
    config_path.write_text(
        json.dumps(config.to_dict(), indent=2) + "\n", encoding="utf-8"
    )
