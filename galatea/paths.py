"""Configuration and state path helpers for galatea."""

import os
from pathlib import Path

CONFIG_FILENAME = "galatea.yaml"
CONFIG_ENV_VAR = "GALATEA_CONFIG"


def get_config_dir() -> Path:
    """Return XDG-compliant config directory: ~/.config/galatea"""
    return Path.home() / ".config" / "galatea"


def get_data_dir() -> Path:
    """Return XDG-compliant data directory: ~/.local/share/galatea"""
    return Path.home() / ".local" / "share" / "galatea"


def get_system_config_path() -> Path:
    """Return path to the system-wide config file (read-only for most users)"""
    return Path("/etc/galatea") / CONFIG_FILENAME


def get_user_config_path() -> Path:
    return get_config_dir() / CONFIG_FILENAME


def get_config_search_paths(explicit: str | Path | None = None) -> list[Path]:
    """Return the config file candidates in lookup order.

    Priority:
    1. Explicit path (e.g. --config); when given, it is the only candidate
    2. GALATEA_CONFIG environment variable (if set)
    3. /etc/galatea/galatea.yaml
    4. ~/.config/galatea/galatea.yaml

    Args:
        explicit: Path passed on the command line, if any

    Returns:
        List of candidate paths, first match wins
    """
    if explicit:
        return [Path(explicit)]

    candidates = []
    if CONFIG_ENV_VAR in os.environ:
        candidates.append(Path(os.environ[CONFIG_ENV_VAR]))
    candidates.append(get_system_config_path())
    candidates.append(get_user_config_path())
    return candidates


__all__ = [
    "CONFIG_FILENAME",
    "CONFIG_ENV_VAR",
    "get_config_dir",
    "get_data_dir",
    "get_system_config_path",
    "get_user_config_path",
    "get_config_search_paths",
]
