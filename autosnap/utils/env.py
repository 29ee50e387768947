"""Environment and path utilities for autosnap."""

from __future__ import annotations

import os
from pathlib import Path


AUTOSNAP_DIR_NAME = ".auto-snap"
CONFIG_FILE_NAME = "config.json"
STORE_DIR_NAME = "store"
PID_FILE_NAME = "watcher.pid"


def is_debug_mode() -> bool:
    """Check if debug mode is enabled.

    Returns:
        True if AUTOSNAP_DEBUG is set to a truthy value
    """
    val = os.environ.get("AUTOSNAP_DEBUG", "").lower()
    return val in ("1", "true", "yes", "on")


def get_home_dir() -> Path:
    """Get user home directory.

    Returns:
        Path to home directory
    """
    return Path.home()


def get_global_autosnap_dir() -> Path:
    """Get global autosnap directory (~/.auto-snap).

    Returns:
        Path to global config directory
    """
    return get_home_dir() / AUTOSNAP_DIR_NAME


def get_autosnap_dir(root_dir: Path | str) -> Path:
    """Get the project-local .auto-snap directory."""
    return Path(root_dir) / AUTOSNAP_DIR_NAME


def get_store_dir(root_dir: Path | str) -> Path:
    """Get the directory holding one .snap artifact per tracked file."""
    return get_autosnap_dir(root_dir) / STORE_DIR_NAME


def get_config_path(root_dir: Path | str) -> Path:
    return get_autosnap_dir(root_dir) / CONFIG_FILE_NAME


def get_pid_file(root_dir: Path | str) -> Path:
    return get_autosnap_dir(root_dir) / PID_FILE_NAME


def determine_project_root() -> Path:
    """Project root from AUTOSNAP_PROJECT_ROOT, else the working directory."""
    val = os.environ.get("AUTOSNAP_PROJECT_ROOT")
    if isinstance(val, str) and val.strip():
        return Path(val.strip()).expanduser()
    return Path.cwd()
