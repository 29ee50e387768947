"""Configuration loader for autosnap.

Handles loading and merging configuration from multiple sources.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from ..utils.env import get_config_path, get_global_autosnap_dir, CONFIG_FILE_NAME
from ..utils.fs import atomic_write, read_json
from .types import TrackingPolicy


logger = logging.getLogger(__name__)


class ConfigLoader:
    """Loads and manages the autosnap tracking policy."""

    def __init__(self, project_root: Path | None = None):
        """Initialize config loader.

        Args:
            project_root: Project root directory (for project-local config)
        """
        self.project_root = project_root
        self._policy: TrackingPolicy | None = None

    @property
    def policy(self) -> TrackingPolicy:
        """Get loaded policy, loading if necessary."""
        if self._policy is None:
            self._policy = self.load()
        return self._policy

    @property
    def project_config_path(self) -> Path | None:
        if not self.project_root:
            return None
        return get_config_path(self.project_root)

    def load_raw(self) -> dict[str, Any]:
        """Merge the config files without interpreting them.

        Priority (highest to lowest):
        1. Project-local config (.auto-snap/config.json)
        2. Global config (~/.auto-snap/config.json)
        3. Default values

        Returns:
            Merged camelCase dictionary
        """
        merged: dict[str, Any] = TrackingPolicy().to_dict()

        global_config_path = get_global_autosnap_dir() / CONFIG_FILE_NAME
        if global_config_path.exists():
            merged = self._deep_merge(merged, self._read(global_config_path))

        project_config_path = self.project_config_path
        if project_config_path and project_config_path.exists():
            merged = self._deep_merge(merged, self._read(project_config_path))

        return merged

    def load(self) -> TrackingPolicy:
        """Load the effective tracking policy from all sources."""
        return TrackingPolicy.from_dict(self.load_raw())

    def reload(self) -> TrackingPolicy:
        """Force reload configuration."""
        self._policy = None
        return self.policy

    def save_default_config(self) -> bool:
        """Write the default config into the project if it is missing.

        Returns:
            True if a new config file was created
        """
        config_path = self.project_config_path
        if config_path is None:
            raise ValueError("No project root set for project-scope config")
        if config_path.exists():
            return False

        atomic_write(config_path, json.dumps(TrackingPolicy().to_dict(), indent=2) + "\n")
        self._policy = None
        return True

    @staticmethod
    def _read(path: Path) -> dict[str, Any]:
        data = read_json(path)
        if not isinstance(data, dict):
            logger.warning("Ignoring config %s: expected a JSON object", path)
            return {}
        return data

    @staticmethod
    def _deep_merge(base: dict, override: dict) -> dict:
        """Deep merge two dictionaries.

        Args:
            base: Base dictionary
            override: Dictionary to merge (takes precedence)

        Returns:
            Merged dictionary
        """
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ConfigLoader._deep_merge(result[key], value)
            else:
                result[key] = value
        return result
