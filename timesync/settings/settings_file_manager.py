"""Configuration file manager for timesync.

Handles reading and writing JSON configuration files using platformdirs
for cross-platform config directory management.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

from timesync.logging import TIMESYNC_LOGGER


class SettingsFileManager:
    """Manages configuration file storage and retrieval."""

    def __init__(self, config_file: Optional[Path] = None):
        """Initialize the config manager.

        Args:
            config_file: Explicit config file; defaults to config.json in the
                platform config directory.
        """
        if config_file is None:
            self.config_dir = Path(platformdirs.user_config_dir("timesync", appauthor=False))
            self.config_file = self.config_dir / "config.json"
        else:
            self.config_file = Path(config_file)
            self.config_dir = self.config_file.parent

    def ensure_config_directory(self) -> None:
        """Create config directory with proper permissions if it doesn't exist."""
        if not self.config_dir.exists():
            self.config_dir.mkdir(parents=True, mode=0o700)
        else:
            os.chmod(self.config_dir, 0o700)

    def load_config(self) -> Dict[str, Any]:
        """Load configuration from JSON file.

        Returns:
            Dict containing configuration, or empty dict if file doesn't exist.
        """
        if not self.config_file.exists():
            return {}

        try:
            with open(self.config_file, "r") as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            # Return empty config to allow recovery
            TIMESYNC_LOGGER.error(f"Error loading config file: {e}")
            return {}

    def save_config(self, config: Dict[str, Any]) -> None:
        """Save configuration to JSON file with proper permissions.

        Args:
            config: Dictionary of configuration values to save.
        """
        self.ensure_config_directory()

        # Write to temp file first, then atomic rename
        temp_file = self.config_file.with_suffix(".json.tmp")
        try:
            with open(temp_file, "w") as f:
                json.dump(config, f, indent=2)
            os.chmod(temp_file, 0o600)
            temp_file.rename(self.config_file)
        except Exception as e:
            if temp_file.exists():
                temp_file.unlink()
            raise IOError(f"Failed to save config: {e}") from e

    def get_config_path(self) -> Path:
        return self.config_file

    def config_exists(self) -> bool:
        return self.config_file.exists()

    def validate_config(self, config: Dict[str, Any]) -> tuple[bool, Optional[str]]:
        """Validate configuration structure.

        Args:
            config: Configuration dictionary to validate.

        Returns:
            Tuple of (is_valid, error_message).
        """
        if not isinstance(config, dict):
            return False, "Configuration must be a dictionary"

        sources = config.get("sources")
        if sources is not None and not (
            isinstance(sources, list) and all(isinstance(s, str) and s.strip() for s in sources)
        ):
            return False, "sources must be a list of non-empty host names"

        for key in ("retries", "interval_ms", "periodicity_minutes"):
            value = config.get(key)
            if value is None:
                continue
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                return False, f"{key} must be a non-negative integer"

        return True, None
