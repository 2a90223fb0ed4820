"""Configuration manager for loading and saving app settings."""

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from ..utils.constants import (
    AGENT_ENV_FILE,
    AGENT_LOG_FILE,
    CONFIG_FILE,
    DEFAULT_LISTEN,
    DEFAULT_LOG_MAX_BYTES,
    KNOWN_BREW_PATHS,
    SERVICE_NAME,
    TAP_NAME,
)

logger = logging.getLogger(__name__)


def default_settings() -> Dict[str, Any]:
    """Settings used when the config file does not provide them."""
    return {
        "env_path": str(AGENT_ENV_FILE),
        "log_path": str(AGENT_LOG_FILE),
        "service_name": SERVICE_NAME,
        "tap_name": TAP_NAME,
        "brew_paths": list(KNOWN_BREW_PATHS),
        "log_max_bytes": DEFAULT_LOG_MAX_BYTES,
        "default_listen": DEFAULT_LISTEN,
    }


STRING_SETTINGS = ("env_path", "log_path", "service_name", "tap_name", "default_listen")


def validate_setting(key: str, value: Any) -> Optional[str]:
    """Check the type of a known setting.

    Args:
        key: Setting key
        value: Proposed value

    Returns:
        Error message, or None if the value is acceptable
    """
    if key in STRING_SETTINGS:
        if not isinstance(value, str):
            return f"{key} must be a string"
    elif key == "log_max_bytes":
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            return "log_max_bytes must be a positive integer"
    elif key == "brew_paths":
        if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
            return "brew_paths must be a list of strings"
    return None


class ConfigManager:
    """Manages application settings stored as YAML."""

    CONFIG_VERSION = "1.0"

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        """Initialize the config manager.

        Args:
            config_file: Settings file, defaults to ~/.config/beszelapp/config.yaml
        """
        self.config_file = Path(config_file).expanduser() if config_file else CONFIG_FILE
        self.settings: Dict[str, Any] = {}

    def load_config(self) -> bool:
        """Load configuration from file.

        Returns:
            True if config loaded successfully, False otherwise
        """
        if not self.config_file.exists():
            logger.info("Config file not found, using defaults")
            self._load_defaults()
            return False

        try:
            with open(self.config_file, 'r', encoding="utf-8") as f:
                data = yaml.safe_load(f)

            if not data:
                logger.warning("Empty config file, using defaults")
                self._load_defaults()
                return False

            if not self._validate_config(data):
                logger.error("Invalid config file, using defaults")
                self._load_defaults()
                return False

            self.settings = dict(data.get("settings") or {})
            self._ensure_default_settings()

            logger.info(f"Loaded settings from {self.config_file}")
            return True

        except yaml.YAMLError as e:
            logger.error(f"YAML parsing error: {e}")
            self._load_defaults()
            return False
        except OSError as e:
            logger.error(f"Failed to load config: {e}")
            self._load_defaults()
            return False

    def save_config(self) -> bool:
        """Save configuration to file.

        Returns:
            True if saved successfully, False otherwise
        """
        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)

            # Create backup if config exists
            if self.config_file.exists():
                backup_file = self.config_file.with_suffix('.yaml.bak')
                shutil.copy2(self.config_file, backup_file)
                logger.debug(f"Created backup at {backup_file}")

            data = {
                "version": self.CONFIG_VERSION,
                "settings": self.settings,
            }

            # Write to temp file first (atomic write)
            temp_file = self.config_file.with_suffix('.yaml.tmp')
            with open(temp_file, 'w', encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

            temp_file.replace(self.config_file)

            logger.info(f"Saved settings to {self.config_file}")
            return True

        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to save config: {e}")
            return False

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get a setting value.

        Args:
            key: Setting key
            default: Default value if key not found

        Returns:
            Setting value or default
        """
        return self.settings.get(key, default)

    def set_setting(self, key: str, value: Any) -> bool:
        """Set a setting value and save.

        Args:
            key: Setting key
            value: Setting value

        Returns:
            True if the settings were saved, False if the value was rejected
            or saving failed
        """
        error = validate_setting(key, value)
        if error:
            logger.error(f"Rejected setting {key}: {error}")
            return False

        self.settings[key] = value
        return self.save_config()

    @property
    def env_path(self) -> Path:
        return Path(self.get_setting("env_path", str(AGENT_ENV_FILE))).expanduser()

    @property
    def log_path(self) -> Path:
        return Path(self.get_setting("log_path", str(AGENT_LOG_FILE))).expanduser()

    def _validate_config(self, data: dict) -> bool:
        """Validate configuration data structure.

        Args:
            data: Configuration dictionary

        Returns:
            True if valid, False otherwise
        """
        if not isinstance(data, dict):
            logger.error("Config must be a dictionary")
            return False

        if "version" not in data:
            logger.warning("Config missing version, assuming valid")

        settings = data.get("settings")
        if settings is not None and not isinstance(settings, dict):
            logger.error("Settings must be a dictionary")
            return False

        for key, value in (settings or {}).items():
            error = validate_setting(key, value)
            if error:
                logger.error(error)
                return False

        return True

    def _load_defaults(self):
        """Load default configuration."""
        self.settings = {}
        self._ensure_default_settings()
        logger.info("Loaded default configuration")

    def _ensure_default_settings(self):
        """Ensure all default settings exist."""
        for key, value in default_settings().items():
            if key not in self.settings:
                self.settings[key] = value
