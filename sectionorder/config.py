"""
Configuration Manager for sectionorder
Handles reorder timing, the API endpoint and locally stored subject orders
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import ConfigError
from .platform_utils import get_config_dir

logger = logging.getLogger(__name__)

# Increment this whenever the configuration format changes
CONFIG_VERSION = 2

HIERARCHY_MODES = ("global", "sibling")

SettingListener = Callable[[str, Any], None]


class Config:
    """Configuration manager for sectionorder"""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file or os.path.join(get_config_dir(), 'config.json')
        self._listeners: List[SettingListener] = []
        self.config_data = self.load_json_config()

    def load_json_config(self) -> Dict[str, Any]:
        """Load configuration from JSON file"""
        try:
            if os.path.exists(self.config_file):
                with open(self.config_file, 'r') as f:
                    config = json.load(f)

                # Purge outdated configurations
                stored_version = config.get('config_version', 1)
                if stored_version < CONFIG_VERSION:
                    backup_file = f"{self.config_file}.bak"
                    try:
                        os.replace(self.config_file, backup_file)
                        logger.warning(
                            "Outdated config version %s detected; backing up to %s and regenerating defaults",
                            stored_version,
                            backup_file,
                        )
                    except OSError:
                        os.remove(self.config_file)
                        logger.warning(
                            "Outdated config version %s detected; old config removed and new defaults generated",
                            stored_version,
                        )

                    config = self.get_default_config()
                    self.save_json_config(config)
                else:
                    config, updated = self._ensure_config_defaults(config)
                    if updated:
                        self.save_json_config(config)

                return config
            else:
                # Create default config
                default_config = self.get_default_config()
                self.save_json_config(default_config)
                return default_config
        except Exception as e:
            logger.error(f"Failed to load JSON config: {e}")
            return self.get_default_config()

    def save_json_config(self, config_data: Dict[str, Any] = None):
        """Save configuration to JSON file"""
        try:
            if config_data is None:
                config_data = self.config_data

            os.makedirs(os.path.dirname(self.config_file), exist_ok=True)
            with open(self.config_file, 'w') as f:
                json.dump(config_data, f, indent=2)

            logger.debug("Configuration saved to JSON file")
        except Exception as e:
            logger.error(f"Failed to save JSON config: {e}")

    def get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values"""
        return {
            'config_version': CONFIG_VERSION,
            'debug_enabled': False,
            'reorder': {
                'quiet_period': 5.0,
                'notification_duration': 3.0,
                'hierarchy_mode': 'global',
            },
            'api': {
                'base_url': None,  # None keeps orders in this config file
                'token': None,
                'timeout': 15,
            },
            'subjects': {},  # class_section_id -> list of subject dicts
            'subject_orders': {},  # class_section_id -> {subject_id: order}
        }

    def _ensure_config_defaults(self, config: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        """Ensure newly added keys exist in the provided config dict."""
        updated = False
        defaults = self.get_default_config()

        for section in ('reorder', 'api'):
            current = config.get(section)
            if not isinstance(current, dict):
                config[section] = dict(defaults[section])
                updated = True
                continue
            for key, value in defaults[section].items():
                if key not in current:
                    current[key] = value
                    updated = True

        if 'debug_enabled' not in config:
            config['debug_enabled'] = False
            updated = True

        for section in ('subjects', 'subject_orders'):
            if not isinstance(config.get(section), dict):
                config[section] = {}
                updated = True

        return config, updated

    # --- listeners ---------------------------------------------------------

    def add_listener(self, callback: SettingListener) -> None:
        """Call ``callback(key, value)`` after every :meth:`set_setting`."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: SettingListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # --- access ------------------------------------------------------------

    def get_setting(self, key: str, default=None):
        """Get a setting value using a dotted key such as ``reorder.quiet_period``"""
        keys = key.split('.')
        value = self.config_data
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set_setting(self, key: str, value: Any):
        """Set a setting value and persist the file"""
        keys = key.split('.')
        current = self.config_data
        for k in keys[:-1]:
            if k not in current or not isinstance(current[k], dict):
                current[k] = {}
            current = current[k]
        current[keys[-1]] = value
        self.save_json_config()

        for listener in list(self._listeners):
            try:
                listener(key, value)
            except Exception:
                logger.exception("Setting listener failed for %s", key)

        logger.debug(f"Setting {key} = {value}")

    # --- subject order helpers --------------------------------------------

    def get_subject_orders(self, section_id: str) -> Dict[str, int]:
        """Return the stored ``{subject_id: order}`` map for a class section."""
        orders = self.get_setting('subject_orders', {})
        if not isinstance(orders, dict):
            return {}
        value = orders.get(str(section_id), {})
        return dict(value) if isinstance(value, dict) else {}

    def set_subject_orders(self, section_id: str, orders: Dict[str, int]):
        all_orders = self.get_setting('subject_orders', {})
        if not isinstance(all_orders, dict):
            all_orders = {}
        all_orders[str(section_id)] = dict(orders)
        self.set_setting('subject_orders', all_orders)


@dataclass(frozen=True)
class ReorderSettings:
    """Validated view of the ``reorder`` configuration section."""

    quiet_period: float = 5.0
    notification_duration: float = 3.0
    hierarchy_mode: str = "global"

    def __post_init__(self):
        if self.quiet_period < 0:
            raise ConfigError(f"quiet_period must be >= 0, got {self.quiet_period}")
        if self.notification_duration < 0:
            raise ConfigError(
                f"notification_duration must be >= 0, got {self.notification_duration}"
            )
        if self.hierarchy_mode not in HIERARCHY_MODES:
            raise ConfigError(
                f"hierarchy_mode must be one of {', '.join(HIERARCHY_MODES)}, got {self.hierarchy_mode!r}"
            )

    @classmethod
    def from_config(cls, config: Config) -> "ReorderSettings":
        try:
            return cls(
                quiet_period=float(config.get_setting('reorder.quiet_period', 5.0)),
                notification_duration=float(config.get_setting('reorder.notification_duration', 3.0)),
                hierarchy_mode=str(config.get_setting('reorder.hierarchy_mode', 'global')),
            )
        except (TypeError, ValueError) as exc:
            if isinstance(exc, ConfigError):
                raise
            raise ConfigError(f"Invalid reorder settings: {exc}") from exc
