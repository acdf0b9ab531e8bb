"""
Configuration manager for file-driven logging setup.

Loads a ``logging.config.dictConfig`` document from YAML or JSON and applies
it. Handlers may name an appender ``kind`` (for example ``kind: mqtt``)
instead of a ``class``; such entries are built through the deserializer
registry.
"""

import copy
import json
import logging
import logging.config
import os
from typing import Any, Dict, Optional, Union

import yaml

from ..errors import ConfigError, MqttAppenderError
from . import settings as defaults

CONFIG_PATH_ENV = defaults.ENV_PREFIX + "LOGGING_CONFIG"


class ConfigManager:
    """
    Loads and applies a logging configuration file.

    Attributes:
        config_path (str): Path of the loaded file, or None
        config (dict): The loaded configuration dictionary
    """

    def __init__(self, config_path: Optional[str] = None, deserializers=None):
        """
        Initialize the ConfigManager.

        Args:
            config_path: Path to the configuration file. If None, uses
                ``MQTT_APPENDER_LOGGING_CONFIG`` or the default locations.
            deserializers: Registry used for ``kind`` handlers (default: the
                process-wide registry)
        """
        self.logger = logging.getLogger(__name__)
        self.deserializers = deserializers
        self.config: Dict[str, Any] = {}

        if config_path is None:
            config_path = os.environ.get(CONFIG_PATH_ENV)
        if config_path is None:
            possible_paths = [
                os.path.join(os.getcwd(), "logging.yaml"),
                os.path.join(os.getcwd(), "logging.yml"),
                os.path.join(os.getcwd(), "logging.json"),
            ]
            for path in possible_paths:
                if os.path.exists(path):
                    config_path = path
                    break

        self.config_path = config_path
        if config_path:
            self.load(config_path)

    def load(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from file.

        Raises:
            ConfigError: If the file is missing, unreadable or not a mapping
        """
        if not os.path.exists(config_path):
            raise ConfigError(f"Logging configuration not found: {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                if config_path.endswith((".yaml", ".yml")):
                    loaded_config = yaml.safe_load(f)
                elif config_path.endswith(".json"):
                    loaded_config = json.load(f)
                else:
                    raise ConfigError(f"Unsupported config file format: {config_path}")
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"Error loading configuration from {config_path}: {e}") from e

        if not isinstance(loaded_config, dict):
            raise ConfigError(f"Logging configuration in {config_path} must be a mapping")

        self.config_path = config_path
        self.config = loaded_config
        self.logger.info(f"Loaded logging configuration from {config_path}")
        return self.config

    def get(self, path: Union[str, list], default: Any = None) -> Any:
        """
        Get a configuration value by path.

        Args:
            path: Dot-notation string or list of keys
            default: Default value if path doesn't exist
        """
        if isinstance(path, str):
            path = path.split(".")

        current = self.config
        for key in path:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self.config)

    def apply(self) -> None:
        """
        Hand the configuration to ``logging.config.dictConfig``.

        Raises:
            ConfigError: If the configuration is rejected
            BrokerConnectionError: If an MQTT handler cannot connect
        """
        config = self._resolve_kinds(self.to_dict())
        config.setdefault("version", 1)

        try:
            logging.config.dictConfig(config)
        except (ValueError, TypeError, AttributeError, ImportError) as e:
            # dictConfig wraps handler construction errors
            cause = e.__cause__
            if isinstance(cause, MqttAppenderError):
                raise cause
            raise ConfigError(f"Invalid logging configuration: {e}") from e

    def _resolve_kinds(self, config: Dict[str, Any]) -> Dict[str, Any]:
        from ..registry import get_default_registry, handler_factory

        deserializers = self.deserializers or get_default_registry()
        for name, handler in (config.get("handlers") or {}).items():
            if not isinstance(handler, dict) or "kind" not in handler:
                continue
            kind = handler.pop("kind")
            if kind not in deserializers.kinds("appender"):
                raise ConfigError(f"Handler '{name}' uses unknown appender kind '{kind}'")
            handler["()"] = handler_factory(kind, deserializers)
            self.logger.debug(f"Handler '{name}' resolved to appender kind '{kind}'")

        return config


def configure_logging(config_path: Optional[str] = None) -> ConfigManager:
    """Loads a logging configuration file and applies it."""
    manager = ConfigManager(config_path)
    if not manager.config:
        raise ConfigError("No logging configuration file found")
    manager.apply()
    return manager
