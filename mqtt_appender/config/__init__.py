"""
Configuration package for the MQTT appender.
"""

from .config_model import AppenderConfig, BrokerAddress, build_config, parse_server_uri
from .manager import ConfigManager, configure_logging

__all__ = [
    "AppenderConfig",
    "BrokerAddress",
    "ConfigManager",
    "build_config",
    "configure_logging",
    "parse_server_uri",
]
