"""
MQTT log appender

Forwards ``logging`` records to an MQTT topic.

Components:
- appender: RelayAppender, which encodes records and queues them for publishing.
- builder: MqttAppenderBuilder for programmatic setup.
- handler: MqttLoggingHandler, the ``logging.Handler`` around an appender.
- registry: Deserializers and ``register`` for declarative configuration.
- mqtt: paho-mqtt based connection.
- config: validated settings and logging config file loading.
"""

__version__ = "1.0.1"

from .appender import AppenderState, RelayAppender
from .builder import MqttAppenderBuilder
from .config.config_model import AppenderConfig
from .config.manager import ConfigManager, configure_logging
from .encoders import Encoder, JsonEncoder, PatternEncoder
from .errors import (
    AppendError,
    AppenderClosedError,
    BrokerConnectionError,
    ConfigError,
    EncodeError,
    MqttAppenderError,
    TransportError,
)
from .handler import MqttLoggingHandler, RecursionFilter
from .mqtt.client import MqttConnection
from .mqtt.messages import Publisher, PublishMessage
from .registry import Deserializers, MqttAppenderDeserializer, mqtt_handler, register

__all__ = [
    "AppenderConfig",
    "AppenderState",
    "AppendError",
    "AppenderClosedError",
    "BrokerConnectionError",
    "ConfigError",
    "ConfigManager",
    "Deserializers",
    "EncodeError",
    "Encoder",
    "JsonEncoder",
    "MqttAppenderBuilder",
    "MqttAppenderDeserializer",
    "MqttAppenderError",
    "MqttConnection",
    "MqttLoggingHandler",
    "PatternEncoder",
    "Publisher",
    "PublishMessage",
    "RecursionFilter",
    "RelayAppender",
    "TransportError",
    "configure_logging",
    "mqtt_handler",
    "register",
]
