"""
Builder for ``RelayAppender``.

Setters only record values; ``build()`` validates them, connects and returns
a ready appender.
"""

import logging
from typing import Any, Callable, Dict, Optional

from .appender import RelayAppender
from .config.config_model import AppenderConfig, build_config
from .encoders import Encoder, PatternEncoder
from .mqtt.client import MqttConnection
from .mqtt.messages import Publisher

logger = logging.getLogger(__name__)

PublisherFactory = Callable[[AppenderConfig], Publisher]


class MqttAppenderBuilder:
    """
    Collects appender options.

    Example:
        appender = (
            RelayAppender.builder()
            .with_server("mqtt://localhost:1883")
            .with_topic("logs")
            .with_qos(1)
            .build()
        )
    """

    def __init__(self):
        self._values: Dict[str, Any] = {}
        self._encoder: Optional[Encoder] = None
        self._publisher_factory: PublisherFactory = MqttConnection.open

    def with_server(self, uri: str) -> "MqttAppenderBuilder":
        """Sets the MQTT server URI, e.g. ``mqtt://localhost:1883``."""
        self._values["server_uri"] = uri
        return self

    def with_client_id(self, client_id: str) -> "MqttAppenderBuilder":
        """Sets the MQTT client ID. Defaults to a generated unique ID."""
        self._values["client_id"] = client_id
        return self

    def with_topic(self, topic: str) -> "MqttAppenderBuilder":
        """Sets the topic records are published to."""
        self._values["topic"] = topic
        return self

    def with_qos(self, qos: int) -> "MqttAppenderBuilder":
        """Sets the QoS level (0, 1 or 2). Defaults to 0."""
        self._values["qos"] = qos
        return self

    def with_encoder(self, encoder: Encoder) -> "MqttAppenderBuilder":
        """Sets the record encoder. Defaults to a ``PatternEncoder``."""
        self._encoder = encoder
        return self

    def with_connect_timeout(self, seconds: float) -> "MqttAppenderBuilder":
        self._values["connect_timeout"] = seconds
        return self

    def with_flush_timeout(self, seconds: float) -> "MqttAppenderBuilder":
        self._values["flush_timeout"] = seconds
        return self

    def with_queue_size(self, size: int) -> "MqttAppenderBuilder":
        self._values["queue_size"] = size
        return self

    def with_keepalive(self, seconds: int) -> "MqttAppenderBuilder":
        self._values["keepalive"] = seconds
        return self

    def with_publisher_factory(self, factory: PublisherFactory) -> "MqttAppenderBuilder":
        """Replaces the connection factory. It receives the config and returns a connected publisher."""
        self._publisher_factory = factory
        return self

    def build(self) -> RelayAppender:
        """
        Validates the options, connects and returns a ready appender.

        Returns:
            RelayAppender in the READY state

        Raises:
            ConfigError: If server URI or topic is missing or a value is invalid.
                No connection is opened in that case.
            BrokerConnectionError: If the broker cannot be reached in time
        """
        config = build_config(self._values)
        encoder = self._encoder if self._encoder is not None else PatternEncoder()

        publisher = self._publisher_factory(config)
        logger.debug(f"Publisher ready for {config.server_uri}, topic {config.topic}")

        return RelayAppender(config, publisher, encoder)
