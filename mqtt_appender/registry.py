"""
Registration glue for declarative configuration.

A ``Deserializers`` registry maps ``kind`` names to factories for appenders
and encoders. ``register`` installs the ``mqtt`` appender kind together with
the ``pattern`` and ``json`` encoder kinds.

For ``logging.config.dictConfig`` use ``mqtt_handler`` as the ``()`` factory:

    handlers:
      mqtt:
        (): mqtt_appender.registry.mqtt_handler
        level: INFO
        mqtt_server: mqtt://mosquitto.local:1883
        mqtt_client_id: app_logger
        topic: logs
        qos: 1
        encoder:
          kind: pattern
          pattern: "%(levelname)s %(name)s - %(message)s"
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional

from .appender import RelayAppender
from .builder import MqttAppenderBuilder, PublisherFactory
from .encoders import JsonEncoder, PatternEncoder
from .errors import ConfigError
from .handler import MqttLoggingHandler

logger = logging.getLogger(__name__)

APPENDER = "appender"
ENCODER = "encoder"

DEFAULT_KINDS = {ENCODER: "pattern"}

Factory = Callable[[Dict[str, Any], "Deserializers"], Any]


class Deserializers:
    """Maps ``(category, kind)`` to a factory building the configured object."""

    def __init__(self):
        self._factories: Dict[str, Dict[str, Factory]] = {APPENDER: {}, ENCODER: {}}

    def insert(self, category: str, kind: str, factory: Factory) -> None:
        if category not in self._factories:
            raise ConfigError(f"Unknown category: {category}")
        if kind in self._factories[category]:
            logger.debug(f"Replacing {category} kind '{kind}'")
        self._factories[category][kind] = factory

    def kinds(self, category: str) -> List[str]:
        return sorted(self._factories.get(category, {}))

    def deserialize(self, category: str, config: Mapping[str, Any]) -> Any:
        """
        Builds an object from a config mapping.

        Args:
            category: ``appender`` or ``encoder``
            config: Mapping with a ``kind`` key plus the kind's options

        Returns:
            The object created by the registered factory

        Raises:
            ConfigError: If the kind is unknown or the options are invalid
        """
        if not isinstance(config, Mapping):
            raise ConfigError(f"{category} config must be a mapping, got {type(config).__name__}")

        options = dict(config)
        kind = options.pop("kind", None) or DEFAULT_KINDS.get(category)
        if kind is None:
            raise ConfigError(f"Missing 'kind' in {category} config")

        factory = self._factories.get(category, {}).get(kind)
        if factory is None:
            known = ", ".join(self.kinds(category)) or "none"
            raise ConfigError(f"Unknown {category} kind '{kind}' (registered: {known})")

        return factory(options, self)


def _encoder_factory(encoder_cls) -> Factory:
    def factory(options: Dict[str, Any], deserializers: Deserializers):
        try:
            return encoder_cls(**options)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid {encoder_cls.__name__} options {options}: {e}") from e

    return factory


class MqttAppenderDeserializer:
    """
    Builds a ``RelayAppender`` from declarative options.

    Options:
        mqtt_server: Server URI (required)
        mqtt_client_id: Client ID (generated when omitted)
        topic: Publish topic (required)
        qos: 0, 1 or 2 (default 0)
        encoder: Nested encoder config (default ``kind: pattern``)
        connect_timeout, flush_timeout, queue_size, keepalive: Tuning values
    """

    OPTION_SETTERS = {
        "mqtt_server": "with_server",
        "mqtt_client_id": "with_client_id",
        "topic": "with_topic",
        "qos": "with_qos",
        "connect_timeout": "with_connect_timeout",
        "flush_timeout": "with_flush_timeout",
        "queue_size": "with_queue_size",
        "keepalive": "with_keepalive",
    }

    def __init__(self, publisher_factory: Optional[PublisherFactory] = None):
        self.publisher_factory = publisher_factory

    def __call__(self, options: Dict[str, Any], deserializers: Deserializers) -> RelayAppender:
        return self.deserialize(options, deserializers)

    def deserialize(self, options: Mapping[str, Any], deserializers: Deserializers) -> RelayAppender:
        options = dict(options)
        builder = MqttAppenderBuilder()
        if self.publisher_factory is not None:
            builder.with_publisher_factory(self.publisher_factory)

        encoder_config = options.pop("encoder", None)
        if encoder_config is not None:
            builder.with_encoder(deserializers.deserialize(ENCODER, encoder_config))

        unknown = sorted(set(options) - set(self.OPTION_SETTERS))
        if unknown:
            raise ConfigError(f"Unknown MQTT appender option(s): {', '.join(unknown)}")

        for name, value in options.items():
            if value is not None:
                getattr(builder, self.OPTION_SETTERS[name])(value)

        return builder.build()


def register(deserializers: Deserializers, publisher_factory: Optional[PublisherFactory] = None) -> None:
    """Registers the ``mqtt`` appender kind and the built-in encoder kinds."""
    deserializers.insert(APPENDER, "mqtt", MqttAppenderDeserializer(publisher_factory))
    deserializers.insert(ENCODER, "pattern", _encoder_factory(PatternEncoder))
    deserializers.insert(ENCODER, "json", _encoder_factory(JsonEncoder))


def default_deserializers() -> Deserializers:
    deserializers = Deserializers()
    register(deserializers)
    return deserializers


_default_registry: Optional[Deserializers] = None
_default_registry_lock = threading.Lock()


def get_default_registry() -> Deserializers:
    """Returns the process-wide registry used by ``mqtt_handler``."""
    global _default_registry
    with _default_registry_lock:
        if _default_registry is None:
            _default_registry = default_deserializers()
        return _default_registry


def handler_factory(kind: str, deserializers: Deserializers) -> Callable[..., MqttLoggingHandler]:
    """Returns a ``dictConfig`` factory building a handler around an appender of ``kind``."""

    def factory(filter_recursive: bool = True, **options) -> MqttLoggingHandler:
        appender = deserializers.deserialize(APPENDER, {**options, "kind": kind})
        return MqttLoggingHandler(appender, filter_recursive=filter_recursive)

    return factory


def mqtt_handler(filter_recursive: bool = True, **options) -> MqttLoggingHandler:
    """
    ``dictConfig`` factory: builds an appender from ``options`` and wraps it in a handler.

    ``level``, ``formatter`` and ``filters`` are applied by ``dictConfig``
    itself; every other key is an appender option.
    """
    return handler_factory("mqtt", get_default_registry())(filter_recursive=filter_recursive, **options)
