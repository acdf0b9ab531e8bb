"""
Integration tests: file-driven logging configuration down to the publisher

The MQTT connection is replaced by an in-memory publisher; everything else
(dictConfig, deserializers, handler, appender, worker thread) runs for real.
"""

import json
import logging
import logging.config
import textwrap

import pytest

from mqtt_appender import registry
from mqtt_appender.config.manager import ConfigManager, configure_logging
from mqtt_appender.errors import BrokerConnectionError, ConfigError
from mqtt_appender.handler import MqttLoggingHandler
from mqtt_appender.registry import Deserializers, register

LOGGER_NAME = "pipeline.app"

YAML_CONFIG = textwrap.dedent(
    """
    version: 1
    disable_existing_loggers: false
    handlers:
      mqtt:
        kind: mqtt
        level: INFO
        mqtt_server: mqtt://mosquitto.local:1883
        mqtt_client_id: app_logger
        topic: logs
        qos: 1
        encoder:
          kind: pattern
          pattern: "%(levelname)s %(name)s - %(message)s"
    loggers:
      pipeline.app:
        level: DEBUG
        handlers: [mqtt]
        propagate: false
    """
)


@pytest.fixture
def deserializers(publisher_factory):
    deserializers = Deserializers()
    register(deserializers, publisher_factory=publisher_factory)
    return deserializers


@pytest.fixture
def default_registry(monkeypatch, deserializers):
    monkeypatch.setattr(registry, "_default_registry", deserializers)
    return deserializers


@pytest.fixture
def pipeline_logger():
    logger = logging.getLogger(LOGGER_NAME)
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def mqtt_handler_of(logger):
    handlers = [h for h in logger.handlers if isinstance(h, MqttLoggingHandler)]
    assert len(handlers) == 1
    return handlers[0]


def test_yaml_config_publishes_records(tmp_path, deserializers, publisher, pipeline_logger):
    path = tmp_path / "logging.yaml"
    path.write_text(YAML_CONFIG, encoding="utf-8")

    manager = ConfigManager(str(path), deserializers=deserializers)
    manager.apply()

    pipeline_logger.debug("below handler level")
    pipeline_logger.info("service started")
    pipeline_logger.error("disk %s full", "/var")
    mqtt_handler_of(pipeline_logger).flush()

    assert [m.payload for m in publisher.messages] == [
        b"INFO pipeline.app - service started",
        b"ERROR pipeline.app - disk /var full",
    ]
    assert {m.topic for m in publisher.messages} == {"logs"}
    assert {m.qos for m in publisher.messages} == {1}
    assert publisher.config.client_id == "app_logger"
    assert manager.get("handlers.mqtt.topic") == "logs"


def test_dict_config_factory(default_registry, publisher, pipeline_logger):
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "handlers": {
                "mqtt": {
                    "()": "mqtt_appender.registry.mqtt_handler",
                    "mqtt_server": "mqtt://localhost:1883",
                    "topic": "logs/json",
                    "encoder": {"kind": "json"},
                }
            },
            "loggers": {LOGGER_NAME: {"level": "INFO", "handlers": ["mqtt"], "propagate": False}},
        }
    )

    pipeline_logger.warning("json record")
    mqtt_handler_of(pipeline_logger).flush()

    assert len(publisher.messages) == 1
    document = json.loads(publisher.messages[0].payload)
    assert document["message"] == "json record"
    assert document["level"] == "WARNING"
    assert publisher.messages[0].topic == "logs/json"


def test_json_file_and_env_path(tmp_path, monkeypatch, default_registry, publisher, pipeline_logger):
    path = tmp_path / "logging.json"
    path.write_text(
        json.dumps(
            {
                "handlers": {
                    "mqtt": {"kind": "mqtt", "mqtt_server": "mqtt://localhost", "topic": "env/logs"}
                },
                "loggers": {LOGGER_NAME: {"level": "INFO", "handlers": ["mqtt"], "propagate": False}},
                "disable_existing_loggers": False,
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("MQTT_APPENDER_LOGGING_CONFIG", str(path))

    manager = configure_logging()
    pipeline_logger.info("from json")
    mqtt_handler_of(pipeline_logger).flush()

    assert manager.config_path == str(path)
    assert len(publisher.messages) == 1
    assert publisher.messages[0].payload.endswith(b"INFO pipeline.app - from json")


def test_missing_topic_fails_fast(tmp_path, deserializers, publisher):
    path = tmp_path / "logging.yaml"
    path.write_text(
        textwrap.dedent(
            """
            version: 1
            disable_existing_loggers: false
            handlers:
              mqtt:
                kind: mqtt
                mqtt_server: mqtt://localhost:1883
            """
        ),
        encoding="utf-8",
    )

    with pytest.raises(ConfigError, match="topic"):
        ConfigManager(str(path), deserializers=deserializers).apply()
    assert publisher.config is None


def test_connection_failure_fails_fast(tmp_path):
    def unreachable(config):
        raise BrokerConnectionError(f"Cannot connect to MQTT broker {config.server_uri}")

    deserializers = Deserializers()
    register(deserializers, publisher_factory=unreachable)
    path = tmp_path / "logging.yaml"
    path.write_text(YAML_CONFIG, encoding="utf-8")

    with pytest.raises(BrokerConnectionError, match="mosquitto.local"):
        ConfigManager(str(path), deserializers=deserializers).apply()


def test_unknown_handler_kind(tmp_path, deserializers):
    path = tmp_path / "logging.yaml"
    path.write_text("handlers:\n  out:\n    kind: kafka\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="kafka"):
        ConfigManager(str(path), deserializers=deserializers).apply()


def test_missing_file():
    with pytest.raises(ConfigError):
        ConfigManager("/nonexistent/logging.yaml")


def test_unsupported_format(tmp_path):
    path = tmp_path / "logging.ini"
    path.write_text("[loggers]\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        ConfigManager(str(path))


def test_configure_logging_without_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ConfigError):
        configure_logging()
