"""
Shared fixtures: an in-memory publisher standing in for the MQTT connection.
"""

import logging
import threading

import pytest

from mqtt_appender.builder import MqttAppenderBuilder
from mqtt_appender.config import settings
from mqtt_appender.errors import TransportError
from mqtt_appender.mqtt.messages import PublishMessage


class RecordingPublisher:
    """Publisher that records every submission instead of sending it."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.messages = []
        self.flush_calls = 0
        self.close_calls = 0
        self.config = None
        self._lock = threading.Lock()

    def publish(self, topic, payload, qos):
        if self.fail:
            raise TransportError("broker unreachable")
        with self._lock:
            self.messages.append(PublishMessage(topic=topic, payload=payload, qos=qos))

    def flush(self, timeout=None):
        self.flush_calls += 1

    def close(self):
        self.close_calls += 1


class BlockingPublisher(RecordingPublisher):
    """Publisher whose publish call blocks until ``release`` is set."""

    def __init__(self):
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def publish(self, topic, payload, qos):
        self.started.set()
        self.release.wait(5.0)
        super().publish(topic, payload, qos)


class UppercaseEncoder:
    def encode(self, record):
        return record.getMessage().upper()


class FailingEncoder:
    def encode(self, record):
        raise KeyError("missing field")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SERVER", "CLIENT_ID", "TOPIC", "QOS", "CONNECT_TIMEOUT",
                 "FLUSH_TIMEOUT", "QUEUE_SIZE", "KEEPALIVE", "LOGGING_CONFIG"):
        monkeypatch.delenv(settings.ENV_PREFIX + name, raising=False)


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def publisher_factory(publisher):
    def factory(config):
        publisher.config = config
        return publisher

    return factory


@pytest.fixture
def make_record():
    def make(message="hello", level=logging.INFO, name="app.test", exc_info=None):
        return logging.LogRecord(
            name=name,
            level=level,
            pathname=__file__,
            lineno=42,
            msg=message,
            args=None,
            exc_info=exc_info,
        )

    return make


@pytest.fixture
def builder(publisher_factory):
    return (
        MqttAppenderBuilder()
        .with_server("mqtt://localhost:1883")
        .with_topic("logs")
        .with_publisher_factory(publisher_factory)
    )


@pytest.fixture
def appender(builder):
    appender = builder.with_encoder(UppercaseEncoder()).build()
    yield appender
    appender.close()
