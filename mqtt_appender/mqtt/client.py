"""
MQTT connection used by the appender.

Wraps a paho-mqtt client with:
- Blocking connect bounded by a timeout
- Automatic reconnect inside the paho network loop
- Non-blocking publish with tracking of in-flight messages for flush
"""

import logging
import threading
import time
from typing import Dict, List, Optional

import paho.mqtt.client as mqtt

from ..config import settings as defaults
from ..config.config_model import AppenderConfig
from ..errors import BrokerConnectionError, TransportError

logger = logging.getLogger(__name__)

# In-flight message infos are pruned once this many have accumulated
PENDING_PRUNE_THRESHOLD = 256


class MqttConnection:
    """
    Connection handle to one MQTT broker, owned by a single appender.

    The paho network loop runs in its own thread and performs the actual
    socket I/O, so ``publish`` only hands the message to paho's outgoing
    queue and returns.
    """

    def __init__(self, config: AppenderConfig):
        """
        Initializes the connection without connecting.

        Args:
            config: Validated appender configuration
        """
        self.config = config
        self.broker = config.broker
        self.client_id = config.client_id

        self.client: Optional[mqtt.Client] = None
        self.connected = False
        self._closed = False

        self._connected_event = threading.Event()
        self._connect_error: Optional[str] = None

        self._pending: List[mqtt.MQTTMessageInfo] = []
        self._pending_lock = threading.Lock()

        self.stats = {
            "messages_sent": 0,
            "messages_failed": 0,
            "connection_attempts": 0,
            "successful_connections": 0,
        }

    @classmethod
    def open(cls, config: AppenderConfig) -> "MqttConnection":
        """Creates a connection and connects it, bounded by ``config.connect_timeout``."""
        connection = cls(config)
        connection.connect(config.connect_timeout)
        return connection

    def connect(self, timeout: float = defaults.DEFAULT_CONNECT_TIMEOUT) -> None:
        """
        Connects to the broker and starts the network loop.

        Args:
            timeout: Maximum time for the socket connect plus the broker's CONNACK in seconds

        Raises:
            BrokerConnectionError: If the connection is refused, fails or times out
        """
        if self.connected:
            logger.warning("Already connected")
            return

        self.stats["connection_attempts"] += 1
        self._connected_event.clear()
        self._connect_error = None
        deadline = time.monotonic() + timeout

        logger.info(f"Connecting to MQTT broker {self.broker.host}:{self.broker.port} as {self.client_id}")
        try:
            self.client = self._create_client(timeout)
            self.client.connect(self.broker.host, self.broker.port, keepalive=self.config.keepalive)
        except (OSError, ValueError, RuntimeError) as e:
            raise BrokerConnectionError(
                f"Cannot connect to MQTT broker {self.config.server_uri}: {e}"
            ) from e

        self.client.loop_start()

        # socket connect and CONNACK share one timeout
        if not self._connected_event.wait(max(deadline - time.monotonic(), 0.0)):
            self._abort_connect()
            raise BrokerConnectionError(
                f"Timed out after {timeout}s waiting for MQTT broker {self.config.server_uri}"
            )

        if self._connect_error is not None:
            self._abort_connect()
            raise BrokerConnectionError(
                f"MQTT broker {self.config.server_uri} refused the connection: {self._connect_error}"
            )

        self.stats["successful_connections"] += 1
        logger.info("MQTT connection established")

    def publish(self, topic: str, payload: bytes, qos: int = 0) -> None:
        """
        Submits a message for delivery without waiting for the broker.

        Args:
            topic: MQTT topic
            payload: Message body, published verbatim
            qos: Quality of Service level (0, 1 or 2)

        Raises:
            TransportError: If the connection is closed or paho rejects the message
        """
        if self._closed or self.client is None:
            raise TransportError("MQTT connection is closed")

        try:
            info = self.client.publish(topic, payload, qos=qos, retain=False)
        except (ValueError, RuntimeError) as e:
            self.stats["messages_failed"] += 1
            raise TransportError(f"Publish to {topic} failed: {e}") from e

        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self.stats["messages_failed"] += 1
            raise TransportError(f"Publish to {topic} rejected: {mqtt.error_string(info.rc)}")

        self.stats["messages_sent"] += 1
        with self._pending_lock:
            self._pending.append(info)
            if len(self._pending) >= PENDING_PRUNE_THRESHOLD:
                self._prune_pending()

    def flush(self, timeout: Optional[float] = None) -> None:
        """
        Waits until every submitted message has been written to the broker.

        Args:
            timeout: Maximum wait in seconds (defaults to the configured flush timeout)

        Raises:
            TransportError: On timeout or if a message could not be delivered
        """
        if timeout is None:
            timeout = self.config.flush_timeout
        deadline = time.monotonic() + timeout

        with self._pending_lock:
            pending = list(self._pending)

        for info in pending:
            if info.is_published():
                continue
            remaining = deadline - time.monotonic()
            if remaining > 0:
                try:
                    info.wait_for_publish(remaining)
                except (RuntimeError, ValueError) as e:
                    raise TransportError(f"Message {info.mid} was not delivered: {e}") from e
            if not info.is_published():
                raise TransportError(f"Flush timed out after {timeout}s")

        with self._pending_lock:
            self._prune_pending()

    def close(self) -> None:
        """Disconnects from the broker and stops the network loop. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True

        if self.client is not None:
            self.client.disconnect()
            self.client.loop_stop()
            logger.info("MQTT connection closed")

        self.connected = False

    def is_connected(self) -> bool:
        return self.connected

    def get_stats(self) -> Dict[str, int]:
        return self.stats.copy()

    def _create_client(self, timeout: float) -> mqtt.Client:
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            clean_session=True,
            protocol=mqtt.MQTTv311,
            transport=self.broker.transport,
        )
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect

        if self.broker.username:
            client.username_pw_set(self.broker.username, self.broker.password)
        if self.broker.tls:
            client.tls_set()
        if self.broker.transport == "websockets":
            client.ws_set_options(path=self.broker.path)

        client.connect_timeout = timeout
        client.reconnect_delay_set(
            min_delay=defaults.RECONNECT_MIN_DELAY, max_delay=defaults.RECONNECT_MAX_DELAY
        )
        return client

    def _abort_connect(self) -> None:
        self.client.loop_stop()
        self.client.disconnect()
        self.connected = False

    def _prune_pending(self) -> None:
        # caller holds _pending_lock
        self._pending = [info for info in self._pending if not info.is_published()]

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            self._connect_error = str(reason_code)
            logger.error(f"Connection refused by broker: {reason_code}")
        else:
            if self._connected_event.is_set():
                logger.info("Reconnected to MQTT broker")
            self.connected = True
        self._connected_event.set()

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        self.connected = False
        if self._closed:
            logger.info("Disconnected from MQTT broker")
        else:
            logger.warning(f"Unexpected disconnect ({reason_code}), reconnecting")
