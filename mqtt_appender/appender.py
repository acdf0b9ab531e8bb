"""
Relay appender: renders log records and hands them to a pub/sub connection.

``append`` only encodes the record and puts it on a bounded local queue. A
single worker thread drains the queue into ``Publisher.publish``, so callers
never wait on the network and the transport sees one writer.
"""

import logging
import queue
import threading
import time
from enum import Enum
from typing import Dict, Optional, Union

from .config import settings as defaults
from .config.config_model import AppenderConfig
from .encoders import Encoder
from .errors import AppenderClosedError, EncodeError, TransportError
from .mqtt.messages import Publisher, PublishMessage

logger = logging.getLogger(__name__)

_STOP = object()


class AppenderState(Enum):
    """Lifecycle of a relay appender."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


def to_payload(rendered: Union[bytes, str]) -> bytes:
    """Converts encoder output to bytes and strips one trailing line break."""
    if isinstance(rendered, str):
        payload = rendered.encode("utf-8", errors="replace")
    elif isinstance(rendered, (bytes, bytearray, memoryview)):
        payload = bytes(rendered)
    else:
        raise TypeError(f"encoder returned {type(rendered).__name__}, expected bytes or str")

    if payload.endswith(b"\r\n"):
        return payload[:-2]
    if payload.endswith(b"\n"):
        return payload[:-1]
    return payload


class RelayAppender:
    """
    Publishes encoded log records to one MQTT topic.

    Create instances with ``RelayAppender.builder()``; the constructor expects
    an already connected publisher.

    Attributes:
        config: The validated, immutable configuration
        topic: Topic every record is published to
        qos: QoS level used for every record
    """

    def __init__(self, config: AppenderConfig, publisher: Publisher, encoder: Encoder):
        self.config = config
        self.topic = config.topic
        self.qos = config.qos
        self.encoder = encoder
        self.publisher = publisher

        self._state = AppenderState.UNINITIALIZED
        self._state_lock = threading.Lock()
        self._queue: "queue.Queue" = queue.Queue(maxsize=config.queue_size)
        self._abort = threading.Event()

        self._stats_lock = threading.Lock()
        self.stats = {
            "messages_queued": 0,
            "messages_sent": 0,
            "messages_failed": 0,
            "messages_dropped": 0,
        }

        self._worker = threading.Thread(
            target=self._drain, name=f"mqtt-appender-{config.client_id}", daemon=True
        )
        self._worker.start()
        self._state = AppenderState.READY

    @classmethod
    def builder(cls):
        """Returns a new ``MqttAppenderBuilder``."""
        from .builder import MqttAppenderBuilder

        return MqttAppenderBuilder()

    @property
    def state(self) -> AppenderState:
        return self._state

    def is_ready(self) -> bool:
        return self._state is AppenderState.READY

    def append(self, record: logging.LogRecord) -> None:
        """
        Encodes a record and queues it for publication.

        Args:
            record: The log record to publish

        Raises:
            AppenderClosedError: If the appender has been closed
            EncodeError: If the encoder fails; nothing is queued
            TransportError: If the local queue is full; the record is dropped
        """
        if self._state is not AppenderState.READY:
            raise AppenderClosedError(f"Appender for topic {self.topic} is {self._state.value}")

        try:
            payload = to_payload(self.encoder.encode(record))
        except Exception as e:
            raise EncodeError(f"Encoder {self.encoder!r} failed: {e}") from e

        message = PublishMessage(topic=self.topic, payload=payload, qos=self.qos)

        with self._state_lock:
            if self._state is not AppenderState.READY:
                raise AppenderClosedError(f"Appender for topic {self.topic} is {self._state.value}")
            try:
                self._queue.put_nowait(message)
            except queue.Full:
                self._count("messages_dropped")
                raise TransportError(
                    f"Send queue full ({self.config.queue_size} messages), record dropped"
                ) from None
            self._count("messages_queued")

    def flush(self, timeout: Optional[float] = None) -> None:
        """
        Waits until all queued records have been handed to the broker.

        Args:
            timeout: Maximum wait in seconds (defaults to ``config.flush_timeout``)

        Raises:
            AppenderClosedError: If the appender has been closed
            TransportError: If the queue or the connection did not drain in time
        """
        if self._state is not AppenderState.READY:
            raise AppenderClosedError(f"Appender for topic {self.topic} is {self._state.value}")

        if timeout is None:
            timeout = self.config.flush_timeout
        deadline = time.monotonic() + timeout

        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TransportError(
                        f"Flush timed out after {timeout}s "
                        f"({self._queue.unfinished_tasks} messages pending)"
                    )
                self._queue.all_tasks_done.wait(remaining)

        self.publisher.flush(max(deadline - time.monotonic(), 0.0))

    def close(self) -> None:
        """
        Stops accepting records, drains the queue and closes the connection.

        Draining is bounded by ``config.flush_timeout``; records still queued
        after that are dropped. Calling close again is a no-op.
        """
        with self._state_lock:
            if self._state is AppenderState.CLOSED:
                return
            self._state = AppenderState.CLOSED

        deadline = time.monotonic() + self.config.flush_timeout
        try:
            self._queue.put(_STOP, timeout=self.config.flush_timeout)
        except queue.Full:
            logger.warning("Send queue did not drain before close, dropping remaining records")
            self._abort.set()

        self._worker.join(timeout=max(deadline - time.monotonic(), defaults.WORKER_JOIN_TIMEOUT))
        if self._worker.is_alive():
            logger.warning("Appender worker did not stop in time")
            self._abort.set()

        self.publisher.close()
        logger.info(f"Appender for topic {self.topic} closed")

    dispose = close

    def get_stats(self) -> Dict[str, int]:
        with self._stats_lock:
            return self.stats.copy()

    def _count(self, name: str, amount: int = 1) -> None:
        with self._stats_lock:
            self.stats[name] += amount

    def _drain(self) -> None:
        while True:
            message = self._queue.get()
            try:
                if message is _STOP:
                    return
                if self._abort.is_set():
                    self._count("messages_dropped")
                    self._discard_queue()
                    return
                self._publish(message)
            finally:
                self._queue.task_done()

    def _publish(self, message: PublishMessage) -> None:
        try:
            self.publisher.publish(message.topic, message.payload, message.qos)
        except TransportError as e:
            self._count("messages_failed")
            logger.warning(f"Dropped log record for {message.topic}: {e}")
        except Exception as e:
            self._count("messages_failed")
            logger.error(f"Publisher error for {message.topic}: {e}")
        else:
            self._count("messages_sent")

    def _discard_queue(self) -> None:
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return
            if item is not _STOP:
                self._count("messages_dropped")
            self._queue.task_done()

    def __repr__(self):
        return (
            f"RelayAppender(server={self.config.server_uri!r}, topic={self.topic!r}, "
            f"qos={self.qos}, state={self._state.value})"
        )
