"""
``logging`` integration for the relay appender.
"""

import logging
import sys
import threading
from typing import Iterable

from .appender import RelayAppender
from .config import settings as defaults
from .errors import AppendError


class RecursionFilter(logging.Filter):
    """
    Rejects records from the MQTT client and from this package.

    Publishing those records would feed the connection's own log output back
    into the connection.
    """

    def __init__(self, prefixes: Iterable[str] = defaults.RECURSIVE_LOGGER_PREFIXES):
        super().__init__()
        self.prefixes = tuple(prefixes)

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        return not any(name == prefix or name.startswith(prefix + ".") for prefix in self.prefixes)


class MqttLoggingHandler(logging.Handler):
    """
    Logging handler that forwards records to a ``RelayAppender``.

    Append errors go through ``Handler.handleError`` so a failed publish never
    propagates into application code. Closing the handler closes the appender
    and its connection.
    """

    def __init__(self, appender: RelayAppender, level: int = logging.NOTSET, filter_recursive: bool = True):
        """
        Args:
            appender: Ready appender the records are forwarded to
            level: Minimum level handled
            filter_recursive: Attach a ``RecursionFilter`` (recommended)
        """
        super().__init__(level)
        self.appender = appender
        self._local = threading.local()
        if filter_recursive:
            self.addFilter(RecursionFilter())

    def emit(self, record: logging.LogRecord) -> None:
        # records logged while this thread is already inside emit are dropped
        if getattr(self._local, "emitting", False):
            return
        self._local.emitting = True
        try:
            self.appender.append(record)
        except AppendError:
            self.handleError(record)
        finally:
            self._local.emitting = False

    def flush(self) -> None:
        if not self.appender.is_ready():
            return
        try:
            self.appender.flush()
        except AppendError as e:
            if logging.raiseExceptions:
                sys.stderr.write(f"--- MQTT log handler flush failed: {e}\n")

    def close(self) -> None:
        try:
            self.appender.close()
        finally:
            super().close()

    def __repr__(self):
        level = logging.getLevelName(self.level)
        return f"<{self.__class__.__name__} {self.appender.config.server_uri} {self.appender.topic} ({level})>"
