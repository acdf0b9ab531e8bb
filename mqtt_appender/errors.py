"""
Exception hierarchy for the MQTT appender.

Build-time failures (``ConfigError``, ``BrokerConnectionError``) abort
construction. Per-record failures are ``AppendError`` subclasses and are
raised to the logging framework, which decides what to do with them.
"""


class MqttAppenderError(Exception):
    """Base class for all appender errors."""


class ConfigError(MqttAppenderError, ValueError):
    """Missing or invalid configuration option."""


class BrokerConnectionError(MqttAppenderError, ConnectionError):
    """The initial broker connection failed or timed out."""


class AppendError(MqttAppenderError):
    """A single record could not be handed to the transport."""


class EncodeError(AppendError):
    """The encoder failed to render the record."""


class TransportError(AppendError):
    """The record was rejected by the local queue or the connection."""


class AppenderClosedError(AppendError):
    """The appender was used after it had been closed."""
