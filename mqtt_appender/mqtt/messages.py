"""
Message value and transport contract shared by the appender and the connection.
"""
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class PublishMessage:
    """One rendered log record on its way to the broker."""

    topic: str
    payload: bytes
    qos: int = 0


@runtime_checkable
class Publisher(Protocol):
    """
    Transport capability used by the relay appender.

    ``publish`` must return as soon as the message is accepted for delivery and
    raise ``TransportError`` if it is rejected synchronously.
    """

    def publish(self, topic: str, payload: bytes, qos: int) -> None:
        ...

    def flush(self, timeout: Optional[float] = None) -> None:
        ...

    def close(self) -> None:
        ...
