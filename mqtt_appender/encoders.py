"""
Encoders render a ``logging.LogRecord`` into the payload published to MQTT.

Any object with an ``encode(record)`` method returning ``bytes`` or ``str``
can be used as an encoder.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Optional, Protocol, Union, runtime_checkable

from .config import settings as defaults


@runtime_checkable
class Encoder(Protocol):
    def encode(self, record: logging.LogRecord) -> Union[bytes, str]:
        ...


class PatternEncoder:
    """
    Renders records with a ``logging.Formatter`` pattern.

    Args:
        pattern: Format string, e.g. ``"%(levelname)s %(message)s"``
        datefmt: Optional ``time.strftime`` format for ``asctime``
        style: Pattern style, one of ``%``, ``{`` or ``$``
    """

    def __init__(self, pattern: str = defaults.DEFAULT_PATTERN, datefmt: Optional[str] = None, style: str = "%"):
        self.pattern = pattern
        self.formatter = logging.Formatter(pattern, datefmt=datefmt, style=style)

    def encode(self, record: logging.LogRecord) -> bytes:
        return self.formatter.format(record).encode("utf-8", errors="replace")

    def __repr__(self):
        return f"PatternEncoder(pattern={self.pattern!r})"


class JsonEncoder:
    """Renders each record as one JSON object."""

    def __init__(self, indent: Optional[int] = None):
        self.indent = indent
        self._exc_formatter = logging.Formatter()

    def encode(self, record: logging.LogRecord) -> bytes:
        document = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "file": record.pathname,
            "line": record.lineno,
            "thread": record.threadName,
            "thread_id": record.thread,
        }
        if record.exc_info:
            document["exception"] = self._exc_formatter.formatException(record.exc_info)
        if record.stack_info:
            document["stack"] = record.stack_info

        return json.dumps(document, indent=self.indent, default=str).encode("utf-8")

    def __repr__(self):
        return f"JsonEncoder(indent={self.indent!r})"
