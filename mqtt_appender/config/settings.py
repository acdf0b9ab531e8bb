"""
Default values for the MQTT appender.

Values can be overridden per appender through the builder, the declarative
config or the ``MQTT_APPENDER_*`` environment variables.
"""

ENV_PREFIX = "MQTT_APPENDER_"

# Connection
DEFAULT_QOS = 0
DEFAULT_KEEPALIVE = 60  # seconds
DEFAULT_CONNECT_TIMEOUT = 5.0  # seconds
RECONNECT_MIN_DELAY = 5  # seconds
RECONNECT_MAX_DELAY = 300  # seconds
MAX_TOPIC_LENGTH = 65535  # bytes, UTF-8 encoded

# Queue and worker
DEFAULT_QUEUE_SIZE = 1000
DEFAULT_FLUSH_TIMEOUT = 5.0  # seconds
WORKER_JOIN_TIMEOUT = 2.0  # seconds

# Encoder
DEFAULT_PATTERN = "%(asctime)s %(levelname)s %(name)s - %(message)s"

CLIENT_ID_PREFIX = "log_appender"

# URI schemes and their default ports
SCHEME_DEFAULTS = {
    "mqtt": {"port": 1883, "tls": False, "transport": "tcp"},
    "tcp": {"port": 1883, "tls": False, "transport": "tcp"},
    "mqtts": {"port": 8883, "tls": True, "transport": "tcp"},
    "ssl": {"port": 8883, "tls": True, "transport": "tcp"},
    "ws": {"port": 80, "tls": False, "transport": "websockets"},
    "wss": {"port": 443, "tls": True, "transport": "websockets"},
}

# Loggers whose records are never published over MQTT
RECURSIVE_LOGGER_PREFIXES = ("paho", "mqtt_appender")
