from .client import MqttConnection
from .messages import Publisher, PublishMessage

__all__ = [
    "MqttConnection",
    "Publisher",
    "PublishMessage",
]
