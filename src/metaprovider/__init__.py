"""WhatsApp Cloud API provider with an ordered, paced send queue."""

from metaprovider.errors import (
    ConfigError,
    InvalidInput,
    MalformedResponseError,
    MediaInputMissing,
    MediaResolutionError,
    MetaProviderError,
    QueueClosedError,
    QueueTaskError,
    TransportError,
)
from metaprovider.provider import MetaProvider

__all__ = [
    "ConfigError",
    "InvalidInput",
    "MalformedResponseError",
    "MediaInputMissing",
    "MediaResolutionError",
    "MetaProvider",
    "MetaProviderError",
    "QueueClosedError",
    "QueueTaskError",
    "TransportError",
]
