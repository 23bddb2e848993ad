"""Provider exception hierarchy.

All provider-specific exceptions inherit from MetaProviderError. Transport
failures are not wrapped: they surface as the httpx exception that caused
them, so ``TransportError`` is an alias for the httpx base class.
"""

import httpx

TransportError = httpx.HTTPError


class MetaProviderError(Exception):
    """Base exception for all provider errors."""

    def __init__(self, message: str = "", *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class InvalidInput(MetaProviderError):
    """Malformed send request, rejected before any I/O."""


class MediaInputMissing(InvalidInput):
    """Media reference was None or empty."""

    def __init__(self, value: object = None) -> None:
        super().__init__(f"media input missing: {value!r}")
        self.value = value


class MediaResolutionError(MetaProviderError):
    """Media could not be downloaded, found or converted."""

    def __init__(self, reason: str, *, retryable: bool = False) -> None:
        super().__init__(reason, retryable=retryable)
        self.reason = reason


class MalformedResponseError(MetaProviderError):
    """The Graph API answered 2xx with a body we cannot use."""


class QueueTaskError(MetaProviderError):
    """Failure of the dispatch queue itself (not of a task it ran)."""


class QueueClosedError(QueueTaskError):
    """Task offered to a queue that has been closed."""


class ConfigError(MetaProviderError):
    """Invalid or missing configuration."""
