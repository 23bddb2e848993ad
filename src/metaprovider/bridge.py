"""Relay of raw webhook events onto the provider's normalized vocabulary."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

from metaprovider.errors import ConfigError
from metaprovider.events import ErrorEvent, MessageEvent, ProviderEvent, ReadyEvent

logger = logging.getLogger(__name__)


class WebhookEventSource(Protocol):
    EVENTS: frozenset[str]

    def on(self, event: str, listener: Callable[..., Any]) -> Any: ...


EVENT_MAP: dict[str, Callable[..., ProviderEvent]] = {
    "auth_failure": lambda payload=None: ErrorEvent(payload),
    "ready": lambda *_: ReadyEvent(True),
    "message": lambda payload=None: MessageEvent(payload if payload is not None else {}),
}


class EventBridge:
    """Subscribes to every raw event of ``source`` and hands the mapped
    ``ProviderEvent`` to ``sink``. Holds no state beyond the subscription.
    """

    def __init__(
        self,
        source: WebhookEventSource,
        sink: Callable[[ProviderEvent], Any],
        mapping: dict[str, Callable[..., ProviderEvent]] | None = None,
    ) -> None:
        self._mapping = dict(EVENT_MAP if mapping is None else mapping)
        declared = frozenset(getattr(source, "EVENTS", frozenset()))
        unmapped = declared - self._mapping.keys()
        unknown = self._mapping.keys() - declared
        if unmapped or unknown:
            raise ConfigError(
                "event mapping does not match webhook events: "
                f"unmapped={sorted(unmapped)} unknown={sorted(unknown)}"
            )
        self._sink = sink
        for raw_event, translate in self._mapping.items():
            source.on(raw_event, self._relay(raw_event, translate))

    @property
    def raw_events(self) -> frozenset[str]:
        return frozenset(self._mapping)

    def _relay(
        self, raw_event: str, translate: Callable[..., ProviderEvent]
    ) -> Callable[..., Any]:
        def relay(*args: Any) -> Any:
            event = translate(*args)
            logger.debug("Relaying %s as %s", raw_event, event.name)
            return self._sink(event)

        return relay
