"""Event emitter and the normalized provider event vocabulary."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, ClassVar

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """Minimal named-event emitter.

    Listeners may be plain callables or coroutine functions. Coroutine
    listeners are scheduled on the running loop; a listener that raises is
    logged and does not prevent the remaining listeners from running.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._pending: set[asyncio.Task[Any]] = set()

    def on(self, event: str, listener: Listener) -> Listener:
        self._listeners[event].append(listener)
        return listener

    def off(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        listeners = list(self._listeners.get(event, []))
        for listener in listeners:
            try:
                result = listener(*args)
            except Exception:
                logger.exception("Listener for %s failed", event)
                continue
            if inspect.isawaitable(result):
                self._schedule(event, result)
        return bool(listeners)

    async def drain(self) -> None:
        """Wait for coroutine listeners scheduled by ``emit``."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _schedule(self, event: str, awaitable: Any) -> None:
        async def _run() -> None:
            try:
                await awaitable
            except Exception:
                logger.exception("Listener for %s failed", event)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running loop for async listener of %s; dropped", event)
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return
        task = loop.create_task(_run())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    name: ClassVar[str] = "error"
    payload: Any = None


@dataclass(frozen=True, slots=True)
class ReadyEvent:
    name: ClassVar[str] = "ready"
    ready: bool = True

    @property
    def payload(self) -> bool:
        return self.ready


@dataclass(frozen=True, slots=True)
class MessageEvent:
    name: ClassVar[str] = "message"
    payload: dict[str, Any] = field(default_factory=dict)


ProviderEvent = ErrorEvent | ReadyEvent | MessageEvent
