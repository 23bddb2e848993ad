"""Serialized, paced dispatch queue for outbound Graph API calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from metaprovider.errors import QueueClosedError

logger = logging.getLogger(__name__)

Thunk = Callable[[], Awaitable[Any]]


@dataclass(slots=True)
class QueuedTask:
    thunk: Thunk
    future: asyncio.Future[Any]


class DispatchQueue:
    """Runs enqueued thunks one at a time, in arrival order.

    Consecutive task starts are at least ``interval_ms`` apart, and a task never
    starts before the previous one settled. A task's exception is delivered to
    that task's future only; the worker keeps going. There is no cancellation:
    once enqueued, a task runs even if its caller stopped waiting.
    """

    def __init__(self, *, interval_ms: int = 100) -> None:
        self._interval = max(0, interval_ms) / 1000
        self._pending: asyncio.Queue[QueuedTask | None] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._closed = False
        self._in_flight = 0
        self.start()

    @property
    def interval_ms(self) -> int:
        return int(self._interval * 1000)

    @property
    def pending(self) -> int:
        return self._pending.qsize()

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> bool:
        """Start the worker if a loop is running; ``enqueue`` retries later."""
        if self._worker is not None and not self._worker.done():
            return True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False
        self._worker = loop.create_task(self._run(), name="metaprovider-dispatch-queue")
        return True

    def enqueue(self, thunk: Thunk) -> asyncio.Future[Any]:
        if self._closed:
            raise QueueClosedError("dispatch queue is closed")
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()
        self._pending.put_nowait(QueuedTask(thunk=thunk, future=future))
        self.start()
        return future

    async def run(self, thunk: Thunk) -> Any:
        return await self.enqueue(thunk)

    async def close(self) -> None:
        """Stop accepting tasks, let the queued ones finish, stop the worker."""
        if self._closed:
            return
        self._closed = True
        if self._worker is None or self._worker.done():
            return
        self._pending.put_nowait(None)
        await self._worker

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            item = await self._pending.get()
            if item is None:
                return
            started = loop.time()
            self._in_flight += 1
            try:
                result = await item.thunk()
            except asyncio.CancelledError:
                # A task cancelled from inside its own I/O rejects its caller
                # only; cancellation of the worker itself still propagates.
                logger.warning("Dispatch task cancelled")
                if not item.future.done():
                    item.future.cancel()
                worker = asyncio.current_task()
                if worker is not None and worker.cancelling():
                    raise
            except Exception as exc:
                logger.warning("Dispatch task failed: %s", type(exc).__name__)
                if not item.future.done():
                    item.future.set_exception(exc)
            else:
                if not item.future.done():
                    item.future.set_result(result)
            finally:
                self._in_flight -= 1
            remaining = self._interval - (loop.time() - started)
            if remaining > 0:
                await asyncio.sleep(remaining)
