"""
Live snapshot subscriptions.

A Subscription holds at most one pending snapshot: publishing replaces whatever
the consumer has not read yet, so a slow consumer never builds up a queue and
always catches up to the latest state of the collection.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_EMPTY = object()


class Subscription(Generic[T]):
    def __init__(
        self,
        path: str,
        transform: Callable[[list[dict]], T] | None = None,
        on_close: Callable[["Subscription"], None] | None = None,
    ):
        self.path = path
        self._transform = transform
        self._on_close = on_close
        self._latest: Any = _EMPTY
        self._ready = asyncio.Event()
        self._closed = False
        self._pump: asyncio.Task | None = None
        self.delivered = 0
        self.dropped = 0

    @property
    def active(self) -> bool:
        return not self._closed

    def publish(self, documents: list[dict]) -> None:
        """Replace the pending snapshot with a new one (drop-and-replace)."""
        if self._closed:
            return
        if self._latest is not _EMPTY:
            self.dropped += 1
        self._latest = self._transform(documents) if self._transform else documents
        self._ready.set()

    async def next(self) -> T:
        """Wait for the next snapshot. Raises StopAsyncIteration once unsubscribed."""
        while True:
            if self._latest is not _EMPTY:
                snapshot, self._latest = self._latest, _EMPTY
                self._ready.clear()
                self.delivered += 1
                return snapshot
            if self._closed:
                raise StopAsyncIteration
            await self._ready.wait()
            self._ready.clear()

    def __aiter__(self):
        return self

    async def __anext__(self) -> T:
        return await self.next()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.unsubscribe()

    def drive(self, callback: Callable[[T], Awaitable[None] | None]) -> None:
        """Deliver every subsequent snapshot to callback from a background task."""
        self._pump = asyncio.create_task(self._run_callback(callback))

    async def _run_callback(self, callback) -> None:
        async for snapshot in self:
            try:
                result = callback(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.exception("Snapshot callback failed for %s: %s", self.path, e)

    def unsubscribe(self) -> None:
        """Release the subscription. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._latest = _EMPTY
        self._ready.set()
        if self._pump is not None and not self._pump.done() and self._pump is not asyncio.current_task():
            self._pump.cancel()
        if self._on_close is not None:
            self._on_close(self)
