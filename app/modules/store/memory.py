"""In-process document store with live listeners. Used in development and tests."""

from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable

from app.errors import NotFound
from app.modules.store.subscription import Subscription

logger = logging.getLogger(__name__)


class MemoryDocumentStore:
    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._collections: dict[str, dict[str, dict]] = {}
        self._listeners: dict[str, set[Subscription]] = {}

    async def connect(self) -> None:
        logger.info("Using in-memory document store")

    async def close(self) -> None:
        for subs in list(self._listeners.values()):
            for sub in list(subs):
                sub.unsubscribe()
        self._listeners.clear()

    async def add(self, path: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex
        doc = copy.deepcopy(data)
        doc["timestamp"] = self._clock().isoformat()
        self._collections.setdefault(path, {})[doc_id] = doc
        self._notify(path)
        return doc_id

    async def get(self, path: str, doc_id: str) -> dict | None:
        doc = self._collections.get(path, {}).get(doc_id)
        return _with_id(doc_id, doc) if doc is not None else None

    async def list(self, path: str) -> list[dict]:
        return [_with_id(doc_id, doc) for doc_id, doc in self._collections.get(path, {}).items()]

    async def update(self, path: str, doc_id: str, fields: dict) -> None:
        doc = self._collections.get(path, {}).get(doc_id)
        if doc is None:
            raise NotFound(path, doc_id)
        doc.update(copy.deepcopy(fields))
        self._notify(path)

    async def delete(self, path: str, doc_id: str) -> bool:
        removed = self._collections.get(path, {}).pop(doc_id, None)
        if removed is None:
            return False
        self._notify(path)
        return True

    async def listen(self, path: str, transform=None) -> Subscription:
        sub = Subscription(path, transform=transform, on_close=self._remove_listener)
        self._listeners.setdefault(path, set()).add(sub)
        sub.publish(await self.list(path))
        return sub

    def listener_count(self, path: str) -> int:
        return len(self._listeners.get(path, ()))

    def _remove_listener(self, sub: Subscription) -> None:
        subs = self._listeners.get(sub.path)
        if subs is not None:
            subs.discard(sub)
            if not subs:
                del self._listeners[sub.path]

    def _notify(self, path: str) -> None:
        subs = self._listeners.get(path)
        if not subs:
            return
        docs = [_with_id(doc_id, doc) for doc_id, doc in self._collections.get(path, {}).items()]
        for sub in list(subs):
            sub.publish(copy.deepcopy(docs))


def _with_id(doc_id: str, doc: dict) -> dict:
    return {"id": doc_id, **copy.deepcopy(doc)}
