"""
Postgres-backed document store: JSONB documents keyed by (path, id), with
live listeners fed by LISTEN/NOTIFY. A trigger notifies on every write, so
changes from any writer (other app instances, admin scripts) reach subscribers.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Callable

import asyncpg

from app.errors import NotFound
from app.modules.store.subscription import Subscription

logger = logging.getLogger(__name__)

CHANNEL = "document_changes"

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS documents (
    path TEXT NOT NULL,
    id TEXT NOT NULL,
    data JSONB NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (path, id)
);

CREATE INDEX IF NOT EXISTS documents_path_created_idx ON documents (path, created_at);

CREATE OR REPLACE FUNCTION notify_document_change() RETURNS trigger AS $$
BEGIN
    PERFORM pg_notify('{CHANNEL}', COALESCE(NEW.path, OLD.path));
    RETURN NULL;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS documents_notify ON documents;
CREATE TRIGGER documents_notify
    AFTER INSERT OR UPDATE OR DELETE ON documents
    FOR EACH ROW EXECUTE FUNCTION notify_document_change();
"""


class PostgresDocumentStore:
    def __init__(self, database_url: str, min_size: int = 1, max_size: int = 10):
        self._database_url = database_url
        self._min_size = min_size
        self._max_size = max_size
        self._pool: asyncpg.Pool | None = None
        self._listen_conn: asyncpg.Connection | None = None
        self._listeners: dict[str, set[Subscription]] = {}
        self._refresh_locks: dict[str, asyncio.Lock] = {}
        self._tasks: set[asyncio.Task] = set()

    async def connect(self) -> None:
        self._pool = await asyncpg.create_pool(
            self._database_url, min_size=self._min_size, max_size=self._max_size,
        )
        async with self._pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)
        self._listen_conn = await asyncpg.connect(self._database_url)
        await self._listen_conn.add_listener(CHANNEL, self._on_notify)
        logger.info("Postgres document store connected, listening on %s", CHANNEL)

    async def close(self) -> None:
        for subs in list(self._listeners.values()):
            for sub in list(subs):
                sub.unsubscribe()
        self._listeners.clear()
        for task in list(self._tasks):
            task.cancel()
        if self._listen_conn is not None:
            await self._listen_conn.remove_listener(CHANNEL, self._on_notify)
            await self._listen_conn.close()
            self._listen_conn = None
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def add(self, path: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex
        await self._get_pool().execute(
            """
            INSERT INTO documents (path, id, data)
            VALUES ($1, $2, $3::jsonb || jsonb_build_object('timestamp', to_jsonb(NOW())))
            """,
            path,
            doc_id,
            json.dumps(data),
        )
        return doc_id

    async def get(self, path: str, doc_id: str) -> dict | None:
        row = await self._get_pool().fetchrow(
            "SELECT id, data FROM documents WHERE path = $1 AND id = $2",
            path,
            doc_id,
        )
        return _row_to_doc(row) if row else None

    async def list(self, path: str) -> list[dict]:
        rows = await self._get_pool().fetch(
            "SELECT id, data FROM documents WHERE path = $1 ORDER BY created_at, id",
            path,
        )
        return [_row_to_doc(r) for r in rows]

    async def update(self, path: str, doc_id: str, fields: dict) -> None:
        row = await self._get_pool().fetchrow(
            "UPDATE documents SET data = data || $3::jsonb WHERE path = $1 AND id = $2 RETURNING id",
            path,
            doc_id,
            json.dumps(fields),
        )
        if not row:
            raise NotFound(path, doc_id)

    async def delete(self, path: str, doc_id: str) -> bool:
        result = await self._get_pool().execute(
            "DELETE FROM documents WHERE path = $1 AND id = $2",
            path,
            doc_id,
        )
        return result != "DELETE 0"

    async def listen(self, path: str, transform: Callable | None = None) -> Subscription:
        sub = Subscription(path, transform=transform, on_close=self._remove_listener)
        self._listeners.setdefault(path, set()).add(sub)
        sub.publish(await self.list(path))
        return sub

    def _get_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("PostgresDocumentStore.connect() has not been awaited")
        return self._pool

    def _remove_listener(self, sub: Subscription) -> None:
        subs = self._listeners.get(sub.path)
        if subs is not None:
            subs.discard(sub)
            if not subs:
                del self._listeners[sub.path]
                self._refresh_locks.pop(sub.path, None)

    def _on_notify(self, connection, pid, channel, payload: str) -> None:
        if payload not in self._listeners:
            return
        task = asyncio.create_task(self._refresh(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _refresh(self, path: str) -> None:
        """Re-read the collection and publish it to every listener of that path."""
        if path not in self._listeners:
            return
        lock = self._refresh_locks.setdefault(path, asyncio.Lock())
        async with lock:
            subs = self._listeners.get(path)
            if not subs:
                return
            try:
                docs = await self.list(path)
                for sub in list(subs):
                    sub.publish(docs)
            except Exception as e:
                logger.exception("Failed to refresh snapshot for %s: %s", path, e)


def _row_to_doc(row) -> dict:
    data = row["data"]
    if isinstance(data, str):
        data = json.loads(data)
    return {"id": row["id"], **data}
