"""
Base interface for document stores.
Both the in-memory and the Postgres implementations conform to this interface.
Documents are plain JSON-compatible dicts; snapshots are lists of documents,
each carrying its store-assigned "id".
"""

from __future__ import annotations

from typing import Callable, Protocol, TypeVar

from app.modules.store.subscription import Subscription

T = TypeVar("T")


def collection_path(app_id: str, user_id: str, collection: str) -> str:
    return f"artifacts/{app_id}/users/{user_id}/{collection}"


class DocumentStore(Protocol):
    """Interface that every store backend implements."""

    async def connect(self) -> None:
        ...

    async def close(self) -> None:
        """Release connections and end every open subscription."""
        ...

    async def add(self, path: str, data: dict) -> str:
        """Insert a document, stamping a server-side "timestamp". Returns the new id."""
        ...

    async def get(self, path: str, doc_id: str) -> dict | None:
        ...

    async def list(self, path: str) -> list[dict]:
        ...

    async def update(self, path: str, doc_id: str, fields: dict) -> None:
        """Merge fields into an existing document. Raises NotFound when missing."""
        ...

    async def delete(self, path: str, doc_id: str) -> bool:
        """Delete a document. Returns False (without raising) when it did not exist."""
        ...

    async def listen(self, path: str, transform: Callable[[list[dict]], T] | None = None) -> Subscription[T]:
        """Open a live subscription; the current collection is published right away."""
        ...
