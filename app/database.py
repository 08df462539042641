"""
Document store construction. The store is built once per application in the
FastAPI lifespan and handed to callers; nothing holds it at module level.
"""

from app.config import Settings
from app.modules.store.base import DocumentStore


def build_store(settings: Settings) -> DocumentStore:
    if settings.store_backend == "postgres":
        from app.modules.store.postgres import PostgresDocumentStore
        return PostgresDocumentStore(settings.database_url)
    if settings.store_backend != "memory":
        raise ValueError(f"Unknown store backend '{settings.store_backend}'. Use 'memory' or 'postgres'.")
    from app.modules.store.memory import MemoryDocumentStore
    return MemoryDocumentStore()
