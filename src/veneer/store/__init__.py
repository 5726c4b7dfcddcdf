"""Read-only JSON API over a MongoDB-compatible document store.

Usage::

    from veneer import App, AppConfig
    from veneer.config import Mount
    from veneer.store import MongoDocumentStore

    store = MongoDocumentStore.connect("mongodb://localhost:27017")
    app = App(AppConfig(mounts=(Mount("/api", "*"),)), store=store)

``GET /api/shop/orders?filter={"status":"open"}`` answers with JSON for
API clients; browsers get the same data rendered through templates.
"""

from veneer.store.client import AsyncDocumentStore, DocumentStore, MongoDocumentStore
from veneer.store.mounts import MountResolver, ResolvedContext, StoreResourceType
from veneer.store.service import DocumentService, StoreResult

__all__ = [
    "AsyncDocumentStore",
    "DocumentService",
    "DocumentStore",
    "MongoDocumentStore",
    "MountResolver",
    "ResolvedContext",
    "StoreResourceType",
    "StoreResult",
]
