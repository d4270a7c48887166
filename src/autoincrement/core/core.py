from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from typing import Any, TypeVar
from urllib.parse import urlparse

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from autoincrement.config import Config
from autoincrement.core.modules.allocation.service import AllocationService
from autoincrement.core.modules.counter.registry import CounterRegistry
from autoincrement.core.modules.counter.store import MongoCounterStore
from autoincrement.core.modules.document.models import Document
from autoincrement.core.modules.document.service import DocumentCollection

T = TypeVar("T", bound=Document)


class Core:
    """Container providing config, database, the counter registry and document collections."""

    config: Config
    mongo_client: AsyncMongoClient[dict[str, Any]]
    database: AsyncDatabase[dict[str, Any]]
    counters: CounterRegistry

    def __init__(self, config: Config) -> None:
        """Initialize core with config, MongoDB and the counter registry."""
        self.config = config
        self.mongo_client = AsyncMongoClient(config.database_url)
        self.database = self.mongo_client.get_database(urlparse(config.database_url).path[1:])
        store = MongoCounterStore(self.database.get_collection(config.counters_collection))
        self.counters = CounterRegistry(store, retry_interval=config.bootstrap_retry_interval)
        self._collections: dict[str, DocumentCollection[Any]] = {}

    def collection(self, name: str, document_class: type[T]) -> DocumentCollection[T]:
        """Get or create the DocumentCollection for a MongoDB collection."""
        if name not in self._collections:
            self._collections[name] = DocumentCollection(self.database.get_collection(name), document_class)
        return self._collections[name]

    async def plugin(self, collection: DocumentCollection[Any], options: str | Mapping[str, Any]) -> AllocationService:
        """Sequence a field of the collection's documents and create its indexes. Requires a started core."""
        service = self.counters.plugin(collection, options)
        await collection.ensure_indexes()
        return service

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        await self.counters.on_start()

    async def on_stop(self) -> None:
        """Stop the counter registry and close MongoDB connection on shutdown."""
        await self.counters.on_stop()
        await self.mongo_client.aclose()
