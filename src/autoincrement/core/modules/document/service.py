from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

import structlog
from pymongo.asynchronous.collection import AsyncCollection

from autoincrement.core.modules.document.models import IDENTITY_FIELD, Document

logger = structlog.get_logger(__name__)

SaveHook = Callable[[Document], Awaitable[None]]

T = TypeVar("T", bound=Document)


class DocumentCollection(Generic[T]):
    """Persists one Document type and runs save hooks before each write.

    pre_insert hooks run for new documents, pre_update hooks for documents that
    were already persisted. Hooks run in registration order and may mutate the
    document; an exception from any hook aborts the write and propagates.
    """

    def __init__(self, collection: AsyncCollection[dict[str, Any]], document_class: type[T]) -> None:
        self._collection = collection
        self.document_class = document_class
        self.pre_insert: list[SaveHook] = []
        self.pre_update: list[SaveHook] = []
        self._unique_fields: list[str] = []

    @property
    def name(self) -> str:
        return self._collection.name

    def add_unique_index(self, field: str) -> None:
        """Register a unique index, created by ensure_indexes()."""
        if field not in self._unique_fields:
            self._unique_fields.append(field)

    async def ensure_indexes(self) -> None:
        """Create the registered indexes. Idempotent."""
        for field in self._unique_fields:
            await self._collection.create_index([(field, 1)], unique=True)

    async def save(self, doc: T) -> T:
        """Insert a new document or replace an existing one."""
        if doc.is_new:
            for hook in self.pre_insert:
                await hook(doc)
            result = await self._collection.insert_one(doc.to_mongo())
            if doc.id is None:
                doc.id = result.inserted_id
            doc.mark_persisted()
            logger.debug("document_inserted", collection=self.name, id=doc.id)
        else:
            for hook in self.pre_update:
                await hook(doc)
            await self._collection.replace_one({IDENTITY_FIELD: doc.id}, doc.to_mongo())
        return doc

    async def find_one(self, query: dict[str, Any]) -> T | None:
        data = await self._collection.find_one(query)
        if data is None:
            return None
        return self.document_class.from_mongo(data)
